"""SQLAlchemy database models."""

import json
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from backend.database import Base


def utcnow():
    return datetime.now(timezone.utc)


class Company(Base):
    """A tenant. Every other row belongs to exactly one company."""

    __tablename__ = "companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=utcnow)

    users = relationship("User", back_populates="company")
    customers = relationship("Customer", back_populates="company")


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    email = Column(String(255), nullable=False, unique=True)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    role = Column(String(20), default="applicator")  # admin, applicator
    license_number = Column(String(50), nullable=True)
    license_state = Column(String(2), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    company = relationship("Company", back_populates="users")


class Customer(Base):
    __tablename__ = "customers"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    state = Column(String(2), nullable=False)
    zip_code = Column(String(10), nullable=False)
    phone = Column(String(30), nullable=True)
    email = Column(String(255), nullable=True)
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)

    company = relationship("Company", back_populates="customers")
    applications = relationship("Application", back_populates="customer")


class Application(Base):
    """One logged pesticide application.

    Chemical and target pest names are stored denormalized so that reports
    keep showing what was applied even if the catalog entry changes later.
    """

    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, autoincrement=True)
    company_id = Column(Integer, ForeignKey("companies.id"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False)
    applicator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    application_date = Column(DateTime, nullable=False, index=True)

    chemical_name = Column(String(255), nullable=False)
    epa_number = Column(String(50), nullable=True)
    amount = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False)  # oz, gal, lb, ...
    target_pest_name = Column(String(255), nullable=True)
    application_method = Column(String(100), nullable=True)
    area_treated = Column(Float, nullable=True)
    area_unit = Column(String(20), nullable=True)  # sq ft, acres

    # Weather at time of application
    temperature = Column(Float, nullable=True)  # °F
    humidity = Column(Float, nullable=True)  # %
    wind_speed = Column(Float, nullable=True)  # mph
    wind_direction = Column(String(3), nullable=True)  # N, NE, ...
    weather_condition = Column(String(100), nullable=True)

    reentry_interval = Column(String(100), nullable=True)
    customer_consent = Column(Boolean, default=False)
    notes = Column(Text, nullable=True)
    status = Column(String(20), default="completed")  # completed, voided
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    customer = relationship("Customer", back_populates="applications")
    applicator = relationship("User")
    history = relationship(
        "ApplicationHistory",
        back_populates="application",
        cascade="all, delete-orphan",
    )


class ApplicationHistory(Base):
    """Audit trail row written for every change to an application."""

    __tablename__ = "application_history"

    id = Column(Integer, primary_key=True, autoincrement=True)
    application_id = Column(
        Integer, ForeignKey("applications.id"), nullable=False, index=True
    )
    action = Column(String(20), nullable=False)  # created, updated
    changes_json = Column(Text, nullable=True)  # {"field": {"old": .., "new": ..}}
    performed_by_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    performed_at = Column(DateTime, default=utcnow)

    application = relationship("Application", back_populates="history")
    performed_by = relationship("User")

    @property
    def changes(self):
        if self.changes_json:
            return json.loads(self.changes_json)
        return {}

    @changes.setter
    def changes(self, value):
        self.changes_json = json.dumps(value, default=str) if value else None
