"""
Pytest configuration and shared fixtures for the Field Log backend tests.
"""

import os
import tempfile
from datetime import datetime

import pytest

# Point the app at a throwaway database before anything imports settings
_tmp_dir = tempfile.mkdtemp(prefix="fieldlog-tests-")
os.environ.setdefault("DATA_DIR", _tmp_dir)
os.environ.setdefault(
    "DATABASE_URL", f"sqlite+aiosqlite:///{os.path.join(_tmp_dir, 'test.db')}"
)
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("DEBUG", "false")

from backend.database import Base, async_session, engine  # noqa: E402
from backend.models import Application, Company, Customer, User  # noqa: E402
from backend.services.report_records import (  # noqa: E402
    ApplicationRecord,
    ApplicatorInfo,
    CustomerInfo,
    WeatherSnapshot,
)


# ── Plain record builders (no database) ──

ACME = CustomerInfo(
    id=1,
    name="Acme Farms",
    address="100 Orchard Rd",
    city="Fresno",
    state="CA",
    zip_code="93650",
)
BAYVIEW = CustomerInfo(
    id=2,
    name="Bayview Golf Club",
    address="2 Links Dr",
    city="Monterey",
    state="CA",
    zip_code="93940",
)
APPLICATOR = ApplicatorInfo(
    id=10,
    first_name="Dana",
    last_name="Reyes",
    license_number="12345",
    license_state="CA",
)


def make_record(record_id: int, when: datetime, customer: CustomerInfo = ACME, **kwargs):
    fields = {
        "id": record_id,
        "application_date": when,
        "chemical_name": "Heritage",
        "epa_number": "100-1093",
        "amount": 4.0,
        "unit": "oz",
        "target_pest_name": "Dollar spot",
        "application_method": "Broadcast spray",
        "area_treated": 2.5,
        "area_unit": "acres",
        "weather": WeatherSnapshot(
            temperature=72, humidity=40, wind_speed=5, wind_direction="NW", condition="Sunny"
        ),
        "reentry_interval": "12 hours",
        "customer_consent": True,
        "customer": customer,
        "applicator": APPLICATOR,
    }
    fields.update(kwargs)
    return ApplicationRecord(**fields)


@pytest.fixture
def record_factory():
    return make_record


# ── Database fixtures ──

@pytest.fixture
async def db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    async with async_session() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def tenant(db):
    """Two companies; the first one has customers, users and applications."""
    company = Company(name="Green Acres Pest Control")
    other = Company(name="Rival Lawn Co")
    db.add_all([company, other])
    await db.flush()

    applicator = User(
        company_id=company.id,
        email="dana@greenacres.test",
        first_name="Dana",
        last_name="Reyes",
        role="admin",
        license_number="12345",
        license_state="TX",
    )
    second_applicator = User(
        company_id=company.id,
        email="sam@greenacres.test",
        first_name="Sam",
        last_name="Okafor",
    )
    outsider = User(
        company_id=other.id,
        email="lee@rival.test",
        first_name="Lee",
        last_name="Park",
    )
    acme = Customer(
        company_id=company.id,
        name="Acme Farms",
        address="100 Orchard Rd",
        city="Austin",
        state="TX",
        zip_code="78701",
    )
    bayview = Customer(
        company_id=company.id,
        name="Bayview Golf Club",
        address="2 Links Dr",
        city="Houston",
        state="TX",
        zip_code="77002",
    )
    foreign_customer = Customer(
        company_id=other.id,
        name="Rival Customer",
        address="9 Elm St",
        city="Dallas",
        state="TX",
        zip_code="75201",
    )
    db.add_all([applicator, second_applicator, outsider, acme, bayview, foreign_customer])
    await db.flush()

    def app_row(customer, when, user=applicator, status="completed", company_id=None, **kw):
        return Application(
            company_id=company_id or company.id,
            customer_id=customer.id,
            applicator_id=user.id,
            application_date=when,
            chemical_name=kw.pop("chemical_name", "Heritage"),
            epa_number="100-1093",
            amount=4,
            unit="oz",
            temperature=80,
            humidity=55,
            wind_speed=6,
            wind_direction="S",
            weather_condition="Clear",
            reentry_interval="12 hours",
            area_treated=1.5,
            area_unit="acres",
            customer_consent=True,
            status=status,
            **kw,
        )

    applications = [
        app_row(acme, datetime(2024, 3, 12, 9, 0)),
        app_row(bayview, datetime(2024, 3, 11, 15, 30)),
        app_row(acme, datetime(2024, 3, 11, 8, 0), user=second_applicator),
        app_row(acme, datetime(2024, 3, 10, 7, 45)),
        app_row(bayview, datetime(2024, 3, 10, 7, 0), status="voided"),
        app_row(
            foreign_customer,
            datetime(2024, 3, 11, 10, 0),
            user=outsider,
            company_id=other.id,
        ),
    ]
    db.add_all(applications)
    await db.commit()

    return {
        "company": company,
        "other": other,
        "applicator": applicator,
        "second_applicator": second_applicator,
        "outsider": outsider,
        "acme": acme,
        "bayview": bayview,
        "foreign_customer": foreign_customer,
        "applications": applications,
    }
