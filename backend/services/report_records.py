"""Report input records and the tenant-scoped query that produces them.

The layout code never touches ORM rows; it reads the immutable
``ApplicationRecord`` snapshots built here, with the customer and
applicator already joined in.
"""

import logging
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.models import Application, Company, Customer, User

logger = logging.getLogger(__name__)

# Only completed applications go into compliance reports; voided ones are
# excluded even when a customer/applicator filter names them explicitly.
REPORTABLE_STATUS = "completed"


class CustomerInfo(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    name: str
    address: str
    city: str
    state: str
    zip_code: str


class ApplicatorInfo(BaseModel):
    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int
    first_name: str
    last_name: str
    license_number: str | None = None
    license_state: str | None = None


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    temperature: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    wind_direction: str | None = None
    condition: str | None = None


class ApplicationRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    application_date: datetime
    chemical_name: str
    epa_number: str | None = None
    amount: float
    unit: str
    target_pest_name: str | None = None
    application_method: str | None = None
    area_treated: float | None = None
    area_unit: str | None = None
    weather: WeatherSnapshot = WeatherSnapshot()
    reentry_interval: str | None = None
    customer_consent: bool = False
    customer: CustomerInfo
    applicator: ApplicatorInfo


def naive_utc(dt: datetime) -> datetime:
    """Use naive UTC, since SQLite/aiosqlite strips tzinfo on round-trip."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def to_record(app: Application) -> ApplicationRecord:
    """Snapshot an ORM application (with customer/applicator loaded)."""
    return ApplicationRecord(
        id=app.id,
        application_date=app.application_date,
        chemical_name=app.chemical_name,
        epa_number=app.epa_number,
        amount=app.amount,
        unit=app.unit,
        target_pest_name=app.target_pest_name,
        application_method=app.application_method,
        area_treated=app.area_treated,
        area_unit=app.area_unit,
        weather=WeatherSnapshot(
            temperature=app.temperature,
            humidity=app.humidity,
            wind_speed=app.wind_speed,
            wind_direction=app.wind_direction,
            condition=app.weather_condition,
        ),
        reentry_interval=app.reentry_interval,
        customer_consent=bool(app.customer_consent),
        customer=CustomerInfo.model_validate(app.customer),
        applicator=ApplicatorInfo.model_validate(app.applicator),
    )


async def get_company(db: AsyncSession, company_id: int) -> Company | None:
    result = await db.execute(select(Company).where(Company.id == company_id))
    return result.scalar_one_or_none()


async def get_tenant_customer(
    db: AsyncSession, company_id: int, customer_id: int
) -> Customer | None:
    """Look up a customer, but only inside the caller's company."""
    result = await db.execute(
        select(Customer).where(
            Customer.id == customer_id, Customer.company_id == company_id
        )
    )
    return result.scalar_one_or_none()


async def get_tenant_user(
    db: AsyncSession, company_id: int, user_id: int
) -> User | None:
    """Look up a user (applicator), but only inside the caller's company."""
    result = await db.execute(
        select(User).where(User.id == user_id, User.company_id == company_id)
    )
    return result.scalar_one_or_none()


async def fetch_report_records(
    db: AsyncSession,
    company_id: int,
    date_from: datetime,
    date_to: datetime,
    customer_id: int | None = None,
    applicator_id: int | None = None,
) -> list[ApplicationRecord]:
    """Fetch reportable applications, most recent first.

    Both ends of the date range are inclusive.
    """
    query = (
        select(Application)
        .where(
            Application.company_id == company_id,
            Application.application_date >= date_from,
            Application.application_date <= date_to,
            Application.status == REPORTABLE_STATUS,
        )
        .options(
            selectinload(Application.customer),
            selectinload(Application.applicator),
        )
        .order_by(Application.application_date.desc())
    )
    if customer_id is not None:
        query = query.where(Application.customer_id == customer_id)
    if applicator_id is not None:
        query = query.where(Application.applicator_id == applicator_id)

    result = await db.execute(query)
    records = [to_record(app) for app in result.scalars().all()]
    logger.info(
        f"Fetched {len(records)} reportable applications for company {company_id}"
    )
    return records
