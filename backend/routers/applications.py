"""Applications router - logging, corrections and audit history."""

import logging
from datetime import datetime
from typing import Literal

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from backend.auth import get_current_user
from backend.database import get_db
from backend.errors import ApiError, bad_request, internal_error, not_found
from backend.models import Application, ApplicationHistory, User
from backend.services.audit import diff_fields, list_history, record_history, snapshot
from backend.services.report_records import get_tenant_customer, naive_utc

logger = logging.getLogger(__name__)
router = APIRouter()


class ApplicationCreate(BaseModel):
    """A new application log. Applicator and company come from the caller."""

    customer_id: int
    application_date: datetime
    chemical_name: str = Field(min_length=1)
    epa_number: str | None = None
    amount: float = Field(gt=0)
    unit: str = Field(min_length=1)
    target_pest_name: str | None = None
    application_method: str | None = None
    area_treated: float | None = Field(default=None, gt=0)
    area_unit: str | None = None
    temperature: float | None = None
    humidity: float | None = Field(default=None, ge=0, le=100)
    wind_speed: float | None = Field(default=None, ge=0)
    wind_direction: str | None = None
    weather_condition: str | None = None
    reentry_interval: str | None = None
    customer_consent: bool = False
    notes: str | None = Field(default=None, max_length=2000)


class ApplicationUpdate(BaseModel):
    """Correctable fields. The applicator and company can never change."""

    customer_id: int | None = None
    application_date: datetime | None = None
    chemical_name: str | None = None
    epa_number: str | None = None
    amount: float | None = None
    unit: str | None = None
    target_pest_name: str | None = None
    application_method: str | None = None
    area_treated: float | None = None
    area_unit: str | None = None
    temperature: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    wind_direction: str | None = None
    weather_condition: str | None = None
    reentry_interval: str | None = None
    customer_consent: bool | None = None
    notes: str | None = None
    status: Literal["completed", "voided"] | None = None


REQUIRED_FIELDS = (
    "customer_id",
    "application_date",
    "chemical_name",
    "amount",
    "unit",
    "customer_consent",
    "status",
)


def _serialize(app: Application) -> dict:
    return {
        "id": app.id,
        "customer_id": app.customer_id,
        "applicator_id": app.applicator_id,
        "application_date": str(app.application_date),
        "chemical_name": app.chemical_name,
        "epa_number": app.epa_number,
        "amount": app.amount,
        "unit": app.unit,
        "target_pest_name": app.target_pest_name,
        "application_method": app.application_method,
        "area_treated": app.area_treated,
        "area_unit": app.area_unit,
        "temperature": app.temperature,
        "humidity": app.humidity,
        "wind_speed": app.wind_speed,
        "wind_direction": app.wind_direction,
        "weather_condition": app.weather_condition,
        "reentry_interval": app.reentry_interval,
        "customer_consent": app.customer_consent,
        "notes": app.notes,
        "status": app.status,
        "created_at": str(app.created_at),
        "updated_at": str(app.updated_at),
    }


def _serialize_with_people(app: Application) -> dict:
    data = _serialize(app)
    data["customer"] = {
        "id": app.customer.id,
        "name": app.customer.name,
        "address": app.customer.address,
        "city": app.customer.city,
        "state": app.customer.state,
        "zip_code": app.customer.zip_code,
    }
    data["applicator"] = {
        "id": app.applicator.id,
        "first_name": app.applicator.first_name,
        "last_name": app.applicator.last_name,
        "license_number": app.applicator.license_number,
        "license_state": app.applicator.license_state,
    }
    return data


def _serialize_history(entry: ApplicationHistory) -> dict:
    return {
        "id": entry.id,
        "action": entry.action,
        "changes": entry.changes,
        "performed_by_id": entry.performed_by_id,
        "performed_at": str(entry.performed_at),
    }


async def _get_tenant_application(
    db: AsyncSession, company_id: int, application_id: int, with_people: bool = False
) -> Application:
    query = select(Application).where(
        Application.id == application_id,
        Application.company_id == company_id,
    )
    if with_people:
        query = query.options(
            selectinload(Application.customer), selectinload(Application.applicator)
        )
    result = await db.execute(query)
    app = result.scalar_one_or_none()
    if not app:
        raise not_found("Application")
    return app


@router.post("", status_code=201)
async def create_application(
    data: ApplicationCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Log a new application for one of the caller's customers."""
    try:
        customer = await get_tenant_customer(db, user.company_id, data.customer_id)
        if not customer:
            raise not_found("Customer")

        fields = data.model_dump()
        fields["application_date"] = naive_utc(data.application_date)
        app = Application(
            company_id=user.company_id,
            applicator_id=user.id,
            status="completed",
            **fields,
        )
        db.add(app)
        await db.flush()
        await record_history(db, app.id, "created", {}, user.id)
        await db.refresh(app)

        return {"data": _serialize(app)}

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Application create failed: {e}")
        raise internal_error(f"Application create failed: {str(e)}")


@router.get("")
async def list_applications(
    customer_id: int | None = None,
    applicator_id: int | None = None,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's company applications, newest first, one page at a time."""
    conditions = [Application.company_id == user.company_id]
    if customer_id is not None:
        conditions.append(Application.customer_id == customer_id)
    if applicator_id is not None:
        conditions.append(Application.applicator_id == applicator_id)
    if date_from is not None:
        conditions.append(Application.application_date >= naive_utc(date_from))
    if date_to is not None:
        conditions.append(Application.application_date <= naive_utc(date_to))

    total = (
        await db.execute(select(func.count(Application.id)).where(*conditions))
    ).scalar_one()
    result = await db.execute(
        select(Application)
        .where(*conditions)
        .options(selectinload(Application.customer), selectinload(Application.applicator))
        .order_by(Application.application_date.desc(), Application.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    total_pages = (total + limit - 1) // limit

    return {
        "data": [_serialize_with_people(a) for a in result.scalars().all()],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_more": page < total_pages,
        },
    }


@router.get("/{application_id}")
async def get_application(
    application_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """One application with its customer, applicator and last 10 changes."""
    app = await _get_tenant_application(
        db, user.company_id, application_id, with_people=True
    )
    entries = await list_history(db, application_id, limit=10)
    data = _serialize_with_people(app)
    data["history"] = [_serialize_history(h) for h in entries]
    return {"data": data}


@router.patch("/{application_id}")
async def update_application(
    application_id: int,
    data: ApplicationUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Correct an application and record what changed in its history."""
    try:
        app = await _get_tenant_application(db, user.company_id, application_id)

        update = data.model_dump(exclude_unset=True)
        cleared = [name for name in REQUIRED_FIELDS if name in update and update[name] is None]
        if cleared:
            raise bad_request(f"Fields cannot be cleared: {', '.join(cleared)}")
        if "application_date" in update:
            update["application_date"] = naive_utc(update["application_date"])
        if update.get("customer_id") not in (None, app.customer_id):
            customer = await get_tenant_customer(
                db, user.company_id, update["customer_id"]
            )
            if not customer:
                raise not_found("Customer")

        changes = diff_fields(snapshot(app, update.keys()), update)
        if not changes:
            return {"data": _serialize(app), "changes": {}}

        for name, delta in changes.items():
            setattr(app, name, delta["new"])
        await record_history(db, app.id, "updated", changes, user.id)
        await db.refresh(app)

        return {"data": _serialize(app), "changes": changes}

    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Application update failed: {e}")
        raise internal_error(f"Application update failed: {str(e)}")


@router.get("/{application_id}/history")
async def get_application_history(
    application_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Audit trail for one application, newest first."""
    await _get_tenant_application(db, user.company_id, application_id)
    entries = await list_history(db, application_id)
    return {"history": [_serialize_history(h) for h in entries]}
