"""Audit trail for application changes."""

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from backend.models import Application, ApplicationHistory

logger = logging.getLogger(__name__)


def diff_fields(old: Mapping[str, Any], new: Mapping[str, Any]) -> dict[str, dict]:
    """Per-field delta of an update payload against the stored values.

    Only keys present in ``new`` are considered, and a key is reported when
    its value differs from the old one by strict inequality.
    """
    changes = {}
    for key, new_value in new.items():
        old_value = old.get(key)
        if old_value != new_value:
            changes[key] = {"old": old_value, "new": new_value}
    return changes


def snapshot(app: Application, fields) -> dict[str, Any]:
    return {name: getattr(app, name) for name in fields}


async def record_history(
    db: AsyncSession,
    application_id: int,
    action: str,
    changes: dict,
    performed_by_id: int,
) -> ApplicationHistory:
    entry = ApplicationHistory(
        application_id=application_id,
        action=action,
        performed_by_id=performed_by_id,
    )
    entry.changes = changes
    db.add(entry)
    await db.flush()
    logger.info(
        f"Application {application_id} {action} by user {performed_by_id}: "
        f"{', '.join(changes) or 'no fields'}"
    )
    return entry


async def list_history(
    db: AsyncSession, application_id: int, limit: int | None = None
) -> list[ApplicationHistory]:
    query = (
        select(ApplicationHistory)
        .where(ApplicationHistory.application_id == application_id)
        .order_by(ApplicationHistory.performed_at.desc(), ApplicationHistory.id.desc())
    )
    if limit is not None:
        query = query.limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())
