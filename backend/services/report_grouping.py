"""Partition report records into customer or calendar-day groups."""

from dataclasses import dataclass, field
from datetime import datetime, timezone

from backend.services.report_policies import GroupingStrategy
from backend.services.report_records import ApplicationRecord, CustomerInfo


@dataclass
class ReportGroup:
    key: CustomerInfo | str  # customer, or an ISO day "YYYY-MM-DD"
    records: list[ApplicationRecord] = field(default_factory=list)


def day_key(dt: datetime) -> str:
    """Calendar day of the stored timestamp in UTC (naive means UTC)."""
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.date().isoformat()


def group_by_customer(records: list[ApplicationRecord]) -> list[ReportGroup]:
    """Bucket by customer id, groups in order of first appearance."""
    grouped: dict[int, ReportGroup] = {}
    for record in records:
        group = grouped.get(record.customer.id)
        if group is None:
            group = grouped[record.customer.id] = ReportGroup(key=record.customer)
        group.records.append(record)
    return list(grouped.values())


def group_by_date(records: list[ApplicationRecord]) -> list[ReportGroup]:
    """Bucket by calendar day, most recent day first."""
    grouped: dict[str, ReportGroup] = {}
    for record in records:
        key = day_key(record.application_date)
        group = grouped.get(key)
        if group is None:
            group = grouped[key] = ReportGroup(key=key)
        group.records.append(record)
    return [grouped[key] for key in sorted(grouped, reverse=True)]


def group_records(
    records: list[ApplicationRecord], strategy: GroupingStrategy
) -> list[ReportGroup]:
    if strategy is GroupingStrategy.BY_DATE:
        return group_by_date(records)
    return group_by_customer(records)
