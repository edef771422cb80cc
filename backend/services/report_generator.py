"""Compliance report orchestrator.

Validates the request, fetches the tenant's completed applications, groups
them according to the state's policy and drives the layout engine. Nothing
is written to the database.

Validation happens before any rendering, in this order:
    INVALID_RANGE -> UNKNOWN_JURISDICTION -> NOT_FOUND (company, customer,
    applicator)
"""

import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from backend.errors import invalid_range, not_found
from backend.services.report_grouping import group_records
from backend.services.report_layout import ReportLayout, ReportMeta
from backend.services.report_policies import (
    GroupingStrategy,
    JurisdictionPolicy,
    get_policy,
)
from backend.services.report_records import (
    ApplicationRecord,
    fetch_report_records,
    get_company,
    get_tenant_customer,
    get_tenant_user,
    naive_utc,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReportRequest:
    jurisdiction: str
    date_from: datetime
    date_to: datetime
    customer_id: int | None = None
    applicator_id: int | None = None


@dataclass
class GeneratedReport:
    filename: str
    content: bytes
    page_count: int
    record_count: int
    layout: ReportLayout | None = None


def report_filename(jurisdiction: str, generated_at: datetime) -> str:
    """``report-{jurisdiction}-{epoch millis}.pdf``"""
    return f"report-{jurisdiction}-{int(generated_at.timestamp() * 1000)}.pdf"


def render_report(
    meta: ReportMeta,
    records: list[ApplicationRecord],
    compress: bool = True,
) -> tuple[bytes, ReportLayout]:
    """Lay out a full report and return the PDF bytes with the finished layout.

    The jurisdiction policy travels in ``meta``. Pass ``compress=False`` to get
    uncompressed page streams.
    """
    buffer = io.BytesIO()
    layout = ReportLayout(buffer, compress=compress)
    layout.place_header(meta)

    policy = meta.policy
    if not records:
        layout.place_no_data()
    else:
        # By-customer banners already name the customer, so only by-date
        # entries carry a location line.
        include_location = policy.grouping is GroupingStrategy.BY_DATE
        for group in group_records(records, policy.grouping):
            layout.place_group_header(group.key)
            for record in group.records:
                layout.place_entry(record, policy, include_location)
            layout.end_group()

    layout.finalize()
    return buffer.getvalue(), layout


async def generate_report(
    db: AsyncSession,
    company_id: int,
    request: ReportRequest,
    now: datetime | None = None,
) -> GeneratedReport:
    """Build the compliance PDF for one tenant.

    Args:
        db: Database session.
        company_id: The caller's tenant; every lookup is scoped to it.
        request: Jurisdiction, inclusive date range and optional filters.
        now: Generation timestamp, defaults to the current UTC time.

    Raises:
        ApiError: INVALID_RANGE, UNKNOWN_JURISDICTION or NOT_FOUND. Errors
            from the database propagate unchanged.
    """
    date_from = naive_utc(request.date_from)
    date_to = naive_utc(request.date_to)
    if date_to < date_from:
        raise invalid_range()
    policy: JurisdictionPolicy = get_policy(request.jurisdiction)

    company = await get_company(db, company_id)
    if company is None:
        raise not_found("Company")
    if request.customer_id is not None:
        if await get_tenant_customer(db, company_id, request.customer_id) is None:
            raise not_found("Customer")
    if request.applicator_id is not None:
        if await get_tenant_user(db, company_id, request.applicator_id) is None:
            raise not_found("Applicator")

    records = await fetch_report_records(
        db,
        company_id,
        date_from,
        date_to,
        customer_id=request.customer_id,
        applicator_id=request.applicator_id,
    )

    generated_at = now or datetime.now(timezone.utc)
    meta = ReportMeta(
        company_name=company.name,
        policy=policy,
        date_from=date_from,
        date_to=date_to,
        generated_at=generated_at,
    )
    content, layout = render_report(meta, records)
    page_count = len(layout.footers)

    logger.info(
        f"Generated {policy.code} report for company {company_id}: "
        f"{len(records)} applications, {page_count} page(s)"
    )
    return GeneratedReport(
        filename=report_filename(policy.code, generated_at),
        content=content,
        page_count=page_count,
        record_count=len(records),
        layout=layout,
    )
