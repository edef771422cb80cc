"""Reports router - PDF compliance report generation."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from backend.auth import get_current_user
from backend.config import settings
from backend.database import get_db
from backend.errors import ApiError, internal_error
from backend.models import User
from backend.services.report_generator import ReportRequest, generate_report
from backend.services.report_policies import POLICIES

logger = logging.getLogger(__name__)
router = APIRouter()


class GenerateReportRequest(BaseModel):
    """Request body; accepts the camelCase names the mobile/web clients send."""

    model_config = ConfigDict(populate_by_name=True)

    state: str
    date_from: datetime = Field(alias="dateFrom")
    date_to: datetime = Field(alias="dateTo")
    customer_id: int | None = Field(default=None, alias="customerId")
    applicator_id: int | None = Field(default=None, alias="applicatorId")


def _iter_chunks(content: bytes, chunk_size: int):
    for start in range(0, len(content), chunk_size):
        yield content[start : start + chunk_size]


@router.get("/jurisdictions")
async def list_jurisdictions():
    """Report formats clients can choose from."""
    return {
        "jurisdictions": [
            {
                "code": p.code,
                "name": p.display_name,
                "grouping": p.grouping.value,
                "fields": [f.value for f in p.enabled_fields],
            }
            for p in POLICIES.values()
        ]
    }


@router.post("/generate")
async def generate(
    data: GenerateReportRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Generate and download a state compliance report as PDF."""
    try:
        report = await generate_report(
            db,
            user.company_id,
            ReportRequest(
                jurisdiction=data.state,
                date_from=data.date_from,
                date_to=data.date_to,
                customer_id=data.customer_id,
                applicator_id=data.applicator_id,
            ),
        )
    except ApiError:
        raise
    except Exception as e:
        logger.exception(f"Report generation failed: {e}")
        raise internal_error(f"Report generation failed: {str(e)}")

    return StreamingResponse(
        _iter_chunks(report.content, settings.REPORT_STREAM_CHUNK_SIZE),
        media_type="application/pdf",
        headers={
            "Content-Disposition": f'attachment; filename="{report.filename}"',
            "X-Report-Pages": str(report.page_count),
        },
    )
