"""Admin report endpoints."""

from datetime import date

from fastapi import APIRouter, Query, status

from clinicflow.dependencies import CurrentContext, DatabaseSession
from clinicflow.schemas.reports import ReportKind, ReportResponse
from clinicflow.services.report_service import ReportService

router = APIRouter()


@router.get(
    "/{kind}",
    response_model=ReportResponse,
    status_code=status.HTTP_200_OK,
    summary="Generate a report",
)
async def generate_report(
    kind: ReportKind,
    ctx: CurrentContext,
    db: DatabaseSession,
    start: date | None = Query(None),
    end: date | None = Query(None),
) -> ReportResponse:
    """
    Generate an admin report.

    The window defaults to the last 30 days.
    """
    report = await ReportService(db).generate_report(ctx, kind, start=start, end=end)
    return ReportResponse.model_validate(report)
