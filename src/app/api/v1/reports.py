"""Downloadable financial reports.

Every report is available as json, csv or pdf via the `format` query
parameter and is returned as an attachment.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.exports.service import ExportFormat, export_report
from src.app.financials.schemas import DateRangeName
from src.app.models.organization import User

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])


def _get_report_service(request: Request) -> Any:
    """Retrieve FinancialReportService from app.state, 503 if not available."""
    service = getattr(request.app.state, "financial_reports", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Financial reports not initialized",
        )
    return service


def _download(report_name: str, report: Any, fmt: ExportFormat) -> Response:
    result = export_report(report_name, report, fmt)
    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": result.content_disposition},
    )


@router.get("/pl")
async def export_profit_and_loss(
    request: Request,
    year: int | None = Query(default=None, ge=2000, le=2100),
    start_month: int = Query(default=1, ge=1, le=12),
    end_month: int = Query(default=12, ge=1, le=12),
    fmt: ExportFormat = Query(default=ExportFormat.JSON, alias="format"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    service = _get_report_service(request)
    year = year or date.today().year
    try:
        report = await service.profit_and_loss(
            org.organization_id, year, start_month=start_month, end_month=end_month
        )
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return _download("pl", report, fmt)


@router.get("/summary")
async def export_summary(
    request: Request,
    range_name: DateRangeName = Query(default=DateRangeName.LAST_30_DAYS, alias="range"),
    fmt: ExportFormat = Query(default=ExportFormat.JSON, alias="format"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    service = _get_report_service(request)
    report = await service.summary(org.organization_id, range_name)
    return _download("summary", report, fmt)


@router.get("/expenses")
async def export_expense_breakdown(
    request: Request,
    range_name: DateRangeName = Query(default=DateRangeName.THIS_MONTH, alias="range"),
    fmt: ExportFormat = Query(default=ExportFormat.JSON, alias="format"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    service = _get_report_service(request)
    report = await service.expense_breakdown(org.organization_id, range_name)
    return _download("expenses", report, fmt)


@router.get("/cash-flow")
async def export_cash_flow(
    request: Request,
    months: int = Query(default=6, ge=1, le=24),
    fmt: ExportFormat = Query(default=ExportFormat.JSON, alias="format"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    service = _get_report_service(request)
    report = await service.cash_flow(org.organization_id, months=months)
    return _download("cash_flow", report, fmt)
