"""REST API endpoints for invoices, payments, expenses and financial summaries.

Invoice status moves draft -> sent -> paid, with overdue and void as side
exits. Recording a payment against an invoice updates its paid amount and
marks it paid once fully covered.
"""

from __future__ import annotations

from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from src.app.api.deps import get_current_user, get_organization
from src.app.core.organization import OrganizationContext
from src.app.financials.invoices import InvoiceStateError
from src.app.financials.schemas import (
    CashFlowReport,
    DateRangeName,
    ExpenseBreakdown,
    ExpenseCategory,
    ExpenseCreate,
    ExpenseFilter,
    ExpenseRead,
    ExpenseStatus,
    ExpenseUpdate,
    FinancialSummary,
    InvoiceCreate,
    InvoiceFilter,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    PaymentCreate,
    PaymentFilter,
    PaymentMethod,
    PaymentRead,
)
from src.app.models.organization import User

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/financials", tags=["financials"])


# ── Dependency Injection Helpers ─────────────────────────────────────────────


def _get_financial_repository(request: Request) -> Any:
    """Retrieve FinancialRepository from app.state, 503 if not available."""
    repo = getattr(request.app.state, "financial_repository", None)
    if repo is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Financials not initialized",
        )
    return repo


def _get_report_service(request: Request) -> Any:
    """Retrieve FinancialReportService from app.state, 503 if not available."""
    service = getattr(request.app.state, "financial_reports", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Financial reports not initialized",
        )
    return service


async def _update_invoice(
    repo: Any, org_id: str, invoice_id: str, body: InvoiceUpdate
) -> InvoiceRead:
    try:
        return await repo.update_invoice(org_id, invoice_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvoiceStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


# ── Invoices ─────────────────────────────────────────────────────────────────


@router.post("/invoices", response_model=InvoiceRead, status_code=201)
async def create_invoice(
    body: InvoiceCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> InvoiceRead:
    """Create a draft invoice numbered for its issue year."""
    repo = _get_financial_repository(request)
    return await repo.create_invoice(org.organization_id, body)


@router.get("/invoices", response_model=list[InvoiceRead])
async def list_invoices(
    request: Request,
    status_filter: InvoiceStatus | None = Query(default=None, alias="status"),
    client: str | None = Query(default=None, description="Client name contains"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[InvoiceRead]:
    repo = _get_financial_repository(request)
    filters = InvoiceFilter(status=status_filter, client_name=client, limit=limit, offset=offset)
    return await repo.list_invoices(org.organization_id, filters)


@router.get("/invoices/{invoice_id}", response_model=InvoiceRead)
async def get_invoice(
    invoice_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> InvoiceRead:
    repo = _get_financial_repository(request)
    invoice = await repo.get_invoice(org.organization_id, invoice_id)
    if invoice is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Invoice not found: {invoice_id}",
        )
    return invoice


@router.patch("/invoices/{invoice_id}", response_model=InvoiceRead)
async def update_invoice(
    invoice_id: str,
    body: InvoiceUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> InvoiceRead:
    repo = _get_financial_repository(request)
    return await _update_invoice(repo, org.organization_id, invoice_id, body)


@router.post("/invoices/{invoice_id}/send", response_model=InvoiceRead)
async def send_invoice(
    invoice_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> InvoiceRead:
    repo = _get_financial_repository(request)
    invoice = await _update_invoice(
        repo, org.organization_id, invoice_id, InvoiceUpdate(status=InvoiceStatus.SENT)
    )
    logger.info(
        "invoice.sent",
        org_id=org.organization_id,
        invoice_id=invoice.id,
        number=invoice.number,
        client_name=invoice.client_name,
        amount=invoice.amount,
    )
    return invoice


@router.post("/invoices/{invoice_id}/void", response_model=InvoiceRead)
async def void_invoice(
    invoice_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> InvoiceRead:
    repo = _get_financial_repository(request)
    return await _update_invoice(
        repo, org.organization_id, invoice_id, InvoiceUpdate(status=InvoiceStatus.VOID)
    )


# ── Payments ─────────────────────────────────────────────────────────────────


@router.post("/payments", response_model=PaymentRead, status_code=201)
async def record_payment(
    body: PaymentCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> PaymentRead:
    repo = _get_financial_repository(request)
    try:
        return await repo.record_payment(org.organization_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvoiceStateError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.get("/payments", response_model=list[PaymentRead])
async def list_payments(
    request: Request,
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    method: PaymentMethod | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[PaymentRead]:
    repo = _get_financial_repository(request)
    filters = PaymentFilter(
        start_date=start_date, end_date=end_date, method=method, limit=limit, offset=offset
    )
    return await repo.list_payments(org.organization_id, filters)


# ── Expenses ─────────────────────────────────────────────────────────────────


@router.post("/expenses", response_model=ExpenseRead, status_code=201)
async def create_expense(
    body: ExpenseCreate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ExpenseRead:
    repo = _get_financial_repository(request)
    return await repo.create_expense(org.organization_id, body)


@router.get("/expenses", response_model=list[ExpenseRead])
async def list_expenses(
    request: Request,
    category: ExpenseCategory | None = Query(default=None),
    status_filter: ExpenseStatus | None = Query(default=None, alias="status"),
    start_date: date | None = Query(default=None),
    end_date: date | None = Query(default=None),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> list[ExpenseRead]:
    repo = _get_financial_repository(request)
    filters = ExpenseFilter(
        category=category,
        status=status_filter,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
    )
    return await repo.list_expenses(org.organization_id, filters)


@router.get("/expenses/breakdown", response_model=ExpenseBreakdown)
async def get_expense_breakdown(
    request: Request,
    range_name: DateRangeName = Query(default=DateRangeName.THIS_MONTH, alias="range"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ExpenseBreakdown:
    service = _get_report_service(request)
    return await service.expense_breakdown(org.organization_id, range_name)


@router.get("/expenses/{expense_id}", response_model=ExpenseRead)
async def get_expense(
    expense_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ExpenseRead:
    repo = _get_financial_repository(request)
    expense = await repo.get_expense(org.organization_id, expense_id)
    if expense is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Expense not found: {expense_id}",
        )
    return expense


@router.patch("/expenses/{expense_id}", response_model=ExpenseRead)
async def update_expense(
    expense_id: str,
    body: ExpenseUpdate,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> ExpenseRead:
    repo = _get_financial_repository(request)
    try:
        return await repo.update_expense(org.organization_id, expense_id, body)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))


@router.delete("/expenses/{expense_id}", status_code=204)
async def delete_expense(
    expense_id: str,
    request: Request,
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> Response:
    repo = _get_financial_repository(request)
    try:
        await repo.deactivate_expense(org.organization_id, expense_id)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return Response(status_code=204)


# ── Summaries ────────────────────────────────────────────────────────────────


@router.get("/summary", response_model=FinancialSummary)
async def get_financial_summary(
    request: Request,
    range_name: DateRangeName = Query(default=DateRangeName.LAST_30_DAYS, alias="range"),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> FinancialSummary:
    service = _get_report_service(request)
    return await service.summary(org.organization_id, range_name)


@router.get("/cash-flow", response_model=CashFlowReport)
async def get_cash_flow(
    request: Request,
    months: int = Query(default=6, ge=1, le=24),
    user: User = Depends(get_current_user),
    org: OrganizationContext = Depends(get_organization),
) -> CashFlowReport:
    service = _get_report_service(request)
    return await service.cash_flow(org.organization_id, months=months)
