"""Financial repository -- async CRUD and aggregates for invoices, payments, expenses.

Provides FinancialRepository with the session_factory callable pattern. All
methods take organization_id as first argument. Aggregates (sums, group-bys)
are pushed to SQL; report arithmetic lives in reports.py.
"""

from __future__ import annotations

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import date, datetime, timezone

import structlog
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.app.core.monitoring import invoices_created_total, payments_recorded_total
from src.app.financials.invoices import apply_payment, check_transition, next_invoice_number
from src.app.financials.models import ExpenseModel, InvoiceModel, PaymentModel
from src.app.financials.schemas import (
    OUTSTANDING_INVOICE_STATUSES,
    ExpenseCreate,
    ExpenseFilter,
    ExpenseRead,
    ExpenseStatus,
    ExpenseUpdate,
    InvoiceCreate,
    InvoiceFilter,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    PaymentCreate,
    PaymentFilter,
    PaymentRead,
    TopClient,
)

logger = structlog.get_logger(__name__)


# ── Serialization Helpers ───────────────────────────────────────────────────


def _parse_id(value: str) -> uuid.UUID | None:
    """Parse a path id. Malformed ids match nothing."""
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


def _uuid_or_none(value: str | None) -> uuid.UUID | None:
    return uuid.UUID(value) if value else None


def _str_or_none(value: uuid.UUID | None) -> str | None:
    return str(value) if value else None


def _model_to_invoice(model: InvoiceModel) -> InvoiceRead:
    """Convert InvoiceModel to InvoiceRead schema."""
    return InvoiceRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        number=model.number,
        campaign_id=_str_or_none(model.campaign_id),
        client_name=model.client_name,
        amount=model.amount,
        paid_amount=model.paid_amount or 0.0,
        issue_date=model.issue_date,
        due_date=model.due_date,
        paid_date=model.paid_date,
        status=model.status,
        notes=model.notes,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


def _model_to_payment(model: PaymentModel) -> PaymentRead:
    """Convert PaymentModel to PaymentRead schema."""
    return PaymentRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        invoice_id=_str_or_none(model.invoice_id),
        client_name=model.client_name,
        amount=model.amount,
        method=model.method,
        payment_date=model.payment_date,
        reference=model.reference,
        status=model.status,
        created_at=model.created_at,
    )


def _model_to_expense(model: ExpenseModel) -> ExpenseRead:
    """Convert ExpenseModel to ExpenseRead schema."""
    return ExpenseRead(
        id=str(model.id),
        organization_id=str(model.organization_id),
        description=model.description,
        amount=model.amount,
        category=model.category,
        vendor=model.vendor,
        expense_date=model.expense_date,
        status=model.status,
        show_id=_str_or_none(model.show_id),
        is_active=model.is_active,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )


class FinancialRepository:
    """Async CRUD operations for invoices, payments, and expenses.

    Args:
        session_factory: Async callable that yields AsyncSession instances.
        invoice_prefix: Prefix for generated invoice numbers.
    """

    def __init__(
        self,
        session_factory: Callable[..., AsyncGenerator[AsyncSession, None]],
        invoice_prefix: str = "INV",
    ) -> None:
        self._session_factory = session_factory
        self._invoice_prefix = invoice_prefix

    async def _get_invoice_model(
        self, session: AsyncSession, org_id: str, invoice_id: str
    ) -> InvoiceModel:
        invoice_uuid = _parse_id(invoice_id)
        model = None
        if invoice_uuid is not None:
            stmt = select(InvoiceModel).where(
                InvoiceModel.organization_id == uuid.UUID(org_id),
                InvoiceModel.id == invoice_uuid,
            )
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
        if model is None:
            raise ValueError(f"Invoice not found: org={org_id}, id={invoice_id}")
        return model

    async def _get_expense_model(
        self, session: AsyncSession, org_id: str, expense_id: str
    ) -> ExpenseModel | None:
        expense_uuid = _parse_id(expense_id)
        if expense_uuid is None:
            return None
        stmt = select(ExpenseModel).where(
            ExpenseModel.organization_id == uuid.UUID(org_id),
            ExpenseModel.id == expense_uuid,
            ExpenseModel.is_active.is_(True),
        )
        result = await session.execute(stmt)
        return result.scalar_one_or_none()

    # ── Invoices ────────────────────────────────────────────────────────────

    async def create_invoice(self, org_id: str, data: InvoiceCreate) -> InvoiceRead:
        """Insert an invoice with the next number for its issue year."""
        year = data.issue_date.year
        async for session in self._session_factory():
            stmt = select(InvoiceModel.number).where(
                InvoiceModel.organization_id == uuid.UUID(org_id),
                InvoiceModel.number.like(f"{self._invoice_prefix}-{year}-%"),
            )
            result = await session.execute(stmt)
            number = next_invoice_number(
                self._invoice_prefix, year, list(result.scalars().all())
            )

            model = InvoiceModel(
                organization_id=uuid.UUID(org_id),
                number=number,
                campaign_id=_uuid_or_none(data.campaign_id),
                client_name=data.client_name,
                amount=data.amount,
                paid_amount=0.0,
                issue_date=data.issue_date,
                due_date=data.due_date,
                status=InvoiceStatus.DRAFT.value,
                notes=data.notes,
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            invoices_created_total.inc()
            logger.info("invoice.created", org_id=org_id, invoice_id=str(model.id), number=number)
            return _model_to_invoice(model)

    async def get_invoice(self, org_id: str, invoice_id: str) -> InvoiceRead | None:
        async for session in self._session_factory():
            try:
                model = await self._get_invoice_model(session, org_id, invoice_id)
            except ValueError:
                return None
            return _model_to_invoice(model)

    async def list_invoices(
        self, org_id: str, filters: InvoiceFilter | None = None
    ) -> list[InvoiceRead]:
        filters = filters or InvoiceFilter()
        async for session in self._session_factory():
            stmt = select(InvoiceModel).where(
                InvoiceModel.organization_id == uuid.UUID(org_id),
            )
            if filters.status is not None:
                stmt = stmt.where(InvoiceModel.status == filters.status.value)
            if filters.client_name:
                stmt = stmt.where(InvoiceModel.client_name.ilike(f"%{filters.client_name}%"))
            stmt = (
                stmt.order_by(InvoiceModel.issue_date.desc(), InvoiceModel.number.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_invoice(m) for m in result.scalars().all()]

    async def list_outstanding_invoices(self, org_id: str) -> list[InvoiceRead]:
        """Sent and overdue invoices, oldest due date first."""
        async for session in self._session_factory():
            stmt = (
                select(InvoiceModel)
                .where(
                    InvoiceModel.organization_id == uuid.UUID(org_id),
                    InvoiceModel.status.in_([s.value for s in OUTSTANDING_INVOICE_STATUSES]),
                )
                .order_by(InvoiceModel.due_date.asc())
            )
            result = await session.execute(stmt)
            return [_model_to_invoice(m) for m in result.scalars().all()]

    async def update_invoice(
        self, org_id: str, invoice_id: str, data: InvoiceUpdate
    ) -> InvoiceRead:
        """Update invoice fields and status.

        Raises:
            ValueError: If invoice not found.
            InvoiceStateError: If the status change is not allowed.
        """
        async for session in self._session_factory():
            model = await self._get_invoice_model(session, org_id, invoice_id)
            updates = data.model_dump(exclude_none=True)

            new_status = updates.pop("status", None)
            if new_status is not None:
                check_transition(InvoiceStatus(model.status), new_status)
                model.status = new_status.value
                if new_status == InvoiceStatus.PAID and model.paid_date is None:
                    model.paid_date = date.today()

            for key, value in updates.items():
                setattr(model, key, value)

            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_invoice(model)

    async def void_invoice(self, org_id: str, invoice_id: str) -> InvoiceRead:
        return await self.update_invoice(
            org_id, invoice_id, InvoiceUpdate(status=InvoiceStatus.VOID)
        )

    # ── Payments ────────────────────────────────────────────────────────────

    async def record_payment(self, org_id: str, data: PaymentCreate) -> PaymentRead:
        """Insert a payment and apply it to its invoice in the same transaction.

        Raises:
            ValueError: If invoice_id is given and not found.
            InvoiceStateError: If the invoice is void or already paid.
        """
        async for session in self._session_factory():
            client_name = data.client_name
            if data.invoice_id:
                invoice = await self._get_invoice_model(session, org_id, data.invoice_id)
                status, paid_amount, paid_date = apply_payment(
                    InvoiceStatus(invoice.status),
                    invoice.amount,
                    invoice.paid_amount or 0.0,
                    data.amount,
                    data.payment_date,
                )
                invoice.status = status.value
                invoice.paid_amount = paid_amount
                if paid_date is not None:
                    invoice.paid_date = paid_date
                invoice.updated_at = datetime.now(timezone.utc)
                client_name = client_name or invoice.client_name

            model = PaymentModel(
                organization_id=uuid.UUID(org_id),
                invoice_id=_uuid_or_none(data.invoice_id),
                client_name=client_name,
                amount=data.amount,
                method=data.method.value,
                payment_date=data.payment_date,
                reference=data.reference,
                status="completed",
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            payments_recorded_total.labels(method=data.method.value).inc()
            logger.info(
                "payment.recorded",
                org_id=org_id,
                payment_id=str(model.id),
                invoice_id=data.invoice_id,
            )
            return _model_to_payment(model)

    async def list_payments(
        self, org_id: str, filters: PaymentFilter | None = None
    ) -> list[PaymentRead]:
        filters = filters or PaymentFilter()
        async for session in self._session_factory():
            stmt = select(PaymentModel).where(
                PaymentModel.organization_id == uuid.UUID(org_id),
            )
            if filters.start_date is not None:
                stmt = stmt.where(PaymentModel.payment_date >= filters.start_date)
            if filters.end_date is not None:
                stmt = stmt.where(PaymentModel.payment_date <= filters.end_date)
            if filters.method is not None:
                stmt = stmt.where(PaymentModel.method == filters.method.value)
            stmt = (
                stmt.order_by(PaymentModel.payment_date.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_payment(m) for m in result.scalars().all()]

    async def sum_payments(self, org_id: str, start: date, end: date) -> float:
        """Completed payments received in [start, end]."""
        async for session in self._session_factory():
            stmt = select(func.coalesce(func.sum(PaymentModel.amount), 0.0)).where(
                PaymentModel.organization_id == uuid.UUID(org_id),
                PaymentModel.status == "completed",
                PaymentModel.payment_date >= start,
                PaymentModel.payment_date <= end,
            )
            result = await session.execute(stmt)
            return float(result.scalar_one())

    async def top_clients(
        self, org_id: str, start: date, end: date, limit: int = 10
    ) -> list[TopClient]:
        """Clients ranked by payments received in [start, end]."""
        async for session in self._session_factory():
            total = func.sum(PaymentModel.amount).label("revenue")
            stmt = (
                select(PaymentModel.client_name, total, func.count().label("payment_count"))
                .where(
                    PaymentModel.organization_id == uuid.UUID(org_id),
                    PaymentModel.status == "completed",
                    PaymentModel.payment_date >= start,
                    PaymentModel.payment_date <= end,
                )
                .group_by(PaymentModel.client_name)
                .order_by(total.desc())
                .limit(limit)
            )
            result = await session.execute(stmt)
            return [
                TopClient(client_name=name, revenue=float(revenue), payment_count=count)
                for name, revenue, count in result.all()
            ]

    # ── Expenses ────────────────────────────────────────────────────────────

    async def create_expense(self, org_id: str, data: ExpenseCreate) -> ExpenseRead:
        async for session in self._session_factory():
            model = ExpenseModel(
                organization_id=uuid.UUID(org_id),
                description=data.description,
                amount=data.amount,
                category=data.category.value,
                vendor=data.vendor,
                expense_date=data.expense_date,
                status=data.status.value,
                show_id=_uuid_or_none(data.show_id),
            )
            session.add(model)
            await session.commit()
            await session.refresh(model)
            logger.info("expense.created", org_id=org_id, expense_id=str(model.id))
            return _model_to_expense(model)

    async def get_expense(self, org_id: str, expense_id: str) -> ExpenseRead | None:
        async for session in self._session_factory():
            model = await self._get_expense_model(session, org_id, expense_id)
            if model is None:
                return None
            return _model_to_expense(model)

    async def list_expenses(
        self, org_id: str, filters: ExpenseFilter | None = None
    ) -> list[ExpenseRead]:
        filters = filters or ExpenseFilter()
        async for session in self._session_factory():
            stmt = select(ExpenseModel).where(
                ExpenseModel.organization_id == uuid.UUID(org_id),
                ExpenseModel.is_active.is_(True),
            )
            if filters.category is not None:
                stmt = stmt.where(ExpenseModel.category == filters.category.value)
            if filters.status is not None:
                stmt = stmt.where(ExpenseModel.status == filters.status.value)
            if filters.start_date is not None:
                stmt = stmt.where(ExpenseModel.expense_date >= filters.start_date)
            if filters.end_date is not None:
                stmt = stmt.where(ExpenseModel.expense_date <= filters.end_date)
            stmt = (
                stmt.order_by(ExpenseModel.expense_date.desc())
                .limit(filters.limit)
                .offset(filters.offset)
            )
            result = await session.execute(stmt)
            return [_model_to_expense(m) for m in result.scalars().all()]

    async def update_expense(
        self, org_id: str, expense_id: str, data: ExpenseUpdate
    ) -> ExpenseRead:
        """Update an expense.

        Raises:
            ValueError: If expense not found.
        """
        async for session in self._session_factory():
            model = await self._get_expense_model(session, org_id, expense_id)
            if model is None:
                raise ValueError(f"Expense not found: org={org_id}, id={expense_id}")

            for key, value in data.model_dump(exclude_none=True).items():
                if key in ("category", "status"):
                    value = value.value
                elif key == "show_id":
                    value = uuid.UUID(value)
                setattr(model, key, value)

            model.updated_at = datetime.now(timezone.utc)
            await session.commit()
            await session.refresh(model)
            return _model_to_expense(model)

    async def deactivate_expense(self, org_id: str, expense_id: str) -> None:
        """Soft-delete an expense.

        Raises:
            ValueError: If expense not found.
        """
        async for session in self._session_factory():
            model = await self._get_expense_model(session, org_id, expense_id)
            if model is None:
                raise ValueError(f"Expense not found: org={org_id}, id={expense_id}")
            model.is_active = False
            model.updated_at = datetime.now(timezone.utc)
            await session.commit()

    async def expenses_by_category(
        self,
        org_id: str,
        start: date,
        end: date,
        statuses: tuple[ExpenseStatus, ...] | None = None,
    ) -> dict[str, float]:
        """Active expense totals per category in [start, end]."""
        async for session in self._session_factory():
            stmt = (
                select(ExpenseModel.category, func.sum(ExpenseModel.amount))
                .where(
                    ExpenseModel.organization_id == uuid.UUID(org_id),
                    ExpenseModel.is_active.is_(True),
                    ExpenseModel.expense_date >= start,
                    ExpenseModel.expense_date <= end,
                )
                .group_by(ExpenseModel.category)
            )
            if statuses:
                stmt = stmt.where(ExpenseModel.status.in_([s.value for s in statuses]))
            result = await session.execute(stmt)
            return {category: float(total or 0.0) for category, total in result.all()}

    async def sum_expenses(self, org_id: str, start: date, end: date) -> float:
        totals = await self.expenses_by_category(org_id, start, end)
        return sum(totals.values())
