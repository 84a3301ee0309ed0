"""Pydantic schemas for invoices, payments, expenses, and financial reports.

Defines:
- Enums: InvoiceStatus, PaymentMethod, ExpenseStatus, ExpenseCategory, DateRangeName
- Records: Invoice*, Payment*, Expense* create/update/read/filter schemas
- Reports: FinancialSummary, CashFlowReport, ExpenseBreakdown, PLReport
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator


# ── Enums ───────────────────────────────────────────────────────────────────


class InvoiceStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    PAID = "paid"
    OVERDUE = "overdue"
    VOID = "void"


# Invoices counted as money still owed
OUTSTANDING_INVOICE_STATUSES = (InvoiceStatus.SENT, InvoiceStatus.OVERDUE)


class PaymentMethod(str, Enum):
    ACH = "ach"
    WIRE = "wire"
    CHECK = "check"
    CARD = "card"
    OTHER = "other"


class ExpenseStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    PAID = "paid"


# Expenses that count toward the P&L
BOOKED_EXPENSE_STATUSES = (ExpenseStatus.APPROVED, ExpenseStatus.PAID)


class ExpenseCategory(str, Enum):
    PRODUCTION = "production"
    TALENT = "talent"
    HOSTING = "hosting"
    DISTRIBUTION = "distribution"
    MARKETING = "marketing"
    ADVERTISING = "advertising"
    OFFICE = "office"
    UTILITIES = "utilities"
    INSURANCE = "insurance"
    PROFESSIONAL = "professional"
    SOFTWARE = "software"
    EQUIPMENT = "equipment"
    OTHER = "other"


class DateRangeName(str, Enum):
    """Named reporting windows accepted by the summary endpoints."""

    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_QUARTER = "this_quarter"
    THIS_YEAR = "this_year"
    LAST_30_DAYS = "last_30_days"


class DateRange(BaseModel):
    """Inclusive date window."""

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1


# ── Invoices ────────────────────────────────────────────────────────────────


class InvoiceCreate(BaseModel):
    """Schema for creating an invoice. The number is assigned on insert."""

    client_name: str = Field(min_length=1, max_length=300)
    amount: float = Field(gt=0)
    issue_date: date
    due_date: date
    campaign_id: str | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _check_dates(self) -> InvoiceCreate:
        if self.due_date < self.issue_date:
            raise ValueError("due_date must not be before issue_date")
        return self


class InvoiceUpdate(BaseModel):
    """Partial update; status changes follow the invoice transition rules."""

    client_name: str | None = Field(default=None, min_length=1, max_length=300)
    amount: float | None = Field(default=None, gt=0)
    due_date: date | None = None
    status: InvoiceStatus | None = None
    notes: str | None = None


class InvoiceRead(BaseModel):
    """Schema for reading an invoice."""

    id: str
    organization_id: str
    number: str
    campaign_id: str | None = None
    client_name: str
    amount: float
    paid_amount: float = 0.0
    issue_date: date
    due_date: date
    paid_date: date | None = None
    status: InvoiceStatus = InvoiceStatus.DRAFT
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def balance(self) -> float:
        return max(self.amount - self.paid_amount, 0.0)


class InvoiceFilter(BaseModel):
    status: InvoiceStatus | None = None
    client_name: str | None = None
    limit: int = 50
    offset: int = 0


# ── Payments ────────────────────────────────────────────────────────────────


class PaymentCreate(BaseModel):
    """Schema for recording a payment.

    client_name may be omitted when invoice_id is given; it is then copied
    from the invoice.
    """

    amount: float = Field(gt=0)
    payment_date: date
    method: PaymentMethod = PaymentMethod.ACH
    invoice_id: str | None = None
    client_name: str | None = None
    reference: str | None = None

    @model_validator(mode="after")
    def _check_client(self) -> PaymentCreate:
        if not self.invoice_id and not self.client_name:
            raise ValueError("client_name is required when invoice_id is not given")
        return self


class PaymentRead(BaseModel):
    id: str
    organization_id: str
    invoice_id: str | None = None
    client_name: str
    amount: float
    method: PaymentMethod = PaymentMethod.ACH
    payment_date: date
    reference: str | None = None
    status: str = "completed"
    created_at: datetime | None = None


class PaymentFilter(BaseModel):
    start_date: date | None = None
    end_date: date | None = None
    method: PaymentMethod | None = None
    limit: int = 50
    offset: int = 0


# ── Expenses ────────────────────────────────────────────────────────────────


class ExpenseCreate(BaseModel):
    description: str = Field(min_length=1, max_length=500)
    amount: float = Field(gt=0)
    expense_date: date
    category: ExpenseCategory = ExpenseCategory.OTHER
    status: ExpenseStatus = ExpenseStatus.PENDING
    vendor: str | None = None
    show_id: str | None = None


class ExpenseUpdate(BaseModel):
    description: str | None = Field(default=None, min_length=1, max_length=500)
    amount: float | None = Field(default=None, gt=0)
    expense_date: date | None = None
    category: ExpenseCategory | None = None
    status: ExpenseStatus | None = None
    vendor: str | None = None
    show_id: str | None = None


class ExpenseRead(BaseModel):
    id: str
    organization_id: str
    description: str
    amount: float
    category: ExpenseCategory = ExpenseCategory.OTHER
    vendor: str | None = None
    expense_date: date
    status: ExpenseStatus = ExpenseStatus.PENDING
    show_id: str | None = None
    is_active: bool = True
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ExpenseFilter(BaseModel):
    category: ExpenseCategory | None = None
    status: ExpenseStatus | None = None
    start_date: date | None = None
    end_date: date | None = None
    limit: int = 50
    offset: int = 0


# ── Summary ─────────────────────────────────────────────────────────────────


class OutstandingInvoice(BaseModel):
    """An unpaid invoice, flagged overdue once past its due date."""

    id: str
    number: str
    client_name: str
    balance: float
    due_date: date
    is_overdue: bool = False
    days_overdue: int = 0


class TopClient(BaseModel):
    client_name: str
    revenue: float
    payment_count: int = 0


class FinancialSummary(BaseModel):
    """Headline figures for a reporting window."""

    range: DateRangeName
    period: DateRange
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    outstanding_amount: float = 0.0
    outstanding_count: int = 0
    overdue_count: int = 0
    revenue_growth: int = 0
    outstanding_invoices: list[OutstandingInvoice] = Field(default_factory=list)
    top_clients: list[TopClient] = Field(default_factory=list)


# ── Cash Flow ───────────────────────────────────────────────────────────────


class CashFlowMonth(BaseModel):
    month: str
    income: float = 0.0
    expenses: float = 0.0
    net: float = 0.0


class CashFlowProjection(BaseModel):
    """Forward estimate from recent month-over-month income growth."""

    growth_rate: float
    next_month_income: int
    next_month_expenses: int
    next_month_net: int
    next_quarter_income: int
    next_quarter_expenses: int
    next_quarter_net: int


class CashFlowReport(BaseModel):
    months: list[CashFlowMonth] = Field(default_factory=list)
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_cash_flow: float = 0.0
    projection: CashFlowProjection | None = None


# ── Expense Breakdown ───────────────────────────────────────────────────────


class ExpenseCategoryTotal(BaseModel):
    category: str
    amount: float
    percentage: float = 0.0


class ExpenseBreakdown(BaseModel):
    period: DateRange
    total: float = 0.0
    categories: list[ExpenseCategoryTotal] = Field(default_factory=list)


# ── Profit & Loss ───────────────────────────────────────────────────────────


class PLRevenue(BaseModel):
    advertising: float = 0.0
    other: float = 0.0
    total: float = 0.0


class PLCostOfGoods(BaseModel):
    production: float = 0.0
    talent: float = 0.0
    hosting: float = 0.0
    distribution: float = 0.0
    total: float = 0.0


class PLOperatingExpenses(BaseModel):
    sales_marketing: float = 0.0
    general_admin: float = 0.0
    technology: float = 0.0
    other: float = 0.0
    total: float = 0.0


class PLMetrics(BaseModel):
    gross_profit: float = 0.0
    gross_margin: float = 0.0
    operating_income: float = 0.0
    operating_margin: float = 0.0
    ebitda: float = 0.0
    net_income: float = 0.0
    net_margin: float = 0.0


class PLStatement(BaseModel):
    """One P&L column: a month or the whole period."""

    revenue: PLRevenue = Field(default_factory=PLRevenue)
    cost_of_goods_sold: PLCostOfGoods = Field(default_factory=PLCostOfGoods)
    operating_expenses: PLOperatingExpenses = Field(default_factory=PLOperatingExpenses)
    metrics: PLMetrics = Field(default_factory=PLMetrics)


class PLMonth(PLStatement):
    month: str
    period: DateRange


class PLReport(PLStatement):
    year: int
    start_month: int
    end_month: int
    period: DateRange
    months: list[PLMonth] = Field(default_factory=list)
