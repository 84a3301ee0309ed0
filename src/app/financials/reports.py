"""Financial report computations.

Pure functions build each report from already-aggregated figures so they can
be tested without a database. FinancialReportService gathers those figures
from the financial and campaign repositories and calls the builders.
"""

from __future__ import annotations

import calendar
from collections.abc import Iterable
from datetime import date, datetime, time, timezone
from typing import Any

import structlog

from src.app.financials.invoices import days_overdue
from src.app.financials.periods import (
    iter_months,
    month_bounds,
    overlap_days,
    previous_period,
    resolve_date_range,
    trailing_months,
)
from src.app.financials.schemas import (
    BOOKED_EXPENSE_STATUSES,
    CashFlowMonth,
    CashFlowProjection,
    CashFlowReport,
    DateRange,
    DateRangeName,
    ExpenseBreakdown,
    ExpenseCategoryTotal,
    FinancialSummary,
    InvoiceRead,
    InvoiceStatus,
    OutstandingInvoice,
    PLCostOfGoods,
    PLMetrics,
    PLMonth,
    PLOperatingExpenses,
    PLReport,
    PLRevenue,
    PLStatement,
    TopClient,
)

logger = structlog.get_logger(__name__)

# Expense categories folded into each P&L line
COGS_CATEGORIES = {
    "production": ("production",),
    "talent": ("talent",),
    "hosting": ("hosting",),
    "distribution": ("distribution",),
}
OPEX_CATEGORIES = {
    "sales_marketing": ("marketing", "advertising"),
    "general_admin": ("office", "utilities", "insurance", "professional"),
    "technology": ("software", "equipment"),
}

# Share of income growth applied to expenses in projections
EXPENSE_GROWTH_FACTOR = 0.7


# ── Ratios ──────────────────────────────────────────────────────────────────


def percent_of(part: float, whole: float, digits: int = 1) -> float:
    """part / whole as a percentage; 0 when whole is 0."""
    if not whole:
        return 0.0
    return round(part / whole * 100, digits)


def growth_percent(current: float, previous: float) -> int:
    """Whole-percent change from previous to current; 0 without a base."""
    if not previous:
        return 0
    return int(round((current - previous) / previous * 100))


# ── Summary ─────────────────────────────────────────────────────────────────


def outstanding_entries(
    invoices: Iterable[InvoiceRead], today: date | None = None
) -> list[OutstandingInvoice]:
    """Unpaid balances, flagging sent invoices that are past due."""
    today = today or date.today()
    entries = []
    for invoice in invoices:
        if invoice.status not in (InvoiceStatus.SENT, InvoiceStatus.OVERDUE):
            continue
        late = days_overdue(invoice.due_date, today)
        entries.append(
            OutstandingInvoice(
                id=invoice.id,
                number=invoice.number,
                client_name=invoice.client_name,
                balance=round(invoice.balance, 2),
                due_date=invoice.due_date,
                is_overdue=invoice.status == InvoiceStatus.OVERDUE or late > 0,
                days_overdue=late,
            )
        )
    return entries


def build_summary(
    range_name: DateRangeName,
    period: DateRange,
    revenue: float,
    previous_revenue: float,
    expenses: float,
    outstanding: list[OutstandingInvoice],
    top_clients: list[TopClient],
) -> FinancialSummary:
    net = revenue - expenses
    return FinancialSummary(
        range=range_name,
        period=period,
        total_revenue=round(revenue, 2),
        total_expenses=round(expenses, 2),
        net_profit=round(net, 2),
        profit_margin=percent_of(net, revenue),
        outstanding_amount=round(sum(o.balance for o in outstanding), 2),
        outstanding_count=len(outstanding),
        overdue_count=sum(1 for o in outstanding if o.is_overdue),
        revenue_growth=growth_percent(revenue, previous_revenue),
        outstanding_invoices=outstanding,
        top_clients=top_clients[:10],
    )


# ── Cash Flow ───────────────────────────────────────────────────────────────


def month_label(period: DateRange) -> str:
    return f"{calendar.month_abbr[period.start.month]} {period.start.year}"


def build_projection(months: list[CashFlowMonth]) -> CashFlowProjection | None:
    """Project next month and quarter from the last three months.

    The growth rate is the mean month-over-month income change across the
    last three months; a month with no income contributes zero growth.
    Returns None with fewer than three months of history.
    """
    if len(months) < 3:
        return None

    recent = months[-3:]
    rates = []
    for previous, current in zip(recent, recent[1:]):
        if previous.income:
            rates.append((current.income - previous.income) / previous.income)
        else:
            rates.append(0.0)
    growth = sum(rates) / len(rates)

    last = recent[-1]
    income = last.income * (1 + growth)
    expenses = last.expenses * (1 + growth * EXPENSE_GROWTH_FACTOR)
    return CashFlowProjection(
        growth_rate=round(growth, 4),
        next_month_income=round(income),
        next_month_expenses=round(expenses),
        next_month_net=round(income - expenses),
        next_quarter_income=round(income * 3),
        next_quarter_expenses=round(expenses * 3),
        next_quarter_net=round((income - expenses) * 3),
    )


def build_cash_flow(months: list[CashFlowMonth]) -> CashFlowReport:
    total_income = sum(m.income for m in months)
    total_expenses = sum(m.expenses for m in months)
    return CashFlowReport(
        months=months,
        total_income=round(total_income, 2),
        total_expenses=round(total_expenses, 2),
        net_cash_flow=round(total_income - total_expenses, 2),
        projection=build_projection(months),
    )


# ── Expense Breakdown ───────────────────────────────────────────────────────


def build_expense_breakdown(period: DateRange, totals: dict[str, float]) -> ExpenseBreakdown:
    """Category totals, largest first, each with its share of the total."""
    total = sum(totals.values())
    categories = [
        ExpenseCategoryTotal(
            category=category,
            amount=round(amount, 2),
            percentage=percent_of(amount, total),
        )
        for category, amount in sorted(totals.items(), key=lambda kv: kv[1], reverse=True)
    ]
    return ExpenseBreakdown(period=period, total=round(total, 2), categories=categories)


# ── Profit & Loss ───────────────────────────────────────────────────────────


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def prorated_campaign_revenue(campaigns: Iterable[Any], window: DateRange) -> float:
    """Campaign budgets spread evenly over their flight days, clipped to window.

    Campaigns need budget, start_date and end_date; those missing dates or
    with an inverted flight contribute nothing.
    """
    total = 0.0
    for campaign in campaigns:
        if not campaign.budget or campaign.start_date is None or campaign.end_date is None:
            continue
        start = _as_date(campaign.start_date)
        end = _as_date(campaign.end_date)
        flight_days = (end - start).days + 1
        if flight_days <= 0:
            continue
        total += campaign.budget * overlap_days(start, end, window) / flight_days
    return total


def build_pl_statement(revenue: float, expenses: dict[str, float]) -> PLStatement:
    """Assemble one P&L column from revenue and per-category expense totals."""
    cogs_values = {
        line: sum(expenses.get(c, 0.0) for c in categories)
        for line, categories in COGS_CATEGORIES.items()
    }
    grouped = {c for cats in COGS_CATEGORIES.values() for c in cats}
    grouped |= {c for cats in OPEX_CATEGORIES.values() for c in cats}
    opex_values = {
        line: sum(expenses.get(c, 0.0) for c in categories)
        for line, categories in OPEX_CATEGORIES.items()
    }
    opex_values["other"] = sum(v for c, v in expenses.items() if c not in grouped)

    cogs_total = sum(cogs_values.values())
    opex_total = sum(opex_values.values())
    gross_profit = revenue - cogs_total
    operating_income = gross_profit - opex_total

    return PLStatement(
        revenue=PLRevenue(advertising=round(revenue, 2), other=0.0, total=round(revenue, 2)),
        cost_of_goods_sold=PLCostOfGoods(
            **{k: round(v, 2) for k, v in cogs_values.items()}, total=round(cogs_total, 2)
        ),
        operating_expenses=PLOperatingExpenses(
            **{k: round(v, 2) for k, v in opex_values.items()}, total=round(opex_total, 2)
        ),
        metrics=PLMetrics(
            gross_profit=round(gross_profit, 2),
            gross_margin=percent_of(gross_profit, revenue),
            operating_income=round(operating_income, 2),
            operating_margin=percent_of(operating_income, revenue),
            ebitda=round(operating_income, 2),
            net_income=round(operating_income, 2),
            net_margin=percent_of(operating_income, revenue),
        ),
    )


def build_pl_report(
    year: int,
    start_month: int,
    end_month: int,
    campaigns: list[Any],
    monthly_expenses: list[dict[str, float]],
) -> PLReport:
    """P&L for months start_month..end_month of year.

    monthly_expenses holds one category-total mapping per month in the span.
    """
    period = DateRange(
        start=month_bounds(year, start_month).start,
        end=month_bounds(year, end_month).end,
    )
    months: list[PLMonth] = []
    totals: dict[str, float] = {}
    for window, expenses in zip(iter_months(period.start, period.end), monthly_expenses):
        statement = build_pl_statement(prorated_campaign_revenue(campaigns, window), expenses)
        months.append(
            PLMonth(
                month=calendar.month_abbr[window.start.month],
                period=window,
                **statement.model_dump(),
            )
        )
        for category, amount in expenses.items():
            totals[category] = totals.get(category, 0.0) + amount

    overall = build_pl_statement(prorated_campaign_revenue(campaigns, period), totals)
    return PLReport(
        year=year,
        start_month=start_month,
        end_month=end_month,
        period=period,
        months=months,
        **overall.model_dump(),
    )


# ── Service ─────────────────────────────────────────────────────────────────


class FinancialReportService:
    """Gather figures from repositories and build reports.

    Args:
        financial_repository: FinancialRepository (or compatible test double).
        campaign_repository: CampaignRepository, used for P&L revenue.
    """

    def __init__(self, financial_repository: Any, campaign_repository: Any = None) -> None:
        self._financials = financial_repository
        self._campaigns = campaign_repository

    async def summary(
        self, org_id: str, range_name: DateRangeName | str | None = None, today: date | None = None
    ) -> FinancialSummary:
        today = today or date.today()
        period = resolve_date_range(range_name, today)
        previous = previous_period(period)
        try:
            name = DateRangeName(range_name) if range_name else DateRangeName.LAST_30_DAYS
        except ValueError:
            name = DateRangeName.LAST_30_DAYS

        revenue = await self._financials.sum_payments(org_id, period.start, period.end)
        previous_revenue = await self._financials.sum_payments(
            org_id, previous.start, previous.end
        )
        expenses = await self._financials.sum_expenses(org_id, period.start, period.end)
        invoices = await self._financials.list_outstanding_invoices(org_id)
        top = await self._financials.top_clients(org_id, period.start, period.end, limit=10)

        return build_summary(
            name,
            period,
            revenue,
            previous_revenue,
            expenses,
            outstanding_entries(invoices, today),
            top,
        )

    async def cash_flow(
        self, org_id: str, months: int = 6, today: date | None = None
    ) -> CashFlowReport:
        rows = []
        for window in trailing_months(months, today):
            income = await self._financials.sum_payments(org_id, window.start, window.end)
            expenses = await self._financials.sum_expenses(org_id, window.start, window.end)
            rows.append(
                CashFlowMonth(
                    month=month_label(window),
                    income=round(income, 2),
                    expenses=round(expenses, 2),
                    net=round(income - expenses, 2),
                )
            )
        return build_cash_flow(rows)

    async def expense_breakdown(
        self, org_id: str, range_name: DateRangeName | str | None = None, today: date | None = None
    ) -> ExpenseBreakdown:
        period = resolve_date_range(range_name, today)
        totals = await self._financials.expenses_by_category(org_id, period.start, period.end)
        return build_expense_breakdown(period, totals)

    async def profit_and_loss(
        self, org_id: str, year: int, start_month: int = 1, end_month: int = 12
    ) -> PLReport:
        """P&L for a span of months.

        Raises:
            ValueError: If the month span is invalid.
        """
        if not (1 <= start_month <= end_month <= 12):
            raise ValueError(f"Invalid month span: {start_month}-{end_month}")

        start = month_bounds(year, start_month).start
        end = month_bounds(year, end_month).end
        campaigns = []
        if self._campaigns is not None:
            campaigns = await self._campaigns.list_campaigns_overlapping(
                org_id,
                datetime.combine(start, time.min, tzinfo=timezone.utc),
                datetime.combine(end, time.max, tzinfo=timezone.utc),
            )
        else:
            logger.warning("pl.campaigns_unavailable", org_id=org_id, year=year)

        monthly_expenses = []
        for window in iter_months(start, end):
            monthly_expenses.append(
                await self._financials.expenses_by_category(
                    org_id, window.start, window.end, statuses=BOOKED_EXPENSE_STATUSES
                )
            )
        return build_pl_report(year, start_month, end_month, campaigns, monthly_expenses)
