"""Flatten financial reports into titled tables shared by CSV and PDF output."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date

from src.app.financials.schemas import (
    CashFlowReport,
    ExpenseBreakdown,
    FinancialSummary,
    PLReport,
    PLStatement,
)


@dataclass
class ReportTable:
    title: str
    headers: list[str]
    rows: list[list[str]] = field(default_factory=list)


def fmt_amount(value: float | int | None) -> str:
    """Plain two-decimal number with no currency symbol or grouping."""
    return f"{float(value or 0):.2f}"


# ── Summary ─────────────────────────────────────────────────────────────────


def summary_tables(summary: FinancialSummary) -> list[ReportTable]:
    overview = ReportTable(
        title="Overview",
        headers=["Metric", "Value"],
        rows=[
            ["Total Revenue", fmt_amount(summary.total_revenue)],
            ["Total Expenses", fmt_amount(summary.total_expenses)],
            ["Net Profit", fmt_amount(summary.net_profit)],
            ["Profit Margin %", fmt_amount(summary.profit_margin)],
            ["Outstanding Amount", fmt_amount(summary.outstanding_amount)],
            ["Outstanding Invoices", str(summary.outstanding_count)],
            ["Overdue Invoices", str(summary.overdue_count)],
            ["Revenue Growth %", str(summary.revenue_growth)],
        ],
    )
    clients = ReportTable(
        title="Top Clients",
        headers=["Client", "Revenue", "Payments"],
        rows=[
            [c.client_name, fmt_amount(c.revenue), str(c.payment_count)]
            for c in summary.top_clients
        ],
    )
    outstanding = ReportTable(
        title="Outstanding Invoices",
        headers=["Invoice", "Client", "Balance", "Due Date", "Days Overdue"],
        rows=[
            [
                o.number,
                o.client_name,
                fmt_amount(o.balance),
                o.due_date.isoformat(),
                str(o.days_overdue),
            ]
            for o in summary.outstanding_invoices
        ],
    )
    return [overview, clients, outstanding]


# ── Cash Flow ───────────────────────────────────────────────────────────────


def cash_flow_tables(report: CashFlowReport) -> list[ReportTable]:
    rows = [
        [m.month, fmt_amount(m.income), fmt_amount(m.expenses), fmt_amount(m.net)]
        for m in report.months
    ]
    rows.append(
        [
            "Total",
            fmt_amount(report.total_income),
            fmt_amount(report.total_expenses),
            fmt_amount(report.net_cash_flow),
        ]
    )
    tables = [ReportTable(title="Cash Flow", headers=["Month", "Income", "Expenses", "Net"], rows=rows)]

    if report.projection is not None:
        p = report.projection
        tables.append(
            ReportTable(
                title="Projection",
                headers=["Period", "Income", "Expenses", "Net"],
                rows=[
                    [
                        "Next Month",
                        fmt_amount(p.next_month_income),
                        fmt_amount(p.next_month_expenses),
                        fmt_amount(p.next_month_net),
                    ],
                    [
                        "Next Quarter",
                        fmt_amount(p.next_quarter_income),
                        fmt_amount(p.next_quarter_expenses),
                        fmt_amount(p.next_quarter_net),
                    ],
                ],
            )
        )
    return tables


# ── Expenses ────────────────────────────────────────────────────────────────


def expense_tables(breakdown: ExpenseBreakdown) -> list[ReportTable]:
    rows = [
        [c.category, fmt_amount(c.amount), fmt_amount(c.percentage)]
        for c in breakdown.categories
    ]
    rows.append(["Total", fmt_amount(breakdown.total), fmt_amount(100 if breakdown.total else 0)])
    return [ReportTable(title="Expenses by Category", headers=["Category", "Amount", "Percent"], rows=rows)]


# ── Profit & Loss ───────────────────────────────────────────────────────────

# (label, getter) in statement order
PL_LINES = [
    ("Advertising Revenue", lambda s: s.revenue.advertising),
    ("Other Revenue", lambda s: s.revenue.other),
    ("Total Revenue", lambda s: s.revenue.total),
    ("Production", lambda s: s.cost_of_goods_sold.production),
    ("Talent", lambda s: s.cost_of_goods_sold.talent),
    ("Hosting", lambda s: s.cost_of_goods_sold.hosting),
    ("Distribution", lambda s: s.cost_of_goods_sold.distribution),
    ("Total Cost of Goods Sold", lambda s: s.cost_of_goods_sold.total),
    ("Gross Profit", lambda s: s.metrics.gross_profit),
    ("Sales & Marketing", lambda s: s.operating_expenses.sales_marketing),
    ("General & Admin", lambda s: s.operating_expenses.general_admin),
    ("Technology", lambda s: s.operating_expenses.technology),
    ("Other Expenses", lambda s: s.operating_expenses.other),
    ("Total Operating Expenses", lambda s: s.operating_expenses.total),
    ("Operating Income", lambda s: s.metrics.operating_income),
    ("EBITDA", lambda s: s.metrics.ebitda),
    ("Net Income", lambda s: s.metrics.net_income),
]


def pl_tables(report: PLReport) -> list[ReportTable]:
    columns: list[PLStatement] = [*report.months, report]
    headers = ["Line Item", *[m.month for m in report.months], "Total"]
    rows = [[label, *[fmt_amount(getter(c)) for c in columns]] for label, getter in PL_LINES]
    return [ReportTable(title="Profit & Loss", headers=headers, rows=rows)]


def period_label(start: date, end: date) -> str:
    return f"{start.isoformat()} to {end.isoformat()}"
