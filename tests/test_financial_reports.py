"""Tests for financial report builders and FinancialReportService.

Builders are exercised directly; the service runs against the in-memory
financial and campaign repositories from conftest.
"""

from __future__ import annotations

from datetime import date, datetime, timezone
from types import SimpleNamespace

import pytest
from structlog.testing import capture_logs

from src.app.campaigns.schemas import CampaignCreate
from src.app.financials.reports import (
    FinancialReportService,
    build_expense_breakdown,
    build_pl_statement,
    build_projection,
    growth_percent,
    outstanding_entries,
    percent_of,
    prorated_campaign_revenue,
)
from src.app.financials.schemas import (
    CashFlowMonth,
    DateRange,
    ExpenseCreate,
    InvoiceCreate,
    InvoiceRead,
    InvoiceStatus,
    InvoiceUpdate,
    PaymentCreate,
)

TODAY = date(2026, 5, 13)


# ── Ratios ───────────────────────────────────────────────────────────────────


def test_percent_of():
    assert percent_of(25, 200) == 12.5
    assert percent_of(5, 0) == 0.0


def test_growth_percent():
    assert growth_percent(150, 100) == 50
    assert growth_percent(50, 100) == -50
    assert growth_percent(100, 0) == 0


# ── Outstanding ──────────────────────────────────────────────────────────────


def _invoice(status: InvoiceStatus, due: date, amount: float = 1000, paid: float = 0) -> InvoiceRead:
    return InvoiceRead(
        id="inv-1",
        organization_id="org",
        number="INV-2026-00001",
        client_name="Acme",
        amount=amount,
        paid_amount=paid,
        issue_date=date(2026, 4, 1),
        due_date=due,
        status=status,
    )


def test_outstanding_entries_flags_late_sent_invoices():
    entries = outstanding_entries(
        [
            _invoice(InvoiceStatus.SENT, date(2026, 5, 1), paid=250),
            _invoice(InvoiceStatus.SENT, date(2026, 6, 1)),
            _invoice(InvoiceStatus.PAID, date(2026, 4, 1)),
        ],
        TODAY,
    )
    assert len(entries) == 2
    late, current = entries
    assert late.is_overdue is True
    assert late.days_overdue == 12
    assert late.balance == pytest.approx(750.0)
    assert current.is_overdue is False


# ── Cash Flow Projection ─────────────────────────────────────────────────────


def test_projection_needs_three_months():
    months = [CashFlowMonth(month="Jan", income=100), CashFlowMonth(month="Feb", income=200)]
    assert build_projection(months) is None


def test_projection_mean_growth():
    """Growth of +10% then +20% averages to 15%."""
    months = [
        CashFlowMonth(month="Mar", income=1000, expenses=500),
        CashFlowMonth(month="Apr", income=1100, expenses=500),
        CashFlowMonth(month="May", income=1320, expenses=600),
    ]
    projection = build_projection(months)
    assert projection.growth_rate == pytest.approx(0.15)
    assert projection.next_month_income == round(1320 * 1.15)
    assert projection.next_month_expenses == round(600 * (1 + 0.15 * 0.7))
    assert projection.next_quarter_income == round(1320 * 1.15 * 3)


def test_projection_zero_income_month_contributes_no_growth():
    months = [
        CashFlowMonth(month="Mar", income=0),
        CashFlowMonth(month="Apr", income=1000),
        CashFlowMonth(month="May", income=1500),
    ]
    projection = build_projection(months)
    assert projection.growth_rate == pytest.approx(0.25)


# ── Expense Breakdown ────────────────────────────────────────────────────────


def test_expense_breakdown_sorted_with_shares():
    period = DateRange(start=date(2026, 5, 1), end=date(2026, 5, 31))
    breakdown = build_expense_breakdown(period, {"hosting": 250.0, "talent": 750.0})
    assert breakdown.total == pytest.approx(1000.0)
    assert [c.category for c in breakdown.categories] == ["talent", "hosting"]
    assert breakdown.categories[0].percentage == 75.0


# ── P&L ──────────────────────────────────────────────────────────────────────


def test_pl_statement_groups_categories():
    statement = build_pl_statement(
        10000.0,
        {
            "production": 1000.0,
            "talent": 2000.0,
            "distribution": 500.0,
            "marketing": 300.0,
            "advertising": 200.0,
            "software": 400.0,
            "office": 100.0,
            "other": 50.0,
        },
    )
    assert statement.cost_of_goods_sold.total == pytest.approx(3500.0)
    assert statement.operating_expenses.sales_marketing == pytest.approx(500.0)
    assert statement.operating_expenses.technology == pytest.approx(400.0)
    assert statement.operating_expenses.general_admin == pytest.approx(100.0)
    assert statement.operating_expenses.other == pytest.approx(50.0)
    assert statement.metrics.gross_profit == pytest.approx(6500.0)
    assert statement.metrics.operating_income == pytest.approx(5450.0)
    assert statement.metrics.gross_margin == 65.0
    assert statement.metrics.net_income == statement.metrics.operating_income


def test_pl_statement_without_revenue_has_zero_margins():
    statement = build_pl_statement(0.0, {"hosting": 100.0})
    assert statement.metrics.gross_profit == pytest.approx(-100.0)
    assert statement.metrics.gross_margin == 0.0


def test_prorated_campaign_revenue():
    """A 31-day, $3100 flight contributes $100 per overlapping day."""
    campaign = SimpleNamespace(
        budget=3100.0,
        start_date=datetime(2026, 3, 15, tzinfo=timezone.utc),
        end_date=datetime(2026, 4, 14, tzinfo=timezone.utc),
    )
    march = DateRange(start=date(2026, 3, 1), end=date(2026, 3, 31))
    assert prorated_campaign_revenue([campaign], march) == pytest.approx(1700.0)


def test_prorated_campaign_revenue_skips_incomplete_campaigns():
    window = DateRange(start=date(2026, 3, 1), end=date(2026, 3, 31))
    campaigns = [
        SimpleNamespace(budget=1000.0, start_date=None, end_date=None),
        SimpleNamespace(budget=0.0, start_date=date(2026, 3, 1), end_date=date(2026, 3, 31)),
    ]
    assert prorated_campaign_revenue(campaigns, window) == 0.0


# ── Service ──────────────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_summary_figures(state, org_id):
    repo = state.financial_repository
    invoice = await repo.create_invoice(
        org_id,
        InvoiceCreate(
            client_name="Acme", amount=2000, issue_date=date(2026, 4, 1), due_date=date(2026, 5, 1)
        ),
    )
    await repo.update_invoice(org_id, invoice.id, InvoiceUpdate(status=InvoiceStatus.SENT))
    await repo.record_payment(
        org_id,
        PaymentCreate(amount=500, payment_date=date(2026, 5, 5), invoice_id=invoice.id),
    )
    await repo.record_payment(
        org_id, PaymentCreate(amount=1500, payment_date=date(2026, 5, 6), client_name="Globex")
    )
    await repo.record_payment(
        org_id, PaymentCreate(amount=1000, payment_date=date(2026, 4, 5), client_name="Globex")
    )
    await repo.create_expense(
        org_id,
        ExpenseCreate(description="Mixing", amount=400, expense_date=date(2026, 5, 2)),
    )

    summary = await state.financial_reports.summary(org_id, "this_month", today=TODAY)
    assert summary.total_revenue == pytest.approx(2000.0)
    assert summary.total_expenses == pytest.approx(400.0)
    assert summary.net_profit == pytest.approx(1600.0)
    assert summary.profit_margin == 80.0
    assert summary.revenue_growth == 100
    assert summary.outstanding_amount == pytest.approx(1500.0)
    assert summary.overdue_count == 1
    assert summary.top_clients[0].client_name == "Globex"


@pytest.mark.asyncio
async def test_cash_flow_months(state, org_id):
    repo = state.financial_repository
    await repo.record_payment(
        org_id, PaymentCreate(amount=1000, payment_date=date(2026, 4, 10), client_name="Acme")
    )
    await repo.create_expense(
        org_id, ExpenseCreate(description="Hosting", amount=300, expense_date=date(2026, 5, 3))
    )
    report = await state.financial_reports.cash_flow(org_id, months=3, today=TODAY)
    assert [m.month for m in report.months] == ["Mar 2026", "Apr 2026", "May 2026"]
    assert report.months[1].income == pytest.approx(1000.0)
    assert report.months[2].net == pytest.approx(-300.0)
    assert report.net_cash_flow == pytest.approx(700.0)
    assert report.projection is not None


@pytest.mark.asyncio
async def test_profit_and_loss_counts_booked_expenses_only(state, org_id):
    await state.campaign_repository.create_campaign(
        org_id,
        CampaignCreate(
            name="Spring Flight",
            advertiser_name="Acme",
            budget=3100,
            start_date=datetime(2026, 3, 15, tzinfo=timezone.utc),
            end_date=datetime(2026, 4, 14, tzinfo=timezone.utc),
        ),
    )
    repo = state.financial_repository
    await repo.create_expense(
        org_id,
        ExpenseCreate(
            description="Host fee", amount=500, category="talent",
            status="approved", expense_date=date(2026, 3, 20),
        ),
    )
    await repo.create_expense(
        org_id,
        ExpenseCreate(
            description="Unapproved", amount=900, category="talent",
            status="pending", expense_date=date(2026, 3, 21),
        ),
    )

    report = await state.financial_reports.profit_and_loss(org_id, 2026, 3, 4)
    assert [m.month for m in report.months] == ["Mar", "Apr"]
    assert report.months[0].revenue.total == pytest.approx(1700.0)
    assert report.months[1].revenue.total == pytest.approx(1400.0)
    assert report.revenue.total == pytest.approx(3100.0)
    assert report.cost_of_goods_sold.talent == pytest.approx(500.0)
    assert report.metrics.gross_profit == pytest.approx(2600.0)


@pytest.mark.asyncio
async def test_profit_and_loss_rejects_bad_span(state, org_id):
    with pytest.raises(ValueError, match="Invalid month span"):
        await state.financial_reports.profit_and_loss(org_id, 2026, 6, 2)


@pytest.mark.asyncio
async def test_profit_and_loss_without_campaigns_logs_warning(state, org_id):
    service = FinancialReportService(state.financial_repository)
    with capture_logs() as logs:
        report = await service.profit_and_loss(org_id, 2026, 1, 1)

    assert report.revenue.total == 0.0
    assert {
        "event": "pl.campaigns_unavailable",
        "log_level": "warning",
        "org_id": org_id,
        "year": 2026,
    } in logs
