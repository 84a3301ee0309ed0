"""Integration tests for the downloadable report endpoints."""

from __future__ import annotations

import csv
import io

import pytest


@pytest.mark.asyncio
async def test_pl_csv_download(client):
    response = await client.get(
        "/api/v1/reports/pl",
        params={"year": 2026, "start_month": 1, "end_month": 3, "format": "csv"},
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/csv")
    assert (
        response.headers["content-disposition"]
        == 'attachment; filename="pl_2026-01-01_2026-03-31.csv"'
    )
    rows = list(csv.reader(io.StringIO(response.text)))
    assert rows[0] == ["Line Item", "Jan", "Feb", "Mar", "Total"]


@pytest.mark.asyncio
async def test_pl_json_download(client):
    response = await client.get(
        "/api/v1/reports/pl", params={"year": 2026, "start_month": 4, "end_month": 4}
    )
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("application/json")
    report = response.json()
    assert report["year"] == 2026
    assert [m["month"] for m in report["months"]] == ["Apr"]


@pytest.mark.asyncio
async def test_pl_inverted_span_is_400(client):
    response = await client.get(
        "/api/v1/reports/pl", params={"year": 2026, "start_month": 6, "end_month": 2}
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_summary_pdf_download(client):
    response = await client.get("/api/v1/reports/summary", params={"format": "pdf"})
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.content.startswith(b"%PDF")
    assert response.headers["content-disposition"].startswith('attachment; filename="summary_')


@pytest.mark.asyncio
async def test_expenses_report(client):
    response = await client.get("/api/v1/reports/expenses", params={"format": "json"})
    assert response.status_code == 200
    assert response.json()["total"] == 0.0


@pytest.mark.asyncio
async def test_cash_flow_report_filename(client):
    response = await client.get(
        "/api/v1/reports/cash-flow", params={"months": 3, "format": "csv"}
    )
    assert response.status_code == 200
    assert response.headers["content-disposition"] == 'attachment; filename="cash_flow.csv"'


@pytest.mark.asyncio
async def test_unknown_format_is_422(client):
    response = await client.get("/api/v1/reports/summary", params={"format": "xlsx"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_reports_503_when_not_initialized(make_client):
    client = await make_client(financial_reports=None)
    response = await client.get("/api/v1/reports/summary")
    assert response.status_code == 503
