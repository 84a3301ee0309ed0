"""Pick the renderer, media type, and filename for a report export."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from pydantic import BaseModel

from src.app.core.monitoring import report_exports_total
from src.app.exports.renderers import render_csv, render_json, render_pdf
from src.app.exports.tables import (
    ReportTable,
    cash_flow_tables,
    expense_tables,
    period_label,
    pl_tables,
    summary_tables,
)

logger = structlog.get_logger(__name__)


class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    PDF = "pdf"


MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv; charset=utf-8",
    ExportFormat.PDF: "application/pdf",
}

# report name -> (document title, table builder)
REPORTS: dict[str, tuple[str, Callable[..., list[ReportTable]]]] = {
    "summary": ("Financial Summary", summary_tables),
    "cash_flow": ("Cash Flow", cash_flow_tables),
    "expenses": ("Expense Breakdown", expense_tables),
    "pl": ("Profit & Loss", pl_tables),
}


@dataclass(frozen=True)
class ExportResult:
    content: bytes
    media_type: str
    filename: str

    @property
    def content_disposition(self) -> str:
        return f'attachment; filename="{self.filename}"'


def export_report(report_name: str, report: BaseModel, fmt: ExportFormat | str) -> ExportResult:
    """Render a financial report model.

    report must expose a `period` DateRange; it is used in the PDF subtitle
    and the filename.

    Raises:
        ValueError: If report_name or fmt is unknown.
    """
    if report_name not in REPORTS:
        raise ValueError(f"Unknown report: {report_name}")
    fmt = ExportFormat(fmt)
    title, build_tables = REPORTS[report_name]
    period = getattr(report, "period", None)

    if fmt == ExportFormat.JSON:
        content = render_json(report)
    elif fmt == ExportFormat.CSV:
        content = render_csv(build_tables(report)).encode("utf-8")
    else:
        subtitle = period_label(period.start, period.end) if period is not None else ""
        content = render_pdf(title, subtitle, build_tables(report))

    suffix = f"_{period.start.isoformat()}_{period.end.isoformat()}" if period is not None else ""
    filename = f"{report_name}{suffix}.{fmt.value}"

    report_exports_total.labels(report=report_name, format=fmt.value).inc()
    logger.info("report.exported", report=report_name, format=fmt.value, bytes=len(content))
    return ExportResult(content=content, media_type=MEDIA_TYPES[fmt], filename=filename)
