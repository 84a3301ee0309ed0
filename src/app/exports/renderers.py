"""CSV, JSON, and PDF writers for report tables."""

from __future__ import annotations

import csv
import io
from xml.sax.saxutils import escape

from pydantic import BaseModel
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from src.app.exports.tables import ReportTable


def render_csv(tables: list[ReportTable]) -> str:
    """Write tables as CSV.

    A single table is written as header + rows. Several tables are each
    preceded by their title and separated by a blank line.
    """
    output = io.StringIO()
    writer = csv.writer(output)
    multiple = len(tables) > 1
    for index, table in enumerate(tables):
        if multiple:
            if index:
                writer.writerow([])
            writer.writerow([table.title])
        writer.writerow(table.headers)
        writer.writerows(table.rows)
    return output.getvalue()


def render_json(report: BaseModel) -> bytes:
    return report.model_dump_json(indent=2).encode("utf-8")


_TABLE_STYLE = TableStyle(
    [
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 8),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
        ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
    ]
)


def render_pdf(title: str, subtitle: str, tables: list[ReportTable]) -> bytes:
    """Lay out a title, subtitle and each table on landscape letter pages."""
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        title=title,
        leftMargin=36,
        rightMargin=36,
        topMargin=36,
        bottomMargin=36,
    )
    styles = getSampleStyleSheet()

    story = [
        Paragraph(escape(title), styles["Title"]),
        Paragraph(escape(subtitle), styles["Normal"]),
        Spacer(1, 12),
    ]
    for table in tables:
        story.append(Paragraph(escape(table.title), styles["Heading2"]))
        if table.rows:
            flowable = Table([table.headers, *table.rows], repeatRows=1)
            flowable.setStyle(_TABLE_STYLE)
            story.append(flowable)
        else:
            story.append(Paragraph("No data", styles["Italic"]))
        story.append(Spacer(1, 12))

    doc.build(story)
    return buffer.getvalue()
