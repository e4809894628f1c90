"""PDF rendering of a single BOQ using ReportLab.

Unit text comes from ``display_unit`` so old and migrated items print the same.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from boqunits.boq.document import units_by_id
from boqunits.db.models import BoqModel
from boqunits.models import Unit
from boqunits.reporting.viewer import boq_rows, subtotal

# Styles
styles = getSampleStyleSheet()
title_style = ParagraphStyle(
    "BoqTitle",
    parent=styles["Heading1"],
    fontSize=18,
    spaceAfter=12,
    textColor=colors.HexColor("#2d3748"),
)
normal_style = ParagraphStyle(
    "BoqNormal",
    parent=styles["Normal"],
    fontSize=9,
    leading=12,
    textColor=colors.HexColor("#2d3748"),
)


def _money(value) -> str:
    return f"{value:,.2f}"


def generate_boq_pdf(boq: BoqModel, units: Sequence[Unit]) -> BytesIO:
    """Render a BOQ to PDF; items without a resolvable unit print "Item"."""
    rows = boq_rows(boq.data, units_by_id(units), placeholder="Item")

    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=15 * mm,
        leftMargin=15 * mm,
        topMargin=15 * mm,
        bottomMargin=15 * mm,
        title=f"Bill of Quantities {boq.number}",
    )

    story = [Paragraph(f"Bill of Quantities {escape(boq.number)}", title_style)]
    if boq.project_title:
        story.append(Paragraph(escape(boq.project_title), normal_style))
    story.append(Paragraph(f"Client: {escape(boq.client_name or '')}", normal_style))
    if boq.contractor:
        story.append(Paragraph(f"Contractor: {escape(boq.contractor)}", normal_style))
    story.append(
        Paragraph(f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}", normal_style)
    )
    story.append(Spacer(1, 8 * mm))

    table_data = [["Description", "Qty", "Unit", f"Rate ({boq.currency})", "Amount"]]
    section_rows = []
    for row in rows:
        if row.is_section:
            section_rows.append(len(table_data))
            table_data.append([Paragraph(f"<b>{escape(row.description)}</b>", normal_style), "", "", "", ""])
            continue
        table_data.append([
            Paragraph(escape(row.description), normal_style),
            f"{row.quantity:g}",
            row.unit,
            _money(row.rate),
            _money(row.amount),
        ])
    table_data.append(["", "", "", "Total", _money(subtotal(rows))])

    table = Table(table_data, colWidths=[80 * mm, 18 * mm, 18 * mm, 30 * mm, 34 * mm], repeatRows=1)
    style = [
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#edf2f7")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("FONTSIZE", (0, 0), (-1, -1), 9),
        ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("GRID", (0, 0), (-1, -2), 0.5, colors.HexColor("#cbd5e0")),
        ("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"),
    ]
    for index in section_rows:
        style.append(("SPAN", (0, index), (-1, index)))
        style.append(("BACKGROUND", (0, index), (-1, index), colors.HexColor("#f7fafc")))
    table.setStyle(TableStyle(style))
    story.append(table)

    doc.build(story)
    buffer.seek(0)
    return buffer
