# pdf_export.py
"""
Export the invoice/claim summary to PDF using reportlab.
Landscape, black and white. Title and KPI lines, then one table each for the
monthly financial summary, the approval breakdown and the calibration action
list (black headers, grid lines). Empty sections print a single note line.
"""

from datetime import date, datetime
from pathlib import Path
from typing import Iterable
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import (
    SimpleDocTemplate,
    Paragraph,
    Table,
    TableStyle,
    Spacer,
    KeepTogether,
)

from calculations import format_currency, to_calendar_day
from config import get_currency
from domain.models import EquipmentRecord
from reporting import (
    approval_breakdown,
    calibration_action_list,
    kpi_totals,
    monthly_financial_summary,
)

# Black and white only
BLACK = colors.HexColor("#000000")
WHITE = colors.HexColor("#ffffff")

CONTENT_WIDTH = 10.0 * inch


def _styles() -> dict:
    styles = getSampleStyleSheet()
    return {
        "small": ParagraphStyle(
            name="Small",
            parent=styles["Normal"],
            fontName="Helvetica",
            fontSize=9,
            leading=9 * 1.5,
            textColor=BLACK,
        ),
        "title": ParagraphStyle(
            name="PDFTitle",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=14,
            leading=14 * 1.5,
            alignment=1,
            textColor=BLACK,
        ),
        "section": ParagraphStyle(
            name="Section",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=11,
            leading=11 * 1.4,
            textColor=BLACK,
        ),
        "header": ParagraphStyle(
            name="TableHeader",
            parent=styles["Normal"],
            fontName="Helvetica-Bold",
            fontSize=8,
            leading=9,
            textColor=WHITE,
            alignment=1,
        ),
        "cell": ParagraphStyle(
            name="TableCell",
            parent=styles["Normal"],
            fontName="Helvetica",
            fontSize=8,
            leading=9,
            textColor=BLACK,
            alignment=1,
        ),
    }


def _grid_table(headers: list[str], rows: list[list], styles: dict) -> Table:
    """Black header row with white text, black grid body, all cells centered."""
    data = [[Paragraph(escape(h), styles["header"]) for h in headers]]
    for row in rows:
        data.append([Paragraph(escape(str(cell)), styles["cell"]) for cell in row])
    col_width = CONTENT_WIDTH / len(headers)
    pad = 3
    tbl = Table(data, colWidths=[col_width] * len(headers), repeatRows=1)
    tbl.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), BLACK),
                ("TEXTCOLOR", (0, 0), (-1, 0), WHITE),
                ("GRID", (0, 0), (-1, 0), 0.5, WHITE),
                ("TEXTCOLOR", (0, 1), (-1, -1), BLACK),
                ("GRID", (0, 1), (-1, -1), 0.5, BLACK),
                ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                ("ALIGN", (0, 0), (-1, -1), "CENTER"),
                ("LEFTPADDING", (0, 0), (-1, -1), pad),
                ("RIGHTPADDING", (0, 0), (-1, -1), pad),
                ("TOPPADDING", (0, 0), (-1, -1), pad),
                ("BOTTOMPADDING", (0, 0), (-1, -1), pad),
            ]
        )
    )
    return tbl


def _section(story: list, title: str, headers: list[str], rows: list[list], styles: dict, empty_note: str):
    story.append(Paragraph(escape(title), styles["section"]))
    story.append(Spacer(1, 0.06 * inch))
    if rows:
        story.append(KeepTogether([_grid_table(headers, rows, styles)]) if len(rows) < 20 else _grid_table(headers, rows, styles))
    else:
        story.append(Paragraph(escape(empty_note), styles["small"]))
    story.append(Spacer(1, 0.2 * inch))


def export_summary_to_pdf(
    records: Iterable[EquipmentRecord],
    output_path: str | Path,
    as_of: date | datetime | None = None,
    currency: str | None = None,
) -> Path:
    """Write the register summary report and return its path."""
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    records = list(records)
    today = to_calendar_day(as_of)
    currency = currency or get_currency()

    def money(amount: float) -> str:
        return format_currency(amount, currency)

    doc = SimpleDocTemplate(
        str(output_path),
        pagesize=landscape(letter),
        rightMargin=0.5 * inch,
        leftMargin=0.5 * inch,
        topMargin=0.4 * inch,
        bottomMargin=0.4 * inch,
        title="EquipTrack Summary",
    )
    styles = _styles()
    story = [
        Paragraph("EquipTrack Register Summary", styles["title"]),
        Spacer(1, 0.1 * inch),
    ]

    kpis = kpi_totals(records, today)
    kpi_lines = [
        f"<b>Report Date:</b> {today.isoformat()}",
        f"<b>Total Kits:</b> {kpis.total_kits}",
        f"<b>Kits In Use:</b> {kpis.kits_in_use}",
        f"<b>Returned Kits:</b> {kpis.returned_kits}",
        f"<b>Pending Claims:</b> {kpis.pending_claims}",
        f"<b>Total Pending Amount:</b> {escape(money(kpis.total_pending_amount))}",
    ]
    story.append(Paragraph("<br/>".join(kpi_lines), styles["small"]))
    story.append(Spacer(1, 0.2 * inch))

    _section(
        story,
        "Monthly Financial Summary",
        ["Month", "Total Cost", "Paid", "Pending", "Status"],
        [
            [m.month, money(m.total_cost), money(m.paid_amount), money(m.pending_amount),
             "CLEARED" if m.cleared else "UNPAID"]
            for m in monthly_financial_summary(records, today)
        ],
        styles,
        "No claims recorded.",
    )
    _section(
        story,
        "Approval Breakdown",
        ["Status", "Count"],
        [[label, count] for label, count in approval_breakdown(records)],
        styles,
        "No records.",
    )
    _section(
        story,
        "Calibration Action List",
        ["SL", "Description", "Serial Number", "Vendor", "Due Date", "Days Left", "Status"],
        [
            [r.sl_no, r.description, r.serial_number, r.rental_company, r.calibration_due_date,
             c.calibration_remaining_days, c.reminder_status]
            for r, c in calibration_action_list(records, today)
        ],
        styles,
        "All calibrations are up to date.",
    )

    doc.build(story)
    return output_path
