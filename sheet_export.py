# sheet_export.py
"""
Read-only projections of the register for spreadsheets: CSV download,
tab-separated text for pasting into Google Sheets, and XLSX via openpyxl.
Column order is fixed; nothing exported here is read back.
"""

import csv
import io
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Iterable

from openpyxl import Workbook

from calculations import compute_record_fields, to_calendar_day
from domain.models import EquipmentRecord
from file_utils import atomic_write_text

logger = logging.getLogger(__name__)

REGISTER_HEADERS = [
    "SL NO", "DESCRIPTION", "SERIAL NUMBER", "UNIT", "QTY", "Internal Company",
    "Rental Company Name", "Kit Rate Type", "Rate Value", "Kit Received Date",
    "Kit Returned Date", "No. of Days Using", "Rental Cost (SAR)", "Invoice Number",
    "Claim Month", "Claim Status", "Approval Status", "Payment Done", "Payment Date",
    "Pending Amount", "Calibration Due Date", "Calibration Remaining Days",
    "Reminder Status", "Remarks", "Total Files",
]

SHEETS_HEADERS = [
    "SL NO", "Equipment Type", "Company Name", "Description", "Serial Number",
    "Unit", "Qty", "Rental Company", "Rate Type", "Rate Value", "Received Date",
    "Returned Date", "Days Using", "Rental Cost (SAR)", "Invoice No", "Claim Month",
    "Claim Status", "Pending Amount (SAR)", "Calibration Due", "Calibration Days",
    "Calibration Status", "Remarks",
]


def register_rows(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None) -> list[list]:
    """One row per record in REGISTER_HEADERS order."""
    today = to_calendar_day(as_of)
    rows = []
    for r in records:
        comp = compute_record_fields(r, today)
        rows.append([
            r.sl_no,
            r.description,
            r.serial_number,
            r.unit,
            r.qty,
            r.internal_company,
            r.rental_company,
            r.rate_type,
            r.rate_value,
            r.kit_received_date,
            r.kit_returned_date or "ACTIVE",
            comp.days_using,
            f"{comp.rental_cost:.2f}",
            r.invoice_number,
            r.claim_month,
            comp.pending_claim_status,
            r.approval_status or "N/A",
            "YES" if r.is_payment_done else "NO",
            r.payment_date or "",
            f"{comp.pending_amount:.2f}",
            r.calibration_due_date,
            comp.calibration_remaining_days,
            comp.reminder_label,
            r.remarks or "",
            len(r.attachments),
        ])
    return rows


def sheets_rows(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None) -> list[list]:
    """One row per record in SHEETS_HEADERS order."""
    today = to_calendar_day(as_of)
    rows = []
    for i, r in enumerate(records):
        comp = compute_record_fields(r, today)
        rows.append([
            r.sl_no or i + 1,
            r.ownership_type,
            r.internal_company,
            r.description,
            r.serial_number,
            r.unit,
            r.qty,
            r.rental_company,
            r.rate_type,
            r.rate_value,
            r.kit_received_date,
            r.kit_returned_date or "ACTIVE",
            comp.days_using,
            f"{comp.rental_cost:.2f}",
            r.invoice_number or "N/A",
            r.claim_month,
            comp.pending_claim_status,
            f"{comp.pending_amount:.2f}",
            r.calibration_due_date,
            comp.calibration_remaining_days,
            comp.reminder_label,
            r.remarks or "",
        ])
    return rows


def _tsv_cell(value) -> str:
    return str(value).replace("\t", " ").replace("\r", " ").replace("\n", " ")


def _to_tsv(headers: list[str] | None, rows: list[list]) -> str:
    lines = [headers] if headers else []
    lines.extend(rows)
    return "\n".join("\t".join(_tsv_cell(cell) for cell in row) for row in lines)


def to_csv(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None) -> str:
    """Register CSV with every value quoted."""
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(REGISTER_HEADERS)
    writer.writerows(register_rows(records, as_of))
    return buf.getvalue()


def to_tsv(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None, include_header: bool = False) -> str:
    """Register rows as tab-separated text (clipboard paste)."""
    return _to_tsv(REGISTER_HEADERS if include_header else None, register_rows(records, as_of))


def to_sheets_tsv(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None) -> str:
    """Google Sheets layout, header included."""
    return _to_tsv(SHEETS_HEADERS, sheets_rows(records, as_of))


def default_export_name(extension: str, today: date | None = None) -> str:
    return f"EquipTrack_Register_{(today or date.today()).isoformat()}.{extension}"


def write_csv(records: Iterable[EquipmentRecord], path: str | Path, as_of: date | datetime | None = None) -> Path:
    path = Path(path)
    # BOM so Excel opens UTF-8 (emoji status labels) correctly
    atomic_write_text(path, "\ufeff" + to_csv(records, as_of))
    logger.info("Exported register CSV to %s", path)
    return path


def write_tsv(records: Iterable[EquipmentRecord], path: str | Path, as_of: date | datetime | None = None) -> Path:
    path = Path(path)
    atomic_write_text(path, to_sheets_tsv(records, as_of))
    logger.info("Exported Google Sheets TSV to %s", path)
    return path


def write_xlsx(records: Iterable[EquipmentRecord], path: str | Path, as_of: date | datetime | None = None) -> Path:
    """Register workbook with one 'Register' sheet."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet("Register", 0)
    ws.title = "Register"
    ws.append(REGISTER_HEADERS)
    for row in register_rows(records, as_of):
        ws.append(row)
    ws.freeze_panes = "A2"
    wb.save(str(path))
    logger.info("Exported register workbook to %s", path)
    return path
