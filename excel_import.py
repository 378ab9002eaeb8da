# excel_import.py
"""
Spreadsheet import: first worksheet, header row skipped, fixed column mapping

    A Description | B Serial Number | C Unit | D Qty | E Internal Company |
    F Rental Vendor | G Rate Type | H Rate Value | I Received Date |
    J Calibration Due Date

Every cell is parsed with an explicit default so a messy sheet never fails
the whole batch. Output records are ordinary drafts (N/A, unpaid, no
attachments); record_service.import_records numbers and saves them.
"""

import io
import logging
import random
import string
from datetime import date, datetime
from pathlib import Path

from openpyxl import load_workbook
from openpyxl.utils.datetime import from_excel

from calculations import get_month_year, parse_date
from domain.models import RATE_TYPES, EquipmentRecord

logger = logging.getLogger(__name__)

DEFAULT_DESCRIPTION = "NEW EQUIPMENT"
DEFAULT_UNIT = "set"
DEFAULT_INTERNAL_COMPANY = "MUWALYH SITE OFFICE"
DEFAULT_VENDOR = "To Be Specified"
PLACEHOLDER_SERIAL_PREFIX = "TBD-"
IMPORT_REMARK = "Imported from Excel"

COLUMNS = ("A", "B", "C", "D", "E", "F", "G", "H", "I", "J")


def _random_token(length: int, alphabet: str = string.ascii_uppercase + string.digits) -> str:
    return "".join(random.choice(alphabet) for _ in range(length))


def _text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _int_or(value, default: int) -> int:
    try:
        parsed = int(float(_text(value)))
    except (TypeError, ValueError, OverflowError):
        return default
    return parsed or default


def _float_or(value, default: float) -> float:
    try:
        return float(_text(value))
    except (TypeError, ValueError):
        return default


def safe_date(value, today: date | None = None) -> str:
    """
    ISO date for a spreadsheet cell: datetime cells, Excel serial numbers and
    date strings. Empty or unparseable input falls back to today.
    """
    fallback = (today or date.today()).isoformat()
    if value is None or value == "":
        return fallback
    if isinstance(value, (datetime, date)):
        return parse_date(value).isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_excel(value).date().isoformat()
        except (TypeError, ValueError, OverflowError):
            return fallback
    parsed = parse_date(value)
    return parsed.isoformat() if parsed else fallback


def row_to_record(cells: dict, index: int, today: date | None = None) -> EquipmentRecord:
    """Map one row (column letter -> cell value) to a draft record."""
    raw_rate_type = _text(cells.get("G"))
    kit_received_date = safe_date(cells.get("I"), today)
    return EquipmentRecord(
        id=f"xl_{_random_token(9, string.ascii_lowercase + string.digits)}",
        sl_no=index + 1,
        description=_text(cells.get("A")) or DEFAULT_DESCRIPTION,
        serial_number=_text(cells.get("B")) or f"{PLACEHOLDER_SERIAL_PREFIX}{_random_token(5)}",
        unit=_text(cells.get("C")) or DEFAULT_UNIT,
        qty=_int_or(cells.get("D"), 1),
        internal_company=_text(cells.get("E")) or DEFAULT_INTERNAL_COMPANY,
        rental_company=_text(cells.get("F")) or DEFAULT_VENDOR,
        ownership_type="Rental",
        rate_type=raw_rate_type if raw_rate_type in RATE_TYPES else "Daily",
        rate_value=_float_or(cells.get("H"), 0.0),
        kit_received_date=kit_received_date,
        kit_returned_date=None,
        invoice_number="",
        claim_month=get_month_year(kit_received_date),
        remarks=IMPORT_REMARK,
        calibration_due_date=safe_date(cells.get("J"), today),
        approval_status="N/A",
        is_payment_done=False,
    )


def is_placeholder(record: EquipmentRecord) -> bool:
    """Rows with neither a description nor a serial number are blank lines."""
    return (
        record.description == DEFAULT_DESCRIPTION
        and record.serial_number.startswith(PLACEHOLDER_SERIAL_PREFIX)
    )


def parse_rows(rows, today: date | None = None) -> list[EquipmentRecord]:
    """Convert data rows (sequences of cell values, header already removed)."""
    records = []
    for index, row in enumerate(rows):
        cells = dict(zip(COLUMNS, row or ()))
        record = row_to_record(cells, index, today)
        if not is_placeholder(record):
            records.append(record)
    return records


def parse_excel_to_equipment(source, today: date | None = None) -> list[EquipmentRecord]:
    """
    Read the first worksheet of an .xlsx workbook (path, bytes or binary
    file object). The first row is treated as the header.
    """
    if isinstance(source, (bytes, bytearray)):
        source = io.BytesIO(source)
    elif isinstance(source, Path):
        source = str(source)
    wb = load_workbook(source, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        rows = list(ws.iter_rows(min_row=2, max_col=len(COLUMNS), values_only=True))
    finally:
        wb.close()
    records = parse_rows(rows, today)
    logger.info("Parsed %s record(s) from %s data row(s)", len(records), len(rows))
    return records
