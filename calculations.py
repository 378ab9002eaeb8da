# calculations.py
"""
Record computation engine.
Single source of truth for: date parsing, rental cost accrual across the three
billing cadences, claim status, pending amount and calibration urgency.
Pure functions; nothing here reads the store or raises on bad record data.
"""

from __future__ import annotations

import math
from datetime import date, datetime

from config import DEFAULT_CURRENCY
from domain.models import (
    PAID,
    PENDING,
    STATUS_DUE_SOON,
    STATUS_EXPIRED,
    STATUS_OK,
    STATUS_URGENT,
    SUBMITTED,
    ComputedFields,
    EquipmentRecord,
)

# Calibration thresholds in days (inclusive upper bounds)
URGENT_DAYS = 7
DUE_SOON_DAYS = 30

# Fixed 30-day month used for Monthly billing
DAYS_PER_WEEK = 7
DAYS_PER_MONTH = 30

# Formats tried after ISO parsing fails (spreadsheet and hand-typed dates).
# Ambiguous slash dates are day-first: 03/04/2025 is 3 April, not March 4.
_DATE_FORMATS = (
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%Y/%m/%d",
    "%d-%b-%Y",
    "%d %b %Y",
    "%d %B %Y",
    "%b %d, %Y",
    "%B %d, %Y",
)

SAFE_FIELDS = ComputedFields(
    days_using=0,
    rental_cost=0,
    pending_claim_status=PENDING,
    pending_amount=0,
    calibration_remaining_days=0,
    reminder_status=STATUS_OK,
)


def parse_date(value) -> date | None:
    """
    Parse a calendar date. Accepts date/datetime objects, ISO dates, ISO
    datetimes (time part dropped) and a few common spreadsheet formats.
    Returns None for empty or unparseable input.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def is_valid_date(value) -> bool:
    return parse_date(value) is not None


def to_calendar_day(value: date | datetime | None) -> date:
    """Strip time-of-day; None means today."""
    if value is None:
        return date.today()
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(start: date, end: date) -> int:
    """Whole calendar days from start to end (negative when end is earlier)."""
    return (end - start).days


def rental_cost_for(rate_type: str, rate_value: float, days_using: int) -> float:
    """Accrued cost for a day count. Partial weeks and months bill in full."""
    if rate_type == "Daily":
        return days_using * rate_value
    if rate_type == "Weekly":
        return math.ceil(days_using / DAYS_PER_WEEK) * rate_value
    if rate_type == "Monthly":
        return math.ceil(days_using / DAYS_PER_MONTH) * rate_value
    return 0


def reminder_status_for(remaining_days: int) -> str:
    """Calibration urgency bucket; first matching threshold wins."""
    if remaining_days <= 0:
        return STATUS_EXPIRED
    if remaining_days <= URGENT_DAYS:
        return STATUS_URGENT
    if remaining_days <= DUE_SOON_DAYS:
        return STATUS_DUE_SOON
    return STATUS_OK


def claim_status_for(record: EquipmentRecord) -> str:
    if record.is_payment_done:
        return PAID
    if (record.invoice_number or "").strip():
        return SUBMITTED
    return PENDING


def compute_record_fields(record: EquipmentRecord, as_of: date | datetime | None = None) -> ComputedFields:
    """
    Derive days used, rental cost, claim status, pending amount and
    calibration status for one record as of a calendar day (default today).
    Invalid received/calibration dates (or a present but invalid return date)
    yield SAFE_FIELDS.
    """
    today = to_calendar_day(as_of)

    received = parse_date(record.kit_received_date)
    calibration_due = parse_date(record.calibration_due_date)
    returned = None
    if record.kit_returned_date:
        returned = parse_date(record.kit_returned_date)
        if returned is None:
            return SAFE_FIELDS
    if received is None or calibration_due is None:
        return SAFE_FIELDS

    days_using = max(0, days_between(received, returned or today))
    rental_cost = rental_cost_for(record.rate_type, record.rate_value, days_using)
    pending_amount = 0 if record.is_payment_done else rental_cost
    remaining = days_between(today, calibration_due)

    return ComputedFields(
        days_using=days_using,
        rental_cost=rental_cost,
        pending_claim_status=claim_status_for(record),
        pending_amount=pending_amount,
        calibration_remaining_days=remaining,
        reminder_status=reminder_status_for(remaining),
    )


def format_currency(amount: float, currency: str = DEFAULT_CURRENCY) -> str:
    """e.g. 'SAR 1,234.50'."""
    return f"{currency} {amount:,.2f}"


def get_month_year(value) -> str:
    """Claim month label ('September 2025') for a date value."""
    if value is None or not str(value).strip():
        return "Unknown Date"
    d = parse_date(value)
    if d is None:
        return "Invalid Date"
    return d.strftime("%B %Y")
