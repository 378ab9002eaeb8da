# reporting.py
"""
Aggregate reducers behind the dashboard, invoice and calibration views.
Every function takes the record collection (and optionally the as-of day),
never raises, and returns zeroed/empty results for an empty collection.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable

from calculations import compute_record_fields, to_calendar_day
from domain.models import APPROVAL_LABELS, REMINDER_STATUSES, STATUS_OK, ComputedFields, EquipmentRecord


@dataclass(frozen=True)
class KpiTotals:
    total_kits: int = 0
    kits_in_use: int = 0
    returned_kits: int = 0
    pending_claims: int = 0
    total_pending_amount: float = 0


@dataclass(frozen=True)
class MonthlySummary:
    month: str
    total_cost: float
    paid_amount: float
    pending_amount: float

    @property
    def cleared(self) -> bool:
        return self.pending_amount == 0


def computed_pairs(
    records: Iterable[EquipmentRecord], as_of: date | datetime | None = None
) -> list[tuple[EquipmentRecord, ComputedFields]]:
    """Evaluate every record once against the same day."""
    today = to_calendar_day(as_of)
    return [(r, compute_record_fields(r, today)) for r in records]


def kpi_totals(records: Iterable[EquipmentRecord], as_of: date | datetime | None = None) -> KpiTotals:
    pairs = computed_pairs(records, as_of)
    if not pairs:
        return KpiTotals()
    return KpiTotals(
        total_kits=len(pairs),
        kits_in_use=sum(1 for r, _ in pairs if r.is_active),
        returned_kits=sum(1 for r, _ in pairs if not r.is_active),
        pending_claims=sum(1 for r, _ in pairs if not (r.invoice_number or "").strip()),
        total_pending_amount=sum(c.pending_amount for _, c in pairs),
    )


def calibration_bucket_counts(
    records: Iterable[EquipmentRecord], as_of: date | datetime | None = None
) -> dict[str, int]:
    """Count per reminder status; all four buckets are always present."""
    counts = {status: 0 for status in REMINDER_STATUSES}
    for _, computed in computed_pairs(records, as_of):
        counts[computed.reminder_status] += 1
    return counts


def company_distribution(records: Iterable[EquipmentRecord]) -> dict[str, int]:
    return dict(Counter(r.internal_company for r in records))


def vendor_distribution(records: Iterable[EquipmentRecord]) -> dict[str, int]:
    return dict(Counter(r.rental_company for r in records))


def approval_distribution(records: Iterable[EquipmentRecord]) -> dict[str, int]:
    """Count per approval code; a missing status counts as N/A."""
    return dict(Counter(r.approval_status or "N/A" for r in records))


def approval_breakdown(records: Iterable[EquipmentRecord]) -> list[tuple[str, int]]:
    """approval_distribution with display labels, for charts and reports."""
    return [
        (APPROVAL_LABELS.get(code, code), count)
        for code, count in sorted(approval_distribution(records).items())
    ]


def monthly_financial_summary(
    records: Iterable[EquipmentRecord], as_of: date | datetime | None = None
) -> list[MonthlySummary]:
    """Group by claim month (label order) and total cost, paid and pending."""
    totals: dict[str, list[float]] = {}
    for record, computed in computed_pairs(records, as_of):
        bucket = totals.setdefault(record.claim_month, [0, 0])
        bucket[0] += computed.rental_cost
        bucket[1] += computed.pending_amount
    return [
        MonthlySummary(
            month=month,
            total_cost=cost,
            paid_amount=cost - pending,
            pending_amount=pending,
        )
        for month, (cost, pending) in sorted(totals.items())
    ]


def calibration_action_list(
    records: Iterable[EquipmentRecord], as_of: date | datetime | None = None
) -> list[tuple[EquipmentRecord, ComputedFields]]:
    """Records needing calibration attention, most overdue first."""
    pairs = [(r, c) for r, c in computed_pairs(records, as_of) if c.reminder_status != STATUS_OK]
    pairs.sort(key=lambda pair: pair[1].calibration_remaining_days)
    return pairs


def active_kits(
    records: Iterable[EquipmentRecord], limit: int = 5, as_of: date | datetime | None = None
) -> list[tuple[EquipmentRecord, ComputedFields]]:
    """First `limit` unreturned kits in register order."""
    return [(r, c) for r, c in computed_pairs(records, as_of) if r.is_active][:max(0, limit)]
