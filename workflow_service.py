# workflow_service.py
"""
Approval/payment workflow for equipment claims.
All guards live here so every caller (CLI, import tooling, services) enforces
the same rules:

- a status change needs a written justification;
- payment can only be confirmed on an Approved ('A') record;
- leaving Approved clears payment.

Violations come back as a WorkflowResult carrying a WorkflowError; the input
record is returned untouched and nothing is raised.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from calculations import parse_date
from domain.models import APPROVAL_STATUSES, AdminComment, EquipmentRecord

APPROVED = "A"
DEFAULT_AUTHOR = "Admin"


class WorkflowError(Enum):
    MISSING_JUSTIFICATION = (
        "Workflow Action Required: You must add a comment/justification to change the status."
    )
    PAYMENT_NOT_APPROVED = (
        "Compliance Error: Payment can only be confirmed for records with 'Approved' status."
    )
    UNKNOWN_STATUS = "Unknown approval status."

    @property
    def message(self) -> str:
        return self.value


@dataclass(frozen=True)
class WorkflowDecision:
    """What the admin asked for in one confirm action."""

    new_approval_status: str
    comment: str = ""
    mark_paid: bool = False
    payment_date: str | None = None


@dataclass(frozen=True)
class WorkflowResult:
    record: EquipmentRecord
    error: WorkflowError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def derive_workflow_stage(approval_status: str, is_payment_done: bool) -> str:
    if approval_status == "RE":
        return "Under Review"
    if approval_status == "R":
        return "Rejected"
    if approval_status == APPROVED:
        return "Paid" if is_payment_done else "Approved"
    return "Submitted"


def validate_decision(record: EquipmentRecord, decision: WorkflowDecision) -> WorkflowError | None:
    """Return the first guard the decision violates, or None."""
    new_status = decision.new_approval_status or "N/A"
    if new_status not in APPROVAL_STATUSES:
        return WorkflowError.UNKNOWN_STATUS
    current = record.approval_status or "N/A"
    if new_status != current and not (decision.comment or "").strip():
        return WorkflowError.MISSING_JUSTIFICATION
    if decision.mark_paid and new_status != APPROVED:
        return WorkflowError.PAYMENT_NOT_APPROVED
    return None


def apply_workflow_decision(
    record: EquipmentRecord,
    decision: WorkflowDecision,
    author: str = DEFAULT_AUTHOR,
    now: datetime | None = None,
) -> WorkflowResult:
    """
    Apply an admin decision to a record. On success returns a new record with
    approval_status, workflow_stage, admin_comments, is_payment_done and
    payment_date updated.
    """
    error = validate_decision(record, decision)
    if error is not None:
        return WorkflowResult(record=record, error=error)

    now = now or datetime.now()
    new_status = decision.new_approval_status or "N/A"
    is_paid = bool(decision.mark_paid) and new_status == APPROVED

    payment_date = None
    if is_paid:
        parsed = parse_date(decision.payment_date)
        payment_date = (parsed or parse_date(record.payment_date) or now.date()).isoformat()

    comments = record.admin_comments
    text = (decision.comment or "").strip()
    if text:
        comments = comments + (
            AdminComment(
                id=uuid.uuid4().hex,
                text=text,
                author=author or DEFAULT_AUTHOR,
                timestamp=now.isoformat(timespec="seconds"),
            ),
        )

    updated = record.with_changes(
        approval_status=new_status,
        workflow_stage=derive_workflow_stage(new_status, is_paid),
        admin_comments=comments,
        is_payment_done=is_paid,
        payment_date=payment_date,
    )
    return WorkflowResult(record=updated)


def payment_allowed(record: EquipmentRecord) -> bool:
    """True when the record may be marked paid without a status change."""
    return (record.approval_status or "N/A") == APPROVED

