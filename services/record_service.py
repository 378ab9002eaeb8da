# services/record_service.py - Equipment record orchestration
#
# Thin layer: validates input, builds the new collection copy-on-write and
# hands it to the store. The computation engine and workflow stay pure.

import logging
import uuid
from typing import TYPE_CHECKING, Iterable

from calculations import get_month_year, is_valid_date, parse_date
from domain.models import OWNERSHIP_TYPES, RATE_TYPES, EquipmentRecord
from services.identity import get_current_user_id
from workflow_service import WorkflowDecision, WorkflowResult, apply_workflow_decision

if TYPE_CHECKING:
    from ai_scan import CertificateScan
    from database import RecordStore

logger = logging.getLogger(__name__)

# Owned by the workflow or assigned on creation
_LOCKED_FIELDS = {
    "id", "sl_no", "approval_status", "workflow_stage", "is_payment_done", "payment_date", "admin_comments",
}


def new_record_id() -> str:
    return uuid.uuid4().hex[:9]


def validate_record(record: EquipmentRecord) -> None:
    """Raise ValueError when a record is not fit to be saved."""
    if not (record.description or "").strip():
        raise ValueError("Description is required")
    if not (record.serial_number or "").strip():
        raise ValueError("Serial number is required")
    if not is_valid_date(record.kit_received_date):
        raise ValueError(f"Kit received date is not a valid date: {record.kit_received_date!r}")
    if not is_valid_date(record.calibration_due_date):
        raise ValueError(f"Calibration due date is not a valid date: {record.calibration_due_date!r}")
    if record.kit_returned_date and not is_valid_date(record.kit_returned_date):
        raise ValueError(f"Kit returned date is not a valid date: {record.kit_returned_date!r}")
    if record.rate_type not in RATE_TYPES:
        raise ValueError(f"Rate type must be one of {', '.join(RATE_TYPES)}")
    if record.rate_value < 0:
        raise ValueError("Rate value cannot be negative")
    if record.ownership_type not in OWNERSHIP_TYPES:
        raise ValueError(f"Ownership type must be one of {', '.join(OWNERSHIP_TYPES)}")
    if record.qty < 1:
        raise ValueError("Quantity must be at least 1")
    if record.is_payment_done and record.approval_status != "A":
        raise ValueError("Payment can only be recorded on an Approved claim")


def get_record(store: "RecordStore", record_id: str) -> EquipmentRecord:
    """Raises KeyError if no record has this id."""
    for record in store.load():
        if record.id == record_id:
            return record
    raise KeyError(f"No equipment record with id {record_id!r}")


def add_record(store: "RecordStore", data: dict) -> EquipmentRecord:
    """
    Create a record from form data (camelCase keys). Assigns id and the next
    SL number, derives the claim month from the received date when absent and
    starts the claim at N/A / unpaid. Raises ValueError on invalid input.
    """
    records = store.load()
    draft = EquipmentRecord.from_dict(data)
    record = draft.with_changes(
        id=new_record_id(),
        sl_no=len(records) + 1,
        claim_month=draft.claim_month or get_month_year(draft.kit_received_date),
        approval_status="N/A",
        workflow_stage="Submitted",
        is_payment_done=False,
        payment_date=None,
        admin_comments=(),
    )
    validate_record(record)
    store.save(records + [record])
    logger.info("Added equipment record %s", record)
    return record


def update_record(store: "RecordStore", record: EquipmentRecord) -> EquipmentRecord:
    """Replace the stored record with the same id. Raises KeyError / ValueError."""
    validate_record(record)
    records = store.load()
    if not any(r.id == record.id for r in records):
        raise KeyError(f"No equipment record with id {record.id!r}")
    store.save([record if r.id == record.id else r for r in records])
    logger.info("Updated equipment record %s", record)
    return record


def edit_record(store: "RecordStore", record_id: str, **changes) -> EquipmentRecord:
    """
    Apply field edits to a stored record and save the whole record back.
    A new received date moves the claim month with it unless one is given.
    Workflow fields are not editable here; they change only through
    apply_workflow. Raises KeyError / ValueError.
    """
    locked = sorted(_LOCKED_FIELDS & changes.keys())
    if locked:
        raise ValueError(f"Cannot edit {', '.join(locked)} directly")
    record = get_record(store, record_id)
    if "kit_received_date" in changes and "claim_month" not in changes:
        changes["claim_month"] = get_month_year(changes["kit_received_date"])
    return update_record(store, record.with_changes(**changes))


def delete_record(store: "RecordStore", record_id: str) -> None:
    """Remove a record. Raises KeyError if it does not exist."""
    records = store.load()
    remaining = [r for r in records if r.id != record_id]
    if len(remaining) == len(records):
        raise KeyError(f"No equipment record with id {record_id!r}")
    store.save(remaining)
    logger.info("Deleted equipment record id=%s", record_id)


def search_records(records: Iterable[EquipmentRecord], term: str) -> list[EquipmentRecord]:
    """Case-insensitive match on description, serial, vendor and internal company."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(records)
    return [
        r for r in records
        if needle in r.description.lower()
        or needle in r.serial_number.lower()
        or needle in r.rental_company.lower()
        or needle in r.internal_company.lower()
    ]


def apply_workflow(store: "RecordStore", record_id: str, decision: WorkflowDecision) -> WorkflowResult:
    """
    Run an admin decision through the workflow and persist it on success.
    A refused decision is returned unsaved. Raises KeyError for an unknown id.
    """
    records = store.load()
    current = next((r for r in records if r.id == record_id), None)
    if current is None:
        raise KeyError(f"No equipment record with id {record_id!r}")
    result = apply_workflow_decision(current, decision, author=get_current_user_id(store))
    if not result.ok:
        logger.info("Workflow decision refused for %s: %s", current, result.error.name)
        return result
    store.save([result.record if r.id == record_id else r for r in records])
    logger.info(
        "Workflow applied to %s: status=%s stage=%s paid=%s",
        current, result.record.approval_status, result.record.workflow_stage, result.record.is_payment_done,
    )
    return result


def import_records(
    store: "RecordStore",
    drafts: Iterable[EquipmentRecord],
    ownership_type: str = "Rental",
) -> list[EquipmentRecord]:
    """
    Append imported drafts: apply the batch ownership type and number them
    after the existing records. Returns the records that were added.
    """
    if ownership_type not in OWNERSHIP_TYPES:
        raise ValueError(f"Ownership type must be one of {', '.join(OWNERSHIP_TYPES)}")
    records = store.load()
    existing_ids = {r.id for r in records}
    added = []
    for draft in drafts:
        record_id = draft.id if draft.id and draft.id not in existing_ids else new_record_id()
        existing_ids.add(record_id)
        added.append(
            draft.with_changes(
                id=record_id,
                sl_no=len(records) + len(added) + 1,
                ownership_type=ownership_type,
            )
        )
    if added:
        store.save(records + added)
    logger.info("Imported %s record(s)", len(added))
    return added


def apply_calibration_suggestion(
    store: "RecordStore",
    record_id: str,
    suggestion: "CertificateScan | None",
    confirmed: bool = False,
) -> EquipmentRecord | None:
    """
    Write a scanned next-due date into a record once the operator confirmed
    it. Returns the updated record, or None when there is nothing to apply
    (no suggestion, not confirmed, or an unparseable date).
    """
    if suggestion is None or not confirmed:
        return None
    next_due = parse_date(suggestion.next_due_date)
    if next_due is None:
        logger.warning("Ignoring scan with unusable next due date %r", suggestion.next_due_date)
        return None
    record = get_record(store, record_id)
    updated = record.with_changes(calibration_due_date=next_due.isoformat())
    return update_record(store, updated)
