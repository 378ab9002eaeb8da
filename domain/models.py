# domain/models.py - Domain entities (dataclasses)
#
# Typed models for cross-layer data. Conversion from the stored JSON
# (camelCase keys, as written by the original browser app) happens at the
# store boundary only. Records are frozen: edits go through
# dataclasses.replace() so readers never see a half-updated record.

from dataclasses import dataclass, field, replace
from typing import Any, Optional

RATE_TYPES = ("Daily", "Weekly", "Monthly")
OWNERSHIP_TYPES = ("Own", "Rental")
APPROVAL_STATUSES = ("N/A", "A", "AWC", "RE", "C", "R")
WORKFLOW_STAGES = ("Submitted", "Under Review", "Approved", "Rejected", "Paid")
ATTACHMENT_CATEGORIES = ("Invoice", "Receipt", "Manual", "Certificate", "Other")

# Claim status
PENDING = "PENDING"
SUBMITTED = "SUBMITTED"
PAID = "PAID"

# Calibration reminder status
STATUS_OK = "OK"
STATUS_DUE_SOON = "DUE_SOON"
STATUS_URGENT = "URGENT"
STATUS_EXPIRED = "EXPIRED"
REMINDER_STATUSES = (STATUS_OK, STATUS_DUE_SOON, STATUS_URGENT, STATUS_EXPIRED)

REMINDER_LABELS = {
    STATUS_OK: "✅ OK",
    STATUS_DUE_SOON: "🔔 DUE SOON",
    STATUS_URGENT: "⚠️ URGENT",
    STATUS_EXPIRED: "❌ EXPIRED",
}

APPROVAL_LABELS = {
    "A": "Approved",
    "AWC": "Appr. w/ Comments",
    "RE": "Review",
    "C": "Cancelled",
    "R": "Rejected",
    "N/A": "Not Submitted",
}


def _str(d: dict, key: str, default: str = "") -> str:
    v = d.get(key)
    return default if v is None else str(v)


def _optional_str(d: dict, key: str) -> Optional[str]:
    v = d.get(key)
    if v is None:
        return None
    v = str(v)
    return v if v.strip() else None


def _int(d: dict, key: str, default: int) -> int:
    try:
        return int(d.get(key))
    except (TypeError, ValueError):
        return default


def _float(d: dict, key: str, default: float = 0.0) -> float:
    try:
        return float(d.get(key))
    except (TypeError, ValueError):
        return default


def _bool(d: dict, key: str) -> bool:
    v = d.get(key)
    if isinstance(v, str):
        return v.strip().lower() in ("true", "1", "yes")
    return v is True or v == 1


@dataclass(frozen=True)
class AdminComment:
    """One entry of a record's append-only admin audit trail."""

    id: str
    text: str
    author: str
    timestamp: str

    @classmethod
    def from_dict(cls, d: dict) -> "AdminComment":
        return cls(
            id=_str(d, "id"),
            text=_str(d, "text"),
            author=_str(d, "author", "Admin"),
            timestamp=_str(d, "timestamp"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "text": self.text, "author": self.author, "timestamp": self.timestamp}


@dataclass(frozen=True)
class Attachment:
    """A document stored inline on a record. data is a base64 data URL."""

    id: str
    name: str
    data: str
    type: str
    uploaded_at: str
    category: str = "Other"

    @classmethod
    def from_dict(cls, d: dict) -> "Attachment":
        category = _str(d, "category", "Other")
        return cls(
            id=_str(d, "id"),
            name=_str(d, "name"),
            data=_str(d, "data"),
            type=_str(d, "type", "application/octet-stream"),
            uploaded_at=_str(d, "uploadedAt"),
            category=category if category in ATTACHMENT_CATEGORIES else "Other",
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "data": self.data,
            "type": self.type,
            "uploadedAt": self.uploaded_at,
            "category": self.category,
        }


@dataclass(frozen=True)
class EquipmentRecord:
    """
    Domain model for one equipment item (owned or rented).
    Dates are stored as entered; the computation engine parses them so a
    malformed value degrades to a safe result instead of failing at load.
    """

    id: str
    sl_no: int
    description: str
    serial_number: str
    kit_received_date: str
    calibration_due_date: str
    rate_type: str = "Daily"
    rate_value: float = 0.0
    unit: str = "set"
    qty: int = 1
    internal_company: str = ""
    rental_company: str = ""
    ownership_type: str = "Rental"
    kit_returned_date: Optional[str] = None
    invoice_number: str = ""
    claim_month: str = ""
    remarks: str = ""
    approval_status: str = "N/A"
    workflow_stage: str = "Submitted"
    is_payment_done: bool = False
    payment_date: Optional[str] = None
    admin_comments: tuple[AdminComment, ...] = field(default_factory=tuple)
    attachments: tuple[Attachment, ...] = field(default_factory=tuple)

    @property
    def is_active(self) -> bool:
        """True while the kit has not been returned."""
        return not self.kit_returned_date

    @classmethod
    def from_dict(cls, d: dict) -> "EquipmentRecord":
        """Build a record from the stored camelCase JSON shape, substituting defaults."""
        approval = _str(d, "approvalStatus", "N/A") or "N/A"
        return cls(
            id=_str(d, "id"),
            sl_no=_int(d, "slNo", 0),
            description=_str(d, "description"),
            serial_number=_str(d, "serialNumber"),
            kit_received_date=_str(d, "kitReceivedDate"),
            calibration_due_date=_str(d, "calibrationDueDate"),
            rate_type=_str(d, "rateType", "Daily"),
            rate_value=_float(d, "rateValue"),
            unit=_str(d, "unit", "set") or "set",
            qty=_int(d, "qty", 1),
            internal_company=_str(d, "internalCompany"),
            rental_company=_str(d, "rentalCompany"),
            ownership_type=_str(d, "ownershipType", "Rental") or "Rental",
            kit_returned_date=_optional_str(d, "kitReturnedDate"),
            invoice_number=_str(d, "invoiceNumber"),
            claim_month=_str(d, "claimMonth"),
            remarks=_str(d, "remarks"),
            approval_status=approval,
            workflow_stage=_str(d, "workflowStage", "Submitted") or "Submitted",
            is_payment_done=_bool(d, "isPaymentDone"),
            payment_date=_optional_str(d, "paymentDate"),
            admin_comments=tuple(AdminComment.from_dict(c) for c in d.get("adminComments") or []),
            attachments=tuple(Attachment.from_dict(a) for a in d.get("attachments") or []),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to the stored camelCase JSON shape."""
        return {
            "id": self.id,
            "slNo": self.sl_no,
            "description": self.description,
            "serialNumber": self.serial_number,
            "unit": self.unit,
            "qty": self.qty,
            "internalCompany": self.internal_company,
            "rentalCompany": self.rental_company,
            "ownershipType": self.ownership_type,
            "rateType": self.rate_type,
            "rateValue": self.rate_value,
            "kitReceivedDate": self.kit_received_date,
            "kitReturnedDate": self.kit_returned_date,
            "invoiceNumber": self.invoice_number,
            "claimMonth": self.claim_month,
            "remarks": self.remarks,
            "calibrationDueDate": self.calibration_due_date,
            "approvalStatus": self.approval_status,
            "workflowStage": self.workflow_stage,
            "isPaymentDone": self.is_payment_done,
            "paymentDate": self.payment_date,
            "adminComments": [c.to_dict() for c in self.admin_comments],
            "attachments": [a.to_dict() for a in self.attachments],
        }

    def with_changes(self, **changes: Any) -> "EquipmentRecord":
        """Copy-on-write edit."""
        return replace(self, **changes)

    def __str__(self) -> str:
        """String representation for logs."""
        return f"id={self.id}, sl={self.sl_no}, serial={self.serial_number}"


@dataclass(frozen=True)
class ComputedFields:
    days_using: int
    rental_cost: float
    pending_claim_status: str
    pending_amount: float
    calibration_remaining_days: int
    reminder_status: str

    @property
    def reminder_label(self) -> str:
        return REMINDER_LABELS.get(self.reminder_status, self.reminder_status)


@dataclass(frozen=True)
class RentalContract:
    """Vendor rate terms. Used only to populate vendor names."""

    id: str
    company_name: str
    equipment_type: str
    rate_type: str = "Daily"
    rate_value: float = 0.0
    remarks: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "RentalContract":
        return cls(
            id=_str(d, "id"),
            company_name=_str(d, "companyName"),
            equipment_type=_str(d, "equipmentType"),
            rate_type=_str(d, "rateType", "Daily"),
            rate_value=_float(d, "rateValue"),
            remarks=_str(d, "remarks"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "companyName": self.company_name,
            "equipmentType": self.equipment_type,
            "rateType": self.rate_type,
            "rateValue": self.rate_value,
            "remarks": self.remarks,
        }


@dataclass(frozen=True)
class ContactEntry:
    id: str
    name: str
    contact_number: str
    email: str
    company_name: str = ""
    location: str = ""

    @classmethod
    def from_dict(cls, d: dict) -> "ContactEntry":
        return cls(
            id=_str(d, "id"),
            name=_str(d, "name"),
            contact_number=_str(d, "contactNumber"),
            email=_str(d, "email"),
            company_name=_str(d, "companyName"),
            location=_str(d, "location"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "contactNumber": self.contact_number,
            "email": self.email,
            "companyName": self.company_name,
            "location": self.location,
        }
