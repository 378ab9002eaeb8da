# services/attachment_service.py - Attachment orchestration
#
# Documents live inline on the record as base64 data URLs. Adding or removing
# one is an ordinary whole-record edit through record_service.

import base64
import binascii
import mimetypes
import uuid
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from domain.models import ATTACHMENT_CATEGORIES, Attachment, EquipmentRecord
from file_utils import atomic_write_bytes
from services import record_service

if TYPE_CHECKING:
    from database import RecordStore


@dataclass(frozen=True)
class DocumentEntry:
    """An attachment with the equipment it belongs to (documents center row)."""

    attachment: Attachment
    record_id: str
    equipment_name: str
    equipment_sn: str
    company: str
    vendor: str


def build_attachment(src_path: str | Path, category: str = "Other", now: datetime | None = None) -> Attachment:
    """Read a file into an Attachment. Raises FileNotFoundError / ValueError."""
    path = Path(src_path)
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {src_path}")
    if category not in ATTACHMENT_CATEGORIES:
        raise ValueError(f"Category must be one of {', '.join(ATTACHMENT_CATEGORIES)}")
    mime = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    payload = base64.b64encode(path.read_bytes()).decode("ascii")
    return Attachment(
        id=uuid.uuid4().hex[:9],
        name=path.name,
        data=f"data:{mime};base64,{payload}",
        type=mime,
        uploaded_at=(now or datetime.now()).isoformat(timespec="seconds"),
        category=category,
    )


def add_attachment(
    store: "RecordStore",
    record_id: str,
    src_path: str | Path,
    category: str = "Other",
) -> EquipmentRecord:
    """Attach a file to a record and save. Raises FileNotFoundError / KeyError."""
    attachment = build_attachment(src_path, category)
    record = record_service.get_record(store, record_id)
    return record_service.update_record(
        store, record.with_changes(attachments=record.attachments + (attachment,))
    )


def remove_attachment(store: "RecordStore", record_id: str, attachment_id: str) -> EquipmentRecord:
    """Drop an attachment from a record (record replacement). Raises KeyError."""
    record = record_service.get_record(store, record_id)
    kept = tuple(a for a in record.attachments if a.id != attachment_id)
    if len(kept) == len(record.attachments):
        raise KeyError(f"No attachment {attachment_id!r} on record {record_id!r}")
    return record_service.update_record(store, record.with_changes(attachments=kept))


def decode_attachment(attachment: Attachment) -> bytes:
    """Payload bytes; accepts a data URL or bare base64. Raises ValueError if corrupt."""
    data = attachment.data or ""
    if data.startswith("data:") and "," in data:
        data = data.split(",", 1)[1]
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Attachment {attachment.name!r} is not valid base64") from e


def save_attachment(attachment: Attachment, dest_dir: str | Path) -> Path:
    """Write an attachment to dest_dir under its own file name."""
    dest = Path(dest_dir) / Path(attachment.name).name
    atomic_write_bytes(dest, decode_attachment(attachment))
    return dest


def list_documents(
    records: Iterable[EquipmentRecord],
    term: str = "",
    category: str = "All",
) -> list[DocumentEntry]:
    """All attachments across records, newest upload first, filtered by search term and category."""
    needle = (term or "").strip().lower()
    docs = [
        DocumentEntry(
            attachment=att,
            record_id=r.id,
            equipment_name=r.description,
            equipment_sn=r.serial_number,
            company=r.internal_company,
            vendor=r.rental_company,
        )
        for r in records
        for att in r.attachments
    ]
    docs.sort(key=lambda d: d.attachment.uploaded_at, reverse=True)
    if category and category != "All":
        docs = [d for d in docs if d.attachment.category == category]
    if needle:
        docs = [
            d for d in docs
            if needle in d.attachment.name.lower()
            or needle in d.equipment_name.lower()
            or needle in d.equipment_sn.lower()
        ]
    return docs
