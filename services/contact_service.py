# services/contact_service.py - Contact directory (vendors, site engineers)
#
# Validation and mail/chat deep links. Links are only built here; opening
# them is up to the caller.

import re
import uuid
from typing import TYPE_CHECKING, Iterable
from urllib.parse import quote

from domain.models import ContactEntry

if TYPE_CHECKING:
    from database import RecordStore

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PHONE_DIGITS = 7
MAX_PHONE_DIGITS = 16
MIN_WHATSAPP_DIGITS = 5


def validate_contact(contact: ContactEntry) -> None:
    """Raise ValueError for a bad email or phone number."""
    if not contact.name.strip():
        raise ValueError("Name is required")
    if not EMAIL_RE.match(contact.email or ""):
        raise ValueError("Please enter a valid email address.")
    clean_phone = re.sub(r"[^\d+]", "", contact.contact_number or "")
    if not MIN_PHONE_DIGITS <= len(clean_phone) <= MAX_PHONE_DIGITS:
        raise ValueError("Please enter a valid numeric contact number (min 7 digits).")


def add_contact(store: "RecordStore", data: dict) -> ContactEntry:
    contact = ContactEntry.from_dict({**data, "id": uuid.uuid4().hex[:9]})
    validate_contact(contact)
    store.save_contacts(store.load_contacts() + [contact])
    return contact


def delete_contact(store: "RecordStore", contact_id: str) -> None:
    contacts = store.load_contacts()
    remaining = [c for c in contacts if c.id != contact_id]
    if len(remaining) == len(contacts):
        raise KeyError(f"No contact with id {contact_id!r}")
    store.save_contacts(remaining)


def search_contacts(contacts: Iterable[ContactEntry], term: str) -> list[ContactEntry]:
    needle = (term or "").strip().lower()
    return [
        c for c in contacts
        if not needle
        or needle in c.name.lower()
        or needle in c.company_name.lower()
        or needle in c.email.lower()
    ]


def whatsapp_link(number: str) -> str:
    """wa.me link (digits only). Raises ValueError for fewer than 5 digits."""
    digits = re.sub(r"\D", "", number or "")
    if len(digits) < MIN_WHATSAPP_DIGITS:
        raise ValueError("Invalid phone number format for WhatsApp")
    return f"https://wa.me/{digits}"


def mailto_link(email: str) -> str:
    return f"mailto:{email}"


def outlook_web_link(email: str) -> str:
    return f"https://outlook.office.com/mail/deeplink/compose?to={quote(email, safe='@')}"
