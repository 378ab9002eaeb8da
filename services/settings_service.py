# services/settings_service.py - Settings persistence orchestration
#
# Thin layer: validates known keys, delegates to the store.

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from database import RecordStore

INT_SETTINGS = ("smtp_port",)


def set_setting(store: "RecordStore", key: str, value: str) -> None:
    """Set a key-value setting. Raises ValueError for a non-numeric port."""
    key = (key or "").strip()
    if not key:
        raise ValueError("Setting name is required")
    value = "" if value is None else str(value).strip()
    if key in INT_SETTINGS and value:
        try:
            int(value)
        except ValueError:
            raise ValueError(f"{key} must be a whole number") from None
    store.set_setting(key, value)
