# database.py

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Callable

from config import load_db_path
from domain.models import ContactEntry, EquipmentRecord, RentalContract

logger = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Paths
# -----------------------------------------------------------------------------

DB_PATH = load_db_path()

# Fixed namespaces (the localStorage keys of the browser app)
RECORDS_KEY = "equip_records"
CONTRACTS_KEY = "equip_contracts"
CONTACTS_KEY = "equip_contacts"

# -----------------------------------------------------------------------------
# Connection helpers
# -----------------------------------------------------------------------------

def get_connection(db_path: Path | None = None, timeout: float = 30.0, retries: int = 3):
    """
    Open the store database, creating its folder if needed.
    timeout: seconds to wait for locks.
    retries: number of retries on SQLITE_BUSY / database is locked (with exponential backoff).
    Pass ":memory:" as db_path for a throwaway store.
    """
    if db_path is None:
        db_path = DB_PATH
    if str(db_path) != ":memory:":
        db_path = Path(db_path)
        try:
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            pass

    last_err = None
    for attempt in range(max(1, retries)):
        try:
            conn = sqlite3.connect(str(db_path), timeout=timeout)
            break
        except sqlite3.OperationalError as e:
            last_err = e
            err_lower = str(e).lower()
            if "unable to open database file" in err_lower:
                raise sqlite3.OperationalError(
                    f"Could not open database at:\n{db_path}\n\n"
                    "Check that the folder exists (or that the app can create it) "
                    "and that you have read and write permission for that location."
                ) from e
            if ("database is locked" in err_lower or "sqlite_busy" in err_lower) and attempt < retries - 1:
                time.sleep(0.1 * (2 ** attempt))
                continue
            raise
    else:
        if last_err:
            raise last_err
        raise RuntimeError("Failed to connect to database")

    conn.row_factory = sqlite3.Row
    return conn

# -----------------------------------------------------------------------------
# Schema initialization
# -----------------------------------------------------------------------------

def run_integrity_check(conn: sqlite3.Connection) -> str | None:
    """
    Run PRAGMA integrity_check. Returns None if OK, or an error message string if failed.
    """
    cur = conn.execute("PRAGMA integrity_check")
    row = cur.fetchone()
    if row is None:
        return None
    result = row[0]
    if result == "ok":
        return None
    return result


def initialize_db(conn: sqlite3.Connection) -> sqlite3.Connection:
    """
    Create tables if missing. On read-only error, raises with a clear message.
    """
    try:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key         TEXT PRIMARY KEY,
                value       TEXT NOT NULL,
                updated_at  TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key   TEXT PRIMARY KEY,
                value TEXT
            )
            """
        )
        conn.commit()
        return conn
    except sqlite3.OperationalError as e:
        err = str(e).lower()
        if "readonly" in err or "attempt to write" in err:
            raise sqlite3.OperationalError(
                "The database is read-only. Ensure the folder and file have write "
                "permission for your user, then try again."
            ) from e
        raise


def open_store(db_path: Path | str | None = None) -> "RecordStore":
    """Connect, create the schema and wrap the connection in a RecordStore."""
    conn = initialize_db(get_connection(db_path))
    return RecordStore(conn)

# -----------------------------------------------------------------------------
# Store
# -----------------------------------------------------------------------------

class RecordStore:
    """
    Key-value persistence for the record collection and its lookups.
    Every write goes through save(); subscribers are notified after the
    write is committed, with the new collection.
    """

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        self._subscribers: list[Callable[[list[EquipmentRecord]], None]] = []

    def close(self) -> None:
        self.conn.close()

    # ---------- Raw namespaces ----------

    def _read_json(self, key: str) -> list:
        cur = self.conn.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
        row = cur.fetchone()
        if row is None:
            return []
        try:
            data = json.loads(row["value"])
        except (TypeError, ValueError) as e:
            logger.warning("Stored payload for %s is not valid JSON, treating as empty: %s", key, e)
            return []
        if not isinstance(data, list):
            logger.warning("Stored payload for %s is not a list, treating as empty", key)
            return []
        return [item for item in data if isinstance(item, dict)]

    def _write_json(self, key: str, items: list) -> None:
        payload = json.dumps(items, ensure_ascii=False)
        self.conn.execute(
            "INSERT INTO kv_store (key, value, updated_at) VALUES (?, ?, CURRENT_TIMESTAMP) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = excluded.updated_at",
            (key, payload),
        )
        self.conn.commit()

    # ---------- Records ----------

    def load(self) -> list[EquipmentRecord]:
        return [EquipmentRecord.from_dict(d) for d in self._read_json(RECORDS_KEY)]

    def save(self, records: list[EquipmentRecord]) -> None:
        records = list(records)
        self._write_json(RECORDS_KEY, [r.to_dict() for r in records])
        logger.debug("Saved %s record(s)", len(records))
        for callback in list(self._subscribers):
            try:
                callback(records)
            except Exception:
                logger.exception("Store subscriber failed")

    def subscribe(self, callback: Callable[[list[EquipmentRecord]], None]) -> Callable[[], None]:
        """Register a change listener. Returns a function that unregisters it."""
        self._subscribers.append(callback)

        def unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    # ---------- Contracts / contacts ----------

    def load_contracts(self) -> list[RentalContract]:
        return [RentalContract.from_dict(d) for d in self._read_json(CONTRACTS_KEY)]

    def save_contracts(self, contracts: list[RentalContract]) -> None:
        self._write_json(CONTRACTS_KEY, [c.to_dict() for c in contracts])

    def load_contacts(self) -> list[ContactEntry]:
        return [ContactEntry.from_dict(d) for d in self._read_json(CONTACTS_KEY)]

    def save_contacts(self, contacts: list[ContactEntry]) -> None:
        self._write_json(CONTACTS_KEY, [c.to_dict() for c in contacts])

    # ---------- Settings ----------

    def get_setting(self, key: str, default=None):
        cur = self.conn.execute("SELECT value FROM settings WHERE key = ?", (key,))
        row = cur.fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str):
        self.conn.execute(
            "INSERT INTO settings (key, value) VALUES (?, ?) "
            "ON CONFLICT(key) DO UPDATE SET value = excluded.value",
            (key, value),
        )
        self.conn.commit()

    def get_reminder_recipients(self) -> list[str]:
        """Comma/semicolon separated 'reminder_recipients' setting as a list."""
        raw = self.get_setting("reminder_recipients", "") or ""
        return [p.strip() for p in raw.replace(";", ",").split(",") if p.strip()]
