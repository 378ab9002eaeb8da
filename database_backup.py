# database_backup.py
# Timestamped copies of the record store with retention

import sqlite3
import shutil
from datetime import datetime, date
from pathlib import Path
import logging
from typing import Optional

logger = logging.getLogger(__name__)

BACKUP_GLOB = "*_backup_*.db"


def default_backup_dir(db_path: Path) -> Path:
    return db_path.parent / "backups"


def backup_database(db_path: Path, backup_dir: Optional[Path] = None,
                    max_backups: int = 30, now: Optional[datetime] = None) -> Optional[Path]:
    """
    Copy the store with the SQLite backup API, verify it and prune old copies.

    Returns the backup path, or None if the store does not exist or both the
    backup API and a plain file copy failed.
    """
    db_path = Path(db_path)
    if not db_path.exists():
        logger.warning("Database file not found: %s", db_path)
        return None

    backup_dir = Path(backup_dir) if backup_dir is not None else default_backup_dir(db_path)
    backup_dir.mkdir(parents=True, exist_ok=True)

    timestamp = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    backup_path = backup_dir / f"{db_path.stem}_backup_{timestamp}.db"

    try:
        source_conn = sqlite3.connect(str(db_path))
        backup_conn = sqlite3.connect(str(backup_path))
        try:
            source_conn.backup(backup_conn)
        finally:
            backup_conn.close()
            source_conn.close()

        verified = verify_backup(backup_path)
        if not verified:
            logger.warning("Backup integrity check failed: %s", backup_path)
        logger.info("Database backup created: %s (%s)", backup_path, "verified" if verified else "unverified")

        cleanup_old_backups(backup_dir, max_backups)
        return backup_path
    except sqlite3.Error as e:
        logger.error("Failed to create database backup: %s", e, exc_info=True)
        try:
            shutil.copy2(str(db_path), str(backup_path))
            logger.info("Database backup created (fallback method): %s", backup_path)
            cleanup_old_backups(backup_dir, max_backups)
            return backup_path
        except OSError as e2:
            logger.error("Fallback backup also failed: %s", e2, exc_info=True)
            if backup_path.exists():
                backup_path.unlink()
            return None


def verify_backup(backup_path: Path) -> bool:
    """True when the copy opens and PRAGMA integrity_check reports ok."""
    if not backup_path.exists():
        return False
    try:
        conn = sqlite3.connect(str(backup_path))
        try:
            row = conn.execute("PRAGMA integrity_check").fetchone()
        finally:
            conn.close()
        return bool(row) and row[0] == "ok"
    except sqlite3.Error as e:
        logger.warning("Backup verification error for %s: %s", backup_path, e)
        return False


def list_backups(backup_dir: Path) -> list[Path]:
    """Backups in the folder, newest first (the timestamp sorts by name)."""
    if not backup_dir.exists():
        return []
    return sorted(backup_dir.glob(BACKUP_GLOB), key=lambda p: p.name, reverse=True)


def cleanup_old_backups(backup_dir: Path, max_backups: int) -> int:
    """Keep the newest max_backups files. Returns how many were removed."""
    removed = 0
    for old_backup in list_backups(backup_dir)[max(0, max_backups):]:
        try:
            old_backup.unlink()
            removed += 1
            logger.info("Removed old backup: %s", old_backup)
        except OSError as e:
            logger.warning("Failed to remove old backup %s: %s", old_backup, e)
    return removed


def should_run_daily_backup(db_path: Path, backup_dir: Optional[Path] = None,
                            today: Optional[date] = None) -> bool:
    """True unless a backup stamped with today's date already exists."""
    db_path = Path(db_path)
    backup_dir = Path(backup_dir) if backup_dir is not None else default_backup_dir(db_path)
    if not backup_dir.exists():
        return True
    today_str = (today or date.today()).strftime("%Y%m%d")
    return not any(backup_dir.glob(f"*_backup_{today_str}_*.db"))


def perform_daily_backup_if_needed(db_path: Path, backup_dir: Optional[Path] = None,
                                   max_backups: int = 30) -> Optional[Path]:
    if should_run_daily_backup(db_path, backup_dir):
        return backup_database(db_path, backup_dir, max_backups)
    return None


def get_backup_info(backup_dir: Path) -> dict:
    """Count, total size and newest/oldest file names for the CLI."""
    backups = list_backups(backup_dir)
    return {
        "count": len(backups),
        "total_size": sum(p.stat().st_size for p in backups),
        "newest": backups[0].name if backups else None,
        "oldest": backups[-1].name if backups else None,
    }
