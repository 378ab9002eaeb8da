# config.py - Runtime configuration (store path, app base dir, AI key)
#
# Single place for loading configuration. Persistence (database.py) imports
# from here instead of defining config logic itself.

import json
import logging
import os
import sys
from pathlib import Path

logger = logging.getLogger(__name__)

# Environment variable to override the store path directly (highest priority)
DB_PATH_ENV = "EQUIPTRACK_DB_PATH"
# Environment variables holding the AI key (first non-empty wins)
AI_KEY_ENVS = ("GEMINI_API_KEY", "API_KEY")

DEFAULT_CURRENCY = "SAR"
DEFAULT_AI_MODEL = "gemini-3-flash-preview"


def get_app_base_dir() -> Path:
    """Directory containing the app (install dir when frozen, script dir when run from source)."""
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parent


def get_user_data_dir() -> Path:
    """Per-user data directory (%APPDATA%\\EquipTrack or ~/.config/EquipTrack)."""
    if sys.platform == "win32":
        base = os.environ.get("APPDATA", "")
        base = Path(base) if base else Path.home() / "AppData" / "Roaming"
    else:
        base = Path.home() / ".config"
    return base / "EquipTrack"


DEFAULT_DB_PATH = get_user_data_dir() / "equiptrack.db"


def load_app_config(base: Path | None = None) -> dict:
    """
    Read config.json next to the app. Returns {} when missing or unreadable.
    Relative paths inside the file are resolved against the file's directory.
    """
    base = base or get_app_base_dir()
    config_path = base / "config.json"
    if not config_path.is_file():
        return {}
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_path, e)
        return {}
    if not isinstance(data, dict):
        return {}
    for key in ("db_path", "log_dir"):
        raw = data.get(key)
        if raw and isinstance(raw, str) and raw.strip():
            p = Path(raw.strip())
            if not p.is_absolute():
                p = (config_path.parent / p).resolve()
            data[key] = p
    return data


def load_db_path(base: Path | None = None) -> Path:
    """
    Load store path from configuration.
    Order: DB_PATH_ENV > config.json > DEFAULT_DB_PATH.
    """
    env_path = os.environ.get(DB_PATH_ENV)
    if env_path and env_path.strip():
        return Path(env_path.strip()).resolve()
    configured = load_app_config(base).get("db_path")
    if isinstance(configured, Path):
        return configured
    return DEFAULT_DB_PATH


def get_log_dir(base: Path | None = None) -> Path:
    configured = load_app_config(base).get("log_dir")
    if isinstance(configured, Path):
        return configured
    return get_user_data_dir() / "logs"


def get_currency(base: Path | None = None) -> str:
    raw = load_app_config(base).get("currency")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return DEFAULT_CURRENCY


def get_ai_model(base: Path | None = None) -> str:
    raw = load_app_config(base).get("ai_model")
    if isinstance(raw, str) and raw.strip():
        return raw.strip()
    return DEFAULT_AI_MODEL


def get_ai_api_key() -> str | None:
    """AI key from the environment, or None when scanning is not configured."""
    for name in AI_KEY_ENVS:
        value = os.environ.get(name)
        if value and value.strip():
            return value.strip()
    return None
