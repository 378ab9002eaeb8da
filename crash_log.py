# crash_log.py

import logging
import sys
import traceback
from pathlib import Path

from config import get_log_dir

LOG_FILE_NAME = "equiptrack.log"

logger = logging.getLogger("equiptrack")
logger.setLevel(logging.INFO)


def configure_logging(log_dir: Path | None = None, verbose: bool = False) -> Path | None:
    """
    Attach a UTF-8 file handler to the application logger (and the root logger,
    so module loggers propagate into it). Returns the log file path, or None if
    the directory could not be created.
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    # Avoid duplicate handlers if this gets called more than once
    if any(getattr(h, "_equiptrack", False) for h in root.handlers):
        return None
    log_dir = Path(log_dir) if log_dir is not None else get_log_dir()
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        sys.__stderr__.write(f"Logging disabled, cannot create {log_dir}: {e}\n")
        return None
    log_file = log_dir / LOG_FILE_NAME
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fmt = logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    fh.setFormatter(fmt)
    fh._equiptrack = True
    root.addHandler(fh)
    return log_file


def log_exception(exc_type, exc_value, exc_tb):
    """
    Global exception hook: log uncaught exceptions to file and stderr.
    """
    tb_str = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))

    try:
        logger.error("Uncaught exception:\n%s", tb_str)
    except Exception:
        # Logging should never crash the crash logger
        pass

    try:
        sys.__stderr__.write(tb_str)
        sys.__stderr__.flush()
    except Exception:
        pass


def log_current_exception(context: str = ""):
    """
    Helper to log inside a try/except block if you manually catch something fatal.
    """
    exc_type, exc_value, exc_tb = sys.exc_info()
    if exc_type is None:
        return
    prefix = f"[{context}] " if context else ""
    tb_str = "".join(traceback.format_exception(exc_type, exc_value, exc_tb))
    try:
        logger.error("%sCaught exception:\n%s", prefix, tb_str)
    except Exception:
        pass


def install_global_excepthook():
    """
    Install the global excepthook so any uncaught exception is logged.
    """
    sys.excepthook = log_exception
