"""
Logging setup shared by the API server and the query CLI.

Every process start opens a new session log next to Settings.log_file:

logs/
├── hybrid-kb_20250101_120000.log      # current session (DEBUG and up)
├── hybrid-kb_20250101_120000.log.1    # same session, rolled over at MAX_LOG_BYTES
└── hybrid-kb_20241231_093000.log      # older sessions, LOG_RETENTION kept in total

The console gets the brief format at Settings.log_level unless the caller
asks for something else (the CLI keeps it at WARNING so results stay readable).
"""

import logging
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, TextIO

from .config import Settings

# Sessions kept on disk, the one being opened included
LOG_RETENTION = 5

MAX_LOG_BYTES = 10 * 1024 * 1024
# Rolled-over chunks kept per session
SESSION_BACKUPS = 1

CONSOLE_FORMAT = "%(levelname)s: %(message)s"
FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"

NOISY_LOGGERS = ("uvicorn.access", "httpx")

CONSOLE_HANDLER = "hybrid_kb.console"
FILE_HANDLER = "hybrid_kb.file"
HANDLER_NAMES = (CONSOLE_HANDLER, FILE_HANDLER)


def parse_level(name: str) -> int:
    """
    Map a LOG_LEVEL value to a logging level.

    Raises:
        ValueError: If the name is not a standard level
    """
    level = logging.getLevelName(name.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"LOG_LEVEL must be DEBUG, INFO, WARNING, ERROR or CRITICAL, got {name!r}")
    return level


def session_logs(log_file: Path) -> List[Path]:
    """Session logs for a base path, newest first"""
    return sorted(log_file.parent.glob(f"{log_file.stem}_*.log"), reverse=True)


def cleanup_sessions(log_file: Path, keep: int) -> List[Path]:
    """
    Delete all but the newest `keep` sessions, rolled-over chunks included.

    Returns:
        Files that could not be deleted
    """
    failed = []
    for old_log in session_logs(log_file)[keep:]:
        for path in [old_log, *old_log.parent.glob(f"{old_log.name}.*")]:
            try:
                path.unlink()
            except FileNotFoundError:
                continue
            except OSError:
                failed.append(path)
    return failed


def setup_logging(
    settings: Settings,
    console_level: Optional[int] = None,
    stream: Optional[TextIO] = None
) -> Optional[Path]:
    """
    Configure the root logger from settings.

    Args:
        settings: Uses log_level (console) and log_file (empty = no file log)
        console_level: Overrides settings.log_level for the console
        stream: Console stream (default: stdout)

    Returns:
        Path of the session log, or None when file logging is off

    Raises:
        ValueError: If settings.log_level is not a valid level
    """
    if console_level is None:
        console_level = parse_level(settings.log_level)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        if handler.get_name() in HANDLER_NAMES:
            handler.close()

    console_handler = logging.StreamHandler(stream or sys.stdout)
    console_handler.set_name(CONSOLE_HANDLER)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not settings.log_file:
        logging.debug("File logging disabled (LOG_FILE is empty)")
        return None

    log_file = Path(settings.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    failed = cleanup_sessions(log_file, keep=LOG_RETENTION - 1)

    session_log = log_file.parent / f"{log_file.stem}_{datetime.now():%Y%m%d_%H%M%S}.log"
    file_handler = RotatingFileHandler(
        session_log,
        maxBytes=MAX_LOG_BYTES,
        backupCount=SESSION_BACKUPS,
        encoding="utf-8",
    )
    file_handler.set_name(FILE_HANDLER)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    root_logger.addHandler(file_handler)

    for path in failed:
        logging.warning(f"Could not delete old log {path}")

    logging.info(
        f"Logging configured: console={logging.getLevelName(console_level)}, file={session_log}"
    )
    return session_log
