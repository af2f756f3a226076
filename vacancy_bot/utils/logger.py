"""Vacancy Bot — Logging Setup.

Centralized logging for the bot: a colored console handler and a
rotating file handler on the root logger. Modules obtain their logger
through get_logger() so the handlers are always installed first.
"""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# ── Constants ─────────────────────────────────────────────
LOG_DIR = Path(__file__).resolve().parent.parent.parent / "logs"
LOG_FILE = LOG_DIR / "vacancy_bot.log"
MAX_BYTES = 10 * 1024 * 1024  # 10 MB
BACKUP_COUNT = 5

# Third-party loggers that are chatty at INFO
_NOISY_LOGGERS = ("httpx", "telegram.ext", "aiosqlite", "asyncio")

# ── ANSI Color Codes ─────────────────────────────────────
COLORS = {
    "DEBUG": "\033[36m",     # Cyan
    "INFO": "\033[32m",      # Green
    "WARNING": "\033[33m",   # Yellow
    "ERROR": "\033[31m",     # Red
    "CRITICAL": "\033[41m",  # Red background
}
RESET = "\033[0m"

_initialized = False
_console_handler: logging.Handler | None = None


class ColoredFormatter(logging.Formatter):
    """Console formatter that paints the level name and timestamp."""

    def format(self, record: logging.LogRecord) -> str:
        color = COLORS.get(record.levelname, "")
        # Work on a copy so the file handler sees the plain level name
        record = logging.makeLogRecord(record.__dict__)
        record.levelname = f"{color}{record.levelname:<8}{RESET}"
        record.asctime = f"{color}{self.formatTime(record, self.datefmt)}{RESET}"
        return super().format(record)

    def usesTime(self) -> bool:  # noqa: N802 - logging API name
        return False


def _setup_logging() -> None:
    """Install the console and file handlers once per process.

    - Console: INFO by default, colored.
    - File: DEBUG, rotating at 10 MB with 5 backups.
    """
    global _initialized, _console_handler
    if _initialized:
        return

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # ── Console Handler ──────────────────────────────────
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(ColoredFormatter(
        fmt="%(asctime)s │ %(levelname)s │ %(name)s │ %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(console_handler)
    _console_handler = console_handler

    # ── Rotating File Handler ────────────────────────────
    file_handler = RotatingFileHandler(
        filename=str(LOG_FILE),
        maxBytes=MAX_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        fmt="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))
    root_logger.addHandler(file_handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _initialized = True


def set_console_level(level: str) -> None:
    """Change the console verbosity, e.g. from the ``logging.level`` setting.

    Args:
        level: Level name such as "DEBUG" or "INFO". Unknown names are
            ignored with a warning.
    """
    _setup_logging()
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        logging.getLogger(__name__).warning("Unknown log level %r, keeping INFO", level)
        return
    if _console_handler is not None:
        _console_handler.setLevel(numeric)


def get_logger(name: str) -> logging.Logger:
    """Return a named logger with the global handlers installed.

    Args:
        name: Usually ``__name__`` of the calling module.

    Returns:
        A configured logging.Logger instance.
    """
    _setup_logging()
    return logging.getLogger(name)
