"""
Logging setup shared by every Modwarden module.

All loggers live under the ``modwarden`` namespace. Handlers are attached
once to that parent logger: a prompt_toolkit console handler (so log lines
do not tear the operator prompt) and a size-rotated daily file in ``logs/``.
Module loggers only carry a name and propagate to it.

``MODWARDEN_LOG_LEVEL`` sets the console level (default INFO); the file
always receives DEBUG.
"""

import logging
import os
import sys
from datetime import date
from logging.handlers import RotatingFileHandler
from pathlib import Path

from prompt_toolkit import print_formatted_text
from prompt_toolkit.formatted_text import ANSI

ROOT_LOGGER_NAME = "modwarden"
LOGS_DIR: Path = (Path(__file__).parents[3] / "logs").resolve()

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 3

LEVEL_COLORS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[38;5;88m",
}
RESET_COLOR = "\033[0m"

THIRD_PARTY_LOGGERS = ("discord", "openai", "httpx", "httpcore", "aiosqlite", "websockets", "aiohttp")

_configured = False


class ColorFormatter(logging.Formatter):
    """Colour the level name only; the message stays readable when copied."""

    def format(self, record: logging.LogRecord) -> str:
        color = LEVEL_COLORS.get(record.levelno)
        if not color:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{color}{original}{RESET_COLOR}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class PromptToolkitHandler(logging.StreamHandler):
    """Emit through prompt_toolkit so the interactive console redraws cleanly."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            print_formatted_text(ANSI(self.format(record)))
        except Exception:
            self.handleError(record)


def _console_level() -> int:
    name = os.getenv("MODWARDEN_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def log_file_path(day: date | None = None) -> Path:
    """One file per day; restarts on the same day append to it."""
    return LOGS_DIR / f"modwarden-{(day or date.today()).isoformat()}.log"


def configure_logging() -> logging.Logger:
    """Attach the console and file handlers to the ``modwarden`` logger once."""
    global _configured
    root = logging.getLogger(ROOT_LOGGER_NAME)
    if _configured:
        return root
    _configured = True

    root.setLevel(logging.DEBUG)
    root.propagate = False

    use_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    console = PromptToolkitHandler()
    console.setLevel(_console_level())
    console.setFormatter((ColorFormatter if use_color else logging.Formatter)(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(console)

    try:
        LOGS_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file_path(), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8"
        )
    except OSError as exc:
        root.warning("File logging disabled, could not open %s: %s", LOGS_DIR, exc)
    else:
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        root.addHandler(file_handler)

    for name in THIRD_PARTY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root


def get_logger(name: str) -> logging.Logger:
    """Return ``modwarden.<name>``, configuring the shared handlers on first use."""
    configure_logging()
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")


def handle_exception(exception_type, exception_instance, exception_traceback) -> None:
    """``sys.excepthook`` replacement; Ctrl+C keeps the default behaviour."""
    if issubclass(exception_type, KeyboardInterrupt):
        sys.__excepthook__(exception_type, exception_instance, exception_traceback)
        return
    get_logger("uncaught").critical(
        "Uncaught exception", exc_info=(exception_type, exception_instance, exception_traceback)
    )
