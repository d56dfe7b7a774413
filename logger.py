"""Logging for the reminder worker.

One named logger shared by every module (``from logger import logger``).
Records pass through the log sanitizer before any handler writes them, since
WhatsApp ids are phone numbers.
"""

import logging
import sys
from datetime import datetime

from config import LOG_DIR, LOG_LEVEL
from utils.log_sanitizer import sanitize_log

LOGGER_NAME = "whatsapp_reminders"


class SanitizingFilter(logging.Filter):
    """Redact phone numbers and secrets from the formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = sanitize_log(record.getMessage())
        record.args = None
        return True


def setup_logging() -> logging.Logger:
    """Dated log file in LOG_DIR, plus stdout when run from a terminal."""
    logger = logging.getLogger(LOGGER_NAME)
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    logger.setLevel(level)
    logger.handlers.clear()
    logger.filters.clear()
    logger.addFilter(SanitizingFilter())

    file_handler = logging.FileHandler(
        LOG_DIR / f"reminders-{datetime.now().strftime('%Y-%m-%d')}.log",
        encoding="utf-8"
    )
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(module)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    ))
    logger.addHandler(file_handler)

    if sys.stdout is not None and sys.stdout.isatty():
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s | %(levelname)-8s | %(message)s",
            datefmt="%H:%M:%S"
        ))
        logger.addHandler(console_handler)

    return logger


logger = setup_logging()
