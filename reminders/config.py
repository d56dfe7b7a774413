"""Reminder engine configuration."""

import os

from config import DATA_DIR

# SQLite file holding the reminders table
REMINDER_DB = os.environ.get("REMINDER_DB", str(DATA_DIR / "reminders.db"))

# IANA zone used to read times out of messages and to display them
DEFAULT_TIMEZONE = os.environ.get("DEFAULT_REMINDER_TIMEZONE", "UTC")

# A reminder must fire strictly later than now + MIN_LEAD_SECONDS
MIN_LEAD_SECONDS = 10

# Stored task text limit (matches the CHECK constraint on reminders.message)
MESSAGE_MAX_LENGTH = 255

# Delivery
NOTIFY_TIMEOUT = float(os.environ.get("REMINDER_NOTIFY_TIMEOUT", 30))

# How late APScheduler may still run a job before reporting it missed
MISFIRE_GRACE_SECONDS = int(os.environ.get("REMINDER_MISFIRE_GRACE_SECONDS", 300))

# Crux extraction call
CRUX_TIMEOUT = 15
CRUX_MAX_TOKENS = 60

# Interactive reply ids (kept compatible with the WhatsApp list/button payloads)
DELETE_REPLY_PREFIX = "DELETE_REMINDER_"
MANAGE_REMINDERS_BUTTON = "MANAGE_REMINDERS_BTN"
