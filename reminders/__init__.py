"""Reminders module for one-off WhatsApp notifications.

Uses APScheduler date triggers with SQLite persistence.
"""

from .errors import (
    ReminderError,
    StorageError,
    InvalidStatusTransition,
    SchedulingError,
    DeliveryError,
    RecoveryError,
    TimeResolutionError,
    NoTimeExpressionFound,
    NoTaskDescription,
    PastOrTooSoon,
)
from .models import Reminder, ReminderStatus, can_transition
from .parser import parse_time_expression, resolve_reminder, ParsedTime, ResolvedReminder
from .crux import extract_crux
from .store import ReminderStore
from .notifier import send_whatsapp, format_notification
from .scheduler import ReminderScheduler
from .recovery import reload_pending_reminders, RecoveryResult
from .handler import handle_reminder_intent, schedule_new_reminder

__all__ = [
    "ReminderError",
    "StorageError",
    "InvalidStatusTransition",
    "SchedulingError",
    "DeliveryError",
    "RecoveryError",
    "TimeResolutionError",
    "NoTimeExpressionFound",
    "NoTaskDescription",
    "PastOrTooSoon",
    "Reminder",
    "ReminderStatus",
    "can_transition",
    "parse_time_expression",
    "resolve_reminder",
    "ParsedTime",
    "ResolvedReminder",
    "extract_crux",
    "ReminderStore",
    "send_whatsapp",
    "format_notification",
    "ReminderScheduler",
    "reload_pending_reminders",
    "RecoveryResult",
    "handle_reminder_intent",
    "schedule_new_reminder",
]
