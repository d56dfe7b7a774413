"""Reminder record and status lifecycle."""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ReminderStatus(str, Enum):
    """Reminder lifecycle states."""
    PENDING = "pending"
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    MISSED = "missed"
    ERROR = "error"
    FAILED_TO_SCHEDULE = "failed_to_schedule"


# Statuses picked up again by the recovery pass
ACTIVE_STATUSES = frozenset({ReminderStatus.PENDING, ReminderStatus.SCHEDULED})

ALLOWED_TRANSITIONS: dict[ReminderStatus, frozenset[ReminderStatus]] = {
    # pending -> cancelled: the handle is installed just before the scheduled write
    ReminderStatus.PENDING: frozenset({
        ReminderStatus.SCHEDULED,
        ReminderStatus.FAILED_TO_SCHEDULE,
        ReminderStatus.ERROR,
        ReminderStatus.MISSED,
        ReminderStatus.CANCELLED,
    }),
    ReminderStatus.SCHEDULED: frozenset({
        ReminderStatus.COMPLETED,
        ReminderStatus.CANCELLED,
        ReminderStatus.MISSED,
        ReminderStatus.ERROR,
    }),
    ReminderStatus.COMPLETED: frozenset(),
    ReminderStatus.CANCELLED: frozenset(),
    ReminderStatus.MISSED: frozenset(),
    ReminderStatus.ERROR: frozenset(),
    ReminderStatus.FAILED_TO_SCHEDULE: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)


def can_transition(current: ReminderStatus, new: ReminderStatus) -> bool:
    """Check whether a status write is allowed (rewriting the same status always is)."""
    return current == new or new in ALLOWED_TRANSITIONS[current]


@dataclass
class Reminder:
    """A single one-off reminder.

    ``scheduled_time`` is always timezone-aware; the store keeps it as a UTC
    instant and callers convert for display.
    """
    id: str
    user_id: str
    message: str
    scheduled_time: datetime
    status: ReminderStatus = ReminderStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.scheduled_time.tzinfo is None:
            raise ValueError("scheduled_time must be timezone-aware")
        self.status = ReminderStatus(self.status)

    @classmethod
    def new(cls, user_id: str, message: str, scheduled_time: datetime) -> "Reminder":
        """Build an unsaved reminder with a fresh id."""
        return cls(
            id=str(uuid.uuid4()),
            user_id=user_id,
            message=message,
            scheduled_time=scheduled_time,
        )

    @property
    def short_id(self) -> str:
        return self.id[:8]

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def scheduled_time_utc(self) -> datetime:
        return self.scheduled_time.astimezone(timezone.utc)
