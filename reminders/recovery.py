"""Rebuild delivery jobs from the store when the worker starts."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from logger import logger
from . import config
from .errors import RecoveryError
from .models import ReminderStatus
from .scheduler import ReminderScheduler
from .store import ReminderStore


@dataclass
class RecoveryResult:
    """Outcome of one recovery pass, as lists of reminder ids."""
    scheduled: list[str] = field(default_factory=list)
    missed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.scheduled) + len(self.missed) + len(self.failed)


async def reload_pending_reminders(
    store: ReminderStore,
    scheduler: ReminderScheduler,
    tz_name: Optional[str] = None,
    now: Optional[datetime] = None
) -> RecoveryResult:
    """Reschedule every pending/scheduled reminder still in the future.

    Reminders whose time has passed (or is less than MIN_LEAD_SECONDS away)
    are marked missed. One bad row never stops the rest.

    Raises:
        RecoveryError: the pending set could not be read
    """
    now = now or datetime.now(timezone.utc)
    cutoff = now + timedelta(seconds=config.MIN_LEAD_SECONDS)
    result = RecoveryResult()

    try:
        pending = await store.get_pending()
    except Exception as e:
        logger.error(f"Recovery could not read pending reminders: {e}")
        raise RecoveryError(f"Cannot load pending reminders: {e}") from e

    logger.info(f"Recovery: {len(pending)} pending reminders found")

    for reminder in pending:
        try:
            if reminder.scheduled_time > cutoff:
                await scheduler.schedule(reminder, tz_name)
                result.scheduled.append(reminder.id)
            else:
                await store.update_status(reminder.id, ReminderStatus.MISSED)
                result.missed.append(reminder.id)
                logger.info(f"Reminder {reminder.short_id} passed while offline, marked missed")
        except Exception as e:
            logger.error(f"Recovery failed for reminder {reminder.short_id}: {e}")
            result.failed.append(reminder.id)
            try:
                await store.update_status(reminder.id, ReminderStatus.ERROR)
            except Exception as update_err:
                logger.error(f"Could not mark reminder {reminder.short_id} as error: {update_err}")

    logger.info(
        f"Recovery done: {len(result.scheduled)} scheduled, "
        f"{len(result.missed)} missed, {len(result.failed)} failed"
    )
    return result
