"""Manage one-off reminder delivery jobs with APScheduler.

Each reminder gets a single DateTrigger job (its "handle"), keyed by the
reminder id. The handle map held by ReminderScheduler is the only record of
which deliveries are still pending in this process; it is rebuilt from the
store on startup by the recovery pass.
"""

import asyncio
from collections import defaultdict
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from apscheduler.events import EVENT_JOB_MISSED, JobExecutionEvent
from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.date import DateTrigger

from logger import logger
from utils.log_sanitizer import mask_user_id
from . import config
from .errors import SchedulingError
from .models import Reminder, ReminderStatus
from .notifier import format_notification
from .store import ReminderStore

Notifier = Callable[[str, str], Awaitable[object]]


class ReminderScheduler:
    """Owns the APScheduler instance and the reminder id -> job map.

    All operations that touch both the map and the store for one reminder
    run under that reminder's lock, so a fire, a cancel and a reschedule of
    the same id never interleave. Different ids are independent.
    """

    def __init__(
        self,
        store: ReminderStore,
        notifier: Notifier,
        scheduler: Optional[AsyncIOScheduler] = None,
        tz_name: Optional[str] = None,
        notify_timeout: Optional[float] = None
    ):
        self.store = store
        self.notifier = notifier
        self.scheduler = scheduler or AsyncIOScheduler()
        self.tz_name = tz_name or config.DEFAULT_TIMEZONE
        self.notify_timeout = notify_timeout or config.NOTIFY_TIMEOUT
        self._handles: dict[str, Job] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        # Missed-job tasks; referenced until done so they are not garbage collected
        self._background: set[asyncio.Task] = set()

    # --- Lifecycle ------------------------------------------------------------

    def start(self) -> None:
        """Start APScheduler (must be called from inside the running event loop)."""
        self.scheduler.add_listener(self._on_job_missed, EVENT_JOB_MISSED)
        self.scheduler.start()
        logger.info("Reminder scheduler started")

    def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        logger.info(f"Reminder scheduler stopped ({len(self._handles)} handles dropped)")
        self._handles.clear()

    # --- Handle map -----------------------------------------------------------

    def has_handle(self, reminder_id: str) -> bool:
        return reminder_id in self._handles

    @property
    def active_ids(self) -> set[str]:
        return set(self._handles)

    def _stop_job(self, job: Job) -> None:
        """Remove a job from APScheduler; one that already ran is fine."""
        try:
            self.scheduler.remove_job(job.id)
        except JobLookupError:
            pass

    # --- Operations -----------------------------------------------------------

    async def schedule(self, reminder: Reminder, tz_name: Optional[str] = None) -> Job:
        """Install (or replace) the delivery job for a reminder.

        Args:
            reminder: Stored reminder
            tz_name: Timezone the fire time is expressed in (default from config)

        Returns:
            The APScheduler job

        Raises:
            SchedulingError: the job could not be installed (status set to 'error')
        """
        tz_name = tz_name or self.tz_name

        async with self._locks[reminder.id]:
            existing = self._handles.pop(reminder.id, None)
            if existing is not None:
                self._stop_job(existing)
                logger.info(f"Stopped existing job for reminder {reminder.short_id}")

            try:
                run_at = reminder.scheduled_time.astimezone(ZoneInfo(tz_name))
                job = self.scheduler.add_job(
                    self.fire,
                    trigger=DateTrigger(run_date=run_at, timezone=run_at.tzinfo),
                    args=[reminder.id, reminder.user_id, reminder.message],
                    id=reminder.id,
                    name=f"reminder:{reminder.message[:30]}",
                    replace_existing=True,
                    misfire_grace_time=config.MISFIRE_GRACE_SECONDS
                )
            except Exception as e:
                logger.error(f"FAILED to schedule job for reminder {reminder.short_id}: {e}")
                await self._set_status(reminder.id, ReminderStatus.ERROR)
                raise SchedulingError(f"Could not schedule reminder {reminder.id}: {e}") from e

            self._handles[reminder.id] = job
            try:
                found = await self.store.update_status(reminder.id, ReminderStatus.SCHEDULED)
            except Exception:
                self._handles.pop(reminder.id, None)
                self._stop_job(job)
                raise

            if not found:
                self._handles.pop(reminder.id, None)
                self._stop_job(job)
                raise SchedulingError(f"Reminder {reminder.id} no longer exists")

        logger.info(f"Scheduled reminder {reminder.short_id} for {run_at.isoformat()}")
        return job

    async def cancel(self, reminder_id: str) -> bool:
        """Stop a pending delivery and mark the reminder cancelled.

        Returns:
            True if a handle was found, False if it already fired or was never scheduled
        """
        async with self._locks[reminder_id]:
            job = self._handles.pop(reminder_id, None)
            if job is None:
                logger.info(f"No active job to cancel for reminder {reminder_id[:8]}")
                return False

            self._stop_job(job)
            await self.store.update_status(reminder_id, ReminderStatus.CANCELLED)

        logger.info(f"Cancelled reminder job {reminder_id[:8]}")
        return True

    async def fire(self, reminder_id: str, user_id: str, message: str) -> None:
        """Deliver a reminder. Called by APScheduler at the fire time.

        The handle is taken out of the map first, so the reminder can only be
        delivered once; a missing handle means it was cancelled meanwhile.
        A failed or timed-out send still ends the lifecycle, as 'error'.
        """
        async with self._locks[reminder_id]:
            job = self._handles.pop(reminder_id, None)
            if job is None:
                logger.info(f"Reminder {reminder_id[:8]} fired without a handle, skipping")
                return
            self._stop_job(job)

            logger.info(f">> EXECUTING REMINDER {reminder_id[:8]} for {mask_user_id(user_id)}")
            try:
                await asyncio.wait_for(
                    self.notifier(user_id, format_notification(message)),
                    timeout=self.notify_timeout
                )
                final_status = ReminderStatus.COMPLETED
            except asyncio.TimeoutError:
                logger.error(f"Delivery of reminder {reminder_id[:8]} timed out after {self.notify_timeout}s")
                final_status = ReminderStatus.ERROR
            except Exception as e:
                logger.error(f"Failed to deliver reminder {reminder_id[:8]}: {e}")
                final_status = ReminderStatus.ERROR

            await self._set_status(reminder_id, final_status)

    # --- Internals ------------------------------------------------------------

    async def _set_status(self, reminder_id: str, status: ReminderStatus) -> None:
        """Status write from a path that has nobody to report to: log failures."""
        try:
            await self.store.update_status(reminder_id, status)
        except Exception as e:
            logger.error(f"Could not mark reminder {reminder_id[:8]} as {status.value}: {e}")

    def _on_job_missed(self, event: JobExecutionEvent) -> None:
        if event.job_id not in self._handles:
            return
        task = asyncio.ensure_future(self._mark_missed(event.job_id))
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"Missed-job handling failed: {task.exception()}")

    async def _mark_missed(self, reminder_id: str) -> None:
        async with self._locks[reminder_id]:
            if self._handles.pop(reminder_id, None) is None:
                return
            logger.warning(f"Reminder {reminder_id[:8]} missed its fire time")
            await self._set_status(reminder_id, ReminderStatus.MISSED)
