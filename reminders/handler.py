"""Reminder intent handler: turns a user message into store/scheduler calls and a reply."""

import re
from datetime import datetime
from typing import Awaitable, Optional
from zoneinfo import ZoneInfo

from logger import logger
from utils.log_sanitizer import mask_user_id
from . import config
from .errors import ReminderError, TimeResolutionError
from .models import Reminder, ReminderStatus
from .parser import resolve_reminder
from .scheduler import ReminderScheduler
from .store import ReminderStore

LIST_COMMANDS = ['list reminders', 'show reminders', 'my reminders', 'reminders']

# "delete reminder", optionally followed by an id or id prefix as shown in the list ("1a2b3c4d...")
DELETE_COMMAND = re.compile(r'^delete\s+reminders?(?:\s+(?P<id>[0-9a-f-]+)\.*)?$', re.IGNORECASE)

INTERNAL_ERROR_REPLY = (
    "Sorry, I couldn't schedule your reminder due to an internal error. Please try again later."
)
LIST_FAILED_REPLY = "Sorry, I couldn't load your reminders right now. Please try again later."
DELETE_FAILED_REPLY = (
    "Sorry, I couldn't delete that reminder due to an internal error. Please try again later."
)
NO_REMINDERS_REPLY = "You don't have any active reminders set."
MISSING_ID_REPLY = (
    "Please provide the ID of the reminder you want to delete. E.g., 'delete reminder 123'"
)


def format_clock(when: datetime) -> str:
    """'5:00 PM IST' style time."""
    return f"{when.strftime('%I:%M %p').lstrip('0')} {when.strftime('%Z')}"


def format_full(when: datetime) -> str:
    """'March 3, 2027 at 5:00 PM IST' style date and time."""
    return f"{when.strftime('%B')} {when.day}, {when.year} at {format_clock(when)}"


async def handle_reminder_intent(
    user_id: str,
    content: str,
    store: ReminderStore,
    scheduler: ReminderScheduler,
    tz_name: Optional[str] = None
) -> str:
    """Handle a message routed to the reminder agent.

    Args:
        user_id: Sender WhatsApp id
        content: Message text or interactive reply id
        store: Reminder store
        scheduler: Reminder scheduler
        tz_name: Timezone used to read and display times (default from config)

    Returns:
        Reply text for the user
    """
    tz_name = tz_name or config.DEFAULT_TIMEZONE
    content = content.strip()
    content_lower = content.lower()

    # Interactive replies
    if content.startswith(config.DELETE_REPLY_PREFIX):
        reminder_id = content[len(config.DELETE_REPLY_PREFIX):]
        reply = await _guarded(
            _delete_reminder(user_id, reminder_id, store, scheduler, exact=True),
            user_id, DELETE_FAILED_REPLY
        )
        remaining = await _guarded(_manage_reminders(user_id, store, tz_name), user_id, LIST_FAILED_REPLY)
        return f"{reply}\n\n{remaining}"

    if content == config.MANAGE_REMINDERS_BUTTON:
        return await _guarded(_manage_reminders(user_id, store, tz_name), user_id, LIST_FAILED_REPLY)

    # List reminders
    if content_lower in LIST_COMMANDS:
        return await _guarded(_list_reminders(user_id, store, tz_name), user_id, LIST_FAILED_REPLY)

    # Delete reminder
    match = DELETE_COMMAND.match(content)
    if match:
        reminder_id = (match.group('id') or '').lower()
        if not reminder_id:
            return MISSING_ID_REPLY
        return await _guarded(
            _delete_reminder(user_id, reminder_id, store, scheduler),
            user_id, DELETE_FAILED_REPLY
        )

    return await _create_reminder(user_id, content, store, scheduler, tz_name)


async def _guarded(operation: Awaitable[str], user_id: str, failure_reply: str) -> str:
    """Await a list/delete reply; storage or scheduler failures become failure_reply."""
    try:
        return await operation
    except ReminderError as e:
        logger.error(f"Reminder command failed for {mask_user_id(user_id)}: {e}")
        return failure_reply


async def _create_reminder(
    user_id: str,
    content: str,
    store: ReminderStore,
    scheduler: ReminderScheduler,
    tz_name: str
) -> str:
    try:
        resolved = await resolve_reminder(content, tz_name)
    except TimeResolutionError as e:
        return e.user_message

    reminder = Reminder.new(user_id, resolved.task_text, resolved.fire_time)

    try:
        await schedule_new_reminder(store, scheduler, reminder, tz_name)
    except Exception as e:
        logger.error(f"Failed to schedule reminder for {mask_user_id(user_id)}: {e}")
        return INTERNAL_ERROR_REPLY

    local_time = resolved.fire_time.astimezone(ZoneInfo(tz_name))
    return (
        "📌 I’ve scheduled the following tasks for you:\n\n"
        f" • {reminder.message} at {format_clock(local_time)}\n\n"
        "If you’d like to make changes or remove a task, reply "
        f"'{config.MANAGE_REMINDERS_BUTTON}' or ask anytime."
    )


async def schedule_new_reminder(
    store: ReminderStore,
    scheduler: ReminderScheduler,
    reminder: Reminder,
    tz_name: Optional[str] = None
) -> Reminder:
    """Save a reminder and install its job as one unit.

    If scheduling fails the saved row is deleted again, so no orphan is left
    behind. Should that delete fail too, the row is marked failed_to_schedule.

    Returns:
        The stored reminder

    Raises:
        Whatever create or schedule raised
    """
    try:
        stored = await store.create(reminder)
    except Exception:
        # Nothing should exist, but mark it if the insert got through
        await _mark_failed_to_schedule(store, reminder.id)
        raise

    try:
        await scheduler.schedule(stored, tz_name)
    except Exception as e:
        logger.error(f"Scheduling reminder {stored.short_id} failed, removing it: {e}")
        try:
            await store.delete(stored.id)
        except Exception as delete_err:
            logger.error(f"Could not remove unscheduled reminder {stored.short_id}: {delete_err}")
            await _mark_failed_to_schedule(store, stored.id)
        raise

    return stored


async def _mark_failed_to_schedule(store: ReminderStore, reminder_id: str) -> None:
    try:
        await store.update_status(reminder_id, ReminderStatus.FAILED_TO_SCHEDULE)
    except Exception as e:
        logger.error(f"Failed to update reminder status after scheduling error: {e}")


async def _list_reminders(user_id: str, store: ReminderStore, tz_name: str) -> str:
    """List every reminder of a user with its short id."""
    reminders = await store.get_by_user(user_id)
    if not reminders:
        return NO_REMINDERS_REPLY

    tz = ZoneInfo(tz_name)
    lines = ["Your upcoming reminders:"]
    for r in reminders:
        lines.append(
            f"\nID: {r.short_id}...\n"
            f"  Task: \"{r.message}\"\n"
            f"  Time: {format_full(r.scheduled_time.astimezone(tz))}\n"
            f"  Status: {r.status.value}"
        )
    lines.append(
        "\nTo delete a reminder, use 'delete reminder [ID]' "
        f"(e.g., 'delete reminder {reminders[0].short_id}...')."
    )
    return "\n".join(lines)


async def _manage_reminders(user_id: str, store: ReminderStore, tz_name: str) -> str:
    """Text version of the 'View & Delete Tasks' list."""
    reminders = await store.get_by_user(user_id)
    if not reminders:
        return NO_REMINDERS_REPLY

    tz = ZoneInfo(tz_name)
    lines = ["*Manage Reminders*", "Reply with a code below to delete that reminder:"]
    for r in reminders:
        local = r.scheduled_time.astimezone(tz)
        lines.append(
            f"\n• {r.message}\n"
            f"  Scheduled for: {local.strftime('%B')} {local.day}, {format_clock(local)} "
            f"(Status: {r.status.value})\n"
            f"  {config.DELETE_REPLY_PREFIX}{r.id}"
        )
    return "\n".join(lines)


async def _delete_reminder(
    user_id: str,
    reminder_id: str,
    store: ReminderStore,
    scheduler: ReminderScheduler,
    exact: bool = False
) -> str:
    """Cancel the job and remove the row of one of the user's reminders."""
    if exact:
        reminder = await store.get_by_id(reminder_id)
        # Never delete another user's reminder
        matches = [reminder] if reminder and reminder.user_id == user_id else []
    else:
        matches = await store.find_by_prefix(user_id, reminder_id)

    if not matches:
        return (
            f"No reminder found with ID starting with '{reminder_id}' for your account. "
            "Please check the ID from 'list reminders'."
        )
    if len(matches) > 1:
        return (
            f"More than one reminder has an ID starting with '{reminder_id}'. "
            "Please send a few more characters of the ID."
        )

    reminder = matches[0]
    try:
        await scheduler.cancel(reminder.id)
    except ReminderError as e:
        # The job is already stopped once cancel gets as far as the status write
        logger.error(f"Cancelling reminder {reminder.short_id} failed, deleting anyway: {e}")
    await store.delete(reminder.id)
    logger.info(f"Reminder {reminder.short_id} deleted by {mask_user_id(user_id)}")

    return f"Reminder \"{reminder.message}\" (ID: {reminder.short_id}...) has been deleted."
