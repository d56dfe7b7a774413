"""Pytest configuration and fixtures."""

import os
import sys
import tempfile
from datetime import datetime, timedelta, timezone

import pytest
from unittest.mock import AsyncMock, patch

# Keep logs and the default database out of the working tree
os.environ.setdefault("REMINDER_DATA_DIR", tempfile.mkdtemp(prefix="reminders_test_"))

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from apscheduler.schedulers.asyncio import AsyncIOScheduler  # noqa: E402

from reminders.models import Reminder  # noqa: E402
from reminders.scheduler import ReminderScheduler  # noqa: E402
from reminders.store import ReminderStore  # noqa: E402

USER = "919876543210"


@pytest.fixture(autouse=True)
def no_crux_api():
    """Crux extraction falls back to the raw text unless a test opts in."""
    with patch("reminders.crux.ANTHROPIC_API_KEY", None):
        yield


@pytest.fixture
def store(tmp_path):
    """Fresh SQLite store per test."""
    reminder_store = ReminderStore(tmp_path / "reminders.db")
    yield reminder_store
    reminder_store.close()


@pytest.fixture
def notifier():
    """Stand-in for send_whatsapp."""
    return AsyncMock(return_value="SM123")


@pytest.fixture
def scheduler(store, notifier):
    """ReminderScheduler over an APScheduler that is never started.

    Jobs stay pending inside APScheduler, so tests drive fire() themselves.
    """
    return ReminderScheduler(store, notifier, scheduler=AsyncIOScheduler(), tz_name="UTC")


def make_reminder(message="call Vaibhav", minutes=60, user_id=USER, reminder_id=None):
    """Unsaved reminder `minutes` from now (negative for the past)."""
    reminder = Reminder.new(
        user_id=user_id,
        message=message,
        scheduled_time=datetime.now(timezone.utc) + timedelta(minutes=minutes)
    )
    if reminder_id:
        reminder.id = reminder_id
    return reminder
