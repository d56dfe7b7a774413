"""Tests for turning reminder requests into fire times."""

from datetime import datetime, timezone
from unittest.mock import AsyncMock
from zoneinfo import ZoneInfo

import pytest
from freezegun import freeze_time

from reminders.errors import NoTaskDescription, NoTimeExpressionFound, PastOrTooSoon
from reminders.parser import parse_time_expression, resolve_reminder, strip_expression

UTC = ZoneInfo("UTC")
IST = ZoneInfo("Asia/Kolkata")

# Tuesday
NOW = datetime(2025, 6, 10, 10, 0, tzinfo=UTC)


def test_clock_time_today():
    parsed = parse_time_expression("Remind me to call Vaibhav at 5 pm", NOW)
    assert parsed.expression == "at 5 pm"
    assert parsed.fire_time == datetime(2025, 6, 10, 17, 0, tzinfo=UTC)


def test_clock_time_not_rolled_forward():
    parsed = parse_time_expression("stand up at 9am", NOW)
    assert parsed.fire_time == datetime(2025, 6, 10, 9, 0, tzinfo=UTC)


def test_clock_formats():
    assert parse_time_expression("x at 5:30pm", NOW).fire_time.hour == 17
    assert parse_time_expression("x at 8.45 am", NOW).fire_time.minute == 45
    assert parse_time_expression("x at 17:05", NOW).fire_time.minute == 5
    assert parse_time_expression("lunch at noon", NOW).fire_time.hour == 12
    assert parse_time_expression("x at 12am", NOW).fire_time.hour == 0


def test_invalid_clock_is_not_an_expression():
    assert parse_time_expression("meet at 25:00", NOW) is None
    assert parse_time_expression("meet at 13pm", NOW) is None


def test_relative_times():
    assert parse_time_expression("submit report in 2 hours", NOW).fire_time == \
        datetime(2025, 6, 10, 12, 0, tzinfo=UTC)
    assert parse_time_expression("stretch in 15 mins", NOW).fire_time == \
        datetime(2025, 6, 10, 10, 15, tzinfo=UTC)
    assert parse_time_expression("pay rent in a week", NOW).fire_time == \
        datetime(2025, 6, 17, 10, 0, tzinfo=UTC)


def test_date_and_time_together():
    parsed = parse_time_expression("remind me tomorrow at 9am to take meds", NOW)
    assert parsed.expression == "tomorrow at 9am"
    assert parsed.fire_time == datetime(2025, 6, 11, 9, 0, tzinfo=UTC)


def test_time_then_date():
    parsed = parse_time_expression("5pm on Friday call mom", NOW)
    assert parsed.expression == "5pm on Friday"
    assert parsed.fire_time == datetime(2025, 6, 13, 17, 0, tzinfo=UTC)


def test_date_only_defaults():
    # tomorrow keeps the current time of day
    assert parse_time_expression("water plants tomorrow", NOW).fire_time == \
        datetime(2025, 6, 11, 10, 0, tzinfo=UTC)
    assert parse_time_expression("call dad tonight", NOW).fire_time == \
        datetime(2025, 6, 10, 20, 0, tzinfo=UTC)
    assert parse_time_expression("gym on thursday", NOW).fire_time == \
        datetime(2025, 6, 12, 12, 0, tzinfo=UTC)


def test_weekday_same_day():
    assert parse_time_expression("review tuesday", NOW).fire_time.date() == NOW.date()
    assert parse_time_expression("review next tuesday", NOW).fire_time == \
        datetime(2025, 6, 17, 12, 0, tzinfo=UTC)


def test_day_month_rolls_to_next_year():
    parsed = parse_time_expression("dentist on 3rd March", NOW)
    assert parsed.fire_time == datetime(2026, 3, 3, 12, 0, tzinfo=UTC)

    parsed = parse_time_expression("renew passport August 1 at 10am", NOW)
    assert parsed.fire_time == datetime(2025, 8, 1, 10, 0, tzinfo=UTC)


def test_only_first_expression_used():
    parsed = parse_time_expression("at 3pm move the 5pm meeting", NOW)
    assert parsed.fire_time.hour == 15
    assert strip_expression("at 3pm move the 5pm meeting", parsed) == "move the 5pm meeting"


def test_no_expression():
    assert parse_time_expression("buy milk", NOW) is None


def test_strip_expression_tidies_text():
    text = "Remind me to call Vaibhav at 5 pm."
    parsed = parse_time_expression(text, NOW)
    assert strip_expression(text, parsed) == "Remind me to call Vaibhav"


@pytest.mark.asyncio
async def test_resolve_in_timezone():
    now = datetime(2025, 6, 10, 10, 0, tzinfo=IST)
    resolved = await resolve_reminder("Remind me to call Vaibhav at 5 pm", "Asia/Kolkata", now=now)

    assert resolved.fire_time == datetime(2025, 6, 10, 17, 0, tzinfo=IST)
    assert resolved.fire_time.astimezone(timezone.utc).hour == 11
    assert resolved.fire_time.astimezone(timezone.utc).minute == 30
    # No API key in tests: the raw remainder is the task
    assert resolved.task_text == "Remind me to call Vaibhav"


@pytest.mark.asyncio
async def test_resolve_uses_crux():
    extractor = AsyncMock(return_value="call Vaibhav")
    resolved = await resolve_reminder(
        "Remind me to call Vaibhav at 5 pm", "UTC", now=NOW, crux_extractor=extractor
    )
    extractor.assert_awaited_once_with("Remind me to call Vaibhav")
    assert resolved.task_text == "call Vaibhav"
    assert resolved.raw_text == "Remind me to call Vaibhav"


@pytest.mark.asyncio
async def test_resolve_truncates_long_task():
    resolved = await resolve_reminder("x" * 300 + " in 2 hours", "UTC", now=NOW)
    assert len(resolved.task_text) == 255


@pytest.mark.asyncio
async def test_resolve_past_time():
    now = datetime(2025, 6, 10, 18, 0, tzinfo=IST)
    with pytest.raises(PastOrTooSoon) as exc:
        await resolve_reminder("call Vaibhav at 5 pm", "Asia/Kolkata", now=now)
    assert "Asia/Kolkata" in exc.value.user_message


@pytest.mark.asyncio
async def test_resolve_too_soon():
    with pytest.raises(PastOrTooSoon):
        await resolve_reminder("blink in 0 minutes", "UTC", now=NOW)


@pytest.mark.asyncio
async def test_resolve_past_skips_crux():
    extractor = AsyncMock(return_value="nope")
    with pytest.raises(PastOrTooSoon):
        await resolve_reminder("stand up at 9am", "UTC", now=NOW, crux_extractor=extractor)
    extractor.assert_not_awaited()


@pytest.mark.asyncio
async def test_resolve_no_time():
    with pytest.raises(NoTimeExpressionFound) as exc:
        await resolve_reminder("buy milk", "UTC", now=NOW)
    assert "be more specific" in exc.value.user_message


@pytest.mark.asyncio
async def test_resolve_no_task():
    with pytest.raises(NoTaskDescription) as exc:
        await resolve_reminder("tomorrow at 9am", "UTC", now=NOW)
    assert "What should I remind you about?" in exc.value.user_message


@pytest.mark.asyncio
@freeze_time("2025-06-10 10:00:00")
async def test_resolve_defaults_to_current_time():
    resolved = await resolve_reminder("stretch in 15 minutes", "UTC")
    assert resolved.fire_time == datetime(2025, 6, 10, 10, 15, tzinfo=UTC)


def test_relative_time_across_dst_change():
    london = ZoneInfo("Europe/London")
    # Clocks go forward at 01:00 GMT on 29 March 2026
    now = datetime(2026, 3, 29, 0, 30, tzinfo=london)

    parsed = parse_time_expression("stretch in 3 hours", now)

    assert parsed.fire_time.astimezone(timezone.utc) == datetime(2026, 3, 29, 3, 30, tzinfo=timezone.utc)
    assert parsed.fire_time.utcoffset().total_seconds() == 3600


@pytest.mark.asyncio
async def test_resolve_across_clocks_going_back():
    london = ZoneInfo("Europe/London")
    # First 01:30 on 25 Oct 2026 (BST); the clocks go back to 01:00 GMT half an hour later
    now = datetime(2026, 10, 25, 1, 30, tzinfo=london)

    resolved = await resolve_reminder("stretch in 1 hour", "Europe/London", now=now)

    assert resolved.fire_time.astimezone(timezone.utc) == datetime(2026, 10, 25, 1, 30, tzinfo=timezone.utc)
    # Same wall-clock reading as now, one hour later
    assert resolved.fire_time.fold == 1


def test_huge_relative_amount_is_not_an_expression():
    assert parse_time_expression("call mom in 99999999 days", NOW) is None
    assert parse_time_expression("call mom in 9999999999999 weeks", NOW) is None


@pytest.mark.asyncio
async def test_resolve_huge_relative_amount():
    with pytest.raises(NoTimeExpressionFound):
        await resolve_reminder("call mom in 99999999 days", "UTC", now=NOW)
