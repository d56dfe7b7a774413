"""Resolve natural language reminder requests into a fire time and a task.

Examples:
- "Remind me to call Vaibhav at 5 pm"
- "remind me tomorrow at 9am to take meds"
- "submit report in 2 hours"
- "Monday 8:30am book the dentist"

Only the first time expression in the message is used; it is cut out of the
message and whatever is left becomes the task text.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from logger import logger
from utils.log_sanitizer import sanitize_for_log
from . import config
from .crux import extract_crux
from .errors import NoTaskDescription, NoTimeExpressionFound, PastOrTooSoon

WEEKDAYS = ['monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday']

MONTHS = {
    'jan': 1, 'feb': 2, 'mar': 3, 'apr': 4, 'may': 5, 'jun': 6,
    'jul': 7, 'aug': 8, 'sep': 9, 'oct': 10, 'nov': 11, 'dec': 12
}

NUMBER_WORDS = {
    'a': 1, 'an': 1, 'one': 1, 'two': 2, 'three': 3, 'four': 4, 'five': 5, 'six': 6,
    'seven': 7, 'eight': 8, 'nine': 9, 'ten': 10, 'eleven': 11, 'twelve': 12
}

_MONTH_NAMES = (
    r'jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?'
    r'|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?'
)

# "in 2 hours", "in a day", "in 15 mins"
RELATIVE_PATTERN = re.compile(
    r'\bin\s+(?P<amount>\d+|' + '|'.join(NUMBER_WORDS) + r')\s+'
    r'(?P<unit>minutes?|mins?|hours?|hrs?|days?|weeks?)\b',
    re.IGNORECASE
)

# "5 pm", "at 5:30pm", "8.45 a.m.", "17:00", "noon"
TIME_PATTERN = re.compile(
    r'\b(?:at\s+)?(?:'
    r'(?P<hour>\d{1,2})(?:[:.](?P<minute>\d{2}))?\s*(?P<meridiem>[ap]\.?m\.?)(?!\w)'
    r'|(?P<hour24>\d{1,2}):(?P<minute24>\d{2})\b'
    r'|(?P<named>noon|midday)\b'
    r')',
    re.IGNORECASE
)

# "tomorrow", "on Friday", "next monday", "3rd March", "March 3"
DATE_PATTERN = re.compile(
    r'\b(?:on\s+)?(?:'
    r'(?P<relday>today|tonight|tomorrow|yesterday)'
    r'|(?P<next>next\s+)?(?P<weekday>' + '|'.join(WEEKDAYS) + r')'
    r'|(?P<day>\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?(?P<month>' + _MONTH_NAMES + r')'
    r'(?:,?\s+(?P<year>\d{4}))?'
    r'|(?P<month2>' + _MONTH_NAMES + r')\s+(?P<day2>\d{1,2})(?:st|nd|rd|th)?'
    r'(?:,?\s+(?P<year2>\d{4}))?'
    r')\b',
    re.IGNORECASE
)

# What may sit between a date and a time that belong together
_JOINER = re.compile(r'[\s,]*')

# Hour used when only a day is given (matches what people mean by "on Monday")
DEFAULT_DAY_HOUR = 12
TONIGHT_HOUR = 20


@dataclass
class ParsedTime:
    """The first time expression found in a message."""
    expression: str
    start: int
    end: int
    fire_time: datetime


@dataclass
class ResolvedReminder:
    """A reminder request turned into something the store can save."""
    fire_time: datetime
    task_text: str
    raw_text: str
    expression: str


@dataclass
class _Candidate:
    kind: str  # 'relative', 'time' or 'date'
    start: int
    end: int
    value: object


def parse_time_expression(text: str, now: datetime) -> Optional[ParsedTime]:
    """Find the first date/time expression in text and resolve it.

    Args:
        text: Raw message
        now: Current time, timezone-aware, in the zone the message is read in

    Returns:
        ParsedTime, or None if the message has no recognizable time
    """
    candidates = _find_candidates(text, now)
    if not candidates:
        return None

    first = candidates[0]
    parts = {first.kind: first}
    end = first.end

    # A date and a clock time next to each other are one expression
    if first.kind != 'relative':
        for candidate in candidates[1:]:
            if candidate.start < end:
                continue
            if candidate.kind in parts or candidate.kind == 'relative':
                break
            if not _JOINER.fullmatch(text[end:candidate.start]):
                break
            parts[candidate.kind] = candidate
            end = candidate.end

    fire_time = _combine(parts, now)
    return ParsedTime(
        expression=text[first.start:end],
        start=first.start,
        end=end,
        fire_time=fire_time,
    )


def _find_candidates(text: str, now: datetime) -> list[_Candidate]:
    """Collect every valid expression, ordered by position, overlaps dropped."""
    found = []

    for m in RELATIVE_PATTERN.finditer(text):
        fire_time = _parse_relative(m, now)
        if fire_time is not None:
            found.append(_Candidate('relative', m.start(), m.end(), fire_time))

    for m in TIME_PATTERN.finditer(text):
        clock = _parse_clock(m)
        if clock is not None:
            found.append(_Candidate('time', m.start(), m.end(), clock))

    for m in DATE_PATTERN.finditer(text):
        day = _parse_day(m, now)
        if day is not None:
            found.append(_Candidate('date', m.start(), m.end(), day))

    # Earliest first, longest first on ties
    found.sort(key=lambda c: (c.start, -(c.end - c.start)))

    result = []
    last_end = -1
    for candidate in found:
        if candidate.start >= last_end:
            result.append(candidate)
            last_end = candidate.end
    return result


def _parse_relative(m: re.Match, now: datetime) -> Optional[datetime]:
    """Fire time for "in N units", or None if it is beyond what datetime can hold."""
    amount_str = m.group('amount').lower()
    unit = m.group('unit').lower()
    try:
        amount = int(amount_str) if amount_str.isdigit() else NUMBER_WORDS[amount_str]
    except ValueError:
        # More digits than int() will convert
        return None

    if unit.startswith('m'):
        delta_args = {'minutes': amount}
    elif unit.startswith('h'):
        delta_args = {'hours': amount}
    elif unit.startswith('d'):
        delta_args = {'days': amount}
    else:
        delta_args = {'weeks': amount}

    try:
        # Elapsed time: add to the UTC instant so DST changes do not shift it
        fire_utc = now.astimezone(timezone.utc) + timedelta(**delta_args)
        return fire_utc.astimezone(now.tzinfo)
    except OverflowError:
        return None


def _parse_clock(m: re.Match) -> Optional[time]:
    """Turn a TIME_PATTERN match into a clock time, or None if out of range."""
    if m.group('named'):
        return time(12, 0)

    if m.group('hour24') is not None:
        hour = int(m.group('hour24'))
        minute = int(m.group('minute24'))
    else:
        hour = int(m.group('hour'))
        minute = int(m.group('minute') or 0)
        if hour < 1 or hour > 12:
            return None
        is_pm = m.group('meridiem').lower().startswith('p')
        # Convert 12-hour to 24-hour
        if is_pm and hour < 12:
            hour += 12
        elif not is_pm and hour == 12:
            hour = 0

    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def _parse_day(m: re.Match, now: datetime) -> Optional[tuple[date, Optional[time]]]:
    """Turn a DATE_PATTERN match into (date, default clock time).

    A default clock time of None means "keep the current time of day".
    """
    today = now.date()

    relday = m.group('relday')
    if relday:
        relday = relday.lower()
        if relday == 'today':
            return today, None
        if relday == 'tonight':
            return today, time(TONIGHT_HOUR, 0)
        if relday == 'tomorrow':
            return today + timedelta(days=1), None
        return today - timedelta(days=1), None

    weekday = m.group('weekday')
    if weekday:
        target_day = WEEKDAYS.index(weekday.lower())
        days_ahead = (target_day - today.weekday()) % 7
        # Same weekday means today unless the user said "next"
        if days_ahead == 0 and m.group('next'):
            days_ahead = 7
        return today + timedelta(days=days_ahead), time(DEFAULT_DAY_HOUR, 0)

    if m.group('month'):
        day_str, month_str, year_str = m.group('day'), m.group('month'), m.group('year')
    else:
        day_str, month_str, year_str = m.group('day2'), m.group('month2'), m.group('year2')

    month = MONTHS[month_str.lower()[:3]]
    try:
        if year_str:
            target = date(int(year_str), month, int(day_str))
        else:
            target = date(today.year, month, int(day_str))
            # No year given: a date already behind us means next year
            if target < today:
                target = date(today.year + 1, month, int(day_str))
    except ValueError:
        return None
    return target, time(DEFAULT_DAY_HOUR, 0)


def _combine(parts: dict[str, _Candidate], now: datetime) -> datetime:
    """Build the absolute fire time from the matched parts."""
    tz = now.tzinfo

    if 'relative' in parts:
        return parts['relative'].value

    clock = parts['time'].value if 'time' in parts else None

    if 'date' in parts:
        day, default_clock = parts['date'].value
        if clock is None:
            clock = default_clock
        if clock is None:
            # "tomorrow" on its own: same time of day
            return datetime.combine(day, now.timetz().replace(tzinfo=None), tzinfo=tz)
        return datetime.combine(day, clock, tzinfo=tz)

    # Time only: that time today, never rolled forward
    return datetime.combine(now.date(), clock, tzinfo=tz)


def strip_expression(text: str, parsed: ParsedTime) -> str:
    """Remove the matched time expression and tidy what is left."""
    remainder = f"{text[:parsed.start]} {text[parsed.end:]}"
    remainder = re.sub(r'\s+', ' ', remainder).strip()
    return remainder.strip('.,;:!-–—').strip()


async def resolve_reminder(
    text: str,
    tz_name: Optional[str] = None,
    now: Optional[datetime] = None,
    crux_extractor: Optional[Callable[[str], Awaitable[str]]] = None
) -> ResolvedReminder:
    """Turn a reminder request into a fire time and a concise task.

    Args:
        text: Raw user message
        tz_name: IANA timezone the message is read in (default from config)
        now: Current time (defaults to now in that timezone)
        crux_extractor: Async callable that shortens the task text

    Returns:
        ResolvedReminder

    Raises:
        NoTimeExpressionFound: no date/time in the message
        NoTaskDescription: nothing left once the time is removed
        PastOrTooSoon: fire time not later than now + MIN_LEAD_SECONDS
    """
    tz_name = tz_name or config.DEFAULT_TIMEZONE
    tz = ZoneInfo(tz_name)
    now = now.astimezone(tz) if now else datetime.now(tz)

    parsed = parse_time_expression(text, now)
    if parsed is None:
        logger.info(f"No time expression in: {sanitize_for_log(text, 80)}")
        raise NoTimeExpressionFound()

    raw_text = strip_expression(text, parsed)
    if not raw_text:
        raise NoTaskDescription()

    # Compare instants, not wall-clock fields
    earliest = now.astimezone(timezone.utc) + timedelta(seconds=config.MIN_LEAD_SECONDS)
    if parsed.fire_time.astimezone(timezone.utc) <= earliest:
        logger.info(f"Rejected past/too-soon time '{parsed.expression}' -> {parsed.fire_time.isoformat()}")
        raise PastOrTooSoon(tz_name)

    extractor = crux_extractor or extract_crux
    task_text = (await extractor(raw_text)).strip() or raw_text
    task_text = task_text[:config.MESSAGE_MAX_LENGTH].strip()

    return ResolvedReminder(
        fire_time=parsed.fire_time,
        task_text=task_text,
        raw_text=raw_text,
        expression=parsed.expression,
    )
