"""
Calendar arithmetic for recording schedules.

All timestamps are integer seconds since the epoch; calendar fields are in
the local time zone (DST aware). Composition normalizes overflowing day and
month fields, so ``to_timestamp(2024, 1, 32, ...)`` is 1 February.
"""

from __future__ import annotations

import calendar
import re
import time
from collections.abc import Iterator
from datetime import date, datetime, timedelta

import structlog

from ..domain.recording import RecurrenceType
from ..infra.exceptions import ValidationError
from .exceptions import TimeConversionError, UnknownRecurrenceType

_log = structlog.get_logger(__name__)

# Calendar fields: (year, month, day, hour, minute, second)
Fields = tuple[int, int, int, int, int, int]

WEEKDAY_ABBREVIATIONS = ("mon", "tue", "wed", "thu", "fri", "sat", "sun")


def to_timestamp(year: int, month: int, day: int, hour: int = 0, minute: int = 0, second: int = 0) -> int:
    """Compose local calendar fields into a timestamp.

    Day and month overflow are carried into the following month and year.

    Raises:
        TimeConversionError: if the fields cannot be composed.
    """
    try:
        year += (month - 1) // 12
        month = (month - 1) % 12 + 1
        first = datetime(year, month, 1, hour, minute, second)
        return int((first + timedelta(days=day - 1)).timestamp())
    except (ValueError, OverflowError, OSError) as exc:
        fields = (year, month, day, hour, minute, second)
        _log.error("timestamp_compose_failed", fields=fields, error=str(exc))
        raise TimeConversionError(f"Cannot convert {fields} to a timestamp: {exc}", fields=fields) from exc


def from_timestamp(timestamp: int) -> Fields:
    """Decompose a timestamp into local calendar fields.

    Raises:
        TimeConversionError: if the timestamp is outside the platform range.
    """
    try:
        dt = datetime.fromtimestamp(timestamp)
    except (ValueError, OverflowError, OSError) as exc:
        _log.error("timestamp_decompose_failed", timestamp=timestamp, error=str(exc))
        raise TimeConversionError(f"Cannot convert timestamp {timestamp}: {exc}") from exc
    return (dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second)


def weekday_of(timestamp: int) -> int:
    """Local weekday of a timestamp, Monday is 0."""
    return datetime.fromtimestamp(timestamp).weekday()


def _shift_days(fields: Fields, days: int) -> Fields:
    y, m, d, hh, mm, ss = fields
    return (y, m, d + days, hh, mm, ss)


def _add_month(fields: Fields) -> Fields:
    # Day of month is clamped to the length of the target month
    y, m, d, hh, mm, ss = fields
    y, m = (y + 1, 1) if m == 12 else (y, m + 1)
    d = min(d, calendar.monthrange(y, m)[1])
    return (y, m, d, hh, mm, ss)


def _check_type(recurrence_type: object) -> RecurrenceType:
    try:
        return RecurrenceType.parse(recurrence_type)
    except UnknownRecurrenceType:
        _log.error("unknown_recurrence_type", recurrence_type=recurrence_type)
        raise


def advance_by_recurrence(recurrence_type: RecurrenceType | int, start: int, end: int) -> tuple[int, int]:
    """Return the start and end of the occurrence following ``[start, end]``.

    Daily adds a day, weekly seven days, monthly one calendar month (clamped
    to the last day of a shorter month). Weekday restricted patterns step a
    day at a time until the start falls on a permitted weekday. Start and
    end move in lockstep and are both normalized through a full
    compose/decompose round trip.

    Raises:
        UnknownRecurrenceType: for a type outside the supported set.
        TimeConversionError: if the arithmetic cannot be normalized.
    """
    rtype = _check_type(recurrence_type)
    sfields = from_timestamp(start)
    efields = from_timestamp(end)

    if rtype is RecurrenceType.NONE:
        pass
    elif rtype is RecurrenceType.DAILY:
        sfields, efields = _shift_days(sfields, 1), _shift_days(efields, 1)
    elif rtype is RecurrenceType.WEEKLY:
        sfields, efields = _shift_days(sfields, 7), _shift_days(efields, 7)
    elif rtype is RecurrenceType.MONTHLY:
        sfields, efields = _add_month(sfields), _add_month(efields)
    else:
        for _ in range(7):
            sfields, efields = _shift_days(sfields, 1), _shift_days(efields, 1)
            if rtype.permits(weekday_of(to_timestamp(*sfields))):
                break

    new_start = to_timestamp(*sfields)
    new_end = to_timestamp(*efields)
    # Round trip both ends so wrapped fields are corrected consistently
    new_start = to_timestamp(*from_timestamp(new_start))
    new_end = to_timestamp(*from_timestamp(new_end))
    return new_start, new_end


def occurrence_windows(
    start: int, end: int, recurrence_type: RecurrenceType | int, count: int
) -> Iterator[tuple[int, int]]:
    """Yield the ``count`` windows of a series starting with ``[start, end]``."""
    for i in range(count):
        yield start, end
        if i + 1 < count:
            start, end = advance_by_recurrence(recurrence_type, start, end)


def adjust_initial_occurrence(start: int, end: int, recurrence_type: RecurrenceType | int) -> tuple[int, int]:
    """Move the first occurrence of a weekday restricted series onto a permitted day.

    A no-op for the other patterns.

    Raises:
        UnknownRecurrenceType: for a type outside the supported set.
    """
    rtype = _check_type(recurrence_type)
    if not rtype.is_weekday_restricted:
        return start, end

    weekday = weekday_of(start)
    step = 0
    while not rtype.permits((weekday + step) % 7):
        step += 1
    if step == 0:
        return start, end

    _log.debug("initial_occurrence_adjusted", recurrence_type=rtype.long_name, days=step)
    return (
        to_timestamp(*_shift_days(from_timestamp(start), step)),
        to_timestamp(*_shift_days(from_timestamp(end), step)),
    )


def bump_past_start(start: int, end: int, now: int | None = None) -> tuple[int, int]:
    """Move a start time that has already passed to the same time tomorrow."""
    now = int(time.time()) if now is None else now
    if start >= now:
        return start, end
    return (
        to_timestamp(*_shift_days(from_timestamp(start), 1)),
        to_timestamp(*_shift_days(from_timestamp(end), 1)),
    )


def relative_date_from_name(name: str, now: datetime | None = None) -> tuple[int, int, int]:
    """Resolve "today", "tomorrow" or a weekday abbreviation to a date.

    A weekday name always means the next such day; naming today's weekday
    resolves to the same day next week.

    Raises:
        ValidationError: for an unknown name.
    """
    today = (now or datetime.now()).date()
    key = name.strip().lower()

    if key in ("today", "tod"):
        return (today.year, today.month, today.day)
    if key in ("tomorrow", "tom"):
        d = today + timedelta(days=1)
        return (d.year, d.month, d.day)

    if key not in WEEKDAY_ABBREVIATIONS:
        _log.warning("unknown_day_name", name=name)
        raise ValidationError(f"Unknown day name '{name}'")

    step = (WEEKDAY_ABBREVIATIONS.index(key) - today.weekday()) % 7 or 7
    d = today + timedelta(days=step)
    return (d.year, d.month, d.day)


_CLOCK_RE = re.compile(r"^(\d{1,2})[:.](\d{2})$")


def parse_clock(text: str) -> tuple[int, int]:
    """Parse ``HH:MM`` (or ``HH.MM``) into hour and minute."""
    match = _CLOCK_RE.match(text.strip())
    if not match:
        raise ValidationError(f"Invalid time format '{text}', expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValidationError(f"Invalid time '{text}'")
    return hour, minute


def parse_date(text: str, now: datetime | None = None) -> tuple[int, int, int]:
    """Parse ``YYYY-MM-DD`` or a relative day name into a date."""
    try:
        d = date.fromisoformat(text.strip())
    except ValueError:
        return relative_date_from_name(text, now=now)
    return (d.year, d.month, d.day)
