"""
Recording types

Canonical data structures for scheduled recordings. A RecordingEntry is one
concrete recording on one tuner; a recurring request is a RecordingEntry
with ``is_recurring`` set that the recurrence expander turns into
``recurrence_count`` concrete occurrences sharing a ``series_id``.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import IntEnum

from ..infra.exceptions import ValidationError
from ..scheduling.exceptions import UnknownRecurrenceType

# Field bounds, in characters
MAX_TITLE_LEN = 255
MAX_CHANNEL_LEN = 127
MAX_FILENAME_LEN = 127
MAX_PREFIX_LEN = 4
MAX_PROFILE_NAME_LEN = 15
MAX_PROFILES = 5

DEFAULT_MANGLING_PREFIX = "_"


class RecurrenceType(IntEnum):
    """How a recurring recording repeats.

    Weekdays follow :meth:`datetime.date.weekday`: Monday is 0, Sunday is 6.
    """

    NONE = 0
    DAILY = 1
    WEEKLY = 2
    MONTHLY = 3
    MON_FRI = 4
    SAT_SUN = 5
    MON_THU = 6
    TUE_FRI = 7
    WED_FRI = 8
    TUE_THU = 9

    @property
    def short_code(self) -> str:
        return _SHORT_CODES[self]

    @property
    def long_name(self) -> str:
        return _LONG_NAMES[self]

    @property
    def weekdays(self) -> frozenset[int] | None:
        """Permitted weekdays, or None when the pattern is not weekday restricted."""
        return _WEEKDAYS.get(self)

    @property
    def is_weekday_restricted(self) -> bool:
        return self in _WEEKDAYS

    def permits(self, weekday: int) -> bool:
        allowed = _WEEKDAYS.get(self)
        return allowed is None or weekday in allowed

    @classmethod
    def parse(cls, value: object) -> RecurrenceType:
        """Resolve an int, a numeric string, a short code or a long name."""
        if isinstance(value, RecurrenceType):
            return value
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                raise UnknownRecurrenceType(
                    f"Unknown recurrence type {value!r}", recurrence_type=value
                ) from None
        if isinstance(value, str):
            text = value.strip()
            if text.isdigit():
                return cls.parse(int(text))
            for member in cls:
                if text == member.short_code or text.lower() == member.long_name.lower():
                    return member
                if text.upper().replace("-", "_") == member.name:
                    return member
        raise UnknownRecurrenceType(f"Unknown recurrence type {value!r}", recurrence_type=value)


_SHORT_CODES = {
    RecurrenceType.NONE: "-",
    RecurrenceType.DAILY: "d",
    RecurrenceType.WEEKLY: "w",
    RecurrenceType.MONTHLY: "m",
    RecurrenceType.MON_FRI: "f",
    RecurrenceType.SAT_SUN: "s",
    RecurrenceType.MON_THU: "t",
    RecurrenceType.TUE_FRI: "n",
    RecurrenceType.WED_FRI: "e",
    RecurrenceType.TUE_THU: "u",
}

_LONG_NAMES = {
    RecurrenceType.NONE: "-",
    RecurrenceType.DAILY: "daily",
    RecurrenceType.WEEKLY: "weekly",
    RecurrenceType.MONTHLY: "monthly",
    RecurrenceType.MON_FRI: "Mon-Fri",
    RecurrenceType.SAT_SUN: "Sat-Sun",
    RecurrenceType.MON_THU: "Mon-Thu",
    RecurrenceType.TUE_FRI: "Tue-Fri",
    RecurrenceType.WED_FRI: "Wed-Fri",
    RecurrenceType.TUE_THU: "Tue-Thu",
}

_WEEKDAYS = {
    RecurrenceType.MON_FRI: frozenset({0, 1, 2, 3, 4}),
    RecurrenceType.SAT_SUN: frozenset({5, 6}),
    RecurrenceType.MON_THU: frozenset({0, 1, 2, 3}),
    RecurrenceType.TUE_FRI: frozenset({1, 2, 3, 4}),
    RecurrenceType.WED_FRI: frozenset({2, 3, 4}),
    RecurrenceType.TUE_THU: frozenset({1, 2, 3}),
}


class TitleMangling(IntEnum):
    """How the title of each occurrence in a series is made unique."""

    DATE = 0  # "News 2024-01-08 10.00"
    INDEX = 1  # "News (01/03)"


@dataclass
class RecordingEntry:
    """
    One scheduled recording.

    ``sequence_number`` and ``video_resource_id`` stay at -1 until the entry
    is committed into a ScheduleStore. For occurrences expanded from a
    series, ``recurrence_count`` is the number of occurrences remaining from
    this one (inclusive) and ``series_start_number`` its 1-based position.
    """

    title: str
    channel: str
    filename: str
    start_timestamp: int
    end_timestamp: int
    transcoding_profiles: list[str] = field(default_factory=list)

    is_recurring: bool = False
    recurrence_type: RecurrenceType = RecurrenceType.NONE
    recurrence_count: int = 0
    series_id: int = 0
    title_mangling_mode: TitleMangling = TitleMangling.DATE
    mangling_prefix: str = DEFAULT_MANGLING_PREFIX
    series_base_title: str = ""
    series_base_filename: str = ""
    series_start_number: int = 1

    sequence_number: int = -1
    video_resource_id: int = -1

    @property
    def primary_profile(self) -> str:
        return self.transcoding_profiles[0]

    @property
    def duration_seconds(self) -> int:
        return self.end_timestamp - self.start_timestamp

    @property
    def series_total(self) -> int:
        """Displayed length of the series this occurrence belongs to."""
        return self.recurrence_count + self.series_start_number - 1

    def copy(self) -> RecordingEntry:
        return copy.deepcopy(self)


def _clip(text: str, limit: int) -> str:
    return (text or "")[:limit]


def new_recording(
    title: str,
    filename: str,
    start: int,
    end: int,
    channel: str,
    *,
    default_profile: str,
    profiles: list[str] | None = None,
    recurring: bool = False,
    recurrence_type: RecurrenceType | int | str = RecurrenceType.NONE,
    recurrence_count: int = 0,
    title_mangling: TitleMangling | int = TitleMangling.DATE,
    mangling_prefix: str = DEFAULT_MANGLING_PREFIX,
    series_start_number: int = 1,
) -> RecordingEntry:
    """Build a draft recording, clipping text fields to their bounds.

    At most MAX_PROFILES non-empty profile names are kept, in order. When no
    profile is given the ``default_profile`` is used.

    Raises:
        ValidationError: if start is not before end, or a recurring request
            asks for fewer than one occurrence.
        UnknownRecurrenceType: if ``recurrence_type`` cannot be resolved.
    """
    if start >= end:
        raise ValidationError(f"Recording must start before it ends (start={start}, end={end})")

    rtype = RecurrenceType.parse(recurrence_type)
    if recurring:
        if recurrence_count < 1:
            raise ValidationError(f"Recurring recording needs at least one occurrence, got {recurrence_count}")
        if rtype is RecurrenceType.NONE:
            raise ValidationError("Recurring recording needs a recurrence type")
        if series_start_number < 1:
            raise ValidationError(f"Series start number must be >= 1, got {series_start_number}")

    kept: list[str] = []
    for name in profiles or []:
        if not name or len(kept) >= MAX_PROFILES:
            break
        kept.append(_clip(name, MAX_PROFILE_NAME_LEN))
    if not kept:
        kept.append(_clip(default_profile, MAX_PROFILE_NAME_LEN))

    return RecordingEntry(
        title=_clip(title, MAX_TITLE_LEN),
        channel=_clip(channel, MAX_CHANNEL_LEN),
        filename=_clip(filename, MAX_FILENAME_LEN),
        start_timestamp=int(start),
        end_timestamp=int(end),
        transcoding_profiles=kept,
        is_recurring=recurring,
        recurrence_type=rtype if recurring else RecurrenceType.NONE,
        recurrence_count=recurrence_count if recurring else 0,
        title_mangling_mode=TitleMangling(int(title_mangling)),
        mangling_prefix=_clip(mangling_prefix, MAX_PREFIX_LEN) or DEFAULT_MANGLING_PREFIX,
        series_start_number=series_start_number,
    )
