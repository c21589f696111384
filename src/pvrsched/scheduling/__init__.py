"""
Recording scheduler.

Modules:
- datetime_util: calendar arithmetic and recurrence stepping
- recurrence: expansion of a recurring request into occurrences
- overlap: collision detection on one tuner
- exclusions: occurrences deleted from a series
- store: the per-tuner schedule

Only the exceptions are re-exported here; import the store from
``pvrsched.scheduling.store``.
"""

from .exceptions import (
    ExclusionCapacityExceeded,
    ScheduleError,
    ScheduleErrorCode,
    ScheduleInternalError,
    TimeConversionError,
    UnknownRecurrenceType,
)

__all__ = [
    "ScheduleErrorCode",
    "ScheduleError",
    "ScheduleInternalError",
    "TimeConversionError",
    "UnknownRecurrenceType",
    "ExclusionCapacityExceeded",
]
