"""
Scheduling exceptions and result codes.

Expected rejections (collisions, a full tuner, an unknown sequence number,
an unregistered profile) are reported through :class:`ScheduleErrorCode`
values on a result object. The exceptions below are reserved for internal
defects such as a corrupt recurrence type or a calendar computation that
cannot be normalized, and for exclusion-set overflow.
"""

from enum import Enum

from ..infra.exceptions import PvrSchedError


class ScheduleErrorCode(str, Enum):
    """Reasons a store operation can be refused without changing state."""

    OVERLAP_CONFLICT = "OVERLAP_CONFLICT"
    CAPACITY_EXCEEDED = "CAPACITY_EXCEEDED"
    NOT_FOUND = "NOT_FOUND"
    INVALID_PROFILE = "INVALID_PROFILE"


class ScheduleError(PvrSchedError):
    """Base exception for all scheduling errors."""

    def __init__(self, message: str, violations: list[str] | None = None):
        """
        Initialize a scheduling error.

        Args:
            message: Human-readable error message
            violations: List of specific violation descriptions
        """
        super().__init__(message)
        self.message = message
        self.violations = violations or []

    def __str__(self) -> str:
        """Return formatted error message with violations."""
        if self.violations:
            violations_text = "\n  - ".join(self.violations)
            return f"{self.message}\nViolations:\n  - {violations_text}"
        return self.message


class ScheduleInternalError(ScheduleError):
    """An internal invariant was broken. The offending operation is refused."""

    fatal = True


class TimeConversionError(ScheduleInternalError):
    """Raised when calendar fields cannot be composed into a timestamp."""

    def __init__(self, message: str, fields: tuple[int, ...] | None = None):
        super().__init__(message)
        self.fields = fields


class UnknownRecurrenceType(ScheduleInternalError):
    """Raised when a recurrence type outside the supported set is used."""

    def __init__(self, message: str, recurrence_type: object = None):
        super().__init__(message)
        self.recurrence_type = recurrence_type


class ExclusionCapacityExceeded(ScheduleError):
    """Raised when a series has more excluded occurrences than the tracker holds."""

    def __init__(self, message: str, series_id: int | None = None, capacity: int | None = None):
        super().__init__(message)
        self.series_id = series_id
        self.capacity = capacity
