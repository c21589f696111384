"""Series exclusion tracking.

Remembers which occurrence numbers of a recurring series were deleted one
by one, so that regenerating the series from its master record does not
bring them back.
"""

from __future__ import annotations

from collections.abc import Iterator

import structlog

from .exceptions import ExclusionCapacityExceeded

_log = structlog.get_logger(__name__)

DEFAULT_EXCLUSION_CAPACITY = 1024


class SeriesExclusionTracker:
    """Per-series sets of excluded occurrence numbers with a fixed ceiling.

    Sets are created on the first exclusion for a series and never shrink.
    """

    def __init__(self, capacity: int = DEFAULT_EXCLUSION_CAPACITY) -> None:
        self.capacity = capacity
        self._excluded: dict[int, set[int]] = {}

    def mark_excluded(self, series_id: int, occurrence_number: int) -> bool:
        """Record an excluded occurrence. Returns False if the series set is full."""
        numbers = self._excluded.setdefault(series_id, set())
        if occurrence_number in numbers:
            return True
        if len(numbers) >= self.capacity:
            _log.warning(
                "exclusion_capacity_exceeded",
                series_id=series_id,
                occurrence=occurrence_number,
                capacity=self.capacity,
            )
            return False
        numbers.add(occurrence_number)
        return True

    def require_excluded(self, series_id: int, occurrence_number: int) -> None:
        """Like :meth:`mark_excluded` but raises when the set is full."""
        if not self.mark_excluded(series_id, occurrence_number):
            raise ExclusionCapacityExceeded(
                f"Series {series_id} already has {self.capacity} excluded occurrences",
                series_id=series_id,
                capacity=self.capacity,
            )

    def has_exclusions(self, series_id: int) -> bool:
        return bool(self._excluded.get(series_id))

    def is_excluded(self, series_id: int, occurrence_number: int) -> bool:
        return occurrence_number in self._excluded.get(series_id, ())

    def iterate(self, series_id: int) -> Iterator[int]:
        """Yield the excluded numbers of a series in ascending order.

        Each call starts a fresh pass over a copy of the set.
        """
        yield from sorted(self._excluded.get(series_id, ()))

    def excluded(self, series_id: int) -> frozenset[int]:
        return frozenset(self._excluded.get(series_id, ()))
