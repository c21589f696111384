"""Overlap detection for candidate recordings on one tuner.

Windows are closed intervals: a recording that starts exactly when another
ends collides with it. A candidate collides with an existing window when
its start or end falls inside that window, or when it spans the window.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable

import structlog

from ..domain.recording import RecordingEntry
from .datetime_util import occurrence_windows

_log = structlog.get_logger(__name__)


def windows_collide(start: int, end: int, other_start: int, other_end: int) -> bool:
    """Return True when ``[start, end]`` intersects ``[other_start, other_end]``."""
    if other_start <= start <= other_end:
        return True
    if other_start <= end <= other_end:
        return True
    return start < other_start and end > other_end


def candidate_windows(
    candidate: RecordingEntry, excluded: Collection[int] = ()
) -> Iterable[tuple[int, int, int]]:
    """Yield ``(occurrence_number, start, end)`` for every window the candidate would occupy.

    A non-recurring candidate has a single window numbered 1. Excluded
    occurrence numbers are skipped while the date walk continues through them.
    """
    if not candidate.is_recurring:
        yield 1, candidate.start_timestamp, candidate.end_timestamp
        return
    windows = occurrence_windows(
        candidate.start_timestamp,
        candidate.end_timestamp,
        candidate.recurrence_type,
        candidate.recurrence_count,
    )
    for i, (start, end) in enumerate(windows):
        number = i + candidate.series_start_number
        if number in excluded:
            continue
        yield number, start, end


def find_collision(
    candidate: RecordingEntry,
    pending: Iterable[RecordingEntry],
    ongoing: RecordingEntry | None = None,
    excluded: Collection[int] = (),
) -> RecordingEntry | None:
    """Return the first existing recording the candidate collides with, or None.

    For a recurring candidate every occurrence of the series is tested, and
    the first colliding occurrence wins. Occurrences of the series are also
    tested against each other; when two of them collide the candidate
    itself is returned.
    """
    existing = list(pending)
    earlier: list[tuple[int, int, int]] = []
    for number, start, end in candidate_windows(candidate, excluded):
        for other_number, other_start, other_end in earlier:
            if windows_collide(start, end, other_start, other_end):
                _log.info(
                    "series_overlaps_itself",
                    title=candidate.title,
                    occurrence=number,
                    other_occurrence=other_number,
                )
                return candidate
        earlier.append((number, start, end))
        for entry in existing:
            if windows_collide(start, end, entry.start_timestamp, entry.end_timestamp):
                _log.info(
                    "recording_collides",
                    title=candidate.title,
                    occurrence=number,
                    existing_seq=entry.sequence_number,
                    existing_title=entry.title,
                    video=entry.video_resource_id,
                )
                return entry
        if ongoing is not None and windows_collide(start, end, ongoing.start_timestamp, ongoing.end_timestamp):
            _log.info(
                "recording_collides_with_ongoing",
                title=candidate.title,
                occurrence=number,
                video=ongoing.video_resource_id,
            )
            return ongoing
    return None


def is_overlapping(
    candidate: RecordingEntry,
    pending: Iterable[RecordingEntry],
    ongoing: RecordingEntry | None = None,
    excluded: Collection[int] = (),
) -> bool:
    """Boolean form of :func:`find_collision`."""
    return find_collision(candidate, pending, ongoing, excluded) is not None
