"""Tests for closed-interval overlap detection."""

from __future__ import annotations

from datetime import datetime

import pytest

from pvrsched.domain.recording import RecordingEntry, RecurrenceType
from pvrsched.scheduling.overlap import candidate_windows, find_collision, is_overlapping, windows_collide


def _ts(d: int, hh: int, mm: int = 0) -> int:
    return int(datetime(2024, 1, d, hh, mm).timestamp())


def _make_entry(start: int, end: int, title: str = "Existing", seq: int = 1, **kwargs) -> RecordingEntry:
    entry = RecordingEntry(title, "SVT1", "/data/rec.mpg", start, end, ["normal"], **kwargs)
    entry.sequence_number = seq
    entry.video_resource_id = 0
    return entry


class TestWindowsCollide:
    @pytest.mark.parametrize(
        "start, end, expected",
        [
            (20 * 60 + 30, 21 * 60 + 30, True),  # starts inside
            (19 * 60, 20 * 60 + 30, True),  # ends inside
            (19 * 60, 22 * 60, True),  # spans
            (20 * 60 + 10, 20 * 60 + 50, True),  # inside
            (21 * 60, 22 * 60, True),  # starts when the other ends
            (19 * 60, 20 * 60, True),  # ends when the other starts
            (21 * 60 + 1, 22 * 60, False),
            (18 * 60, 19 * 60 + 59, False),
        ],
    )
    def test_closed_interval_cases(self, start, end, expected):
        assert windows_collide(start, end, 20 * 60, 21 * 60) is expected


class TestFindCollision:
    def test_non_recurring_collision(self):
        existing = _make_entry(_ts(10, 20), _ts(10, 21))
        candidate = RecordingEntry("New", "SVT2", "/data/new.mpg", _ts(10, 20, 30), _ts(10, 21, 30))
        assert find_collision(candidate, [existing]) is existing

    def test_no_collision_returns_none(self):
        existing = _make_entry(_ts(10, 20), _ts(10, 21))
        candidate = RecordingEntry("New", "SVT2", "/data/new.mpg", _ts(10, 22), _ts(10, 23))
        assert find_collision(candidate, [existing]) is None
        assert not is_overlapping(candidate, [existing])

    def test_ongoing_recording_is_checked(self):
        ongoing = _make_entry(_ts(10, 20), _ts(10, 21), title="Ongoing")
        candidate = RecordingEntry("New", "SVT2", "/data/new.mpg", _ts(10, 20, 45), _ts(10, 21, 15))
        assert find_collision(candidate, [], ongoing) is ongoing

    def test_every_occurrence_of_a_series_is_checked(self):
        # Third weekly occurrence collides
        existing = _make_entry(_ts(22, 10, 30), _ts(22, 11, 30))
        candidate = RecordingEntry(
            "News", "SVT1", "/data/news.mpg", _ts(8, 10), _ts(8, 11),
            is_recurring=True, recurrence_type=RecurrenceType.WEEKLY, recurrence_count=3,
        )
        assert find_collision(candidate, [existing]) is existing

        candidate.recurrence_count = 2
        assert find_collision(candidate, [existing]) is None

    def test_excluded_occurrences_are_skipped(self):
        existing = _make_entry(_ts(15, 10), _ts(15, 11))
        candidate = RecordingEntry(
            "News", "SVT1", "/data/news.mpg", _ts(8, 10), _ts(8, 11),
            is_recurring=True, recurrence_type=RecurrenceType.WEEKLY, recurrence_count=3,
        )
        assert is_overlapping(candidate, [existing])
        assert not is_overlapping(candidate, [existing], excluded={2})

    def test_series_overlapping_itself_returns_the_candidate(self):
        candidate = RecordingEntry(
            "Marathon", "SVT1", "/data/marathon.mpg", _ts(8, 10), _ts(9, 10),
            is_recurring=True, recurrence_type=RecurrenceType.DAILY, recurrence_count=2,
        )
        assert find_collision(candidate, []) is candidate
        assert find_collision(candidate, [], excluded={2}) is None

        candidate.end_timestamp = _ts(9, 9, 59)
        assert find_collision(candidate, []) is None

    def test_candidate_windows_numbering_follows_start_number(self):
        candidate = RecordingEntry(
            "News", "SVT1", "/data/news.mpg", _ts(8, 10), _ts(8, 11),
            is_recurring=True, recurrence_type=RecurrenceType.DAILY, recurrence_count=3,
            series_start_number=4,
        )
        numbers = [n for n, _, _ in candidate_windows(candidate, excluded={5})]
        assert numbers == [4, 6]
