"""Tests for calendar arithmetic.

Dates are kept in January and February so no DST change falls inside a test.
"""

from __future__ import annotations

from datetime import datetime

import pytest

from pvrsched.domain.recording import RecurrenceType
from pvrsched.infra.exceptions import ValidationError
from pvrsched.scheduling.datetime_util import (
    adjust_initial_occurrence,
    advance_by_recurrence,
    bump_past_start,
    from_timestamp,
    occurrence_windows,
    parse_clock,
    parse_date,
    relative_date_from_name,
    to_timestamp,
    weekday_of,
)
from pvrsched.scheduling.exceptions import TimeConversionError, UnknownRecurrenceType


def _ts(y: int, m: int, d: int, hh: int = 0, mm: int = 0) -> int:
    return int(datetime(y, m, d, hh, mm).timestamp())


def _date(ts: int) -> tuple[int, int, int]:
    return from_timestamp(ts)[:3]


class TestComposition:
    def test_round_trip(self):
        ts = to_timestamp(2024, 1, 10, 20, 0, 0)
        assert ts == _ts(2024, 1, 10, 20)
        assert from_timestamp(ts) == (2024, 1, 10, 20, 0, 0)

    def test_day_overflow_rolls_into_next_month(self):
        assert to_timestamp(2024, 1, 32, 10) == _ts(2024, 2, 1, 10)

    def test_month_overflow_rolls_into_next_year(self):
        assert to_timestamp(2024, 13, 5, 10) == _ts(2025, 1, 5, 10)

    def test_unrepresentable_fields_raise(self):
        with pytest.raises(TimeConversionError) as exc_info:
            to_timestamp(2024, 1, 10, 25, 0, 0)
        assert exc_info.value.fatal is True

    def test_weekday_of_monday_is_zero(self):
        assert weekday_of(_ts(2024, 1, 8, 10)) == 0
        assert weekday_of(_ts(2024, 1, 14, 10)) == 6


class TestAdvanceByRecurrence:
    def test_daily(self):
        start, end = advance_by_recurrence(RecurrenceType.DAILY, _ts(2024, 1, 31, 10), _ts(2024, 1, 31, 11))
        assert (start, end) == (_ts(2024, 2, 1, 10), _ts(2024, 2, 1, 11))

    def test_weekly(self):
        start, end = advance_by_recurrence(RecurrenceType.WEEKLY, _ts(2024, 1, 8, 10), _ts(2024, 1, 8, 11))
        assert (start, end) == (_ts(2024, 1, 15, 10), _ts(2024, 1, 15, 11))

    def test_monthly_clamps_to_end_of_shorter_month(self):
        start, end = advance_by_recurrence(RecurrenceType.MONTHLY, _ts(2024, 1, 31, 10), _ts(2024, 1, 31, 11))
        assert (start, end) == (_ts(2024, 2, 29, 10), _ts(2024, 2, 29, 11))

    def test_monthly_over_year_end(self):
        start, _ = advance_by_recurrence(RecurrenceType.MONTHLY, _ts(2023, 12, 15, 10), _ts(2023, 12, 15, 11))
        assert start == _ts(2024, 1, 15, 10)

    def test_mon_fri_skips_weekend(self):
        # Friday -> Monday
        start, end = advance_by_recurrence(RecurrenceType.MON_FRI, _ts(2024, 1, 12, 10), _ts(2024, 1, 12, 11))
        assert (start, end) == (_ts(2024, 1, 15, 10), _ts(2024, 1, 15, 11))

    def test_sat_sun(self):
        # Sunday -> next Saturday
        start, _ = advance_by_recurrence(RecurrenceType.SAT_SUN, _ts(2024, 1, 14, 10), _ts(2024, 1, 14, 11))
        assert start == _ts(2024, 1, 20, 10)

    def test_window_crossing_midnight_moves_in_lockstep(self):
        start, end = advance_by_recurrence(RecurrenceType.DAILY, _ts(2024, 1, 10, 23, 30), _ts(2024, 1, 11, 0, 30))
        assert (start, end) == (_ts(2024, 1, 11, 23, 30), _ts(2024, 1, 12, 0, 30))

    def test_unknown_type_raises(self):
        with pytest.raises(UnknownRecurrenceType):
            advance_by_recurrence(42, _ts(2024, 1, 8, 10), _ts(2024, 1, 8, 11))

    @pytest.mark.parametrize("rtype", [t for t in RecurrenceType if t.is_weekday_restricted])
    def test_weekday_patterns_always_land_on_permitted_day(self, rtype):
        start, end = _ts(2024, 1, 6, 10), _ts(2024, 1, 6, 11)
        start, end = adjust_initial_occurrence(start, end, rtype)
        for s, _ in occurrence_windows(start, end, rtype, 12):
            assert rtype.permits(weekday_of(s))


class TestOccurrenceWindows:
    def test_yields_count_windows(self):
        windows = list(occurrence_windows(_ts(2024, 1, 8, 10), _ts(2024, 1, 8, 11), RecurrenceType.WEEKLY, 3))
        assert [_date(s) for s, _ in windows] == [(2024, 1, 8), (2024, 1, 15), (2024, 1, 22)]

    def test_single_window(self):
        windows = list(occurrence_windows(100, 200, RecurrenceType.DAILY, 1))
        assert windows == [(100, 200)]


class TestInitialAdjustment:
    def test_saturday_mon_fri_moves_to_monday(self):
        start, end = adjust_initial_occurrence(_ts(2024, 1, 13, 10), _ts(2024, 1, 13, 11), RecurrenceType.MON_FRI)
        assert (start, end) == (_ts(2024, 1, 15, 10), _ts(2024, 1, 15, 11))

    def test_permitted_day_is_unchanged(self):
        start, end = _ts(2024, 1, 10, 10), _ts(2024, 1, 10, 11)
        assert adjust_initial_occurrence(start, end, RecurrenceType.WED_FRI) == (start, end)

    def test_calendar_patterns_are_unchanged(self):
        start, end = _ts(2024, 1, 13, 10), _ts(2024, 1, 13, 11)
        assert adjust_initial_occurrence(start, end, RecurrenceType.WEEKLY) == (start, end)

    def test_bump_past_start(self):
        start, end = _ts(2024, 1, 10, 10), _ts(2024, 1, 10, 11)
        assert bump_past_start(start, end, now=_ts(2024, 1, 10, 12)) == (_ts(2024, 1, 11, 10), _ts(2024, 1, 11, 11))
        assert bump_past_start(start, end, now=_ts(2024, 1, 10, 9)) == (start, end)


class TestRelativeDates:
    # 2024-01-10 is a Wednesday
    NOW = datetime(2024, 1, 10, 12, 0)

    def test_today_and_tomorrow(self):
        assert relative_date_from_name("today", self.NOW) == (2024, 1, 10)
        assert relative_date_from_name("tod", self.NOW) == (2024, 1, 10)
        assert relative_date_from_name("Tomorrow", self.NOW) == (2024, 1, 11)

    def test_weekday_names_look_forward(self):
        assert relative_date_from_name("thu", self.NOW) == (2024, 1, 11)
        assert relative_date_from_name("mon", self.NOW) == (2024, 1, 15)

    def test_todays_weekday_means_next_week(self):
        assert relative_date_from_name("wed", self.NOW) == (2024, 1, 17)

    def test_unknown_name(self):
        with pytest.raises(ValidationError):
            relative_date_from_name("someday", self.NOW)

    def test_parse_date_accepts_iso_and_names(self):
        assert parse_date("2024-02-29") == (2024, 2, 29)
        assert parse_date("fri", now=self.NOW) == (2024, 1, 12)

    def test_parse_clock(self):
        assert parse_clock("19:30") == (19, 30)
        assert parse_clock("7.05") == (7, 5)
        for bad in ("24:00", "1930", "12:60"):
            with pytest.raises(ValidationError):
                parse_clock(bad)
