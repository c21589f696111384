"""Tests for series expansion and title/filename mangling."""

from __future__ import annotations

from datetime import datetime

from pvrsched.domain.recording import RecurrenceType, TitleMangling, new_recording
from pvrsched.scheduling.datetime_util import from_timestamp, weekday_of
from pvrsched.scheduling.recurrence import align_request, expand, mangle_filename, mangle_title, split_filename


def _ts(m: int, d: int, hh: int, mm: int = 0) -> int:
    return int(datetime(2024, m, d, hh, mm).timestamp())


def _make_request(start: int, end: int, rtype="weekly", count: int = 3, mangling=TitleMangling.INDEX, **kwargs):
    return new_recording(
        "News",
        "/data/pvr/news.mpg",
        start,
        end,
        "SVT1",
        default_profile="normal",
        recurring=True,
        recurrence_type=rtype,
        recurrence_count=count,
        title_mangling=mangling,
        **kwargs,
    )


class TestSplitFilename:
    def test_extension_starts_at_first_dot(self):
        assert split_filename("/data/news.final.mp4") == ("/data", "news", ".final.mp4")

    def test_bare_name_uses_current_directory(self):
        assert split_filename("news.mpg") == (".", "news", ".mpg")
        assert split_filename("news") == (".", "news", "")


class TestMangling:
    def test_index_mangling(self):
        request = _make_request(_ts(1, 8, 10), _ts(1, 8, 11))
        assert mangle_title(request, 0, request.start_timestamp) == "News (01/03)"
        assert mangle_title(request, 2, request.start_timestamp) == "News (03/03)"

    def test_index_mangling_with_offset_start_number(self):
        request = _make_request(_ts(1, 8, 10), _ts(1, 8, 11), count=3, series_start_number=5)
        assert mangle_title(request, 0, request.start_timestamp) == "News (05/07)"

    def test_date_mangling(self):
        request = _make_request(_ts(1, 8, 10, 5), _ts(1, 8, 11), mangling=TitleMangling.DATE)
        assert mangle_title(request, 0, request.start_timestamp) == "News 2024-01-08 10.05"

    def test_filename_mangling(self):
        request = _make_request(_ts(1, 8, 10), _ts(1, 8, 11), mangling_prefix="-")
        assert mangle_filename(request, request.start_timestamp) == "/data/pvr/news-2024-01-08-10.00.mpg"


class TestExpand:
    def test_weekly_series_with_index_titles(self):
        occurrences = expand(_make_request(_ts(1, 8, 10), _ts(1, 8, 11)))

        assert [o.title for o in occurrences] == ["News (01/03)", "News (02/03)", "News (03/03)"]
        assert [from_timestamp(o.start_timestamp)[:3] for o in occurrences] == [
            (2024, 1, 8),
            (2024, 1, 15),
            (2024, 1, 22),
        ]
        assert [o.series_start_number for o in occurrences] == [1, 2, 3]
        assert [o.recurrence_count for o in occurrences] == [3, 2, 1]
        for o in occurrences:
            assert o.series_base_title == "News"
            assert o.series_base_filename == "news.mpg"
            assert o.recurrence_type is RecurrenceType.WEEKLY
            assert o.sequence_number == -1
            assert o.series_id == 0

    def test_filenames_are_unique_per_occurrence(self):
        occurrences = expand(_make_request(_ts(1, 8, 10), _ts(1, 8, 11)))
        assert occurrences[1].filename == "/data/pvr/news_2024-01-15_10.00.mpg"
        assert len({o.filename for o in occurrences}) == 3

    def test_excluded_numbers_are_skipped(self):
        occurrences = expand(_make_request(_ts(1, 8, 10), _ts(1, 8, 11)), excluded={2})
        assert [o.series_start_number for o in occurrences] == [1, 3]
        assert from_timestamp(occurrences[1].start_timestamp)[:3] == (2024, 1, 22)

    def test_profiles_are_not_shared(self):
        occurrences = expand(_make_request(_ts(1, 8, 10), _ts(1, 8, 11)))
        occurrences[0].transcoding_profiles[0] = "high"
        assert occurrences[1].transcoding_profiles == ["normal"]

    def test_align_moves_weekend_start_to_monday(self):
        request = _make_request(_ts(1, 13, 10), _ts(1, 13, 11), rtype="Mon-Fri", count=6)
        aligned = align_request(request)

        assert request.start_timestamp == _ts(1, 13, 10)
        assert aligned.start_timestamp == _ts(1, 15, 10)

        occurrences = expand(aligned)
        assert len(occurrences) == 6
        assert all(weekday_of(o.start_timestamp) < 5 for o in occurrences)
        assert from_timestamp(occurrences[-1].start_timestamp)[:3] == (2024, 1, 22)
