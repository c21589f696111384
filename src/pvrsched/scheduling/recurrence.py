"""Recurrence expansion.

Turns a recurring request into its concrete occurrences. Each occurrence
gets a mangled title and filename that make it unique within the series,
and keeps the unmangled originals in ``series_base_title`` and
``series_base_filename``. Committing the occurrences (sequence numbers,
series id, overlap and capacity checks) is done by the ScheduleStore.
"""

from __future__ import annotations

import dataclasses
import posixpath
from collections.abc import Collection

import structlog

from ..domain.recording import RecordingEntry, TitleMangling
from .datetime_util import adjust_initial_occurrence, from_timestamp, occurrence_windows

_log = structlog.get_logger(__name__)


def split_filename(filename: str) -> tuple[str, str, str]:
    """Split a path into ``(directory, core, extension)``.

    The extension starts at the first dot of the base name, so
    ``/data/news.final.mp4`` gives ``("/data", "news", ".final.mp4")``.
    """
    directory = posixpath.dirname(filename) or "."
    base = posixpath.basename(filename)
    core, dot, ext = base.partition(".")
    return directory, core, dot + ext


def mangle_title(request: RecordingEntry, index: int, start: int) -> str:
    """Title of occurrence ``index`` (0-based) of the series."""
    if request.title_mangling_mode == TitleMangling.INDEX:
        number = index + request.series_start_number
        total = request.recurrence_count + request.series_start_number - 1
        return f"{request.title} ({number:02d}/{total:02d})"
    y, m, d, hh, mm, _ = from_timestamp(start)
    return f"{request.title} {y}-{m:02d}-{d:02d} {hh:02d}.{mm:02d}"


def mangle_filename(request: RecordingEntry, start: int) -> str:
    directory, core, ext = split_filename(request.filename)
    prefix = request.mangling_prefix
    y, m, d, hh, mm, _ = from_timestamp(start)
    return f"{directory}/{core}{prefix}{y}-{m:02d}-{d:02d}{prefix}{hh:02d}.{mm:02d}{ext}"


def align_request(request: RecordingEntry) -> RecordingEntry:
    """Return a copy of the request whose first occurrence is on a permitted weekday."""
    start, end = adjust_initial_occurrence(
        request.start_timestamp, request.end_timestamp, request.recurrence_type
    )
    aligned = request.copy()
    aligned.start_timestamp = start
    aligned.end_timestamp = end
    return aligned


def expand(request: RecordingEntry, excluded: Collection[int] = ()) -> list[RecordingEntry]:
    """Expand an aligned recurring request into its occurrences.

    Occurrences whose number is in ``excluded`` are left out. The returned
    entries have no sequence number, series id or tuner yet.

    Raises:
        TimeConversionError, UnknownRecurrenceType: if the date walk fails.
    """
    base_filename = posixpath.basename(request.filename)
    occurrences: list[RecordingEntry] = []

    windows = occurrence_windows(
        request.start_timestamp, request.end_timestamp, request.recurrence_type, request.recurrence_count
    )
    for i, (start, end) in enumerate(windows):
        number = i + request.series_start_number
        if number in excluded:
            continue
        occurrences.append(
            dataclasses.replace(
                request,
                title=mangle_title(request, i, start),
                filename=mangle_filename(request, start),
                start_timestamp=start,
                end_timestamp=end,
                transcoding_profiles=list(request.transcoding_profiles),
                is_recurring=True,
                recurrence_count=request.recurrence_count - i,
                series_base_title=request.title,
                series_base_filename=base_filename,
                series_start_number=number,
                series_id=0,
                sequence_number=-1,
                video_resource_id=-1,
            )
        )

    _log.debug(
        "series_expanded",
        title=request.title,
        recurrence_type=request.recurrence_type.long_name,
        count=request.recurrence_count,
        kept=len(occurrences),
    )
    return occurrences
