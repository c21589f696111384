"""
Text and HTML rendering of scheduled recordings.

Pure projections of RecordingEntry fields; nothing here touches the store.

Styles:
    ONE_LINE      one bracketed line per recording
    RECORD_SHORT  several lines per recording
    RECORD_LONG   several lines, including tuner, filename and series details
    BRIEF         one aligned table row (channel, date, start, end, title, profile)
    FANCY         like BRIEF but says "today"/"tomorrow" where it applies
    TIMESTAMP     "<start> <end> <title>", used to plan wake-up times
"""

from __future__ import annotations

import html
from collections.abc import Sequence
from datetime import datetime, timedelta
from enum import IntEnum

from .. import __version__
from ..domain.recording import RecordingEntry
from ..scheduling.datetime_util import from_timestamp, weekday_of

WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

HEADER_RULE = "=" * 85
PROGRAM_NAME = "pvrsched"


class ListStyle(IntEnum):
    ONE_LINE = 0
    RECORD_SHORT = 1
    RECORD_LONG = 2
    BRIEF = 3
    FANCY = 4
    TIMESTAMP = 9


def format_profiles(entry: RecordingEntry) -> str:
    """Render the profiles of a recording as ``@a, @b``."""
    return ", ".join(f"@{name}" for name in entry.transcoding_profiles if name)


def _day_label(timestamp: int) -> str:
    _, m, d, _, _, _ = from_timestamp(timestamp)
    return f"{WEEKDAY_NAMES[weekday_of(timestamp)]} {MONTH_NAMES[m - 1]} {d:02d}"


def _clock(timestamp: int) -> str:
    _, _, _, hh, mm, _ = from_timestamp(timestamp)
    return f"{hh:02d}:{mm:02d}"


def _full(timestamp: int) -> str:
    y, m, d, hh, mm, ss = from_timestamp(timestamp)
    return f"{y}-{m:02d}-{d:02d} {hh:02d}:{mm:02d}:{ss:02d}"


def _field(label: str, value: object) -> str:
    return f"{label:>10}: {value}\n"


def _generated_by(now: datetime | None) -> str:
    stamp = (now or datetime.now()).strftime("%a %b %d %H:%M:%S %Y")
    return f"Generated by: {PROGRAM_NAME} {__version__}, {stamp}\n"


def format_entry(
    entry: RecordingEntry,
    style: ListStyle | int = ListStyle.ONE_LINE,
    idx: int = 0,
    now: datetime | None = None,
) -> str:
    """Render one recording in the given style."""
    style = ListStyle(style)
    start, end = entry.start_timestamp, entry.end_timestamp
    profiles = format_profiles(entry)

    if style is ListStyle.ONE_LINE:
        return (
            f"[{entry.sequence_number:03d}|{entry.channel:<8.8}|{_day_label(start)}|"
            f"{_clock(start)}|{_clock(end)}|{entry.title:<30}|{profiles}]\n"
        )

    if style is ListStyle.BRIEF:
        return (
            f"{idx:03d} {entry.channel:<8}{_day_label(start)} {_clock(start)} {_clock(end)} "
            f"{entry.title:<40}{profiles:<10}\n"
        )

    if style is ListStyle.FANCY:
        today = (now or datetime.now()).date()
        day = datetime.fromtimestamp(start).date()
        if day == today:
            when = "today"
        elif day == today + timedelta(days=1):
            when = "tomorrow"
        else:
            when = _day_label(start)
        return f'{when} {_clock(start)}-{_clock(end)} {entry.channel:<7.7} "{entry.title}"\n'

    if style is ListStyle.TIMESTAMP:
        return f"{start} {end} {entry.title}\n"

    lines = [
        _field("#", entry.sequence_number),
        _field("Title", entry.title),
        _field("Channel", entry.channel),
        _field("Start", _full(start)),
        _field("End", _full(end)),
    ]
    long_format = style is ListStyle.RECORD_LONG
    if long_format:
        lines.append(_field("Video", entry.video_resource_id))
        lines.append(_field("Filename", entry.filename))
    if entry.is_recurring:
        remain = f"{entry.recurrence_type.long_name} {entry.recurrence_count - 1} recordings remain after this"
        if long_format:
            lines.append(_field("Repeats", f"{remain} (RID:{entry.series_id})"))
            lines.append(_field("", f"Base-title   : {entry.series_base_title}"))
            lines.append(_field("", f"Base-filename: {entry.series_base_filename}"))
        else:
            lines.append(_field("Repeats", remain))
    else:
        lines.append(_field("Repeats", "None."))
    return "".join(lines) + "\n"


def format_header(style: ListStyle | int, now: datetime | None = None) -> str:
    """Headline for a list of recordings. Only BRIEF has one."""
    if ListStyle(style) is not ListStyle.BRIEF:
        return ""
    columns = f"{'#':<4}{'Ch':<8}{'Date':<11}{'Start':<6}{'End':<6}{'Title':<40}{'Profile':<10}\n"
    return _generated_by(now) + HEADER_RULE + "\n" + columns + HEADER_RULE + "\n"


def format_list(
    entries: Sequence[RecordingEntry],
    style: ListStyle | int = ListStyle.BRIEF,
    now: datetime | None = None,
) -> str:
    parts = [format_header(style, now)]
    parts.extend(format_entry(entry, style, idx, now) for idx, entry in enumerate(entries, start=1))
    return "".join(parts)


def format_series_list(series: Sequence[RecordingEntry], now: datetime | None = None) -> str:
    """Text table with one row per recurring series.

    Each entry is the next pending occurrence of its series.
    """
    columns = (
        f"{'#':<4}{'Ch':<8}{'Date':<11}{'Start':<6}{'End':<6}{'Type':<9}"
        f"{'Num':<9}{'Title':<25}{'Profile':<10}\n"
    )
    parts = [_generated_by(now), HEADER_RULE + "\n", columns, HEADER_RULE + "\n"]
    for idx, entry in enumerate(series, start=1):
        parts.append(
            f"{idx:03d} {entry.channel:<8}{_day_label(entry.start_timestamp)} "
            f"{_clock(entry.start_timestamp)} {_clock(entry.end_timestamp)} "
            f"{entry.recurrence_type.long_name:<9}"
            f"{entry.series_start_number:03d}/{entry.series_total:03d}  "
            f"{entry.series_base_title:<25}{format_profiles(entry):<10}\n"
        )
    return "".join(parts)


def _row_class(i: int, count: int) -> str:
    parity = "odd" if i % 2 else "even"
    return f"last-{parity}" if i == count - 1 else parity


def format_html_table(
    entries: Sequence[RecordingEntry],
    only_nonrecurring: bool = False,
    now: datetime | None = None,
) -> str:
    """HTML table of pending recordings."""
    rows = [e for e in entries if not (only_nonrecurring and e.is_recurring)]
    esc = html.escape
    parts = [
        f'<div class="generated">{esc(_generated_by(now).strip())}</div>\n',
        '<table class="recordings">\n',
        "<tr><th>#</th><th>Ch</th><th>Date</th><th>Start</th><th>End</th><th>Title</th><th>Profile</th></tr>\n",
    ]
    if not rows:
        parts.append('<tr class="empty"><td></td><td colspan="5">(No recordings)</td><td></td></tr>\n')
    for i, entry in enumerate(rows):
        parts.append(
            f'<tr class="{_row_class(i, len(rows))}">'
            f"<td>{i + 1:03d}</td>"
            f"<td>{esc(entry.channel)}</td>"
            f"<td>{_day_label(entry.start_timestamp)}</td>"
            f"<td>{_clock(entry.start_timestamp)}</td>"
            f"<td>{_clock(entry.end_timestamp)}</td>"
            f"<td>{esc(entry.title)}</td>"
            f"<td>{esc(format_profiles(entry))}</td></tr>\n"
        )
    parts.append("</table>\n")
    return "".join(parts)


def format_series_html_table(series: Sequence[RecordingEntry], now: datetime | None = None) -> str:
    """HTML table with one row per recurring series."""
    esc = html.escape
    parts = [
        f'<div class="generated">{esc(_generated_by(now).strip())}</div>\n',
        '<table class="series">\n',
        "<tr><th>#</th><th>Ch</th><th>Date</th><th>Start</th><th>End</th>"
        "<th>Type</th><th>Num</th><th>Title</th><th>Profile</th></tr>\n",
    ]
    for i, entry in enumerate(series):
        parts.append(
            f'<tr class="{_row_class(i, len(series))}">'
            f"<td>{i + 1:03d}</td>"
            f"<td>{esc(entry.channel)}</td>"
            f"<td>{_day_label(entry.start_timestamp)}</td>"
            f"<td>{_clock(entry.start_timestamp)}</td>"
            f"<td>{_clock(entry.end_timestamp)}</td>"
            f"<td>{entry.recurrence_type.long_name}</td>"
            f"<td>{entry.series_start_number:02d} / {entry.series_total:02d}</td>"
            f"<td>{esc(entry.series_base_title)}</td>"
            f"<td>{esc(format_profiles(entry))}</td></tr>\n"
        )
    parts.append("</table>\n")
    return "".join(parts)
