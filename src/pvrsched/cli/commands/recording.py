from __future__ import annotations

import json
import re
from contextlib import contextmanager
from dataclasses import asdict
from pathlib import Path
from typing import Any, Iterator

import typer

from ...domain.recording import RecordingEntry, RecurrenceType, new_recording
from ...infra.exceptions import PvrSchedError, ValidationError
from ...infra.logging import get_logger
from ...infra.settings import settings
from ...infra.snapshot import read_snapshot, save_snapshot
from ...presentation.formatting import (
    ListStyle,
    format_entry,
    format_html_table,
    format_list,
    format_series_html_table,
    format_series_list,
)
from ...registries.profile_registry import StaticProfileRegistry
from ...scheduling.datetime_util import bump_past_start, parse_clock, parse_date, to_timestamp
from ...scheduling.exceptions import ScheduleErrorCode, ScheduleInternalError, UnknownRecurrenceType
from ...scheduling.store import ScheduleResult, ScheduleStore

app = typer.Typer(name="recording", help="Scheduled recording operations")

_ERROR_MESSAGES = {
    ScheduleErrorCode.OVERLAP_CONFLICT: "Recording collides with existing recordings",
    ScheduleErrorCode.CAPACITY_EXCEEDED: "No free resource at specified time",
    ScheduleErrorCode.NOT_FOUND: "No recording with that number",
    ScheduleErrorCode.INVALID_PROFILE: "Unknown transcoding profile",
}


def _db_path(db: str | None) -> Path:
    return Path(db or settings.db_file)


def _open_store(db: str | None, registry: StaticProfileRegistry | None = None) -> ScheduleStore:
    registry = registry or StaticProfileRegistry.from_settings(settings)
    store = ScheduleStore.from_settings(settings, registry)
    read_snapshot(_db_path(db), store)
    return store


def _fail(code: str, message: str, json_output: bool) -> None:
    if json_output:
        typer.echo(json.dumps({"status": "error", "code": code, "message": message}, indent=2))
    else:
        typer.echo(f"Error: {message}", err=True)
    raise typer.Exit(1)


@contextmanager
def _command_errors(json_output: bool) -> Iterator[None]:
    """Turn scheduler exceptions into an error message and exit status 1."""
    try:
        yield
    except typer.Exit:
        raise
    except ScheduleInternalError as e:
        get_logger(__name__).error("internal_schedule_error", error=str(e))
        _fail("INTERNAL_ERROR", str(e), json_output)
    except ValidationError as e:
        _fail("VALIDATION_ERROR", str(e), json_output)
    except PvrSchedError as e:
        _fail("ERROR", str(e), json_output)
    except ValueError as e:
        _fail("INVALID_ARGUMENT", str(e), json_output)


def _fail_result(result: ScheduleResult, json_output: bool) -> None:
    code = result.error_code or ScheduleErrorCode.NOT_FOUND
    message = result.message or _ERROR_MESSAGES[code]
    _fail(code.value, f"{_ERROR_MESSAGES[code]}. {message}", json_output)


def _entry_payload(entry: RecordingEntry) -> dict[str, Any]:
    payload = asdict(entry)
    payload["recurrence_type"] = entry.recurrence_type.long_name
    payload["title_mangling_mode"] = int(entry.title_mangling_mode)
    return payload


def _parse_repeat(repeat: str | None) -> RecurrenceType:
    if repeat is None:
        return RecurrenceType.NONE
    try:
        return RecurrenceType.parse(repeat)
    except UnknownRecurrenceType:
        raise ValidationError(f"Unknown repeat pattern '{repeat}'") from None


def _default_filename(title: str) -> str:
    core = re.sub(r"[^\w.-]+", "_", title.strip()) or "recording"
    return f"{settings.datadir.rstrip('/')}/{core}.mpg"


@app.command("add")
def add_recording(
    title: str = typer.Option(..., "--title", help="Title of the recording"),
    channel: str = typer.Option(..., "--channel", help="Channel name"),
    start_time: str = typer.Option(..., "--start", help="Start time in HH:MM format"),
    end_time: str | None = typer.Option(None, "--end", help="End time in HH:MM format (default: start + configured duration)"),
    day: str = typer.Option("today", "--day", help="YYYY-MM-DD, today, tomorrow or a weekday (mon..sun)"),
    video: int | None = typer.Option(None, "--video", help="Tuner to use (default: first free tuner)"),
    filename: str | None = typer.Option(None, "--filename", help="Output file (default: derived from title)"),
    profiles: list[str] | None = typer.Option(None, "--profile", help="Transcoding profile (repeatable)"),
    repeat: str | None = typer.Option(None, "--repeat", help="daily, weekly, monthly, Mon-Fri, Sat-Sun, Mon-Thu, Tue-Fri, Wed-Fri, Tue-Thu"),
    count: int = typer.Option(1, "--count", help="Number of occurrences of a repeated recording"),
    mangling: int = typer.Option(1, "--mangling", help="Series title: 0 = append date, 1 = append (nn/mm)"),
    start_number: int = typer.Option(1, "--start-number", help="Number of the first occurrence"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """Schedule a single or repeated recording.

    Examples:
        pvrsched recording add --title News --channel SVT1 --start 19:30 --end 20:00
        pvrsched recording add --title News --channel SVT1 --day mon --start 19:30 --repeat Mon-Fri --count 10
    """
    with _command_errors(json_output):
        registry = StaticProfileRegistry.from_settings(settings)
        store = _open_store(db, registry)

        y, m, d = parse_date(day)
        sh, smin = parse_clock(start_time)
        start = to_timestamp(y, m, d, sh, smin, 0)
        if end_time:
            eh, emin = parse_clock(end_time)
            end = to_timestamp(y, m, d, eh, emin, 0)
            if end <= start:
                end = to_timestamp(y, m, d + 1, eh, emin, 0)
        else:
            end = start + settings.default_duration_hour * 3600 + settings.default_duration_min * 60
        start, end = bump_past_start(start, end)

        entry = new_recording(
            title,
            filename or _default_filename(title),
            start,
            end,
            channel,
            default_profile=registry.default_profile,
            profiles=registry.resolve(profiles),
            recurring=repeat is not None,
            recurrence_type=_parse_repeat(repeat),
            recurrence_count=count if repeat else 0,
            title_mangling=mangling,
            mangling_prefix=settings.mangling_prefix,
            series_start_number=start_number,
        )

        videos = [video] if video is not None else list(range(store.max_video))
        result = store.insert(videos[0], entry.copy())
        for v in videos[1:]:
            if result.ok:
                break
            result = store.insert(v, entry.copy())
        if not result.ok:
            _fail_result(result, json_output)

        save_snapshot(_db_path(db), store, settings.exclusion_capacity)

        if json_output:
            payload = {
                "status": "ok",
                "sequence_number": result.sequence_number,
                "recordings": [_entry_payload(e) for e in result.entries],
            }
            typer.echo(json.dumps(payload, indent=2))
        else:
            typer.echo(f"Recording(s) added, last number: {result.sequence_number}")
            for e in result.entries:
                typer.echo(format_entry(e, ListStyle.ONE_LINE), nl=False)


@app.command("delete")
def delete_recording(
    seq: int = typer.Argument(..., help="Sequence number of the recording"),
    series: bool = typer.Option(False, "--series", help="Delete every occurrence of the series"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """Delete a recording, or its whole series."""
    with _command_errors(json_output):
        store = _open_store(db)
        result = store.delete_by_sequence(seq, delete_whole_series=series)
        if not result.ok:
            _fail_result(result, json_output)
        save_snapshot(_db_path(db), store, settings.exclusion_capacity)

        removed = [e.sequence_number for e in result.entries]
        if json_output:
            typer.echo(json.dumps({"status": "ok", "deleted": removed}, indent=2))
        else:
            typer.echo(f"Deleted {len(removed)} recording(s): {', '.join(str(n) for n in removed)}")


@app.command("list")
def list_recordings(
    max_count: int = typer.Option(0, "--max", help="Show at most this many recordings (0 = all)"),
    style: int = typer.Option(int(ListStyle.BRIEF), "--style", help="0 line, 1 short, 2 long, 3 brief, 4 fancy, 9 timestamps"),
    html: bool = typer.Option(False, "--html", help="Render an HTML table"),
    single_only: bool = typer.Option(False, "--single-only", help="HTML only: skip repeated recordings"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """List pending recordings on all tuners, earliest first."""
    with _command_errors(json_output):
        store = _open_store(db)
        entries = store.list_all(max_count)
        if json_output:
            typer.echo(json.dumps({"status": "ok", "recordings": [_entry_payload(e) for e in entries]}, indent=2))
        elif html:
            typer.echo(format_html_table(entries, only_nonrecurring=single_only), nl=False)
        else:
            try:
                list_style = ListStyle(style)
            except ValueError:
                raise ValidationError(f"Unknown list style {style}") from None
            typer.echo(format_list(entries, list_style), nl=False)


@app.command("show")
def show_recording(
    seq: int = typer.Argument(..., help="Sequence number of the recording"),
    series: bool = typer.Option(False, "--series", help="Show every pending occurrence of the series"),
    style: int = typer.Option(int(ListStyle.RECORD_LONG), "--style", help="0 line, 1 short, 2 long, 3 brief, 4 fancy, 9 timestamps"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """Show one recording."""
    with _command_errors(json_output):
        store = _open_store(db)
        if json_output:
            found = store.find_by_sequence(seq)
            if found is None:
                _fail(ScheduleErrorCode.NOT_FOUND.value, f"No recording with sequence number {seq}", json_output)
            entry, _ = found
            entries = store.series_entries(entry.series_id) if series and entry.is_recurring else [entry]
            typer.echo(json.dumps({"status": "ok", "recordings": [_entry_payload(e) for e in entries]}, indent=2))
            return
        text = store.dump_one(seq, include_series=series, style=style)
        if text is None:
            _fail(ScheduleErrorCode.NOT_FOUND.value, f"No recording with sequence number {seq}", json_output)
        typer.echo(text, nl=False)


@app.command("next")
def next_recording(
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """Show the next recording due on any tuner."""
    with _command_errors(json_output):
        store = _open_store(db)
        found = store.find_next_scheduled()
        if json_output:
            payload: dict[str, Any] = {"status": "ok", "recording": None, "video": None}
            if found is not None:
                payload["recording"] = _entry_payload(found[0])
                payload["video"] = found[1]
            typer.echo(json.dumps(payload, indent=2))
        elif found is None:
            typer.echo("(No recordings)")
        else:
            typer.echo(format_entry(found[0], ListStyle.FANCY), nl=False)


@app.command("profile")
def set_profile(
    seq: int = typer.Argument(..., help="Sequence number of the recording"),
    profile: str = typer.Argument(..., help="Transcoding profile name"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """Change the transcoding profile of a recording."""
    with _command_errors(json_output):
        store = _open_store(db)
        result = store.update_profile(seq, profile)
        if not result.ok:
            _fail_result(result, json_output)
        save_snapshot(_db_path(db), store, settings.exclusion_capacity)
        if json_output:
            typer.echo(json.dumps({"status": "ok", "sequence_number": seq, "profile": profile}, indent=2))
        else:
            typer.echo(f"Recording {seq} now uses profile @{profile}")


@app.command("series")
def list_series(
    max_count: int = typer.Option(0, "--max", help="Show at most this many series (0 = all)"),
    html: bool = typer.Option(False, "--html", help="Render an HTML table"),
    json_output: bool = typer.Option(False, "--json", help="Output in JSON format"),
    db: str | None = typer.Option(None, "--db", help="Schedule snapshot file"),
):
    """List repeated recordings, one row per series."""
    with _command_errors(json_output):
        store = _open_store(db)
        series = store.list_series(max_count)
        if json_output:
            typer.echo(json.dumps({"status": "ok", "series": [_entry_payload(e) for e in series]}, indent=2))
        elif html:
            typer.echo(format_series_html_table(series), nl=False)
        else:
            typer.echo(format_series_list(series), nl=False)
