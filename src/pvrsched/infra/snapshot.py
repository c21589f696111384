"""
JSON snapshot persistence for the schedule.

Only one record per recurring series is written: its lowest numbered
pending occurrence (the master), together with the recurrence settings, the
occurrence numbers that were deleted from the series and the sequence
numbers of the remaining occurrences. Loading re-expands each master with
those numbers excluded, so a reloaded store holds the same recordings under
the same sequence numbers and series ids.

Format::

    {
      "version": 1,
      "next_sequence_number": 5,
      "next_series_id": 2,
      "recordings": [
        {"video": 0, "seq": 1, "title": "...", "channel": "...",
         "filename": "...", "start": 1704654000, "end": 1704657600,
         "profiles": ["normal"]},
        {"video": 0, "title": "...", "channel": "...", "filename": "...",
         "start": 1704740400, "end": 1704744000, "profiles": ["normal"],
         "series_id": 1, "sequence_numbers": [2, 4],
         "recurrence": {"type": 2, "count": 3, "mangling": 1, "prefix": "_",
                        "start_number": 1, "excluded": [2]}},
        ...
      ]
    }

Standalone records carry ``seq``. Series masters carry ``series_id``,
``sequence_numbers`` and ``recurrence`` instead. Documents without
identifiers load under fresh ones.
"""

from __future__ import annotations

import json
import os
import posixpath
import tempfile
from pathlib import Path
from typing import Any

import structlog

from ..domain.recording import RecordingEntry, new_recording
from ..scheduling.exclusions import DEFAULT_EXCLUSION_CAPACITY, SeriesExclusionTracker
from ..scheduling.store import ScheduleStore
from .exceptions import SnapshotError

_log = structlog.get_logger(__name__)

SNAPSHOT_VERSION = 1


def _standalone_record(entry: RecordingEntry) -> dict[str, Any]:
    return {
        "video": entry.video_resource_id,
        "seq": entry.sequence_number,
        "title": entry.title,
        "channel": entry.channel,
        "filename": entry.filename,
        "start": entry.start_timestamp,
        "end": entry.end_timestamp,
        "profiles": list(entry.transcoding_profiles),
    }


def _master_record(master: RecordingEntry, excluded: list[int], members: list[RecordingEntry]) -> dict[str, Any]:
    record = _standalone_record(master)
    del record["seq"]
    record["series_id"] = master.series_id
    record["sequence_numbers"] = [m.sequence_number for m in members]
    record["title"] = master.series_base_title
    record["filename"] = posixpath.join(posixpath.dirname(master.filename), master.series_base_filename)
    record["recurrence"] = {
        "type": int(master.recurrence_type),
        "count": master.recurrence_count,
        "mangling": int(master.title_mangling_mode),
        "prefix": master.mangling_prefix,
        "start_number": master.series_start_number,
        "excluded": excluded,
    }
    return record


def dump_snapshot(store: ScheduleStore, exclusion_capacity: int = DEFAULT_EXCLUSION_CAPACITY) -> dict[str, Any]:
    """Build the snapshot document for the current store contents.

    Raises:
        ExclusionCapacityExceeded: if a series has more deleted occurrences
            than ``exclusion_capacity``.
    """
    snap = store.snapshot()
    tracker = SeriesExclusionTracker(exclusion_capacity)
    records: list[dict[str, Any]] = []

    series: dict[int, list[RecordingEntry]] = {}
    for entry in snap.all_pending():
        if entry.is_recurring:
            series.setdefault(entry.series_id, []).append(entry)
        else:
            records.append(_standalone_record(entry))

    for series_id, members in series.items():
        members.sort(key=lambda e: e.series_start_number)
        master = members[0]
        present = {m.series_start_number for m in members}
        first = master.series_start_number
        for number in range(first, first + master.recurrence_count):
            if number not in present:
                tracker.require_excluded(series_id, number)
        records.append(_master_record(master, list(tracker.iterate(series_id)), members))

    records.sort(key=lambda r: (r["start"], r["video"]))
    return {
        "version": SNAPSHOT_VERSION,
        "next_sequence_number": snap.next_sequence_number,
        "next_series_id": snap.next_series_id,
        "recordings": records,
    }


def load_snapshot(data: dict[str, Any], store: ScheduleStore) -> int:
    """Insert every record of a snapshot document into the store.

    Records that no longer fit (collision or full tuner) are logged and
    skipped. Stored sequence numbers, series ids and counters are restored.
    Returns the number of recordings committed.

    Raises:
        SnapshotError: if the document is not a supported snapshot, or its
            identifiers are inconsistent.
    """
    if not isinstance(data, dict) or data.get("version") != SNAPSHOT_VERSION:
        raise SnapshotError(f"Unsupported snapshot version: {data.get('version') if isinstance(data, dict) else data!r}")

    committed = 0
    for record in data.get("recordings", []):
        try:
            recurrence = record.get("recurrence")
            entry = new_recording(
                record["title"],
                record["filename"],
                int(record["start"]),
                int(record["end"]),
                record.get("channel", ""),
                default_profile=store.profiles.default_profile,
                profiles=record.get("profiles"),
                recurring=recurrence is not None,
                recurrence_type=recurrence["type"] if recurrence else 0,
                recurrence_count=int(recurrence["count"]) if recurrence else 0,
                title_mangling=int(recurrence.get("mangling", 0)) if recurrence else 0,
                mangling_prefix=recurrence.get("prefix", "_") if recurrence else "_",
                series_start_number=int(recurrence.get("start_number", 1)) if recurrence else 1,
            )
            video = int(record.get("video", 0))
            if recurrence is not None:
                numbers = record.get("sequence_numbers")
                series_id = int(record["series_id"]) if "series_id" in record else None
            else:
                numbers = [record["seq"]] if "seq" in record else None
                series_id = None
        except (KeyError, TypeError, ValueError) as exc:
            raise SnapshotError(f"Malformed snapshot record {record!r}: {exc}") from exc

        excluded = recurrence.get("excluded", []) if recurrence else None
        try:
            result = store.insert(video, entry, excluded=excluded, sequence_numbers=numbers, series_id=series_id)
        except (TypeError, ValueError) as exc:
            raise SnapshotError(f"Inconsistent identifiers in snapshot record {record!r}: {exc}") from exc
        if result.ok:
            committed += len(result.entries)
        else:
            _log.warning(
                "snapshot_record_skipped",
                title=record["title"],
                video=video,
                code=result.error_code.value if result.error_code else None,
            )
    try:
        store.restore_counters(int(data.get("next_sequence_number", 1)), int(data.get("next_series_id", 1)))
    except (TypeError, ValueError) as exc:
        raise SnapshotError(f"Malformed snapshot counters: {exc}") from exc
    _log.info("snapshot_loaded", recordings=committed)
    return committed


def save_snapshot(path: Path | str, store: ScheduleStore, exclusion_capacity: int = DEFAULT_EXCLUSION_CAPACITY) -> None:
    """Write the store to ``path``, replacing it atomically."""
    path = Path(path)
    document = dump_snapshot(store, exclusion_capacity)
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=path.name, suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(document, f, indent=2)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    _log.info("snapshot_saved", path=str(path), records=len(document["recordings"]))


def read_snapshot(path: Path | str, store: ScheduleStore) -> int:
    """Load ``path`` into the store. A missing file is an empty schedule."""
    path = Path(path)
    if not path.exists():
        _log.info("snapshot_missing", path=str(path))
        return 0
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise SnapshotError(f"Cannot parse snapshot {path}: {exc}") from exc
    return load_snapshot(data, store)
