"""Schedule Store - the authoritative per-tuner schedule.

One ordered list of pending recordings per tuner ("video"), sorted by start
time after every mutation, plus one optional ongoing recording per tuner.
The ongoing slot is written by the capture side and read by overlap
detection.

Thread-safe. A single lock guards every tuner's list, the ongoing slots and
the sequence and series counters; a recurring insert runs entirely under
it, so no reader ever sees a half-committed series.

Write path:
    insert(video, entry)
    delete_by_sequence(seq, delete_whole_series)
    update_profile(seq, profile)
    pop_top(video) / delete_top(video) / start_ongoing(video)
    set_ongoing(video, entry) / complete_ongoing(video)

Read path:
    find_by_sequence(seq), find_next_scheduled()
    list_all(max_count), list_series(max_count), entries_for(video)
    dump_one(seq, include_series, style), snapshot()
"""

from __future__ import annotations

import threading
from collections.abc import Collection, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from ..domain.recording import RecordingEntry
from ..infra.exceptions import ValidationError
from ..presentation.formatting import ListStyle, format_entry
from .exceptions import ScheduleErrorCode, ScheduleInternalError
from .overlap import find_collision
from .recurrence import align_request, expand

if TYPE_CHECKING:
    from ..infra.settings import Settings
    from ..registries.profile_registry import ProfileRegistry

_log = structlog.get_logger(__name__)


@dataclass
class ScheduleResult:
    """Outcome of a store operation.

    ``sequence_number`` is the last sequence number assigned by an insert.
    ``entries`` holds the committed entries of an insert, or the removed
    entries of a delete, which then belong to the caller.
    """

    ok: bool
    error_code: ScheduleErrorCode | None = None
    sequence_number: int | None = None
    entries: list[RecordingEntry] = field(default_factory=list)
    message: str | None = None


@dataclass
class StoreSnapshot:
    """Copy of the whole store taken under the lock."""

    pending: dict[int, list[RecordingEntry]]
    ongoing: dict[int, RecordingEntry | None]
    next_sequence_number: int
    next_series_id: int

    def all_pending(self) -> list[RecordingEntry]:
        return [e for video in sorted(self.pending) for e in self.pending[video]]


def _start_key(entry: RecordingEntry) -> int:
    return entry.start_timestamp


class ScheduleStore:
    """Pending and ongoing recordings for ``max_video`` tuners."""

    def __init__(
        self,
        max_video: int,
        max_entries: int,
        profiles: ProfileRegistry,
    ) -> None:
        if max_video < 1 or max_entries < 1:
            raise ValueError(f"max_video and max_entries must be >= 1 (got {max_video}, {max_entries})")
        self._max_video = max_video
        self._max_entries = max_entries
        self._profiles = profiles
        self._pending: dict[int, list[RecordingEntry]] = {v: [] for v in range(max_video)}
        self._ongoing: dict[int, RecordingEntry | None] = {v: None for v in range(max_video)}
        self._lock = threading.Lock()
        self._next_sequence = 1
        self._next_series_id = 1

    @classmethod
    def from_settings(cls, settings: Settings, profiles: ProfileRegistry | None = None) -> ScheduleStore:
        if profiles is None:
            from ..registries.profile_registry import StaticProfileRegistry

            profiles = StaticProfileRegistry.from_settings(settings)
        return cls(settings.max_video, settings.max_entries, profiles)

    @property
    def max_video(self) -> int:
        return self._max_video

    @property
    def max_entries(self) -> int:
        return self._max_entries

    @property
    def profiles(self) -> ProfileRegistry:
        return self._profiles

    def _check_video(self, video: int) -> None:
        if not 0 <= video < self._max_video:
            raise ValueError(f"Unknown video resource {video}; {self._max_video} configured")

    def __len__(self) -> int:
        with self._lock:
            return sum(len(entries) for entries in self._pending.values())

    # ------------------------------------------------------------------
    # Insert
    # ------------------------------------------------------------------

    def is_overlapping(self, video: int, candidate: RecordingEntry) -> bool:
        """True if the candidate (or any occurrence of it) collides on this tuner."""
        self._check_video(video)
        with self._lock:
            if candidate.is_recurring:
                candidate = align_request(candidate)
            return find_collision(candidate, self._pending[video], self._ongoing[video]) is not None

    def insert(
        self,
        video: int,
        entry: RecordingEntry,
        *,
        excluded: Collection[int] | None = None,
        sequence_numbers: Sequence[int] | None = None,
        series_id: int | None = None,
    ) -> ScheduleResult:
        """Commit a recording, or a whole recurring series, to a tuner.

        Either everything requested is committed or nothing is. For a
        recurring request, occurrence numbers in ``excluded`` are skipped.

        ``sequence_numbers`` and ``series_id`` restore previously assigned
        identifiers (one sequence number per committed entry, in occurrence
        order) instead of allocating fresh ones. The counters are moved past
        restored values so they are never handed out again.

        Raises:
            ValidationError: if a recurring request has no occurrence left
                to commit (``recurrence_count < 1`` or every number excluded).
            ValueError: if restored identifiers do not match the request or
                are already in use.
            ScheduleInternalError: if date arithmetic fails; nothing is
                committed in that case.
        """
        self._check_video(video)
        with self._lock:
            if entry.is_recurring:
                return self._expand_and_commit(
                    video, entry, frozenset(excluded or ()), sequence_numbers, series_id
                )

            pending = self._pending[video]
            collision = find_collision(entry, pending, self._ongoing[video])
            if collision is not None:
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.OVERLAP_CONFLICT,
                    message=f"Collides with existing recording '{collision.title}'",
                )
            if len(pending) >= self._max_entries:
                _log.warning("tuner_full", video=video, max_entries=self._max_entries)
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.CAPACITY_EXCEEDED,
                    message=f"No free slot on video {video} (maximum {self._max_entries})",
                )

            (entry.sequence_number,) = self._take_sequence_numbers(1, sequence_numbers)
            entry.video_resource_id = video
            pending.append(entry)
            pending.sort(key=_start_key)
            _log.info("recording_added", seq=entry.sequence_number, title=entry.title, video=video)
            return ScheduleResult(ok=True, sequence_number=entry.sequence_number, entries=[entry])

    def _in_use(self) -> set[int]:
        used = {e.sequence_number for entries in self._pending.values() for e in entries}
        used.update(e.sequence_number for e in self._ongoing.values() if e is not None)
        return used

    def _take_sequence_numbers(self, count: int, restored: Sequence[int] | None) -> list[int]:
        if restored is None:
            first = self._next_sequence
            self._next_sequence += count
            return list(range(first, first + count))

        numbers = [int(n) for n in restored]
        if len(numbers) != count:
            raise ValueError(f"Expected {count} sequence numbers, got {len(numbers)}")
        clashes = self._in_use().intersection(numbers)
        if len(set(numbers)) != count or clashes or min(numbers) < 1:
            raise ValueError(f"Sequence numbers {numbers} are not unique and positive")
        self._next_sequence = max(self._next_sequence, max(numbers) + 1)
        return numbers

    def _check_series_id(self, restored: int) -> None:
        in_use = any(
            e.is_recurring and e.series_id == restored for entries in self._pending.values() for e in entries
        )
        if restored < 1 or in_use:
            raise ValueError(f"Series id {restored} is invalid or already in use")

    def _take_series_id(self, restored: int | None) -> int:
        if restored is None:
            series_id = self._next_series_id
            self._next_series_id += 1
            return series_id
        self._next_series_id = max(self._next_series_id, restored + 1)
        return restored

    def restore_counters(self, next_sequence_number: int, next_series_id: int) -> None:
        """Move the counters forward to at least the given values."""
        with self._lock:
            self._next_sequence = max(self._next_sequence, int(next_sequence_number))
            self._next_series_id = max(self._next_series_id, int(next_series_id))

    def _expand_and_commit(
        self,
        video: int,
        request: RecordingEntry,
        excluded: frozenset[int],
        sequence_numbers: Sequence[int] | None = None,
        series_id: int | None = None,
    ) -> ScheduleResult:

        pending = self._pending[video]
        first = request.series_start_number
        needed = sum(1 for n in range(first, first + request.recurrence_count) if n not in excluded)
        if needed == 0:
            raise ValidationError(f"Every occurrence of series '{request.title}' is excluded")

        try:
            aligned = align_request(request)
            collision = find_collision(aligned, pending, self._ongoing[video], excluded)
            if collision is aligned:
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.OVERLAP_CONFLICT,
                    message=f"Occurrences of series '{request.title}' overlap each other",
                )
            if collision is not None:
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.OVERLAP_CONFLICT,
                    message=f"Collides with existing recording '{collision.title}'",
                )
            if len(pending) + needed > self._max_entries:
                _log.warning(
                    "tuner_full",
                    video=video,
                    requested=needed,
                    used=len(pending),
                    max_entries=self._max_entries,
                )
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.CAPACITY_EXCEEDED,
                    message=f"No room for {needed} recordings on video {video}",
                )
            occurrences = expand(aligned, excluded)
        except ScheduleInternalError as exc:
            _log.error("series_expansion_failed", title=request.title, video=video, error=str(exc))
            raise

        if series_id is not None:
            self._check_series_id(series_id)
        numbers = self._take_sequence_numbers(len(occurrences), sequence_numbers)
        series_id = self._take_series_id(series_id)
        for occurrence, seq in zip(occurrences, numbers):
            occurrence.sequence_number = seq
            occurrence.series_id = series_id
            occurrence.video_resource_id = video
            pending.append(occurrence)
        pending.sort(key=_start_key)

        last = occurrences[-1].sequence_number
        _log.info(
            "series_added",
            series_id=series_id,
            title=request.title,
            video=video,
            count=len(occurrences),
            last_seq=last,
        )
        return ScheduleResult(ok=True, sequence_number=last, entries=list(occurrences))

    # ------------------------------------------------------------------
    # Delete / update
    # ------------------------------------------------------------------

    def _locate(self, seq: int) -> tuple[int, int] | None:
        for video in range(self._max_video):
            for idx, entry in enumerate(self._pending[video]):
                if entry.sequence_number == seq:
                    return video, idx
        return None

    def delete_by_sequence(self, seq: int, delete_whole_series: bool = False) -> ScheduleResult:
        """Remove a recording, or every pending occurrence of its series.

        The removed entries are returned in ``entries``.
        """
        with self._lock:
            found = self._locate(seq)
            if found is None:
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.NOT_FOUND,
                    message=f"No recording with sequence number {seq}",
                )
            video, idx = found
            pending = self._pending[video]
            target = pending[idx]

            if delete_whole_series and target.is_recurring:
                removed = [e for e in pending if e.is_recurring and e.series_id == target.series_id]
                pending[:] = [e for e in pending if not (e.is_recurring and e.series_id == target.series_id)]
            else:
                removed = [pending.pop(idx)]
            pending.sort(key=_start_key)

            _log.info(
                "recording_deleted",
                seq=seq,
                video=video,
                whole_series=delete_whole_series and target.is_recurring,
                removed=len(removed),
            )
            return ScheduleResult(ok=True, sequence_number=seq, entries=removed)

    def update_profile(self, seq: int, profile: str) -> ScheduleResult:
        """Replace the primary transcoding profile of a pending recording."""
        if not self._profiles.profile_exists(profile):
            _log.info("profile_rejected", seq=seq, profile=profile)
            return ScheduleResult(
                ok=False,
                error_code=ScheduleErrorCode.INVALID_PROFILE,
                message=f"Unknown transcoding profile '{profile}'",
            )
        with self._lock:
            found = self._locate(seq)
            if found is None:
                return ScheduleResult(
                    ok=False,
                    error_code=ScheduleErrorCode.NOT_FOUND,
                    message=f"No recording with sequence number {seq}",
                )
            video, idx = found
            entry = self._pending[video][idx]
            entry.transcoding_profiles[0] = profile
            _log.info("profile_updated", seq=seq, profile=profile)
            return ScheduleResult(ok=True, sequence_number=seq, entries=[entry.copy()])

    # ------------------------------------------------------------------
    # Capture side: head of queue and ongoing slot
    # ------------------------------------------------------------------

    def peek_top(self, video: int) -> RecordingEntry | None:
        self._check_video(video)
        with self._lock:
            pending = self._pending[video]
            return pending[0].copy() if pending else None

    def pop_top(self, video: int) -> RecordingEntry | None:
        """Remove and return the earliest pending recording of a tuner."""
        self._check_video(video)
        with self._lock:
            return self._pop_top_locked(video)

    def _pop_top_locked(self, video: int) -> RecordingEntry | None:
        pending = self._pending[video]
        if not pending:
            _log.warning("no_pending_recordings", video=video)
            return None
        entry = pending.pop(0)
        pending.sort(key=_start_key)
        return entry

    def delete_top(self, video: int) -> bool:
        """Discard the earliest pending recording of a tuner."""
        return self.pop_top(video) is not None

    def start_ongoing(self, video: int) -> RecordingEntry | None:
        """Move the earliest pending recording into the ongoing slot.

        Raises:
            ValueError: if a recording is already ongoing on this tuner.
        """
        self._check_video(video)
        with self._lock:
            current = self._ongoing[video]
            if current is not None:
                raise ValueError(
                    f"Video {video} is already recording #{current.sequence_number} '{current.title}'"
                )
            entry = self._pop_top_locked(video)
            if entry is not None:
                self._ongoing[video] = entry
                _log.info("recording_started", seq=entry.sequence_number, video=video)
            return entry

    def set_ongoing(self, video: int, entry: RecordingEntry | None) -> None:
        self._check_video(video)
        with self._lock:
            if entry is not None:
                entry.video_resource_id = video
            self._ongoing[video] = entry

    def get_ongoing(self, video: int) -> RecordingEntry | None:
        self._check_video(video)
        with self._lock:
            entry = self._ongoing[video]
            return entry.copy() if entry is not None else None

    def complete_ongoing(self, video: int) -> RecordingEntry | None:
        """Clear the ongoing slot and return what was there."""
        self._check_video(video)
        with self._lock:
            entry, self._ongoing[video] = self._ongoing[video], None
            if entry is not None:
                _log.info("recording_completed", seq=entry.sequence_number, video=video)
            return entry

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_sequence(self, seq: int) -> tuple[RecordingEntry, int] | None:
        with self._lock:
            found = self._locate(seq)
            if found is None:
                return None
            video, idx = found
            return self._pending[video][idx].copy(), video

    def find_next_scheduled(self) -> tuple[RecordingEntry, int] | None:
        """Return the globally earliest pending recording and its tuner."""
        with self._lock:
            best: tuple[RecordingEntry, int] | None = None
            for video in range(self._max_video):
                pending = self._pending[video]
                if pending and (best is None or pending[0].start_timestamp < best[0].start_timestamp):
                    best = (pending[0], video)
            if best is None:
                return None
            return best[0].copy(), best[1]

    def entries_for(self, video: int) -> list[RecordingEntry]:
        self._check_video(video)
        with self._lock:
            return [e.copy() for e in self._pending[video]]

    def series_entries(self, series_id: int) -> list[RecordingEntry]:
        """Pending occurrences of a series, by start time."""
        with self._lock:
            found = [
                e.copy()
                for video in range(self._max_video)
                for e in self._pending[video]
                if e.is_recurring and e.series_id == series_id
            ]
        found.sort(key=_start_key)
        return found

    def list_all(self, max_count: int = 0, sort_merged: bool = True) -> list[RecordingEntry]:
        """All pending recordings over every tuner.

        Merged into one list ordered by start time unless ``sort_merged`` is
        False, in which case tuners are listed one after the other. A
        positive ``max_count`` truncates the result.
        """
        with self._lock:
            merged = [e.copy() for video in range(self._max_video) for e in self._pending[video]]
        if sort_merged:
            merged.sort(key=_start_key)
        if max_count > 0:
            merged = merged[:max_count]
        return merged

    def list_series(self, max_count: int = 0) -> list[RecordingEntry]:
        """The lowest numbered pending occurrence of every recurring series.

        Ordered by the start of each series' next occurrence.
        """
        firsts: dict[int, RecordingEntry] = {}
        nexts: dict[int, int] = {}
        for entry in self.list_all():
            if not entry.is_recurring:
                continue
            sid = entry.series_id
            nexts.setdefault(sid, entry.start_timestamp)
            if sid not in firsts or entry.series_start_number < firsts[sid].series_start_number:
                firsts[sid] = entry
        series = sorted(firsts.values(), key=lambda e: nexts[e.series_id])
        if max_count > 0:
            series = series[:max_count]
        return series

    def list_key_values(self, style: ListStyle | int = ListStyle.ONE_LINE) -> list[tuple[int, str]]:
        """(sequence number, rendered text) for every pending recording, by start time."""
        return [
            (entry.sequence_number, format_entry(entry, style, idx))
            for idx, entry in enumerate(self.list_all(), start=1)
        ]

    def dump_one(
        self,
        seq: int,
        include_series: bool = False,
        style: ListStyle | int = ListStyle.RECORD_SHORT,
    ) -> str | None:
        """Render one recording, or every pending occurrence of its series.

        Returns None when the sequence number is unknown.
        """
        found = self.find_by_sequence(seq)
        if found is None:
            return None
        entry, _ = found
        if include_series and entry.is_recurring:
            entries = self.series_entries(entry.series_id)
        else:
            entries = [entry]
        return "".join(format_entry(e, style, idx) for idx, e in enumerate(entries, start=1))

    def snapshot(self) -> StoreSnapshot:
        with self._lock:
            return StoreSnapshot(
                pending={v: [e.copy() for e in entries] for v, entries in self._pending.items()},
                ongoing={v: (e.copy() if e is not None else None) for v, e in self._ongoing.items()},
                next_sequence_number=self._next_sequence,
                next_series_id=self._next_series_id,
            )
