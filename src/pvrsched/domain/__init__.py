"""Domain types for scheduled recordings."""

from .recording import RecordingEntry, RecurrenceType, TitleMangling, new_recording

__all__ = ["RecordingEntry", "RecurrenceType", "TitleMangling", "new_recording"]
