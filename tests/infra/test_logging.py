"""Tests for the structlog processors."""

from __future__ import annotations

import structlog

from pvrsched.domain.recording import RecordingEntry
from pvrsched.infra.logging import get_logger, shorten_entries


def test_shorten_entries_renders_recordings_compactly():
    entry = RecordingEntry("News", "SVT1", "/f.mpg", 100, 200, ["normal"], sequence_number=3)
    event = shorten_entries(None, "info", {"event": "x", "entry": entry, "entries": [entry], "video": 1})

    assert event["entry"] == "#3 'News'"
    assert event["entries"] == ["#3 'News'"]
    assert event["video"] == 1
    assert event["event"] == "x"


def test_get_logger_binds_service():
    logger = get_logger("pvrsched.test")
    assert structlog.get_context(logger)["service"] == "pvrsched"
