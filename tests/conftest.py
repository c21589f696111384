"""
Global test configuration for pvrsched.

This module provides global pytest configuration and fixtures.
"""

import sys
from pathlib import Path

import pytest

# Ensure the project src directory is importable without relying on external environment.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from pvrsched.registries.profile_registry import StaticProfileRegistry  # noqa: E402
from pvrsched.scheduling.store import ScheduleStore  # noqa: E402


@pytest.fixture
def profiles() -> StaticProfileRegistry:
    return StaticProfileRegistry(["normal", "high", "low"], "normal")


@pytest.fixture
def store(profiles) -> ScheduleStore:
    """Two tuners with room for eight recordings each."""
    return ScheduleStore(max_video=2, max_entries=8, profiles=profiles)


@pytest.fixture(autouse=True, scope="session")
def _route_logs_through_stdlib():
    """Send structlog output to stdlib logging so it never lands in CLI stdout."""
    from pvrsched.infra.logging import configure_logging

    configure_logging("WARNING")
