"""
Transcoding profile registry.

The scheduler only needs to know which profile names exist and which one
is the default. Profiles come either from the comma separated
``TRANSCODING_PROFILES`` setting or from a YAML file shaped like::

    default: normal
    profiles:
      normal: {video_bitrate: 3000000}
      high: {video_bitrate: 6000000}

(``profiles`` may also be a plain list of names.)
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import structlog
import yaml

from ..infra.exceptions import ValidationError

if TYPE_CHECKING:
    from ..infra.settings import Settings

_log = structlog.get_logger(__name__)


class ProfileRegistry(Protocol):
    """What the scheduler asks of a profile registry."""

    default_profile: str

    def profile_exists(self, name: str) -> bool: ...


class StaticProfileRegistry:
    """An immutable set of profile names with a default."""

    def __init__(self, names: list[str], default_profile: str) -> None:
        if not default_profile:
            raise ValidationError("A default transcoding profile is required")
        self._names = {n for n in names if n}
        self._names.add(default_profile)
        self.default_profile = default_profile

    def profile_exists(self, name: str) -> bool:
        return name in self._names

    def names(self) -> list[str]:
        return sorted(self._names)

    def resolve(self, requested: list[str] | None) -> list[str]:
        """Keep the known profiles of a construction-time request.

        Unknown names are dropped; when nothing is left the default profile
        is used.
        """
        kept = []
        for name in requested or []:
            if self.profile_exists(name):
                kept.append(name)
            else:
                _log.warning("unknown_profile_dropped", profile=name, default=self.default_profile)
        return kept or [self.default_profile]

    @classmethod
    def from_settings(cls, settings: Settings) -> StaticProfileRegistry:
        if settings.profiles_file:
            return cls.from_yaml(Path(settings.profiles_file), default_profile=settings.default_transcoding_profile)
        return cls(settings.profile_names(), settings.default_transcoding_profile)

    @classmethod
    def from_yaml(cls, path: Path, default_profile: str | None = None) -> StaticProfileRegistry:
        """Load profile names from a YAML file.

        A ``default`` key in the file wins over ``default_profile``.
        """
        with open(path, "r", encoding="utf-8") as f:
            data: Any = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValidationError(f"Profile file {path} must contain a mapping")

        profiles = data.get("profiles") or []
        if isinstance(profiles, dict):
            names = [str(k) for k in profiles]
        elif isinstance(profiles, list):
            names = [str(p) for p in profiles]
        else:
            raise ValidationError(f"'profiles' in {path} must be a list or a mapping")

        default = data.get("default") or default_profile or (names[0] if names else None)
        if not default:
            raise ValidationError(f"Profile file {path} defines no profiles")
        _log.info("profiles_loaded", path=str(path), count=len(names), default=default)
        return cls(names, str(default))
