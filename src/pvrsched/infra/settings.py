"""
Application settings for pvrsched.

This module defines all configuration settings for pvrsched using Pydantic BaseSettings.
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings using Pydantic BaseSettings."""

    # Tuner layout, fixed for the lifetime of a store
    max_video: int = Field(default=2, alias="MAX_VIDEO")
    max_entries: int = Field(default=512, alias="MAX_ENTRIES")

    # Transcoding profiles
    default_transcoding_profile: str = Field(default="normal", alias="DEFAULT_TRANSCODING_PROFILE")
    transcoding_profiles: str = Field(default="normal,high,low", alias="TRANSCODING_PROFILES")  # Comma-separated
    profiles_file: str | None = Field(default=None, alias="PROFILES_FILE")

    # Series handling
    mangling_prefix: str = Field(default="_", alias="MANGLING_PREFIX")
    exclusion_capacity: int = Field(default=1024, alias="EXCLUSION_CAPACITY")

    # Files
    datadir: str = Field(default="/data/pvr/", alias="DATADIR")
    db_file: str = Field(default="pvrsched_db.json", alias="DB_FILE")

    # Length of a recording when only a start time is given
    default_duration_hour: int = Field(default=0, alias="DEFAULT_DURATION_HOUR")
    default_duration_min: int = Field(default=59, alias="DEFAULT_DURATION_MIN")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    env: str = Field(default="dev", alias="ENV")  # dev|prod|test

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    def profile_names(self) -> list[str]:
        """Return the configured profile names, default profile first."""
        names = [p.strip() for p in self.transcoding_profiles.split(",") if p.strip()]
        if self.default_transcoding_profile not in names:
            names.insert(0, self.default_transcoding_profile)
        return names


def _resolve_env_file() -> str | None:
    # 1) Explicit override
    explicit = os.getenv("PVRSCHED_ENV_FILE")
    if explicit and Path(explicit).is_file():
        return explicit

    # 2) CWD .env
    cwd_env = Path.cwd() / ".env"
    if cwd_env.is_file():
        return str(cwd_env)

    # 3) Walk up from this file to find nearest .env
    here = Path(__file__).resolve()
    for parent in here.parents:
        candidate = parent / ".env"
        if candidate.is_file():
            return str(candidate)
    return None


# Global settings instance (load from best-effort .env discovery)
_env_file = _resolve_env_file()
settings = Settings(_env_file=_env_file) if _env_file else Settings()  # type: ignore[call-arg]
