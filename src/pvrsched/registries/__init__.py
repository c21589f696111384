"""Registries consulted by the scheduler."""

from .profile_registry import ProfileRegistry, StaticProfileRegistry

__all__ = ["ProfileRegistry", "StaticProfileRegistry"]
