"""
Custom exceptions for pvrsched operations.

This module provides the base exception classes shared by every layer.
Scheduling specific errors live in :mod:`pvrsched.scheduling.exceptions`.
"""


class PvrSchedError(Exception):
    """Base exception for all pvrsched errors."""

    pass


class ValidationError(PvrSchedError, ValueError):
    """Raised when user supplied input fails validation."""

    pass


class SnapshotError(PvrSchedError):
    """Raised when a schedule snapshot cannot be read or is malformed."""

    pass
