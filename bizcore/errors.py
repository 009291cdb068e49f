"""
Error taxonomy shared by every component.

NotFound and InvalidInput are caller mistakes and are never retried.
StorageUnavailable is only raised by the calling layer once its bounded
retries on transient database failures are exhausted.
"""

from typing import Iterable, List, Optional


class BizCoreError(Exception):
    """Base class for all errors raised by this package."""


class NotFound(BizCoreError, LookupError):
    """Unknown business type, tenant or feedback id."""

    def __init__(self, message: str, missing: Optional[Iterable[str]] = None):
        super().__init__(message)
        self.missing: List[str] = list(missing or [])


class InvalidInput(BizCoreError, ValueError):
    """Request is malformed (bounds, duplicates, empty category, ...)."""


class Conflict(BizCoreError):
    """Operation collides with the current state of a row, e.g. re-exporting a used correction."""


class StateTransitionError(BizCoreError):
    """Illegal feedback lifecycle transition."""

    def __init__(self, current: str, requested: str, message: Optional[str] = None):
        super().__init__(message or f"Illegal training status transition: {current} -> {requested}")
        self.current = current
        self.requested = requested


class StorageUnavailable(BizCoreError):
    """Transient storage failures persisted after all retries."""
