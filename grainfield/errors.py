"""
Grainfield Errors - Domain-specific error types.

Error hierarchy:
    GrainfieldError (base)
    ├── MissingAssetError
    ├── UnresolvedTapListError
    ├── RendezvousMissedError
    ├── DegenerateIndexError
    └── WirePayloadError

The first three are locally recoverable: node modules catch them, report
them once and skip the request. DegenerateIndexError is raised when an
engine is built, never from a trigger tick.
"""

from __future__ import annotations

from typing import Any


class GrainfieldError(Exception):
    """Base error for all grainfield errors."""

    kind = "error"

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class MissingAssetError(GrainfieldError):
    """Raised when a referenced audio asset is not loaded."""

    kind = "missing_asset"

    def __init__(
        self,
        asset_id: Any,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message or f"Audio asset {asset_id!r} is not loaded", details)
        self.asset_id = asset_id


class UnresolvedTapListError(GrainfieldError):
    """
    Raised when playback is requested for a path whose IR has not arrived.

    This is a missing-data problem: the path setup step did not complete
    before the start command was broadcast.
    """

    kind = "unresolved_tap_list"

    def __init__(
        self,
        path_id: Any,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            message or f"Tap list for path {path_id!r} has not been received",
            details,
        )
        self.path_id = path_id


class RendezvousMissedError(GrainfieldError):
    """
    Raised when a rendezvous time is already in the past.

    This is a timing problem (latency, skew), distinct from
    UnresolvedTapListError. The event is dropped, never shifted.
    """

    kind = "rendezvous_missed"

    def __init__(
        self,
        target_time: float,
        now: float,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            f"Rendezvous at {target_time:.3f} missed (shared clock at {now:.3f})",
            details,
        )
        self.target_time = target_time
        self.now = now

    @property
    def lateness(self) -> float:
        """Seconds between the rendezvous and the clock reading."""
        return self.now - self.target_time


class DegenerateIndexError(GrainfieldError):
    """Raised when a loudness index is built from no segments."""

    kind = "degenerate_index"

    def __init__(self, message: str = "At least one segment is required"):
        super().__init__(message)


class WirePayloadError(GrainfieldError):
    """Raised when an IR payload cannot be decoded."""

    kind = "wire_payload"
