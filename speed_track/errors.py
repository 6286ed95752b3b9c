"""Errors raised by position sources and the speed tracker."""

from __future__ import annotations

from typing import Any


class LocationError(Exception):
    """Base class for everything a position source can fail with."""


class PermissionDenied(LocationError):
    """Location access is not authorized; the caller must request it and re-arm."""


class SettingsResolutionRequired(LocationError):
    """Device location settings reject the request.

    Attributes:
        resolution: Opaque payload the caller hands to its resolution flow
            (e.g. a settings screen intent). Not interpreted by the tracker.
    """

    def __init__(self, message: str, resolution: Any = None) -> None:
        super().__init__(message)
        self.resolution = resolution


class UpstreamFailure(LocationError):
    """Generic failure reported by the position source."""


class InvalidSampleOrdering(ValueError):
    """A sample's timestamp does not advance past the previous stored sample."""

    def __init__(self, previous_ms: int, timestamp_ms: int) -> None:
        super().__init__(f"zero or negative time not allowed: {previous_ms} -> {timestamp_ms}")
        self.previous_ms = previous_ms
        self.timestamp_ms = timestamp_ms
