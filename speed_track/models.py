"""Data models and fixed constants for speed tracking."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Final

EARTH_RADIUS_KM: Final[float] = 6371.0
SPEED_PRECISION: Final[int] = 2
STOP_THRESHOLD_MS: Final[int] = 30_000
UPDATE_INTERVAL_MS: Final[int] = 10_000
FASTEST_UPDATE_INTERVAL_MS: Final[int] = 5_000
MS_PER_HOUR: Final[int] = 3_600_000

DEFAULT_TZ: Final[str] = "UTC"


@dataclass(frozen=True, slots=True)
class PositionSample:
    """A single position fix, optionally carrying the speed computed for it.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        timestamp_ms: Milliseconds since an arbitrary (but shared) epoch.
        speed_kmh: Speed in km/h. 0.0 until computed against a previous sample.
    """

    latitude: float
    longitude: float
    timestamp_ms: int
    speed_kmh: float = 0.0

    def same_position(self, other: PositionSample) -> bool:
        """True when both samples have exactly the same coordinates."""

        return self.latitude == other.latitude and self.longitude == other.longitude

    def with_speed(self, speed_kmh: float) -> PositionSample:
        return replace(self, speed_kmh=speed_kmh)


@dataclass(frozen=True, slots=True)
class LocationRequest:
    """Update cadence requested from a position source.

    Both intervals are hints; the tracker never enforces them.
    """

    interval_ms: int = UPDATE_INTERVAL_MS
    fastest_interval_ms: int = FASTEST_UPDATE_INTERVAL_MS
    high_accuracy: bool = True


@dataclass(frozen=True, slots=True)
class TrackerConfig:
    """Parameters controlling speed computation and stop detection."""

    stop_threshold_ms: int = STOP_THRESHOLD_MS
    precision: int = SPEED_PRECISION
    # Trips are independent by default; set False to keep averaging across re-arms.
    reset_history_on_start: bool = True
