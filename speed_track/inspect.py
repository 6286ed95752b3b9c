"""Diagnostics for a recorded position stream before replaying it."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

from speed_track.geo import haversine_m
from speed_track.models import PositionSample
from speed_track.timeutils import DeltaStats, delta_stats


@dataclass(frozen=True, slots=True)
class InspectResult:
    """High-level stream inspection result."""

    samples: int
    min_time_ms: int | None
    max_time_ms: int | None
    delta: DeltaStats | None
    min_lat: float | None
    max_lat: float | None
    min_lon: float | None
    max_lon: float | None
    duplicate_timestamps: int
    out_of_order: int
    stationary: int
    distance_m: float


def inspect_samples(samples: Sequence[PositionSample]) -> InspectResult:
    """Inspect samples in delivery order.

    `duplicate_timestamps` and `out_of_order` count the steps the tracker would
    reject; `stationary` counts repeats of the previous coordinates.
    """

    if not samples:
        return InspectResult(
            samples=0,
            min_time_ms=None,
            max_time_ms=None,
            delta=None,
            min_lat=None,
            max_lat=None,
            min_lon=None,
            max_lon=None,
            duplicate_timestamps=0,
            out_of_order=0,
            stationary=0,
            distance_m=0.0,
        )

    dupe = 0
    backwards = 0
    stationary = 0
    distance = 0.0
    for prev, cur in zip(samples, samples[1:]):
        if cur.timestamp_ms == prev.timestamp_ms:
            dupe += 1
        elif cur.timestamp_ms < prev.timestamp_ms:
            backwards += 1
        if cur.same_position(prev):
            stationary += 1
        else:
            distance += haversine_m(prev.latitude, prev.longitude, cur.latitude, cur.longitude)

    times = [s.timestamp_ms for s in samples]
    lats = [s.latitude for s in samples]
    lons = [s.longitude for s in samples]
    return InspectResult(
        samples=len(samples),
        min_time_ms=min(times),
        max_time_ms=max(times),
        delta=delta_stats(times),
        min_lat=min(lats),
        max_lat=max(lats),
        min_lon=min(lons),
        max_lon=max(lons),
        duplicate_timestamps=dupe,
        out_of_order=backwards,
        stationary=stationary,
        distance_m=distance,
    )
