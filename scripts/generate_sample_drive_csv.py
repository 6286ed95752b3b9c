from __future__ import annotations

import argparse
import csv
import math
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Final

KM_PER_DEG_LAT: Final[float] = 111.195


@dataclass(frozen=True, slots=True)
class Leg:
    speed_kmh: float
    heading_deg: float
    seconds: float


def _epoch_ms(dt: datetime) -> int:
    return int(dt.timestamp() * 1000)


def generate_rows(
    *,
    seed: int,
    start_utc: datetime,
    start_lat: float,
    start_lon: float,
    legs: list[Leg],
    stop_seconds: float,
    jitter_rate: float,
) -> list[dict[str, str]]:
    """Generate a drive: moving legs sampled every 5-10 s, then a stationary tail.

    With probability `jitter_rate` a row repeats the previous timestamp, which the
    tracker is expected to drop.
    """

    rng = random.Random(seed)
    t_ms = _epoch_ms(start_utc)
    lat, lon = start_lat, start_lon
    out: list[dict[str, str]] = []

    def _emit(ts: int) -> None:
        out.append({"geoTime": str(ts), "latitude": f"{lat:.7f}", "longitude": f"{lon:.7f}"})

    _emit(t_ms)
    for leg in legs:
        leg_end = t_ms + int(leg.seconds * 1000)
        while t_ms < leg_end:
            step_ms = rng.randint(5_000, 10_000)
            t_ms += step_ms
            # speed varies +-10% around the leg's cruising speed
            dist_km = leg.speed_kmh * rng.uniform(0.9, 1.1) * step_ms / 3_600_000
            heading = math.radians(leg.heading_deg)
            lat += dist_km * math.cos(heading) / KM_PER_DEG_LAT
            lon += dist_km * math.sin(heading) / (KM_PER_DEG_LAT * math.cos(math.radians(lat)))
            _emit(t_ms)
            if rng.random() < jitter_rate:
                _emit(t_ms)

    stop_end = t_ms + int(stop_seconds * 1000)
    while t_ms < stop_end:
        t_ms += rng.randint(5_000, 10_000)
        _emit(t_ms)
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate a synthetic drive CSV for replay demos/testing.")
    p.add_argument("--out", type=str, default="sample_data/track.csv", help="Output CSV path")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument("--start", type=str, default="2025-01-01 08:00:00", help="Start time (UTC)")
    p.add_argument("--lat", type=float, default=48.8566, help="Start latitude")
    p.add_argument("--lon", type=float, default=2.3522, help="Start longitude")
    p.add_argument("--stop-seconds", type=float, default=45.0, help="Length of the stationary tail")
    p.add_argument("--jitter-rate", type=float, default=0.05, help="Probability of a duplicated timestamp")
    args = p.parse_args()

    start_utc = datetime.fromisoformat(args.start).replace(tzinfo=timezone.utc)
    legs = [
        Leg(speed_kmh=30.0, heading_deg=90.0, seconds=120.0),
        Leg(speed_kmh=50.0, heading_deg=45.0, seconds=180.0),
        Leg(speed_kmh=15.0, heading_deg=180.0, seconds=60.0),
    ]
    rows = generate_rows(
        seed=args.seed,
        start_utc=start_utc,
        start_lat=args.lat,
        start_lon=args.lon,
        legs=legs,
        stop_seconds=args.stop_seconds,
        jitter_rate=args.jitter_rate,
    )

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=["geoTime", "latitude", "longitude"])
        w.writeheader()
        w.writerows(rows)

    print(f"Generated: {out_path} (rows={len(rows)}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
