"""CSV input for recorded position streams."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from speed_track.models import PositionSample

logger = logging.getLogger(__name__)

REQUIRED_FIELDS: tuple[str, ...] = ("geoTime", "latitude", "longitude")


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int
    fieldnames: Sequence[str]


def _parse_row(row: dict[str, str]) -> PositionSample:
    lat = float(row["latitude"].strip())
    lon = float(row["longitude"].strip())
    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
        raise ValueError(f"coordinates out of range: {lat}, {lon}")
    return PositionSample(latitude=lat, longitude=lon, timestamp_ms=int(row["geoTime"].strip()))


def _check_fields(fieldnames: Sequence[str] | None) -> None:
    missing = [name for name in REQUIRED_FIELDS if name not in (fieldnames or ())]
    if missing:
        raise KeyError(f"CSV is missing required columns {missing}; found {list(fieldnames or ())}")


def load_samples(csv_path: str | Path) -> tuple[list[PositionSample], CsvSummary]:
    """Load all samples into memory.

    Returns:
        (samples, summary)
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[PositionSample] = []
    fieldnames: Sequence[str] = ()

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        fieldnames = reader.fieldnames or ()
        if fieldnames:
            _check_fields(fieldnames)
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_parse_row(row))
            except (ValueError, TypeError, AttributeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
        fieldnames=fieldnames,
    )
    if summary.rows_skipped > 0:
        logger.warning("%s 中有 %s 行解析失败已跳过", p, summary.rows_skipped)
    return parsed, summary


def write_samples(samples: Sequence[PositionSample], out_path: str | Path) -> None:
    """Write samples in the same column layout `load_samples` reads."""

    p = Path(out_path)
    with p.open("w", encoding="utf-8", newline="") as f:
        w = csv.DictWriter(f, fieldnames=[*REQUIRED_FIELDS, "speed"])
        w.writeheader()
        for s in samples:
            w.writerow(
                {
                    "geoTime": s.timestamp_ms,
                    "latitude": s.latitude,
                    "longitude": s.longitude,
                    "speed": s.speed_kmh,
                }
            )
