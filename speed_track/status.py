"""Externally observable tracker status.

`Status` is a closed union; consumers dispatch on it with `match`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeAlias


@dataclass(frozen=True, slots=True)
class Loading:
    """No speed is known yet."""


@dataclass(frozen=True, slots=True)
class Error:
    cause: Exception


@dataclass(frozen=True, slots=True)
class Ready:
    speed_kmh: float = 0.0


@dataclass(frozen=True, slots=True)
class Stopped:
    """The trip ended; `average_kmh` is None when no speed was ever recorded."""

    average_kmh: float | None = None


Status: TypeAlias = Loading | Error | Ready | Stopped
