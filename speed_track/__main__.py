"""Module entry point: python -m speed_track ..."""

from __future__ import annotations

from speed_track.cli import main


if __name__ == "__main__":
    raise SystemExit(main())
