import pytest

from speed_track.inspect import inspect_samples
from speed_track.models import PositionSample
from speed_track.timeutils import delta_stats, format_elapsed


def test_inspect_empty():
    res = inspect_samples([])
    assert res.samples == 0
    assert res.delta is None
    assert res.distance_m == 0.0


def test_inspect_counts_rejectable_steps():
    samples = [
        PositionSample(0.0, 0.0, 0),
        PositionSample(0.0, 0.01, 5000),
        PositionSample(0.0, 0.01, 5000),
        PositionSample(0.0, 0.02, 4000),
        PositionSample(0.0, 0.02, 15000),
    ]
    res = inspect_samples(samples)

    assert res.samples == 5
    assert res.duplicate_timestamps == 1
    assert res.out_of_order == 1
    assert res.stationary == 2
    assert res.min_time_ms == 0
    assert res.max_time_ms == 15000
    assert res.distance_m == pytest.approx(2 * 1111.95, rel=1e-3)
    assert res.delta is not None
    assert res.delta.count == 2


def test_delta_stats_ignores_non_advancing_steps():
    stats = delta_stats([0, 5000, 5000, 4000, 14000])
    assert stats is not None
    assert stats.count == 2
    assert stats.min_s == 5.0
    assert stats.max_s == 10.0
    assert delta_stats([1000]) is None


def test_format_elapsed():
    assert format_elapsed(0) == "00:00:00"
    assert format_elapsed(3_725_000) == "01:02:05"
