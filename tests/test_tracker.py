import math

import pytest

from speed_track.errors import (
    InvalidSampleOrdering,
    LocationError,
    PermissionDenied,
    SettingsResolutionRequired,
    UpstreamFailure,
)
from speed_track.models import LocationRequest, PositionSample, TrackerConfig
from speed_track.source import ReplaySource
from speed_track.status import Error, Loading, Ready, Stopped
from speed_track.tracker import SpeedTracker, speed_kmh

# Latitude offset (degrees, along a meridian) that is 0.2778 km from the equator.
LAT_0_2778_KM = math.degrees(0.2778 / 6371.0)


def _armed(config=None, source=None):
    tracker = SpeedTracker(source, config=config, clock=lambda: 0)
    seen = []
    tracker.channel.subscribe(seen.append)
    tracker.start()
    return tracker, seen


class TestSpeedKmh:
    def test_unit_conversion(self):
        prev = PositionSample(0.0, 0.0, 0)
        cur = PositionSample(LAT_0_2778_KM, 0.0, 1000)
        assert speed_kmh(prev, cur, 2) == 1000.08

    def test_rejects_non_advancing_time(self):
        prev = PositionSample(0.0, 0.0, 1000)
        with pytest.raises(InvalidSampleOrdering):
            speed_kmh(prev, PositionSample(0.1, 0.0, 1000), 2)
        with pytest.raises(InvalidSampleOrdering):
            speed_kmh(prev, PositionSample(0.1, 0.0, 999), 2)


class TestSpeedTracker:
    def test_initial_state(self):
        tracker = SpeedTracker(clock=lambda: 1234)
        assert tracker.status == Loading()
        assert tracker.stop_timer_ms == 1234
        assert tracker.history == []
        assert not tracker.active

    def test_ignores_updates_before_start(self):
        tracker = SpeedTracker(clock=lambda: 0)
        assert tracker.on_position_update(1.0, 1.0, 1000) is None
        assert tracker.history == []

    def test_first_two_samples_report_zero(self):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 0)
        tracker.on_position_update(0.5, 0.5, 5000)

        assert seen == [Loading(), Loading(), Ready(0.0), Ready(0.0)]
        assert [s.speed_kmh for s in tracker.history] == [0.0, 0.0]

    def test_moving_sample_reports_speed_and_resets_stop_timer(self):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 0)
        tracker.on_position_update(0.0, 0.0, 1000)
        sample = tracker.on_position_update(LAT_0_2778_KM, 0.0, 2000)

        assert sample is not None
        assert sample.speed_kmh == 1000.08
        assert seen[-1] == Ready(1000.08)
        assert tracker.stop_timer_ms == 2000
        assert tracker.history[-1] == sample

    def test_stationary_sample_holds_last_speed_without_emitting(self):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 0)
        tracker.on_position_update(0.0, 0.0, 1000)
        tracker.on_position_update(LAT_0_2778_KM, 0.0, 2000)
        emitted = len(seen)

        sample = tracker.on_position_update(LAT_0_2778_KM, 0.0, 12000)

        assert sample == PositionSample(LAT_0_2778_KM, 0.0, 12000, 1000.08)
        assert len(seen) == emitted
        assert tracker.status == Ready(1000.08)
        assert tracker.stop_timer_ms == 2000
        assert len(tracker.history) == 4

    def test_stop_after_threshold_emits_single_average(self):
        tracker, seen = _armed()
        tracker.on_position_update(1.0, 1.0, 0)
        tracker.on_position_update(1.0, 1.0, 5000)
        tracker.on_position_update(1.0, 1.0, 30000)

        assert seen.count(Stopped(0.0)) == 1
        assert [s for s in seen if isinstance(s, Stopped)] == [Stopped(0.0)]
        assert not tracker.active
        assert len(tracker.history) == 3

    def test_trip_average_over_recorded_speeds(self):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 0)
        tracker.on_position_update(0.0, 0.0, 1000)
        tracker.on_position_update(LAT_0_2778_KM, 0.0, 2000)
        tracker.on_position_update(LAT_0_2778_KM, 0.0, 12000)
        tracker.on_position_update(LAT_0_2778_KM, 0.0, 32000)

        # speeds recorded before the stopping sample: 0, 0, 1000.08, 1000.08
        assert seen[-1] == Stopped(500.04)

    def test_stop_not_triggered_below_threshold(self):
        tracker, seen = _armed()
        tracker.on_position_update(1.0, 1.0, 0)
        tracker.on_position_update(1.0, 1.0, 5000)
        tracker.on_position_update(1.0, 1.0, 29999)

        assert tracker.active
        assert not any(isinstance(s, Stopped) for s in seen)

    def test_custom_stop_threshold(self):
        tracker, seen = _armed(TrackerConfig(stop_threshold_ms=10_000))
        tracker.on_position_update(1.0, 1.0, 0)
        tracker.on_position_update(1.0, 1.0, 5000)
        tracker.on_position_update(1.0, 1.0, 10000)

        assert seen[-1] == Stopped(0.0)

    @pytest.mark.parametrize("bad_ts", [5000, 4000])
    def test_out_of_order_sample_is_dropped(self, bad_ts):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 0)
        tracker.on_position_update(0.0, 0.0, 5000)
        tracker.on_position_update(0.01, 0.0, 6000)
        history_len = len(tracker.history)
        timer = tracker.stop_timer_ms
        emitted = list(seen)

        assert tracker.on_position_update(0.02, 0.0, bad_ts + 1000) is None

        assert len(tracker.history) == history_len
        assert tracker.stop_timer_ms == timer
        assert seen == emitted
        assert tracker.rejected_samples == 1
        assert tracker.active

    def test_duplicate_timestamp_rejected_with_single_entry(self):
        tracker, seen = _armed()
        tracker.on_position_update(0.0, 0.0, 1000)
        assert tracker.on_position_update(0.0, 0.0, 1000) is None
        assert len(tracker.history) == 1
        assert tracker.rejected_samples == 1

    def test_no_ready_after_stopped_until_restart(self):
        tracker, seen = _armed()
        for ts in (0, 5000, 30000):
            tracker.on_position_update(1.0, 1.0, ts)
        emitted = len(seen)

        assert tracker.on_position_update(1.1, 1.1, 35000) is None
        assert len(seen) == emitted

        tracker.start()
        assert tracker.status == Loading()
        assert tracker.history == []
        assert tracker.stop_timer_ms == 0
        tracker.on_position_update(1.1, 1.1, 40000)
        assert tracker.status == Ready(0.0)

    def test_history_kept_across_restart_when_configured(self):
        tracker, _ = _armed(TrackerConfig(reset_history_on_start=False))
        for ts in (0, 5000, 30000):
            tracker.on_position_update(1.0, 1.0, ts)

        tracker.start()
        assert len(tracker.history) == 3

    def test_trip_average_empty(self):
        assert SpeedTracker(clock=lambda: 0).trip_average() is None


class TestTrackerWithSource:
    def test_subscribes_with_location_request(self):
        source = ReplaySource([])
        tracker, _ = _armed(source=source)

        assert source.subscribed
        assert source.last_request == LocationRequest(interval_ms=10_000, fastest_interval_ms=5_000)
        assert tracker.active

    def test_last_known_position_seeds_history(self):
        last_known = PositionSample(1.0, 1.0, 100, speed_kmh=42.0)
        source = ReplaySource([PositionSample(1.0, 1.0, 5000)], last_known=last_known)
        tracker, seen = _armed(source=source)

        assert tracker.history == [PositionSample(1.0, 1.0, 100)]
        assert seen == [Loading(), Loading()]

        source.replay()
        assert len(tracker.history) == 2
        assert tracker.status == Ready(0.0)

    def test_permission_denied_surfaces_as_error(self):
        denied = PermissionDenied("ACCESS_FINE_LOCATION not granted")
        source = ReplaySource([], updates_error=denied)
        tracker, seen = _armed(source=source)

        assert seen[-1] == Error(denied)
        assert seen[-1].cause is denied
        assert not tracker.active
        assert not source.subscribed

    def test_settings_resolution_carries_payload(self):
        source = ReplaySource([], updates_error=SettingsResolutionRequired("gps off", resolution="open-settings"))
        tracker, _ = _armed(source=source)

        assert isinstance(tracker.status, Error)
        assert tracker.status.cause.resolution == "open-settings"

    def test_rearm_after_caller_resolves_error(self):
        source = ReplaySource(
            [PositionSample(1.0, 1.0, 1000), PositionSample(1.0, 1.01, 6000)],
            updates_error=PermissionDenied("denied"),
        )
        tracker, _ = _armed(source=source)
        assert isinstance(tracker.status, Error)

        source.clear_errors()
        tracker.start()
        source.replay()
        assert tracker.status == Ready(0.0)
        assert len(tracker.history) == 2

    def test_generic_failure_wrapped_as_upstream(self):
        boom = RuntimeError("provider unavailable")
        source = ReplaySource([], current_position_error=boom)
        tracker, _ = _armed(source=source)

        cause = tracker.status.cause
        assert isinstance(cause, UpstreamFailure)
        assert cause.__cause__ is boom

    def test_async_failure_while_running(self):
        source = ReplaySource([PositionSample(1.0, 1.0, 1000)])
        tracker, _ = _armed(source=source)
        source.replay()

        source.fail(UpstreamFailure("lost fix"))
        assert isinstance(tracker.status, Error)
        assert not source.subscribed
        assert tracker.on_position_update(1.0, 1.0, 2000) is None

    def test_stop_cancels_updates_and_leaves_rest_unread(self):
        samples = [PositionSample(1.0, 1.0, ts) for ts in (0, 5000, 30000, 35000, 40000)]
        source = ReplaySource(samples)
        tracker, _ = _armed(source=source)

        delivered = source.replay()

        assert tracker.status == Stopped(0.0)
        assert delivered == 3
        assert source.remaining == 2
        assert not source.subscribed

    def test_batch_stops_processing_once_inactive(self):
        samples = [PositionSample(1.0, 1.0, ts) for ts in (0, 5000, 30000, 35000)]
        source = ReplaySource(samples)
        tracker, _ = _armed(source=source)

        source.replay(batch_size=10)
        assert len(tracker.history) == 3

    def test_explicit_stop(self):
        source = ReplaySource([])
        tracker, seen = _armed(source=source)
        emitted = len(seen)

        tracker.stop()
        assert not tracker.active
        assert not source.subscribed
        assert len(seen) == emitted


class TestRearmAndClock:
    def test_rearm_from_stopped_listener(self):
        tracker = SpeedTracker(clock=lambda: 0)
        stops = []

        def _restart_on_stop(status):
            if isinstance(status, Stopped):
                stops.append(status)
                tracker.start()

        tracker.channel.subscribe(_restart_on_stop)
        tracker.start()
        for ts in (0, 5000, 30000):
            tracker.on_position_update(1.0, 1.0, ts)

        assert stops == [Stopped(0.0)]
        assert tracker.active
        assert tracker.status == Loading()
        assert tracker.history == []
        tracker.on_position_update(1.0, 1.0, 35000)
        assert tracker.status == Ready(0.0)

    def test_rearm_from_listener_keeps_new_subscription(self):
        source = ReplaySource([PositionSample(1.0, 1.0, ts) for ts in (0, 5000, 30000, 35000)])
        tracker = SpeedTracker(source, clock=lambda: 0)
        tracker.channel.subscribe(lambda s: tracker.start() if isinstance(s, Stopped) else None)
        tracker.start()

        source.replay()

        assert source.subscribed
        assert [s.timestamp_ms for s in tracker.history] == [35000]

    def test_stale_last_known_not_appended_to_kept_history(self):
        source = ReplaySource([], last_known=PositionSample(1.0, 1.0, 100))
        tracker, _ = _armed(TrackerConfig(reset_history_on_start=False), source=source)
        tracker.on_position_update(1.0, 1.0, 1000)
        tracker.on_position_update(1.0, 1.1, 5000)

        tracker.stop()
        tracker.start()

        timestamps = [s.timestamp_ms for s in tracker.history]
        assert timestamps == [100, 1000, 5000]
        assert timestamps == sorted(timestamps)
        assert tracker.rejected_samples == 1
        assert tracker.on_position_update(1.0, 1.1, 4000) is None

    def test_default_clock_arms_on_first_sample(self):
        tracker = SpeedTracker()
        seen = []
        tracker.channel.subscribe(seen.append)
        tracker.start()

        for ts in (0, 5000, 30000):
            tracker.on_position_update(1.0, 1.0, ts)

        assert seen[-1] == Stopped(0.0)
        assert tracker.stop_timer_ms == 0

    def test_default_clock_ignores_rejected_first_step(self):
        tracker = SpeedTracker()
        tracker.start()
        tracker.on_position_update(1.0, 1.0, 10000)
        tracker.on_position_update(1.0, 1.0, 9000)
        tracker.on_position_update(1.0, 1.0, 15000)
        tracker.on_position_update(1.0, 1.0, 39999)

        assert tracker.stop_timer_ms == 10000
        assert tracker.active


class TestOrderingErrorKind:
    def test_ordering_error_is_not_a_source_error(self):
        exc = InvalidSampleOrdering(1000, 1000)
        assert isinstance(exc, ValueError)
        assert not isinstance(exc, LocationError)

    def test_ordering_error_raised_by_source_is_wrapped(self):
        raised = InvalidSampleOrdering(5, 4)
        source = ReplaySource([], current_position_error=raised)
        tracker, _ = _armed(source=source)

        assert isinstance(tracker.status.cause, UpstreamFailure)
        assert tracker.status.cause.__cause__ is raised
