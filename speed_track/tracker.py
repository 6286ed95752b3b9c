"""Speed tracking engine: instantaneous speed, stop detection and trip average."""

from __future__ import annotations

import logging
import time
from typing import Callable, Sequence

from speed_track.channel import StatusChannel
from speed_track.errors import InvalidSampleOrdering, LocationError, UpstreamFailure
from speed_track.geo import great_circle_distance_km, round_half_up
from speed_track.models import MS_PER_HOUR, LocationRequest, PositionSample, TrackerConfig
from speed_track.source import PositionSource
from speed_track.status import Error, Loading, Ready, Status, Stopped

logger = logging.getLogger(__name__)


def now_ms() -> int:
    """Wall-clock Unix epoch milliseconds."""

    return int(time.time() * 1000)


def speed_kmh(previous: PositionSample, current: PositionSample, precision: int) -> float:
    """Speed between two samples in km/h, rounded half-up.

    Raises:
        InvalidSampleOrdering: If `current` is not strictly later than `previous`.
    """

    elapsed_ms = current.timestamp_ms - previous.timestamp_ms
    if elapsed_ms <= 0:
        raise InvalidSampleOrdering(previous.timestamp_ms, current.timestamp_ms)
    dist_km = great_circle_distance_km(previous.latitude, current.latitude, previous.longitude, current.longitude)
    return round_half_up(dist_km / elapsed_ms * MS_PER_HOUR, precision)


class SpeedTracker:
    """Turns a stream of position fixes into `Status` updates.

    Stop detection runs only when a stationary sample (same coordinates as the
    previous one) arrives, comparing that sample's timestamp with the last time
    movement was seen. An injected `clock` must share the samples' epoch; without
    one, the stop timer is armed by the first sample accepted after `start()`.

    Calls must be serialized; the tracker holds no lock.
    """

    def __init__(
        self,
        source: PositionSource | None = None,
        *,
        config: TrackerConfig | None = None,
        request: LocationRequest | None = None,
        clock: Callable[[], int] | None = None,
        channel: StatusChannel | None = None,
    ) -> None:
        self._source = source
        self.config = config or TrackerConfig()
        self.request = request or LocationRequest()
        self._clock = clock or now_ms
        self._arm_on_first_sample = clock is None
        self._timer_pending = False
        self.channel = channel or StatusChannel(Loading())
        self.history: list[PositionSample] = []
        self.stop_timer_ms: int = self._clock()
        self.active = False
        self.rejected_samples = 0

    @property
    def status(self) -> Status:
        return self.channel.value

    def start(self) -> None:
        """Arm the engine for a new trip.

        Must not be called while already active.
        """

        self.channel.publish(Loading())
        self.stop_timer_ms = self._clock()
        self._timer_pending = self._arm_on_first_sample
        if self.config.reset_history_on_start:
            self.history.clear()
        self.rejected_samples = 0
        self.active = True
        logger.info("开始记录行程，stop_timer=%s", self.stop_timer_ms)

        if self._source is None:
            return
        try:
            last_known = self._source.request_current_position()
            if last_known is not None:
                self._seed(last_known)
            self._source.request_updates(self.request, self)
        except Exception as exc:
            self.on_source_error(exc)

    def _seed(self, last_known: PositionSample) -> None:
        if self.history and last_known.timestamp_ms <= self.history[-1].timestamp_ms:
            self.rejected_samples += 1
            logger.warning(
                "忽略过期的最近位置：%s <= %s", last_known.timestamp_ms, self.history[-1].timestamp_ms
            )
            return
        self.history.append(last_known.with_speed(0.0))

    def stop(self) -> None:
        """Deactivate and unsubscribe from the source without emitting a status."""

        self._deactivate()

    def on_locations(self, samples: Sequence[PositionSample]) -> None:
        """Process one source callback carrying zero or more samples, in order."""

        for sample in samples:
            if not self.active:
                break
            self.on_position_update(sample.latitude, sample.longitude, sample.timestamp_ms)

    def on_position_update(self, lat: float, lng: float, timestamp_ms: int) -> PositionSample | None:
        """Process a single raw position.

        The sample is stored before its status is published, so listeners see it
        in `history` and may re-arm the tracker from a `Stopped` callback.

        Returns:
            The sample appended to history, or None if the engine is inactive or the
            sample was rejected for not advancing in time.
        """

        if not self.active:
            logger.debug("未在记录，忽略 %s 的定位点", timestamp_ms)
            return None

        candidate = PositionSample(latitude=lat, longitude=lng, timestamp_ms=int(timestamp_ms))
        logger.debug("定位更新：%s", candidate)

        try:
            sample, status = self._evaluate(candidate)
        except InvalidSampleOrdering as exc:
            self.rejected_samples += 1
            logger.warning("丢弃定位点：%s", exc)
            return None

        self.history.append(sample)
        if isinstance(status, Stopped):
            self._deactivate()
        if status is not None:
            self.channel.publish(status)
        return sample

    def _evaluate(self, candidate: PositionSample) -> tuple[PositionSample, Status | None]:
        if self.history:
            last = self.history[-1]
            if candidate.timestamp_ms <= last.timestamp_ms:
                raise InvalidSampleOrdering(last.timestamp_ms, candidate.timestamp_ms)

        if self._timer_pending:
            self.stop_timer_ms = candidate.timestamp_ms
            self._timer_pending = False

        if len(self.history) < 2:
            return candidate, Ready(candidate.speed_kmh)

        if candidate.same_position(last):
            return candidate.with_speed(last.speed_kmh), self._check_stopped(candidate.timestamp_ms)

        self.stop_timer_ms = candidate.timestamp_ms
        sample = candidate.with_speed(speed_kmh(last, candidate, self.config.precision))
        return sample, Ready(sample.speed_kmh)

    def _check_stopped(self, now: int) -> Stopped | None:
        if now - self.stop_timer_ms < self.config.stop_threshold_ms:
            return None
        average = self.trip_average()
        logger.info("静止 %sms，判定停止；平均速度 %s km/h", now - self.stop_timer_ms, average)
        return Stopped(average)

    def trip_average(self) -> float | None:
        """Mean of all recorded speeds, rounded; None for an empty history."""

        if not self.history:
            return None
        mean = sum(s.speed_kmh for s in self.history) / len(self.history)
        return round_half_up(mean, self.config.precision)

    def on_source_error(self, exc: Exception) -> None:
        """Surface a source failure as `Error` and wait for the caller to re-arm."""

        cause = exc
        if not isinstance(exc, LocationError):
            cause = UpstreamFailure(str(exc) or type(exc).__name__)
            cause.__cause__ = exc
        logger.warning("定位服务失败：%r", cause)
        self._deactivate()
        self.channel.publish(Error(cause))

    def _deactivate(self) -> None:
        self.active = False
        if self._source is not None:
            self._source.cancel_updates()
