"""Position source capability and an in-memory replay implementation."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol, Sequence

from speed_track.models import LocationRequest, PositionSample

logger = logging.getLogger(__name__)


class PositionSink(Protocol):
    """Receiver of position batches and asynchronous source failures."""

    def on_locations(self, samples: Sequence[PositionSample]) -> None: ...

    def on_source_error(self, exc: Exception) -> None: ...


class PositionSource(Protocol):
    """What the tracker needs from a platform location provider.

    `request_updates` may raise `PermissionDenied` or `SettingsResolutionRequired`;
    `request_current_position` returns None when no fix is known yet.
    """

    def request_updates(self, request: LocationRequest, sink: PositionSink) -> None: ...

    def cancel_updates(self) -> None: ...

    def request_current_position(self) -> PositionSample | None: ...


class ReplaySource:
    """Replays recorded samples into a subscribed sink.

    Args:
        samples: Samples in delivery order (not re-sorted; out-of-order input is kept
            so the tracker's ordering checks can be exercised).
        last_known: Position returned by `request_current_position`.
        updates_error: Raised from `request_updates` (e.g. settings or permission).
        current_position_error: Raised from `request_current_position`.
    """

    def __init__(
        self,
        samples: Iterable[PositionSample],
        *,
        last_known: PositionSample | None = None,
        updates_error: Exception | None = None,
        current_position_error: Exception | None = None,
    ) -> None:
        self._samples = list(samples)
        self._cursor = 0
        self._last_known = last_known
        self._updates_error = updates_error
        self._current_position_error = current_position_error
        self._sink: PositionSink | None = None
        self.last_request: LocationRequest | None = None

    @property
    def subscribed(self) -> bool:
        return self._sink is not None

    @property
    def remaining(self) -> int:
        return len(self._samples) - self._cursor

    def request_updates(self, request: LocationRequest, sink: PositionSink) -> None:
        if self._updates_error is not None:
            raise self._updates_error
        self.last_request = request
        self._sink = sink
        logger.debug(
            "回放已订阅：interval=%sms fastest=%sms，待投递 %s 个定位点",
            request.interval_ms,
            request.fastest_interval_ms,
            self.remaining,
        )

    def cancel_updates(self) -> None:
        self._sink = None

    def request_current_position(self) -> PositionSample | None:
        if self._current_position_error is not None:
            raise self._current_position_error
        return self._last_known

    def clear_errors(self) -> None:
        """Forget injected failures, as if the user granted permission or fixed settings."""

        self._updates_error = None
        self._current_position_error = None

    def replay(self, batch_size: int = 1) -> int:
        """Deliver pending samples to the sink until exhausted or cancelled.

        Returns:
            Number of samples delivered.
        """

        step = max(1, int(batch_size))
        delivered = 0
        while self._sink is not None and self._cursor < len(self._samples):
            batch = self._samples[self._cursor : self._cursor + step]
            self._cursor += len(batch)
            delivered += len(batch)
            self._sink.on_locations(batch)
        return delivered

    def fail(self, exc: Exception) -> None:
        """Report an asynchronous failure to the subscribed sink."""

        if self._sink is not None:
            self._sink.on_source_error(exc)
