"""Single-slot, latest-value status broadcast."""

from __future__ import annotations

import logging
from typing import Callable

from speed_track.status import Loading, Status

logger = logging.getLogger(__name__)

StatusListener = Callable[[Status], None]


class StatusChannel:
    """Holds the current `Status` and pushes every change to subscribers.

    A new subscriber immediately receives the current value; values published
    before that are not replayed.
    """

    def __init__(self, initial: Status | None = None) -> None:
        self._value: Status = initial if initial is not None else Loading()
        self._listeners: list[StatusListener] = []

    @property
    def value(self) -> Status:
        return self._value

    def publish(self, status: Status) -> None:
        self._value = status
        logger.debug("状态更新：%s", status)
        for listener in list(self._listeners):
            listener(status)

    def subscribe(self, listener: StatusListener) -> Callable[[], None]:
        """Register a listener.

        Returns:
            A callable that removes the listener again.
        """

        self._listeners.append(listener)
        listener(self._value)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def __len__(self) -> int:
        return len(self._listeners)
