"""Debounce timer — collapses rapid updates into one emission after a quiet period."""

import asyncio
from typing import Any, Callable


class Debouncer:
    """Emit the latest pushed value once no push has arrived for delay_ms.

    Holds at most one pending timer on the running event loop; every push
    cancels it and arms a new one. Intermediate values are dropped.
    """

    def __init__(self, delay_ms: int, callback: Callable[[Any], None]) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be non-negative.")
        self.delay = delay_ms / 1000
        self.callback = callback
        self._handle: asyncio.TimerHandle | None = None
        self._value: Any = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def push(self, value: Any) -> None:
        self._value = value
        if self._handle is not None:
            self._handle.cancel()
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.delay, self._fire)

    def _fire(self) -> None:
        self._handle = None
        value, self._value = self._value, None
        self.callback(value)

    def flush(self) -> None:
        """Fire the pending emission now, if any."""
        if self._handle is not None:
            self._handle.cancel()
            self._fire()

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._value = None
