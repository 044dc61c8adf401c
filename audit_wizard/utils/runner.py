"""Background event loop for UI shells that cannot own an asyncio loop themselves.

Streamlit reruns the page script on every interaction, so the wizard's loop
(debounce timers, in-flight saves) lives on a daemon thread and the page
talks to it through run() and call().
"""

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine


class BackgroundLoop:
    def __init__(self) -> None:
        self.loop = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._run, name="audit-wizard-loop", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()

    def submit(self, coro: Coroutine) -> Future:
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine, timeout: float | None = None) -> Any:
        """Run a coroutine on the loop and block until it finishes."""
        return self.submit(coro).result(timeout)

    def call(self, fn: Callable, *args, timeout: float | None = None) -> Any:
        """Run a plain function on the loop thread and return its result."""

        async def _call():
            return fn(*args)

        return self.run(_call(), timeout)

    def stop(self) -> None:
        self.loop.call_soon_threadsafe(self.loop.stop)
        self._thread.join(timeout=5)
