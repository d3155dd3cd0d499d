"""Dedicated asyncio loop for network calls made on behalf of the UI thread."""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future
from typing import Any, Coroutine, Optional, TypeVar

T = TypeVar("T")


class BackgroundLoop:
    """Run an asyncio event loop in a daemon thread."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if loop is not None:
            self.loop = loop
            self._owns_loop = False
            self._thread: Optional[threading.Thread] = None
        else:
            self.loop = asyncio.new_event_loop()
            self._owns_loop = True
            self._thread = threading.Thread(target=self._run_loop, name="revolt-loop", daemon=True)
            self._thread.start()

    def submit(self, coro: Coroutine[Any, Any, T]) -> "Future[T]":
        """Schedule ``coro`` on the loop; raises RuntimeError once closed."""
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def run(self, coro: Coroutine[Any, Any, T], timeout: float | None = None) -> T:
        """Block the caller until ``coro`` completes on the loop."""
        return self.submit(coro).result(timeout=timeout)

    def shutdown(self) -> None:
        """Stop the owned loop and join its thread."""
        if self._owns_loop and self._thread:
            self.loop.call_soon_threadsafe(self.loop.stop)
            self._thread.join(timeout=1)
            self._thread = None
            if not self.loop.is_running():
                self.loop.close()

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self.loop)
        self.loop.run_forever()
