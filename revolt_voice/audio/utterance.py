"""Playback request handle shared between the controller and the speech player."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..errors import PlaybackError

Callback = Callable[[], None]
ErrorCallback = Callable[[PlaybackError], None]


class Utterance:
    """One text-to-speech request.

    ``on_end`` and ``on_error`` are mutually exclusive and fire at most once.
    Callbacks are read under the lock at settlement time, so a :meth:`detach`
    that happened before settlement is always honoured.
    """

    def __init__(
        self,
        text: str,
        *,
        on_start: Optional[Callback] = None,
        on_end: Optional[Callback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.text = text
        self.on_start = on_start
        self.on_end = on_end
        self.on_error = on_error
        self._lock = threading.Lock()
        self._started = False
        self._settled = False
        self._canceller: Optional[Callable[["Utterance"], None]] = None

    # ------------------------------------------------------------------ #
    # Controller side
    # ------------------------------------------------------------------ #
    @property
    def settled(self) -> bool:
        return self._settled

    def detach(self) -> None:
        """Drop every callback; later lifecycle notifications go nowhere."""
        with self._lock:
            self.on_start = None
            self.on_end = None
            self.on_error = None

    def cancel(self) -> None:
        """Ask the owning player to stop this utterance (idempotent)."""
        canceller = self._canceller
        if canceller is not None and not self._settled:
            canceller(self)

    def cancel_silently(self) -> None:
        """Detach then cancel, so cancellation never reports back."""
        self.detach()
        self.cancel()

    # ------------------------------------------------------------------ #
    # Player side
    # ------------------------------------------------------------------ #
    def bind(self, canceller: Callable[["Utterance"], None]) -> None:
        self._canceller = canceller

    def mark_started(self) -> None:
        with self._lock:
            if self._started or self._settled:
                return
            self._started = True
            callback = self.on_start
        if callback is not None:
            callback()

    def mark_ended(self) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True
            callback = self.on_end
        if callback is not None:
            callback()

    def mark_failed(self, error: PlaybackError) -> None:
        with self._lock:
            if self._settled:
                return
            self._settled = True
            callback = self.on_error
        if callback is not None:
            callback(error)
