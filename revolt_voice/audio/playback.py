"""Audio output for synthesized speech."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass

import sounddevice as sd

from ..logger import get_logger
from .tap import AudioTap

LOGGER = get_logger("audio")


@dataclass(slots=True)
class PlaybackConfig:
    """Format of the PCM handed to the output stream."""

    sample_rate: int = 22_050
    channels: int = 1
    device_name: str | None = None


class SpeechPlayback:
    """Queue PCM chunks on a sounddevice output stream and mirror them into a tap."""

    def __init__(self, config: PlaybackConfig | None = None, tap: AudioTap | None = None) -> None:
        self.config = config or PlaybackConfig()
        self.tap = tap
        self._buffer = deque[bytes]()
        self._lock = threading.RLock()
        self._drained = threading.Condition(self._lock)
        self._stream: sd.RawOutputStream | None = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def play(self, pcm_data: bytes) -> None:
        """Append int16 PCM to the output queue, opening the stream on demand."""
        if not pcm_data:
            return
        with self._lock:
            self._ensure_stream()
            self._buffer.append(pcm_data)

    def reconfigure(self, sample_rate: int, channels: int) -> None:
        """Switch format, dropping the current stream when it differs."""
        with self._lock:
            if sample_rate == self.config.sample_rate and channels == self.config.channels:
                return
            stream = self._detach_stream()
            self.config.sample_rate = sample_rate
            self.config.channels = channels
            if self.tap is not None:
                self.tap.channels = max(1, channels)
        self._close(stream)

    def wait_drained(self, cancelled: threading.Event, poll: float = 0.05) -> bool:
        """Block until every queued chunk was written; False when cancelled first."""
        with self._drained:
            while self._buffer:
                if cancelled.is_set():
                    return False
                self._drained.wait(timeout=poll)
        return not cancelled.is_set()

    def stop(self) -> None:
        """Drop queued audio, close the stream and silence the tap."""
        with self._lock:
            stream = self._detach_stream()
        self._close(stream)
        if self.tap is not None:
            self.tap.clear()

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _detach_stream(self) -> sd.RawOutputStream | None:
        # Called under the lock. Close the returned stream only after releasing
        # it: stopping waits for an in-flight _on_write, which takes the lock.
        self._buffer.clear()
        self._drained.notify_all()
        stream, self._stream = self._stream, None
        return stream

    @staticmethod
    def _close(stream: sd.RawOutputStream | None) -> None:
        if stream is not None:
            stream.stop()
            stream.close()

    def _ensure_stream(self) -> None:
        if self._stream is not None:
            if not self._stream.active:
                self._stream.start()
            return
        self._stream = sd.RawOutputStream(
            samplerate=self.config.sample_rate,
            channels=self.config.channels,
            dtype="int16",
            callback=self._on_write,
            device=self.config.device_name,
        )
        self._stream.start()

    def _on_write(self, outdata: bytearray, frames: int, time, status: sd.CallbackFlags) -> None:
        if status.output_underflow:  # pragma: no cover
            LOGGER.debug("playback underflow")
        with self._lock:
            if not self._buffer:
                outdata[:] = b"\x00" * len(outdata)
            else:
                self._fill(outdata)
            if not self._buffer:
                self._drained.notify_all()
        if self.tap is not None:
            self.tap.write(bytes(outdata))

    def _fill(self, outdata: bytearray) -> None:
        written = 0
        size = len(outdata)
        while written < size and self._buffer:
            chunk = self._buffer.popleft()
            take = min(len(chunk), size - written)
            outdata[written : written + take] = chunk[:take]
            if take < len(chunk):
                self._buffer.appendleft(chunk[take:])
            written += take
        if written < size:
            outdata[written:] = b"\x00" * (size - written)
