"""In-process audio tap: the most recent samples of one signal path."""

from __future__ import annotations

import threading

import numpy as np


class AudioTap:
    """Thread-safe ring buffer of mono float32 samples in ``[-1, 1]``.

    Audio callbacks write int16 PCM into it; analysers read the latest
    window. The tap never owns the device stream feeding it.
    """

    def __init__(self, capacity: int = 2048, channels: int = 1) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self.channels = max(1, channels)
        self._ring = np.zeros(capacity, dtype=np.float32)
        self._cursor = 0
        self._lock = threading.Lock()

    def write(self, pcm: bytes) -> None:
        """Append interleaved int16 PCM, downmixed to mono."""
        samples = np.frombuffer(pcm, dtype=np.int16)
        if self.channels > 1:
            usable = len(samples) - len(samples) % self.channels
            samples = samples[:usable].reshape(-1, self.channels).mean(axis=1)
        self.write_samples(samples.astype(np.float32) / 32768.0)

    def write_samples(self, samples: np.ndarray) -> None:
        """Append float samples already normalised to ``[-1, 1]``."""
        if not len(samples):
            return
        samples = samples[-self.capacity :]
        count = len(samples)
        with self._lock:
            end = self._cursor + count
            if end <= self.capacity:
                self._ring[self._cursor : end] = samples
            else:
                split = self.capacity - self._cursor
                self._ring[self._cursor :] = samples[:split]
                self._ring[: count - split] = samples[split:]
            self._cursor = end % self.capacity

    def snapshot(self, size: int) -> np.ndarray:
        """Return a copy of the last ``size`` samples, oldest first."""
        size = max(0, size)
        out = np.zeros(size, dtype=np.float32)
        take = min(size, self.capacity)
        if not take:
            return out
        with self._lock:
            ordered = np.concatenate((self._ring[self._cursor :], self._ring[: self._cursor]))
        out[size - take :] = ordered[-take:]
        return out

    def clear(self) -> None:
        """Silence the tap."""
        with self._lock:
            self._ring.fill(0.0)
            self._cursor = 0
