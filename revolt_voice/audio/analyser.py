"""Frequency analyser over an :class:`AudioTap`.

Follows the Web Audio ``AnalyserNode`` byte-frequency pipeline: Blackman
window, FFT magnitude normalised by the window length, exponential smoothing
across frames, conversion to decibels and linear mapping of
``[min_decibels, max_decibels]`` onto ``0..255``.
"""

from __future__ import annotations

import numpy as np

from .tap import AudioTap

_EPSILON = 1e-12


class FrequencyAnalyser:
    """Pull-model analyser; :attr:`data` is refreshed in place by :meth:`update`."""

    def __init__(
        self,
        node: AudioTap,
        *,
        fft_size: int = 32,
        smoothing: float = 0.8,
        min_decibels: float = -100.0,
        max_decibels: float = -30.0,
    ) -> None:
        if fft_size < 2 or fft_size & (fft_size - 1):
            raise ValueError("fft_size must be a power of two >= 2")
        if not 0.0 <= smoothing <= 1.0:
            raise ValueError("smoothing must be within [0, 1]")
        if max_decibels <= min_decibels:
            raise ValueError("max_decibels must exceed min_decibels")
        self.node = node
        self.fft_size = fft_size
        self.smoothing = smoothing
        self.min_decibels = min_decibels
        self.max_decibels = max_decibels
        self.bin_count = fft_size // 2
        self.data = np.zeros(self.bin_count, dtype=np.uint8)
        self._window = np.blackman(fft_size).astype(np.float32)
        self._smoothed = np.zeros(self.bin_count, dtype=np.float64)

    def update(self) -> None:
        """Recompute :attr:`data` from the latest samples of the tap."""
        samples = self.node.snapshot(self.fft_size)
        spectrum = np.fft.rfft(samples * self._window)[: self.bin_count]
        magnitude = np.abs(spectrum) / self.fft_size
        self._smoothed = self.smoothing * self._smoothed + (1.0 - self.smoothing) * magnitude
        decibels = 20.0 * np.log10(np.maximum(self._smoothed, _EPSILON))
        scale = 255.0 / (self.max_decibels - self.min_decibels)
        scaled = np.floor(scale * (decibels - self.min_decibels))
        np.copyto(self.data, np.clip(scaled, 0, 255).astype(np.uint8))
