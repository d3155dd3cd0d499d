"""Voice activity detection utilities."""

from __future__ import annotations

import webrtcvad

_VALID_SAMPLE_RATES = (8000, 16_000, 32_000, 48_000)
_VALID_FRAME_DURATIONS_MS = (10, 20, 30)
_BYTES_PER_SAMPLE = 2  # mono pcm_s16le


class VoiceActivityDetector:
    """Wrapper around the WebRTC VAD implementation."""

    def __init__(self, aggressiveness: int = 2) -> None:
        self.aggressiveness = max(0, min(3, aggressiveness))
        self._vad = webrtcvad.Vad(self.aggressiveness)

    def is_speech(self, frame: bytes, sample_rate: int) -> bool:
        """Return True when the frame contains speech."""
        return self._vad.is_speech(normalize_frame(frame, sample_rate), sample_rate)


def normalize_frame(frame: bytes, sample_rate: int) -> bytes:
    """Pad or trim a frame to the nearest length WebRTC VAD accepts."""
    if not frame or sample_rate not in _VALID_SAMPLE_RATES:
        return frame

    frame_samples = len(frame) // _BYTES_PER_SAMPLE
    if frame_samples == 0:
        return frame

    expected_samples = [sample_rate * duration // 1000 for duration in _VALID_FRAME_DURATIONS_MS]
    target_samples = min(expected_samples, key=lambda expected: abs(expected - frame_samples))
    target_bytes = max(target_samples, 1) * _BYTES_PER_SAMPLE

    if len(frame) == target_bytes:
        return frame
    if len(frame) > target_bytes:
        return frame[:target_bytes]
    return frame + bytes(target_bytes - len(frame))
