"""Microphone input stream feeding capture sessions and the input tap."""

from __future__ import annotations

from dataclasses import dataclass
from threading import Lock
from typing import Callable, Optional

import sounddevice as sd

from ..logger import get_logger
from .tap import AudioTap

LOGGER = get_logger("audio")

FrameConsumer = Callable[[bytes], None]


@dataclass(slots=True)
class CaptureConfig:
    """Shape of the int16 frames handed to the consumer."""

    sample_rate: int = 16_000
    channels: int = 1
    frame_duration_ms: int = 20
    device_name: str | None = None

    @property
    def frame_size(self) -> int:
        return self.sample_rate * self.frame_duration_ms // 1000


def has_input_device(device_name: str | None = None) -> bool:
    """Return True when PortAudio resolves an input device with at least one channel."""
    try:
        info = sd.query_devices(device_name, kind="input")
    except (ValueError, sd.PortAudioError):
        return False
    return int(info.get("max_input_channels", 0)) > 0


class MicrophoneCapture:
    """One ``RawInputStream`` per capture session.

    Every frame is mirrored into ``tap`` (so the input ring reacts while the
    user talks) before being handed to the bound consumer. Frames arrive on
    the PortAudio callback thread.
    """

    def __init__(self, config: CaptureConfig | None = None, tap: AudioTap | None = None) -> None:
        self.config = config or CaptureConfig()
        self.tap = tap
        self._consumer: Optional[FrameConsumer] = None
        self._stream: Optional[sd.RawInputStream] = None
        self._lock = Lock()
        self._overflows = 0

    def bind(self, consumer: FrameConsumer) -> None:
        self._consumer = consumer

    def start(self) -> None:
        """Open and start the stream; PortAudio errors propagate to the caller."""
        if self._consumer is None:
            raise RuntimeError("No frame consumer bound to the microphone.")
        with self._lock:
            if self._stream is not None:
                return
            stream = sd.RawInputStream(
                samplerate=self.config.sample_rate,
                channels=self.config.channels,
                dtype="int16",
                blocksize=self.config.frame_size,
                device=self.config.device_name,
                callback=self._on_frame,
            )
            stream.start()
            self._stream = stream
        self._overflows = 0
        LOGGER.debug(
            "microphone opened",
            extra={"details": {"rate": self.config.sample_rate, "device": self.config.device_name}},
        )

    def stop(self) -> None:
        """Close the stream (idempotent) and silence the tap."""
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is not None:
            stream.stop()
            stream.close()
            LOGGER.debug("microphone closed", extra={"details": {"overflows": self._overflows}})
        if self.tap is not None:
            self.tap.clear()

    def _on_frame(self, indata, frames: int, time, status: sd.CallbackFlags) -> None:
        if status.input_overflow:
            self._overflows += 1
        frame = bytes(indata)
        if self.tap is not None:
            self.tap.write(frame)
        consumer = self._consumer
        if consumer is not None:
            consumer(frame)
