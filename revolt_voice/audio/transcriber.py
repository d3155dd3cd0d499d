"""ASR utilities powered by faster-whisper."""

from __future__ import annotations

import threading
from dataclasses import dataclass

import numpy as np
from faster_whisper import WhisperModel

from ..config.paths import models_dir


@dataclass(slots=True)
class WhisperConfig:
    """Configuration for the faster-whisper engine."""

    model: str = "small.en"
    device: str = "cpu"
    compute_type: str = "int8"
    language: str = "en"

    def resolve_model(self) -> str:
        """Prefer a local model folder under ``models/asr``, else the hub name."""
        local = models_dir() / "asr" / self.model
        return str(local) if local.exists() else self.model


class FasterWhisperEngine:
    """Lazily loaded WhisperModel shared by every capture session."""

    def __init__(self, config: WhisperConfig) -> None:
        self.config = config
        self._model: WhisperModel | None = None
        self._lock = threading.Lock()

    def transcribe_pcm16(self, pcm_data: bytes) -> str:
        """Transcribe mono 16 kHz PCM16 audio into text."""
        if not pcm_data:
            return ""
        audio = np.frombuffer(pcm_data, dtype=np.int16).astype(np.float32) / 32768.0
        if not len(audio):
            return ""
        segments, _info = self._ensure_model().transcribe(
            audio,
            language=self.config.language,
            vad_filter=True,
            vad_parameters={"min_silence_duration_ms": 250},
        )
        return " ".join(segment.text.strip() for segment in segments if segment.text.strip())

    def _ensure_model(self) -> WhisperModel:
        with self._lock:
            if self._model is None:
                self._model = WhisperModel(
                    self.config.resolve_model(),
                    device=self.config.device,
                    compute_type=self.config.compute_type,
                )
            return self._model
