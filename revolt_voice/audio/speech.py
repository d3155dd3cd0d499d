"""Text-to-speech player: Piper synthesis streamed into the speech playback."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Optional

from ..config.paths import models_dir
from ..config.settings import AudioSettings
from ..errors import PlaybackError
from ..logger import get_logger
from .playback import PlaybackConfig, SpeechPlayback
from .tap import AudioTap
from .tts import PiperTTS
from .utterance import Utterance

LOGGER = get_logger("audio")

# Output latency guard once the queue is drained.
_TAIL_SECONDS = 0.15


@dataclass(slots=True)
class _Job:
    utterance: Utterance
    cancelled: threading.Event = field(default_factory=threading.Event)


class PiperSpeechPlayer:
    """Speak one utterance at a time; a new ``speak`` cancels the previous one."""

    def __init__(self, settings: AudioSettings, tap: Optional[AudioTap] = None) -> None:
        self.settings = settings
        self.playback = SpeechPlayback(
            PlaybackConfig(
                sample_rate=settings.playback_sample_rate,
                device_name=settings.output_device,
            ),
            tap=tap,
        )
        self._tts: Optional[PiperTTS] = None
        self._tts_lock = threading.Lock()
        self._lock = threading.Lock()
        self._current: Optional[_Job] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def speak(self, utterance: Utterance) -> None:
        """Start synthesizing and playing ``utterance`` in the background."""
        self.cancel()
        job = _Job(utterance)
        utterance.bind(self._cancel_utterance)
        with self._lock:
            self._current = job
        worker = threading.Thread(target=self._run, args=(job,), name="revolt-tts", daemon=True)
        worker.start()

    def cancel(self) -> None:
        """Stop the current utterance; a no-op when nothing is playing.

        A cancelled utterance settles with ``on_end`` unless its callbacks
        were detached beforehand.
        """
        with self._lock:
            job, self._current = self._current, None
            if job is None:
                return
            job.cancelled.set()
        self.playback.stop()
        LOGGER.info("playback cancelled", extra={"details": {"chars": len(job.utterance.text)}})
        job.utterance.mark_ended()

    # ------------------------------------------------------------------ #
    # Worker
    # ------------------------------------------------------------------ #
    def _cancel_utterance(self, utterance: Utterance) -> None:
        with self._lock:
            current = self._current
        if current is not None and current.utterance is utterance:
            self.cancel()

    def _run(self, job: _Job) -> None:
        utterance = job.utterance
        try:
            tts = self._ensure_tts()
            for pcm, sample_rate, channels in tts.synthesize_stream(utterance.text):
                with self._lock:
                    if job.cancelled.is_set():
                        return
                    self.playback.reconfigure(sample_rate, channels)
                    self.playback.play(pcm)
                utterance.mark_started()
            if self.playback.wait_drained(job.cancelled):
                job.cancelled.wait(_TAIL_SECONDS)
        except Exception as exc:
            if job.cancelled.is_set():
                return
            LOGGER.error("playback failed", extra={"details": {"error": repr(exc)}})
            self._release(job)
            self.playback.stop()
            utterance.mark_failed(PlaybackError(str(exc)))
            return

        if job.cancelled.is_set():
            return
        self._release(job)
        utterance.mark_ended()

    def _release(self, job: _Job) -> None:
        with self._lock:
            if self._current is job:
                self._current = None

    def _ensure_tts(self) -> PiperTTS:
        """Load the Piper voice if missing."""
        with self._tts_lock:
            if self._tts is None:
                voice_dir = models_dir() / "tts" / self.settings.tts_voice
                self._tts = PiperTTS.from_voice_dir(voice_dir, length_scale=self.settings.tts_length_scale)
            return self._tts
