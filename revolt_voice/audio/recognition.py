"""Speech-to-text sessions: microphone capture, end-pointing and Whisper."""

from __future__ import annotations

import threading
from typing import Callable, Optional

from ..config.settings import AudioSettings
from ..errors import CaptureUnavailableError
from ..logger import get_logger
from .capture import CaptureConfig, MicrophoneCapture, has_input_device
from .endpoint import Endpoint, EndpointConfig, Endpointer
from .tap import AudioTap
from .transcriber import FasterWhisperEngine, WhisperConfig
from .vad import VoiceActivityDetector

LOGGER = get_logger("audio")


class WhisperSession:
    """One capture-and-transcribe session.

    ``start()`` returns immediately; capture, end-pointing and transcription
    run on a worker thread, which also invokes the callbacks. A session
    emits at most one result, always followed by ``on_end``.
    """

    def __init__(
        self,
        *,
        capture: MicrophoneCapture,
        engine: FasterWhisperEngine,
        vad: VoiceActivityDetector,
        endpoint: EndpointConfig,
    ) -> None:
        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self._capture = capture
        self._engine = engine
        self._vad = vad
        self._endpointer = Endpointer(endpoint)
        self._frames: list[bytes] = []
        self._frames_lock = threading.Lock()
        self._done = threading.Event()
        self._outcome = Endpoint.CONTINUE
        self._thread: Optional[threading.Thread] = None

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("Capture session already started.")
        self._capture.bind(self._on_frame)
        self._thread = threading.Thread(target=self._run, name="revolt-stt", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Request a graceful end: capture stops and what was heard is transcribed."""
        self._done.set()

    # ------------------------------------------------------------------ #
    # Worker
    # ------------------------------------------------------------------ #
    def _run(self) -> None:
        try:
            self._capture.start()
        except Exception as exc:
            LOGGER.error("microphone failed to open", extra={"details": {"error": repr(exc)}})
            self._finish_with_error("audio-capture")
            return

        self._emit(self.on_start)
        self._done.wait()
        try:
            self._capture.stop()
        except Exception as exc:
            LOGGER.error("microphone failed to close", extra={"details": {"error": repr(exc)}})
            self._finish_with_error("audio-capture")
            return

        if self._outcome is Endpoint.NO_SPEECH:
            self._finish_with_error("no-speech")
            return

        with self._frames_lock:
            pcm = b"".join(self._frames)
            self._frames.clear()
        LOGGER.info(
            "capture finished",
            extra={"details": {"outcome": self._outcome.value, "bytes": len(pcm)}},
        )
        try:
            transcript = self._engine.transcribe_pcm16(pcm)
        except Exception as exc:
            LOGGER.error("transcription failed", extra={"details": {"error": repr(exc)}})
            self._finish_with_error("transcription-failed")
            return

        callback = self.on_result
        if callback is not None:
            callback(transcript)
        self._emit(self.on_end)

    def _on_frame(self, frame: bytes) -> None:
        if self._done.is_set():
            return
        with self._frames_lock:
            self._frames.append(frame)
        verdict = self._endpointer.push(self._vad.is_speech(frame, self._capture.config.sample_rate))
        if verdict is not Endpoint.CONTINUE:
            self._outcome = verdict
            self._done.set()

    def _finish_with_error(self, code: str) -> None:
        callback = self.on_error
        if callback is not None:
            callback(code)
        self._emit(self.on_end)

    @staticmethod
    def _emit(callback: Optional[Callable[[], None]]) -> None:
        if callback is not None:
            callback()


class WhisperSpeechRecognizer:
    """Create capture sessions sharing one Whisper model and one VAD."""

    def __init__(self, settings: AudioSettings, tap: Optional[AudioTap] = None) -> None:
        self.settings = settings
        self.tap = tap
        self.engine = FasterWhisperEngine(
            WhisperConfig(
                model=settings.asr_model,
                device=settings.asr_device,
                compute_type=settings.asr_compute_type,
                language=settings.language,
            )
        )
        self.vad = VoiceActivityDetector(settings.vad_aggressiveness)

    def create_session(self) -> WhisperSession:
        settings = self.settings
        capture = MicrophoneCapture(
            CaptureConfig(
                sample_rate=settings.capture_sample_rate,
                frame_duration_ms=settings.frame_duration_ms,
                device_name=settings.input_device,
            ),
            tap=self.tap,
        )
        endpoint = EndpointConfig(
            frame_duration_ms=settings.frame_duration_ms,
            end_of_speech_ms=settings.end_of_speech_ms,
            no_speech_timeout_ms=int(settings.no_speech_timeout_s * 1000),
            max_utterance_ms=int(settings.max_utterance_s * 1000),
        )
        return WhisperSession(capture=capture, engine=self.engine, vad=self.vad, endpoint=endpoint)


def resolve_recognizer(settings: AudioSettings, tap: Optional[AudioTap] = None) -> WhisperSpeechRecognizer:
    """Resolve the speech-to-text capability once, at startup."""
    if not has_input_device(settings.input_device):
        raise CaptureUnavailableError("No microphone input device found.")
    return WhisperSpeechRecognizer(settings, tap)
