"""Wire the concrete collaborators into a controller."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..audio.recognition import WhisperSpeechRecognizer, resolve_recognizer
from ..audio.speech import PiperSpeechPlayer
from ..audio.tap import AudioTap
from ..config.environment import get_environment
from ..config.settings import AppSettings
from ..errors import CaptureUnavailableError
from ..logger import get_logger
from ..services.chat import GeminiChatService
from ..services.interfaces import Dispatcher
from .controller import VoiceInteractionController
from .loop import BackgroundLoop

LOGGER = get_logger("voice")


@dataclass(slots=True)
class VoiceRuntime:
    """Everything the window needs: the controller plus the two audio taps."""

    controller: VoiceInteractionController
    loop: BackgroundLoop
    chat: GeminiChatService
    speaker: PiperSpeechPlayer
    input_tap: AudioTap
    output_tap: AudioTap

    def shutdown(self) -> None:
        """Release audio devices, the HTTP client and the background loop."""
        self.controller.shutdown()
        self.speaker.cancel()
        try:
            self.loop.run(self.chat.close(), timeout=2)
        except Exception:
            LOGGER.warning("chat client did not close cleanly", exc_info=True)
        self.loop.shutdown()


def build_runtime(settings: AppSettings, dispatch: Dispatcher) -> VoiceRuntime:
    """Resolve capabilities once and assemble the voice runtime."""
    env = get_environment()
    input_tap = AudioTap(settings.audio.tap_capacity)
    output_tap = AudioTap(settings.audio.tap_capacity)

    recognizer: Optional[WhisperSpeechRecognizer]
    capture_error: Optional[CaptureUnavailableError] = None
    try:
        recognizer = resolve_recognizer(settings.audio, input_tap)
    except CaptureUnavailableError as exc:
        recognizer = None
        capture_error = exc

    if not env.api_key:
        LOGGER.warning("no API key configured; chat requests will fail")

    loop = BackgroundLoop()
    chat = GeminiChatService(settings.chat, env.api_key)
    speaker = PiperSpeechPlayer(settings.audio, output_tap)
    controller = VoiceInteractionController(
        recognizer=recognizer,
        chat=chat,
        speaker=speaker,
        runner=loop,
        dispatch=dispatch,
        capture_error=capture_error,
    )
    LOGGER.info(
        "runtime ready",
        extra={
            "details": {
                "capture_available": recognizer is not None,
                "model": settings.chat.model,
                "locale": settings.audio.locale,
                "tts_voice": settings.audio.tts_voice,
            }
        },
    )
    return VoiceRuntime(
        controller=controller,
        loop=loop,
        chat=chat,
        speaker=speaker,
        input_tap=input_tap,
        output_tap=output_tap,
    )
