"""End-of-utterance tracking for capture sessions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Endpoint(str, Enum):
    """Outcome reported by :class:`Endpointer` for each frame."""

    CONTINUE = "continue"
    SPEECH_ENDED = "speech_ended"
    NO_SPEECH = "no_speech"
    MAX_LENGTH = "max_length"


@dataclass(slots=True)
class EndpointConfig:
    """Timing rules deciding when an utterance is over."""

    frame_duration_ms: int = 20
    end_of_speech_ms: int = 900
    no_speech_timeout_ms: int = 8000
    max_utterance_ms: int = 30_000


class Endpointer:
    """Decide, frame by frame, whether a capture session should end.

    Feed it the speech/non-speech verdict of every frame. Once speech was
    heard, ``end_of_speech_ms`` of trailing silence ends the utterance.
    Without any speech, ``no_speech_timeout_ms`` ends the session as a
    no-speech failure.
    """

    def __init__(self, config: EndpointConfig | None = None) -> None:
        self.config = config or EndpointConfig()
        self.heard_speech = False
        self._elapsed_ms = 0
        self._silence_ms = 0

    def push(self, is_speech: bool) -> Endpoint:
        step = self.config.frame_duration_ms
        self._elapsed_ms += step
        if is_speech:
            self.heard_speech = True
            self._silence_ms = 0
        else:
            self._silence_ms += step

        if self._elapsed_ms >= self.config.max_utterance_ms:
            return Endpoint.MAX_LENGTH if self.heard_speech else Endpoint.NO_SPEECH
        if self.heard_speech and self._silence_ms >= self.config.end_of_speech_ms:
            return Endpoint.SPEECH_ENDED
        if not self.heard_speech and self._elapsed_ms >= self.config.no_speech_timeout_ms:
            return Endpoint.NO_SPEECH
        return Endpoint.CONTINUE
