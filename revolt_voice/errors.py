"""Failure categories surfaced by the voice interaction loop."""

from __future__ import annotations


class VoiceError(RuntimeError):
    """Base class for every failure the controller converts into a status."""

    category = "voice"
    user_message = "Something went wrong. Please try again."


class CaptureUnavailableError(VoiceError):
    """Raised at startup when no speech-to-text capability can be resolved."""

    category = "capture_unavailable"
    user_message = "Speech recognition is not available on this system."


class CaptureError(VoiceError):
    """Recognition failed in the middle of a capture session."""

    category = "capture"
    user_message = "Sorry, I couldn't hear you. Please try again."

    def __init__(self, code: str) -> None:
        super().__init__(f"Speech recognition error: {code}")
        self.code = code


class ServiceError(VoiceError):
    """The chat backend failed to produce a reply."""

    category = "service"
    user_message = "Sorry, I had trouble responding. Please try again."

    def __init__(self, detail: str, *, status_code: int | None = None) -> None:
        super().__init__(detail)
        self.status_code = status_code


class EmptyReplyError(ServiceError):
    """The chat backend answered with blank text."""

    category = "empty_reply"
    user_message = "I received an empty response. Please try again."

    def __init__(self, detail: str = "Chat backend returned an empty reply.") -> None:
        super().__init__(detail)


class PlaybackError(VoiceError):
    """Speech synthesis or audio playback failed."""

    category = "playback"
    user_message = "Sorry, I couldn't speak the response."
