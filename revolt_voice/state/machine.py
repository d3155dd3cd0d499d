"""Conversation state machine.

The controller never mutates its state directly: every collaborator callback
and every user request becomes an event, and :func:`transition` maps the
current state plus that event to the next state, the side effects to run
(in order) and the status message to show. Keeping this function pure lets
the whole interaction be exercised without audio devices or a network.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from ..errors import CaptureError, EmptyReplyError, PlaybackError, ServiceError, VoiceError


class ConversationState(str, Enum):
    """Exactly one of these is active at any instant."""

    IDLE = "idle"
    LISTENING = "listening"
    THINKING = "thinking"
    SPEAKING = "speaking"


@dataclass(frozen=True, slots=True)
class StatusMessage:
    """Text shown to the user; either a plain status or an error."""

    text: str
    is_error: bool = False

    @classmethod
    def error(cls, exc: VoiceError) -> "StatusMessage":
        return cls(exc.user_message, is_error=True)


STATUS_BY_STATE: dict[ConversationState, StatusMessage] = {
    ConversationState.IDLE: StatusMessage("Click the mic and start talking."),
    ConversationState.LISTENING: StatusMessage("Listening..."),
    ConversationState.THINKING: StatusMessage("I'm thinking..."),
    ConversationState.SPEAKING: StatusMessage("Speaking..."),
}


# ---------------------------------------------------------------------- #
# Events
# ---------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class ToggleRequested:
    pass


@dataclass(frozen=True, slots=True)
class CaptureStarted:
    pass


@dataclass(frozen=True, slots=True)
class TranscriptReceived:
    text: str


@dataclass(frozen=True, slots=True)
class CaptureFailed:
    error: CaptureError


@dataclass(frozen=True, slots=True)
class CaptureEnded:
    pass


@dataclass(frozen=True, slots=True)
class ReplyReceived:
    text: str


@dataclass(frozen=True, slots=True)
class ChatFailed:
    error: ServiceError


@dataclass(frozen=True, slots=True)
class PlaybackStarted:
    pass


@dataclass(frozen=True, slots=True)
class PlaybackEnded:
    pass


@dataclass(frozen=True, slots=True)
class PlaybackFailed:
    error: PlaybackError


Event = Union[
    ToggleRequested,
    CaptureStarted,
    TranscriptReceived,
    CaptureFailed,
    CaptureEnded,
    ReplyReceived,
    ChatFailed,
    PlaybackStarted,
    PlaybackEnded,
    PlaybackFailed,
]


# ---------------------------------------------------------------------- #
# Effects
# ---------------------------------------------------------------------- #
@dataclass(frozen=True, slots=True)
class OpenCapture:
    pass


@dataclass(frozen=True, slots=True)
class CloseCapture:
    pass


@dataclass(frozen=True, slots=True)
class CallChat:
    text: str


@dataclass(frozen=True, slots=True)
class BeginPlayback:
    text: str


@dataclass(frozen=True, slots=True)
class CancelPlayback:
    pass


@dataclass(frozen=True, slots=True)
class ReleasePlayback:
    pass


Effect = Union[OpenCapture, CloseCapture, CallChat, BeginPlayback, CancelPlayback, ReleasePlayback]


@dataclass(frozen=True, slots=True)
class Transition:
    """Outcome of feeding one event to the machine."""

    state: ConversationState
    effects: tuple[Effect, ...] = ()
    status: StatusMessage | None = None
    error: VoiceError | None = None

    @property
    def changed(self) -> bool:
        return bool(self.effects) or self.status is not None


def _enter(state: ConversationState, *effects: Effect) -> Transition:
    return Transition(state, effects, STATUS_BY_STATE[state])


def _fail(error: VoiceError, *effects: Effect) -> Transition:
    return Transition(ConversationState.IDLE, effects, StatusMessage.error(error), error)


def transition(state: ConversationState, event: Event) -> Transition:
    """Return the transition for ``event`` in ``state``.

    Pairs that are not listed in the table are no-ops: same state, no
    effects and no status change.
    """
    idle = ConversationState.IDLE
    listening = ConversationState.LISTENING
    thinking = ConversationState.THINKING
    speaking = ConversationState.SPEAKING

    if isinstance(event, ToggleRequested):
        if state is idle:
            return _enter(listening, OpenCapture())
        if state is listening:
            return _enter(idle, CloseCapture())
        if state is speaking:
            return _enter(listening, CancelPlayback(), OpenCapture())
        return Transition(state)

    if state is listening:
        if isinstance(event, TranscriptReceived):
            text = event.text.strip()
            if not text:
                return _enter(idle, CloseCapture())
            return _enter(thinking, CloseCapture(), CallChat(text))
        if isinstance(event, CaptureFailed):
            return _fail(event.error, CloseCapture())
        if isinstance(event, CaptureEnded):
            return _enter(idle, CloseCapture())
        return Transition(state)

    if state is thinking:
        if isinstance(event, ReplyReceived):
            if not event.text.strip():
                return _fail(EmptyReplyError())
            return _enter(speaking, BeginPlayback(event.text))
        if isinstance(event, ChatFailed):
            return _fail(event.error)
        return Transition(state)

    if state is speaking:
        if isinstance(event, PlaybackEnded):
            return _enter(idle, ReleasePlayback())
        if isinstance(event, PlaybackFailed):
            return _fail(event.error, ReleasePlayback())
        return Transition(state)

    return Transition(state)
