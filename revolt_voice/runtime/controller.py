"""Orchestrates capture, chat and playback for one spoken conversation."""

from __future__ import annotations

from concurrent.futures import CancelledError as FutureCancelledError
from concurrent.futures import Future
from functools import partial
from typing import Any, Callable, Optional

from ..audio.utterance import Utterance
from ..errors import CaptureError, CaptureUnavailableError, PlaybackError, ServiceError, VoiceError
from ..logger import get_logger
from ..services.interfaces import (
    ChatService,
    CoroutineRunner,
    Dispatcher,
    SpeechRecognizer,
    SpeechToTextSession,
    TextToSpeechPlayer,
)
from ..state.app_state import AppState
from ..state.machine import (
    BeginPlayback,
    CallChat,
    CancelPlayback,
    CaptureEnded,
    CaptureFailed,
    CaptureStarted,
    ChatFailed,
    CloseCapture,
    ConversationState,
    Effect,
    Event,
    OpenCapture,
    PlaybackEnded,
    PlaybackFailed,
    PlaybackStarted,
    ReleasePlayback,
    ReplyReceived,
    StatusMessage,
    ToggleRequested,
    TranscriptReceived,
    transition,
)

LOGGER = get_logger("voice")

StateListener = Callable[[AppState], None]


def _call_now(callback: Callable[[], None]) -> None:
    callback()


class VoiceInteractionController:
    """Finite-state coordinator for listening, thinking and speaking.

    All methods must be called on the host loop thread. Collaborator
    callbacks may arrive from worker threads; they are routed through
    ``dispatch`` and dropped when they belong to a session or utterance that
    is no longer current.
    """

    def __init__(
        self,
        *,
        recognizer: Optional[SpeechRecognizer],
        chat: ChatService,
        speaker: TextToSpeechPlayer,
        runner: CoroutineRunner,
        dispatch: Dispatcher = _call_now,
        state: Optional[AppState] = None,
        capture_error: Optional[CaptureUnavailableError] = None,
    ) -> None:
        self.state = state or AppState()
        self._recognizer = recognizer
        self._chat = chat
        self._speaker = speaker
        self._runner = runner
        self._dispatch = dispatch
        self._session: Optional[SpeechToTextSession] = None
        self._utterance: Optional[Utterance] = None
        self._listeners: list[StateListener] = []

        if recognizer is None:
            error = capture_error or CaptureUnavailableError("No speech recognizer available.")
            self.state.capture_available = False
            self.state.last_error = error
            self.state.status = StatusMessage.error(error)
            LOGGER.error("capture unavailable", extra={"details": {"reason": str(error)}})

    # ------------------------------------------------------------------ #
    # Public API
    # ------------------------------------------------------------------ #
    @property
    def conversation(self) -> ConversationState:
        return self.state.conversation

    @property
    def status(self) -> StatusMessage:
        return self.state.status

    @property
    def last_error(self) -> Optional[VoiceError]:
        return self.state.last_error

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked after every observable change."""
        self._listeners.append(listener)

    def toggle(self) -> None:
        """Stop when listening, barge in when speaking, start otherwise."""
        if not self.state.capture_available:
            LOGGER.info("toggle ignored: capture unavailable")
            return
        self._handle(ToggleRequested())

    def start(self) -> None:
        """Open a capture session when idle; ignored in any other state."""
        if self.state.conversation is ConversationState.IDLE:
            self.toggle()

    def stop(self) -> None:
        """Close the current capture session; ignored unless listening."""
        if self.state.conversation is ConversationState.LISTENING:
            self.toggle()

    def on_transcript(self, text: str) -> None:
        self._handle(TranscriptReceived(text))

    def on_chat_reply(self, text: str) -> None:
        self._handle(ReplyReceived(text))

    def on_chat_failed(self, error: ServiceError) -> None:
        self._handle(ChatFailed(error))

    def shutdown(self) -> None:
        """Release the capture session and any playback without notifying."""
        session, self._session = self._session, None
        if session is not None:
            session.stop()
        utterance, self._utterance = self._utterance, None
        if utterance is not None:
            utterance.cancel_silently()
        self._listeners.clear()

    # ------------------------------------------------------------------ #
    # State machine driver
    # ------------------------------------------------------------------ #
    def _handle(self, event: Event) -> None:
        previous = self.state.conversation
        result = transition(previous, event)
        if not result.changed:
            LOGGER.debug(
                "event ignored",
                extra={"details": {"state": previous.value, "event": type(event).__name__}},
            )
            return

        self.state.conversation = result.state
        if result.status is not None:
            self.state.status = result.status
        if result.error is not None:
            self.state.last_error = result.error
            self._log_failure(result.error)
        elif result.status is not None:
            self.state.last_error = None

        LOGGER.info(
            "transition",
            extra={
                "details": {
                    "from": previous.value,
                    "to": result.state.value,
                    "event": type(event).__name__,
                    "effects": [type(effect).__name__ for effect in result.effects],
                }
            },
        )
        for effect in result.effects:
            self._apply(effect)
        self._notify()

    def _apply(self, effect: Effect) -> None:
        if isinstance(effect, OpenCapture):
            self._open_capture()
        elif isinstance(effect, CloseCapture):
            self._close_capture()
        elif isinstance(effect, CallChat):
            self._call_chat(effect.text)
        elif isinstance(effect, BeginPlayback):
            self._begin_playback(effect.text)
        elif isinstance(effect, CancelPlayback):
            self._cancel_playback()
        elif isinstance(effect, ReleasePlayback):
            self._utterance = None

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self.state)

    @staticmethod
    def _log_failure(error: VoiceError) -> None:
        details: dict[str, Any] = {"category": error.category, "detail": str(error)}
        if isinstance(error, CaptureError):
            details["code"] = error.code
        if isinstance(error, ServiceError) and error.status_code is not None:
            details["status_code"] = error.status_code
        LOGGER.warning("interaction failed", extra={"details": details})

    # ------------------------------------------------------------------ #
    # Capture
    # ------------------------------------------------------------------ #
    def _open_capture(self) -> None:
        if self._recognizer is None:
            raise CaptureUnavailableError("No speech recognizer available.")
        session = self._recognizer.create_session()
        session.on_start = self._bind_session(session, self._session_started)
        session.on_result = self._bind_session(session, self._session_result)
        session.on_error = self._bind_session(session, self._session_error)
        session.on_end = self._bind_session(session, self._session_ended)
        self._session = session
        try:
            session.start()
        except Exception as exc:
            LOGGER.exception("capture session failed to start")
            self._session = None
            self._handle(CaptureFailed(CaptureError(f"audio-capture ({exc})")))

    def _close_capture(self) -> None:
        session, self._session = self._session, None
        if session is not None:
            session.stop()

    def _bind_session(
        self, session: SpeechToTextSession, handler: Callable[..., None]
    ) -> Callable[..., None]:
        def callback(*args: Any) -> None:
            self._dispatch(partial(handler, session, *args))

        return callback

    def _session_started(self, session: SpeechToTextSession) -> None:
        if session is self._session:
            self._handle(CaptureStarted())

    def _session_result(self, session: SpeechToTextSession, text: str) -> None:
        if session is self._session:
            self.on_transcript(text)

    def _session_error(self, session: SpeechToTextSession, code: str) -> None:
        if session is self._session:
            self._handle(CaptureFailed(CaptureError(code)))

    def _session_ended(self, session: SpeechToTextSession) -> None:
        if session is self._session:
            self._handle(CaptureEnded())

    # ------------------------------------------------------------------ #
    # Chat
    # ------------------------------------------------------------------ #
    def _call_chat(self, text: str) -> None:
        request = self._chat.send(text)
        try:
            future = self._runner.submit(request)
        except RuntimeError as exc:
            request.close()
            self.on_chat_failed(ServiceError(f"Chat request could not be scheduled: {exc}"))
            return
        future.add_done_callback(lambda done: self._dispatch(partial(self._chat_done, done)))

    def _chat_done(self, future: "Future[str]") -> None:
        if self.state.conversation is not ConversationState.THINKING:
            return
        try:
            reply = future.result()
        except (FutureCancelledError, ServiceError) as exc:
            error = exc if isinstance(exc, ServiceError) else ServiceError("Chat request cancelled.")
            self.on_chat_failed(error)
        except Exception as exc:
            self.on_chat_failed(ServiceError(f"Unexpected chat failure: {exc!r}"))
        else:
            self.on_chat_reply(reply)

    # ------------------------------------------------------------------ #
    # Playback
    # ------------------------------------------------------------------ #
    def _begin_playback(self, text: str) -> None:
        utterance = Utterance(text)
        utterance.on_start = self._bind_utterance(utterance, self._playback_started)
        utterance.on_end = self._bind_utterance(utterance, self._playback_ended)
        utterance.on_error = self._bind_utterance(utterance, self._playback_failed)
        self._utterance = utterance
        try:
            self._speaker.speak(utterance)
        except PlaybackError as exc:
            utterance.detach()
            self._handle(PlaybackFailed(exc))

    def _cancel_playback(self) -> None:
        utterance = self._utterance
        if utterance is not None:
            utterance.cancel_silently()
        self._utterance = None

    def _bind_utterance(self, utterance: Utterance, handler: Callable[..., None]) -> Callable[..., None]:
        def callback(*args: Any) -> None:
            self._dispatch(partial(handler, utterance, *args))

        return callback

    def _playback_started(self, utterance: Utterance) -> None:
        if utterance is self._utterance:
            self._handle(PlaybackStarted())

    def _playback_ended(self, utterance: Utterance) -> None:
        if utterance is self._utterance:
            self._handle(PlaybackEnded())

    def _playback_failed(self, utterance: Utterance, error: PlaybackError) -> None:
        if utterance is self._utterance:
            self._handle(PlaybackFailed(error))
