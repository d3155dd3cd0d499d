"""Collaborator contracts consumed by the voice controller."""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional, Protocol, TypeVar

from ..audio.utterance import Utterance

T = TypeVar("T")

ResultCallback = Callable[[str], None]
ErrorCodeCallback = Callable[[str], None]
LifecycleCallback = Callable[[], None]
Dispatcher = Callable[[Callable[[], None]], None]


class SpeechToTextSession(Protocol):
    """One capture-and-transcribe session."""

    on_start: Optional[LifecycleCallback]
    on_result: Optional[ResultCallback]
    on_error: Optional[ErrorCodeCallback]
    on_end: Optional[LifecycleCallback]

    def start(self) -> None: ...

    def stop(self) -> None: ...


class SpeechRecognizer(Protocol):
    """Factory for capture sessions, resolved once at startup."""

    def create_session(self) -> SpeechToTextSession: ...


class ChatService(Protocol):
    """Request/response chat backend."""

    async def send(self, text: str) -> str: ...


class TextToSpeechPlayer(Protocol):
    """Plays utterances; at most one at a time."""

    def speak(self, utterance: Utterance) -> None: ...

    def cancel(self) -> None: ...


class CoroutineRunner(Protocol):
    """Executes coroutines away from the UI thread."""

    def submit(self, coro: Coroutine[Any, Any, T]) -> "Future[T]": ...
