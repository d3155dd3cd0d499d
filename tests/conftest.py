from __future__ import annotations

import asyncio
import os
import tempfile
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Optional

import pytest

os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="revolt-logs-"))

from revolt_voice.audio.utterance import Utterance  # noqa: E402
from revolt_voice.runtime.controller import VoiceInteractionController  # noqa: E402


class FakeSession:
    def __init__(self) -> None:
        self.on_start: Optional[Callable[[], None]] = None
        self.on_result: Optional[Callable[[str], None]] = None
        self.on_error: Optional[Callable[[str], None]] = None
        self.on_end: Optional[Callable[[], None]] = None
        self.started = 0
        self.stopped = 0
        self.fail_on_start: Optional[Exception] = None

    def start(self) -> None:
        self.started += 1
        if self.fail_on_start is not None:
            raise self.fail_on_start

    def stop(self) -> None:
        self.stopped += 1

    def emit_start(self) -> None:
        assert self.on_start is not None
        self.on_start()

    def emit_result(self, text: str) -> None:
        assert self.on_result is not None
        self.on_result(text)

    def emit_error(self, code: str) -> None:
        assert self.on_error is not None
        self.on_error(code)

    def emit_end(self) -> None:
        assert self.on_end is not None
        self.on_end()


class FakeRecognizer:
    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []
        self.next_start_error: Optional[Exception] = None

    def create_session(self) -> FakeSession:
        session = FakeSession()
        session.fail_on_start, self.next_start_error = self.next_start_error, None
        self.sessions.append(session)
        return session

    @property
    def current(self) -> FakeSession:
        return self.sessions[-1]


class FakeChat:
    def __init__(self) -> None:
        self.calls: list[str] = []
        self.outcomes: deque[Any] = deque()

    async def send(self, text: str) -> str:
        self.calls.append(text)
        outcome = self.outcomes.popleft()
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class FakeRunner:
    """Hold submitted coroutines until the test decides to complete them."""

    def __init__(self) -> None:
        self.pending: list[tuple[Coroutine[Any, Any, Any], Future]] = []

    def submit(self, coro: Coroutine[Any, Any, Any]) -> Future:
        future: Future = Future()
        self.pending.append((coro, future))
        return future

    def complete_all(self) -> None:
        while self.pending:
            coro, future = self.pending.pop(0)
            try:
                result = asyncio.run(coro)
            except Exception as exc:
                future.set_exception(exc)
            else:
                future.set_result(result)


class FakeSpeaker:
    def __init__(self) -> None:
        self.spoken: list[Utterance] = []
        self.cancelled: list[Utterance] = []
        self.detached_at_cancel: list[bool] = []
        self.speak_error: Optional[Exception] = None

    def speak(self, utterance: Utterance) -> None:
        if self.speak_error is not None:
            raise self.speak_error
        utterance.bind(self._cancel)
        self.spoken.append(utterance)

    def cancel(self) -> None:
        if self.spoken and not self.spoken[-1].settled:
            self._cancel(self.spoken[-1])

    def _cancel(self, utterance: Utterance) -> None:
        self.detached_at_cancel.append(utterance.on_end is None and utterance.on_error is None)
        self.cancelled.append(utterance)
        utterance.mark_ended()

    @property
    def current(self) -> Utterance:
        return self.spoken[-1]


class Harness:
    def __init__(self, controller: VoiceInteractionController, recognizer: FakeRecognizer,
                 chat: FakeChat, runner: FakeRunner, speaker: FakeSpeaker) -> None:
        self.controller = controller
        self.recognizer = recognizer
        self.chat = chat
        self.runner = runner
        self.speaker = speaker

    def reach_speaking(self, transcript: str = "hello", reply: str = "Hi there") -> Utterance:
        self.controller.toggle()
        self.recognizer.current.emit_start()
        self.recognizer.current.emit_result(transcript)
        self.chat.outcomes.append(reply)
        self.runner.complete_all()
        return self.speaker.current


@pytest.fixture()
def harness() -> Harness:
    recognizer = FakeRecognizer()
    chat = FakeChat()
    runner = FakeRunner()
    speaker = FakeSpeaker()
    controller = VoiceInteractionController(
        recognizer=recognizer,
        chat=chat,
        speaker=speaker,
        runner=runner,
    )
    return Harness(controller, recognizer, chat, runner, speaker)
