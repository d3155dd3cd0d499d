from __future__ import annotations

import random

import pytest

from revolt_voice.errors import (
    CaptureError,
    CaptureUnavailableError,
    EmptyReplyError,
    PlaybackError,
    ServiceError,
)
from revolt_voice.runtime.controller import VoiceInteractionController
from revolt_voice.state.machine import ConversationState

from conftest import FakeChat, FakeRecognizer, FakeRunner, FakeSpeaker

IDLE = ConversationState.IDLE
LISTENING = ConversationState.LISTENING
THINKING = ConversationState.THINKING
SPEAKING = ConversationState.SPEAKING


def test_happy_path_round_trip(harness):
    controller = harness.controller
    controller.toggle()
    assert controller.conversation is LISTENING
    session = harness.recognizer.current
    assert session.started == 1

    session.emit_start()
    assert controller.conversation is LISTENING

    session.emit_result("hello")
    assert controller.conversation is THINKING
    assert controller.status.text == "I'm thinking..."
    assert session.stopped == 1

    harness.chat.outcomes.append("Hi there")
    harness.runner.complete_all()
    assert harness.chat.calls == ["hello"]
    assert controller.conversation is SPEAKING
    utterance = harness.speaker.current
    assert utterance.text == "Hi there"

    utterance.mark_started()
    assert controller.conversation is SPEAKING
    utterance.mark_ended()
    assert controller.conversation is IDLE
    assert controller.status.text == "Click the mic and start talking."
    assert not controller.status.is_error
    assert controller.last_error is None


def test_late_session_end_after_result_is_ignored(harness):
    harness.controller.toggle()
    session = harness.recognizer.current
    session.emit_result("hello")
    session.emit_end()
    assert harness.controller.conversation is THINKING


def test_empty_transcript_skips_chat(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("   ")
    assert harness.controller.conversation is IDLE
    assert harness.chat.calls == []
    assert harness.runner.pending == []
    assert harness.controller.last_error is None


def test_chat_failure_surfaces_error(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    harness.chat.outcomes.append(ServiceError("HTTP 503", status_code=503))
    harness.runner.complete_all()

    controller = harness.controller
    assert controller.conversation is IDLE
    assert controller.status.is_error
    assert controller.status.text == "Sorry, I had trouble responding. Please try again."
    assert isinstance(controller.last_error, ServiceError)
    assert controller.last_error.status_code == 503
    assert harness.speaker.spoken == []


def test_unexpected_chat_exception_is_wrapped(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    harness.chat.outcomes.append(KeyError("boom"))
    harness.runner.complete_all()
    assert harness.controller.conversation is IDLE
    assert isinstance(harness.controller.last_error, ServiceError)


def test_empty_reply_is_reported(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    harness.chat.outcomes.append("  ")
    harness.runner.complete_all()
    assert harness.controller.conversation is IDLE
    assert isinstance(harness.controller.last_error, EmptyReplyError)
    assert harness.controller.status.text == "I received an empty response. Please try again."
    assert harness.speaker.spoken == []


def test_barge_in_cancels_playback_silently(harness):
    first = harness.reach_speaking()
    harness.controller.toggle()

    assert harness.controller.conversation is LISTENING
    assert harness.speaker.cancelled == [first]
    # callbacks were detached before the player was told to stop
    assert harness.speaker.detached_at_cancel == [True]
    assert len(harness.recognizer.sessions) == 2

    # a straggling notification from the old utterance changes nothing
    first.mark_failed(PlaybackError("late"))
    first.mark_ended()
    assert harness.controller.conversation is LISTENING
    assert not harness.controller.status.is_error

    harness.recognizer.current.emit_result("stop")
    assert harness.controller.conversation is THINKING
    harness.chat.outcomes.append("Okay")
    harness.runner.complete_all()
    assert harness.controller.conversation is SPEAKING
    assert harness.speaker.current.text == "Okay"
    assert harness.chat.calls == ["hello", "stop"]


def test_stop_is_idempotent(harness):
    controller = harness.controller
    controller.start()
    session = harness.recognizer.current
    controller.stop()
    controller.stop()
    assert controller.conversation is IDLE
    assert session.stopped == 1


def test_start_ignored_when_busy(harness):
    controller = harness.controller
    controller.start()
    controller.start()
    assert len(harness.recognizer.sessions) == 1


def test_toggle_while_thinking_does_nothing(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    harness.controller.toggle()
    assert harness.controller.conversation is THINKING
    assert len(harness.recognizer.sessions) == 1
    assert not harness.controller.state.toggle_enabled


def test_stale_session_callbacks_are_dropped(harness):
    controller = harness.controller
    controller.toggle()
    stale = harness.recognizer.current
    controller.toggle()
    assert controller.conversation is IDLE

    stale.emit_result("too late")
    assert controller.conversation is IDLE
    assert harness.chat.calls == []

    controller.toggle()
    stale.emit_error("aborted")
    stale.emit_end()
    assert controller.conversation is LISTENING
    assert controller.last_error is None


def test_capture_error_code_is_kept(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_error("no-speech")
    error = harness.controller.last_error
    assert isinstance(error, CaptureError)
    assert error.code == "no-speech"
    assert str(error) == "Speech recognition error: no-speech"
    assert harness.controller.status.text == "Sorry, I couldn't hear you. Please try again."
    assert harness.controller.conversation is IDLE


def test_capture_end_without_transcript_goes_idle(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_end()
    assert harness.controller.conversation is IDLE
    assert harness.controller.last_error is None


def test_session_start_failure(harness):
    harness.recognizer.next_start_error = OSError("device busy")
    harness.controller.toggle()
    assert harness.controller.conversation is IDLE
    assert isinstance(harness.controller.last_error, CaptureError)
    assert harness.controller._session is None


def test_error_status_is_cleared_by_next_interaction(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_error("network")
    assert harness.controller.status.is_error
    harness.controller.toggle()
    assert harness.controller.status.text == "Listening..."
    assert harness.controller.last_error is None


def test_playback_error_callback(harness):
    utterance = harness.reach_speaking()
    utterance.mark_failed(PlaybackError("stream died"))
    assert harness.controller.conversation is IDLE
    assert isinstance(harness.controller.last_error, PlaybackError)
    assert harness.controller._utterance is None


def test_speak_raising_playback_error(harness):
    harness.speaker.speak_error = PlaybackError("no voice model")
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    harness.chat.outcomes.append("Hi")
    harness.runner.complete_all()
    assert harness.controller.conversation is IDLE
    assert harness.controller.status.text == "Sorry, I couldn't speak the response."


def test_chat_result_after_leaving_thinking_is_ignored(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    coro, future = harness.runner.pending.pop()
    coro.close()
    harness.controller.on_chat_failed(ServiceError("gave up"))
    future.set_result("stale reply")
    assert harness.controller.conversation is IDLE
    assert harness.speaker.spoken == []


def test_cancelled_chat_future_maps_to_service_error(harness):
    harness.controller.toggle()
    harness.recognizer.current.emit_result("hello")
    coro, future = harness.runner.pending.pop()
    coro.close()
    future.cancel()
    assert harness.controller.conversation is IDLE
    assert isinstance(harness.controller.last_error, ServiceError)


def test_runner_refusing_work():
    class ClosedRunner:
        def submit(self, coro):
            raise RuntimeError("loop closed")

    controller = VoiceInteractionController(
        recognizer=FakeRecognizer(),
        chat=FakeChat(),
        speaker=FakeSpeaker(),
        runner=ClosedRunner(),
    )
    controller.toggle()
    controller._recognizer.current.emit_result("hello")
    assert controller.conversation is IDLE
    assert isinstance(controller.last_error, ServiceError)


def test_capture_unavailable_disables_toggle():
    error = CaptureUnavailableError("no input device")
    controller = VoiceInteractionController(
        recognizer=None,
        chat=FakeChat(),
        speaker=FakeSpeaker(),
        runner=FakeRunner(),
        capture_error=error,
    )
    assert controller.last_error is error
    assert controller.status.is_error
    assert controller.status.text == "Speech recognition is not available on this system."
    assert not controller.state.toggle_enabled

    controller.toggle()
    controller.start()
    assert controller.conversation is IDLE


def test_listeners_see_every_change(harness):
    seen = []
    harness.controller.add_listener(lambda state: seen.append(state.conversation))
    harness.reach_speaking()
    harness.speaker.current.mark_ended()
    assert seen == [LISTENING, THINKING, SPEAKING, IDLE]


def test_callbacks_are_marshalled_through_dispatch():
    queued = []
    recognizer = FakeRecognizer()
    controller = VoiceInteractionController(
        recognizer=recognizer,
        chat=FakeChat(),
        speaker=FakeSpeaker(),
        runner=FakeRunner(),
        dispatch=queued.append,
    )
    controller.toggle()
    recognizer.current.emit_result("hello")
    assert controller.conversation is LISTENING
    assert len(queued) == 1

    queued.pop()()
    assert controller.conversation is THINKING


def test_shutdown_releases_session_and_listeners(harness):
    seen = []
    harness.controller.add_listener(seen.append)
    harness.controller.toggle()
    session = harness.recognizer.current
    harness.controller.shutdown()
    assert session.stopped == 1
    session.emit_result("after shutdown")
    assert harness.chat.calls == []
    assert len(seen) == 1


def test_shutdown_silences_playback(harness):
    utterance = harness.reach_speaking()
    harness.controller.shutdown()
    assert harness.speaker.cancelled == [utterance]
    assert harness.speaker.detached_at_cancel == [True]


def test_random_walk_keeps_handles_consistent(harness):
    rng = random.Random(7)
    controller = harness.controller

    def emit_session(action: str) -> None:
        if not harness.recognizer.sessions:
            return
        session = rng.choice(harness.recognizer.sessions)
        if action == "result":
            session.emit_result(rng.choice(["hi", "", "what time is it"]))
        elif action == "error":
            session.emit_error("network")
        else:
            session.emit_end()

    def emit_utterance(action: str) -> None:
        if not harness.speaker.spoken:
            return
        utterance = rng.choice(harness.speaker.spoken)
        if action == "ended":
            utterance.mark_ended()
        else:
            utterance.mark_failed(PlaybackError("x"))

    for _ in range(400):
        action = rng.choice(["toggle", "result", "error", "end", "chat", "ended", "failed"])
        if action == "toggle":
            controller.toggle()
        elif action in ("result", "error", "end"):
            emit_session(action)
        elif action == "chat":
            for _pending in harness.runner.pending:
                harness.chat.outcomes.append(rng.choice(["reply", " ", ServiceError("x")]))
            harness.runner.complete_all()
        else:
            emit_utterance(action)

        state = controller.conversation
        assert (controller._session is not None) == (state is LISTENING)
        assert (controller._utterance is not None) == (state is SPEAKING)
        assert sum([controller.state.listening, controller.state.thinking, controller.state.speaking]) <= 1


def test_opening_capture_without_recognizer_raises():
    controller = VoiceInteractionController(
        recognizer=None,
        chat=FakeChat(),
        speaker=FakeSpeaker(),
        runner=FakeRunner(),
    )
    with pytest.raises(CaptureUnavailableError):
        controller._open_capture()
    assert controller._session is None
