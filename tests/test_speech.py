from __future__ import annotations

import threading

from revolt_voice.audio import speech as speech_module
from revolt_voice.audio.speech import PiperSpeechPlayer
from revolt_voice.audio.utterance import Utterance
from revolt_voice.config.settings import AudioSettings
from revolt_voice.errors import PlaybackError


class FakeTTS:
    def __init__(self, chunks, error: Exception | None = None) -> None:
        self.chunks = chunks
        self.error = error

    def synthesize_stream(self, text: str):
        for chunk in self.chunks:
            yield chunk, 22_050, 1
        if self.error is not None:
            raise self.error


class FakePlayback:
    """Records queued audio; optionally holds the drain until the job is cancelled."""

    def __init__(self, hold: bool = False) -> None:
        self.hold = hold
        self.chunks: list[bytes] = []
        self.formats: list[tuple[int, int]] = []
        self.stops = 0
        self.drained = threading.Event()

    def reconfigure(self, sample_rate: int, channels: int) -> None:
        self.formats.append((sample_rate, channels))

    def play(self, pcm: bytes) -> None:
        self.chunks.append(pcm)

    def wait_drained(self, cancelled: threading.Event, poll: float = 0.05) -> bool:
        if self.hold:
            cancelled.wait(timeout=2)
        self.drained.set()
        return not cancelled.is_set()

    def stop(self) -> None:
        self.stops += 1


class Recorder:
    def __init__(self, text: str = "Hi there") -> None:
        self.events: list[str] = []
        self.errors: list[PlaybackError] = []
        self.started = threading.Event()
        self.settled = threading.Event()
        self.utterance = Utterance(text, on_start=self._start, on_end=self._end, on_error=self._error)

    def _start(self) -> None:
        self.events.append("start")
        self.started.set()

    def _end(self) -> None:
        self.events.append("end")
        self.settled.set()

    def _error(self, error: PlaybackError) -> None:
        self.events.append("error")
        self.errors.append(error)
        self.settled.set()


def _player(tts, playback) -> PiperSpeechPlayer:
    player = PiperSpeechPlayer(AudioSettings())
    player.playback = playback
    player._tts = tts
    return player


def test_start_fires_with_first_chunk_and_end_after_drain():
    playback = FakePlayback()
    player = _player(FakeTTS([b"\x01\x00", b"\x02\x00"]), playback)
    recorder = Recorder()

    player.speak(recorder.utterance)

    assert recorder.settled.wait(timeout=2)
    assert recorder.events == ["start", "end"]
    assert playback.chunks == [b"\x01\x00", b"\x02\x00"]
    assert playback.formats == [(22_050, 1), (22_050, 1)]


def test_synthesis_failure_settles_with_playback_error():
    playback = FakePlayback()
    player = _player(FakeTTS([b"\x01\x00"], error=RuntimeError("voice crashed")), playback)
    recorder = Recorder()

    player.speak(recorder.utterance)

    assert recorder.settled.wait(timeout=2)
    assert recorder.events == ["start", "error"]
    assert isinstance(recorder.errors[0], PlaybackError)
    assert "voice crashed" in str(recorder.errors[0])
    assert playback.stops >= 1


def test_missing_voice_model_is_a_playback_error(monkeypatch, tmp_path):
    def missing_voice(root, *, length_scale):
        raise FileNotFoundError(f"No .onnx file found under {root}")

    monkeypatch.setattr(speech_module, "models_dir", lambda: tmp_path)
    monkeypatch.setattr(speech_module.PiperTTS, "from_voice_dir", staticmethod(missing_voice))
    player = _player(None, FakePlayback())
    recorder = Recorder()

    player.speak(recorder.utterance)

    assert recorder.settled.wait(timeout=2)
    assert recorder.events == ["error"]


def test_cancel_is_idempotent_and_ends_once():
    playback = FakePlayback(hold=True)
    player = _player(FakeTTS([b"\x01\x00"]), playback)
    recorder = Recorder()

    player.speak(recorder.utterance)
    assert recorder.started.wait(timeout=2)
    player.cancel()
    player.cancel()

    assert playback.drained.wait(timeout=2)
    assert recorder.events == ["start", "end"]
    assert playback.stops == 1


def test_cancel_after_detach_reports_nothing():
    playback = FakePlayback(hold=True)
    player = _player(FakeTTS([b"\x01\x00"]), playback)
    recorder = Recorder()

    player.speak(recorder.utterance)
    assert recorder.started.wait(timeout=2)
    recorder.utterance.cancel_silently()

    assert playback.drained.wait(timeout=2)
    assert recorder.events == ["start"]
    assert recorder.utterance.settled


def test_new_utterance_replaces_the_current_one():
    playback = FakePlayback(hold=True)
    player = _player(FakeTTS([b"\x01\x00"]), playback)
    first = Recorder("first")
    second = Recorder("second")

    player.speak(first.utterance)
    assert first.started.wait(timeout=2)
    player.speak(second.utterance)
    assert second.started.wait(timeout=2)

    assert first.events == ["start", "end"]
    assert second.events == ["start"]

    player.cancel()
    assert second.settled.wait(timeout=2)
    assert second.events == ["start", "end"]


def test_voice_without_audio_ends_without_starting():
    playback = FakePlayback()
    player = _player(FakeTTS([]), playback)
    recorder = Recorder("   ")

    player.speak(recorder.utterance)

    assert recorder.settled.wait(timeout=2)
    assert recorder.events == ["end"]
    assert playback.chunks == []
