"""Compiled-in configuration models for the voice assistant."""

from __future__ import annotations

from dataclasses import dataclass, field


SYSTEM_INSTRUCTION = (
    "You are an AI assistant and expert on Revolt Motors. Your knowledge is strictly "
    "limited to Revolt Motors. If a user asks about anything unrelated to Revolt Motors, "
    'you must respond with the exact phrase "I cannot provide that information." and '
    "nothing else. For questions about Revolt Motors, answer them as helpfully as possible."
)


@dataclass(slots=True)
class AudioSettings:
    """Audio capture, recognition and playback settings."""

    locale: str = "en-US"
    input_device: str | None = None
    output_device: str | None = None
    capture_sample_rate: int = 16_000
    frame_duration_ms: int = 20
    vad_aggressiveness: int = 2
    end_of_speech_ms: int = 900
    no_speech_timeout_s: float = 8.0
    max_utterance_s: float = 30.0
    asr_model: str = "small.en"
    asr_device: str = "cpu"
    asr_compute_type: str = "int8"
    tts_voice: str = "en_US-lessac-medium"
    tts_length_scale: float = 1.0
    playback_sample_rate: int = 22_050
    tap_capacity: int = 2048

    @property
    def language(self) -> str:
        """Whisper language code derived from the locale (``en-US`` -> ``en``)."""
        return self.locale.split("-", 1)[0].lower()


@dataclass(slots=True)
class ChatSettings:
    """Chat backend settings."""

    base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    model: str = "gemini-2.5-flash"
    system_instruction: str = SYSTEM_INSTRUCTION
    connect_timeout: float = 10.0
    read_timeout: float = 60.0
    history_max_turns: int = 20


@dataclass(slots=True)
class VisualSettings:
    """Ring visualizer settings."""

    fft_size: int = 32
    smoothing: float = 0.8
    min_decibels: float = -100.0
    max_decibels: float = -30.0
    base_radius: float = 50.0
    gain_radius: float = 50.0
    max_magnitude: float = 255.0
    line_width: float = 4.0
    input_color: str = "#ff0000"
    output_color: str = "#0000ff"
    gradient_top: str = "#000010"
    gradient_bottom: str = "#100010"
    fallback_refresh_hz: float = 60.0


@dataclass(slots=True)
class AppSettings:
    """Full set of settings for the assistant."""

    audio: AudioSettings = field(default_factory=AudioSettings)
    chat: ChatSettings = field(default_factory=ChatSettings)
    visual: VisualSettings = field(default_factory=VisualSettings)
