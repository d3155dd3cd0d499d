"""Text-to-speech helpers using Piper."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from piper import PiperVoice, SynthesisConfig


@dataclass(slots=True)
class PiperConfig:
    """Location of a Piper voice and its synthesis knobs."""

    model_path: Path
    config_path: Path
    speaker_id: int | None = None
    length_scale: float = 1.0


class PiperTTS:
    """Stream int16 speech chunks from a loaded Piper voice."""

    def __init__(self, config: PiperConfig) -> None:
        self.config = config
        self._voice = self._load_voice(config)

    def synthesize_stream(self, text: str) -> Iterator[tuple[bytes, int, int]]:
        """Yield audio chunks ``(pcm_bytes, sample_rate, channels)``."""
        text = sanitize_text(text)
        if not text:
            return
        kwargs = {}
        if self.config.speaker_id is not None:
            kwargs["speaker_id"] = self.config.speaker_id
        if self.config.length_scale != 1.0:
            kwargs["length_scale"] = self.config.length_scale
        syn_config = SynthesisConfig(**kwargs) if kwargs else None
        for chunk in self._voice.synthesize(text, syn_config=syn_config):
            yield chunk.audio_int16_bytes, chunk.sample_rate, chunk.sample_channels or 1

    @classmethod
    def from_voice_dir(cls, root: Path, *, length_scale: float = 1.0) -> "PiperTTS":
        """Load the first ``.onnx`` voice found under ``root``."""
        model_path = _find_file(root, ".onnx")
        config_path = model_path.with_name(model_path.name + ".json")
        return cls(PiperConfig(model_path=model_path, config_path=config_path, length_scale=length_scale))

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    @staticmethod
    def _load_voice(config: PiperConfig) -> PiperVoice:
        if not config.model_path.exists():
            raise FileNotFoundError(f"Piper model not found: {config.model_path}")
        if not config.config_path.exists():
            raise FileNotFoundError(f"Piper config not found: {config.config_path}")
        return PiperVoice.load(str(config.model_path), str(config.config_path))


def _find_file(root: Path, extension: str) -> Path:
    for candidate in sorted(root.rglob(f"*{extension}")):
        return candidate
    raise FileNotFoundError(f"No {extension} file found under {root}")


def sanitize_text(text: str) -> str:
    """Strip markdown markers and control characters that Piper would read aloud."""
    normalized = unicodedata.normalize("NFC", text)
    cleaned = re.sub(r"[*_`#<>]", " ", normalized)
    cleaned = "".join(ch for ch in cleaned if unicodedata.category(ch) != "Cc" or ch in "\n\t")
    cleaned = re.sub(r"\s+", " ", cleaned)
    return cleaned.strip()
