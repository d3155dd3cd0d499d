"""Data schemas exchanged with the chat backend."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal


@dataclass(slots=True)
class ChatTurn:
    """One message of the in-memory conversation."""

    role: Literal["user", "model"]
    text: str

    def to_payload(self) -> dict[str, Any]:
        """Serialize the turn as a ``generateContent`` content entry."""
        return {"role": self.role, "parts": [{"text": self.text}]}


def build_request(system_instruction: str, turns: list[ChatTurn]) -> dict[str, Any]:
    """Assemble the JSON body of a ``generateContent`` call."""
    payload: dict[str, Any] = {"contents": [turn.to_payload() for turn in turns]}
    if system_instruction:
        payload["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    return payload


def extract_reply(data: Any) -> str:
    """Return the concatenated text of the first candidate.

    Raises ValueError when the payload does not have the expected shape. A
    well-formed response without text (for instance a blocked prompt) yields
    an empty string.
    """
    if not isinstance(data, dict):
        raise ValueError("response is not a JSON object")
    candidates = data.get("candidates")
    if candidates is None:
        return ""
    if not isinstance(candidates, list):
        raise ValueError("'candidates' is not a list")
    if not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        raise ValueError("candidate is not an object")
    content = first.get("content") or {}
    if not isinstance(content, dict):
        raise ValueError("candidate content is not an object")
    parts = content.get("parts") or []
    if not isinstance(parts, list):
        raise ValueError("candidate content has no parts list")
    texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
    return "".join(text for text in texts if isinstance(text, str))
