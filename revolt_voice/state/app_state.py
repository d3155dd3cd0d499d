"""Shared state model for the voice assistant."""

from __future__ import annotations

from dataclasses import dataclass, field

from ..errors import VoiceError
from .machine import STATUS_BY_STATE, ConversationState, StatusMessage


@dataclass(slots=True)
class AppState:
    """Observable state owned by the controller."""

    conversation: ConversationState = ConversationState.IDLE
    status: StatusMessage = field(default_factory=lambda: STATUS_BY_STATE[ConversationState.IDLE])
    last_error: VoiceError | None = None
    capture_available: bool = True

    @property
    def listening(self) -> bool:
        return self.conversation is ConversationState.LISTENING

    @property
    def thinking(self) -> bool:
        return self.conversation is ConversationState.THINKING

    @property
    def speaking(self) -> bool:
        return self.conversation is ConversationState.SPEAKING

    @property
    def toggle_enabled(self) -> bool:
        """The mic control is inert while thinking or when capture is unavailable."""
        return self.capture_available and not self.thinking
