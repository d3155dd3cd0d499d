"""Async chat client for the Gemini ``generateContent`` REST endpoint."""

from __future__ import annotations

from typing import Optional

import httpx

from ..config.settings import ChatSettings
from ..errors import ServiceError
from ..logger import get_logger
from .schemas import ChatTurn, build_request, extract_reply

LOGGER = get_logger("chat")


class GeminiChatService:
    """Send transcripts to Gemini, keeping the conversation in memory."""

    def __init__(
        self,
        settings: ChatSettings,
        api_key: Optional[str],
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._api_key = api_key
        timeout = httpx.Timeout(
            connect=settings.connect_timeout,
            read=settings.read_timeout,
            write=settings.connect_timeout,
            pool=None,
        )
        self._client = httpx.AsyncClient(
            base_url=settings.base_url.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
        )
        self._history: list[ChatTurn] = []

    async def send(self, text: str) -> str:
        """Send one user message and return the reply text (possibly blank)."""
        if not self._api_key:
            raise ServiceError("No API key configured (set API_KEY or GEMINI_API_KEY).")

        turns = [*self._history, ChatTurn(role="user", text=text)]
        payload = build_request(self.settings.system_instruction, turns)
        LOGGER.info(
            "chat request",
            extra={"details": {"model": self.settings.model, "turns": len(turns), "chars": len(text)}},
        )
        try:
            response = await self._client.post(
                f"models/{self.settings.model}:generateContent",
                json=payload,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.TimeoutException as exc:
            raise ServiceError("Timed out waiting for the chat backend.") from exc
        except httpx.HTTPError as exc:
            raise ServiceError(f"Transport error talking to the chat backend: {exc}") from exc

        if response.is_error:
            snippet = response.text[:200]
            raise ServiceError(
                f"Chat backend returned HTTP {response.status_code}: {snippet}",
                status_code=response.status_code,
            )
        try:
            reply = extract_reply(response.json())
        except ValueError as exc:
            snippet = response.text[:200]
            raise ServiceError(f"Malformed chat response: {exc}: {snippet}") from exc

        if reply.strip():
            self._history = [*turns, ChatTurn(role="model", text=reply)]
            self._trim_history()
        LOGGER.info("chat reply", extra={"details": {"chars": len(reply)}})
        return reply

    @property
    def history(self) -> list[ChatTurn]:
        """Return a copy of the remembered turns."""
        return list(self._history)

    def reset(self) -> None:
        """Forget the conversation."""
        self._history.clear()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _trim_history(self) -> None:
        limit = self.settings.history_max_turns
        if limit > 0 and len(self._history) > limit:
            self._history = self._history[-limit:]
            # A conversation must start with a user turn.
            while self._history and self._history[0].role != "user":
                self._history.pop(0)
