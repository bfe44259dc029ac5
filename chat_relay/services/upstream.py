# chat_relay/services/upstream.py
import logging
from typing import Any, List, Sequence

import google.generativeai as genai

from chat_relay.schemas import HistoryEntry

logger = logging.getLogger(__name__)


def configure(api_key: str) -> None:
    """Configure the Gemini client once, on startup."""
    genai.configure(api_key=api_key)


class GeminiClient:
    """Thin wrapper around a Gemini model used by the chat and health endpoints."""

    def __init__(self, model_name: str):
        self.model_name = model_name
        self.model = genai.GenerativeModel(model_name)

    async def send(self, history: Sequence[HistoryEntry], parts: List[Any]) -> str:
        """Starts a chat seeded with ``history`` and sends ``parts`` as the new user message."""
        if history:
            chat = self.model.start_chat(history=[entry.model_dump() for entry in history])
        else:
            # An empty-but-present history is not the same as no history upstream.
            chat = self.model.start_chat()
        response = await chat.send_message_async(parts)
        return response.text

    async def ping(self) -> str:
        """Issues a minimal generation call to check the configured credential."""
        response = await self.model.generate_content_async("ping")
        return response.text
