# chat_relay/services/chat_handler.py
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from chat_relay.errors import MissingInput, RelayError, UpstreamFailure
from chat_relay.services.file_staging import StagedFile, staged_upload
from chat_relay.services.history_normalizer import bound_history, normalize_history
from chat_relay.services.upstream import GeminiClient

logger = logging.getLogger(__name__)

DEFAULT_FILE_PROMPT = "Please analyze this file and provide insights."


def compose_parts(message: Optional[str], inline_part: Optional[Dict[str, Any]]) -> List[Any]:
    """Inline file first (if any), then the text; a file on its own gets the default prompt."""
    parts: List[Any] = []
    if inline_part is not None:
        parts.append(inline_part)
    if message:
        parts.append(message)
    elif inline_part is not None:
        parts.append(DEFAULT_FILE_PROMPT)
    return parts


class ChatHandler:
    """
    Orchestrates one chat request: validate, normalize the client history,
    stage the attachment, call Gemini, and clean up.

    Nothing is kept between requests; the browser owns the conversation.
    """

    def __init__(self, client: GeminiClient, upload_dir: Path, max_upload_bytes: int, max_history_turns: int = 0):
        self.client = client
        self.upload_dir = Path(upload_dir)
        self.max_upload_bytes = max_upload_bytes
        self.max_history_turns = max_history_turns

    async def handle(self, message: Optional[str], upload, raw_history: Iterable[Any]) -> str:
        message = (message or "").strip() or None
        if message is None and upload is None:
            raise MissingInput("Either a message or a file is required")

        history = bound_history(normalize_history(raw_history), self.max_history_turns)
        logger.info(
            "Chat request: history=%d turns, file=%s",
            len(history),
            getattr(upload, "filename", None),
        )

        async with staged_upload(upload, self.upload_dir, self.max_upload_bytes) as staged:
            parts = compose_parts(message, await self._inline(staged))
            try:
                return await self.client.send(history, parts)
            except RelayError:
                raise
            except Exception as e:
                logger.exception("Gemini call failed")
                raise UpstreamFailure(str(e)) from e

    @staticmethod
    async def _inline(staged: Optional[StagedFile]) -> Optional[Dict[str, Any]]:
        if staged is None:
            return None
        return await staged.read_inline()
