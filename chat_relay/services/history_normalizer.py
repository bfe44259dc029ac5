# chat_relay/services/history_normalizer.py
import json
import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from chat_relay.errors import InvalidHistory
from chat_relay.schemas import ConversationTurn, HistoryEntry, HistoryPart

logger = logging.getLogger(__name__)

ATTACHMENT_PLACEHOLDER = "uploaded file"


def parse_history(raw: Optional[str]) -> List[Any]:
    """Decodes the JSON-encoded history form field sent by the browser."""
    if raw is None or not raw.strip():
        return []
    try:
        turns = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InvalidHistory(f"Could not decode history: {e}") from e
    if not isinstance(turns, list):
        raise InvalidHistory(f"Expected a list of turns, got {type(turns).__name__}")
    return turns


def _turn_text(turn: ConversationTurn) -> str:
    text = turn.text if turn.text is not None else (turn.content or "")
    if turn.role == "user" and turn.file is not None:
        # File bytes are never replayed; the model only sees the file name.
        name = turn.file.name or ATTACHMENT_PLACEHOLDER
        text = f"{text} [File: {name}]".strip()
    return text


def normalize_history(raw_turns: Iterable[Any]) -> List[HistoryEntry]:
    """
    Converts client-held turns into the role/parts structure Gemini expects.

    Turns with a role other than 'user' or 'model', entries that are not turn
    objects at all, and turns whose text ends up empty are dropped. Order is
    preserved.
    """
    history: List[HistoryEntry] = []
    for raw in raw_turns:
        if isinstance(raw, ConversationTurn):
            turn = raw
        elif isinstance(raw, dict):
            try:
                turn = ConversationTurn.model_validate(raw)
            except ValidationError:
                logger.debug("Skipping malformed history turn: %r", raw)
                continue
        else:
            continue

        if turn.role not in ("user", "model"):
            continue

        text = _turn_text(turn)
        if not text:
            continue
        history.append(HistoryEntry(role=turn.role, parts=[HistoryPart(text=text)]))
    return history


def bound_history(history: List[HistoryEntry], max_turns: int) -> List[HistoryEntry]:
    """Keeps the most recent ``max_turns`` entries, starting on a user turn."""
    if max_turns <= 0 or len(history) <= max_turns:
        return list(history)
    bounded = history[-max_turns:]
    while bounded and bounded[0].role != "user":
        bounded = bounded[1:]
    return bounded
