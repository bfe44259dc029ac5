# chat_relay/schemas.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class FileMeta(BaseModel):
    """Display-only metadata the browser keeps for an attached file."""
    name: Optional[str] = None
    type: Optional[str] = None  # MIME category shown by the client
    size: Optional[int] = None


class ConversationTurn(BaseModel):
    """Defines the structure for a single message in the client-held history."""
    model_config = ConfigDict(populate_by_name=True)

    role: str  # Should be 'user' or 'model'
    text: Optional[str] = None
    content: Optional[str] = None
    file: Optional[FileMeta] = Field(default=None, alias="attachment")


class HistoryPart(BaseModel):
    text: str


class HistoryEntry(BaseModel):
    """A turn in the shape the Gemini chat session expects."""
    model_config = ConfigDict(frozen=True)

    role: str
    parts: List[HistoryPart]


class ChatResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    error: str
    details: Optional[str] = None


class HealthResponse(BaseModel):
    status: str
    message: str
    model: Optional[str] = None
    error: Optional[str] = None
