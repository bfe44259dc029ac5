"""
Pytest configuration and shared fixtures.

The Gemini SDK is patched out for every HTTP-level test so nothing leaves
the process.
"""

import os
from pathlib import Path
from typing import Iterator, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

# Must be set before chat_relay.main builds its settings
os.environ.setdefault("GEMINI_API_KEY", "test-key")

from fastapi.testclient import TestClient

from chat_relay.config import get_settings


class FakeUpload:
    """Minimal stand-in for FastAPI's UploadFile."""

    def __init__(
        self,
        filename: str,
        data: bytes = b"",
        content_type: Optional[str] = None,
        size: Optional[int] = None,
        chunks: Optional[Iterator[bytes]] = None,
    ):
        self.filename = filename
        self.content_type = content_type
        self.size = size
        self._data = data
        self._chunks = chunks
        self.read_calls = 0

    async def read(self, n: int = -1) -> bytes:
        self.read_calls += 1
        if self._chunks is not None:
            return next(self._chunks, b"")
        if n < 0:
            n = len(self._data)
        chunk, self._data = self._data[:n], self._data[n:]
        return chunk


@pytest.fixture
def upload_dir(tmp_path: Path) -> Path:
    return tmp_path / "uploads"


@pytest.fixture
def gemini_model() -> MagicMock:
    """A mocked GenerativeModel whose chat replies with 'Hello from Gemini'."""
    model = MagicMock()
    chat = MagicMock()
    chat.send_message_async = AsyncMock(return_value=MagicMock(text="Hello from Gemini"))
    model.start_chat.return_value = chat
    model.generate_content_async = AsyncMock(return_value=MagicMock(text="pong"))
    return model


@pytest.fixture
def api_client(monkeypatch: pytest.MonkeyPatch, upload_dir: Path, gemini_model: MagicMock):
    """TestClient running the app's startup hook against a mocked Gemini SDK."""
    monkeypatch.setenv("GEMINI_API_KEY", "test-key")
    monkeypatch.setenv("UPLOAD_DIR", str(upload_dir))
    monkeypatch.setenv("MAX_UPLOAD_MB", "1")
    monkeypatch.delenv("GEMINI_MODEL", raising=False)
    get_settings.cache_clear()

    from chat_relay.main import app

    with patch("chat_relay.services.upstream.genai") as mock_genai:
        mock_genai.GenerativeModel.return_value = gemini_model
        with TestClient(app) as client:
            yield client
    get_settings.cache_clear()
