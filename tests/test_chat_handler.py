"""Unit tests for ChatHandler orchestration with a mocked Gemini client."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from chat_relay.errors import MissingInput, UnsupportedFileType, UpstreamFailure
from chat_relay.services.chat_handler import DEFAULT_FILE_PROMPT, ChatHandler, compose_parts
from conftest import FakeUpload

MIB = 1024 * 1024


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.send = AsyncMock(return_value="model reply")
    return client


@pytest.fixture
def handler(client: MagicMock, upload_dir: Path) -> ChatHandler:
    return ChatHandler(client, upload_dir=upload_dir, max_upload_bytes=MIB, max_history_turns=40)


class TestComposeParts:
    def test_text_only(self) -> None:
        assert compose_parts("hello", None) == ["hello"]

    def test_inline_part_comes_first(self) -> None:
        inline = {"mime_type": "application/pdf", "data": b"x"}
        assert compose_parts("summarize", inline) == [inline, "summarize"]

    def test_file_only_gets_default_prompt(self) -> None:
        inline = {"mime_type": "audio/wav", "data": b"x"}
        assert compose_parts(None, inline) == [inline, DEFAULT_FILE_PROMPT]


class TestChatHandler:
    @pytest.mark.asyncio
    async def test_missing_input_does_nothing(self, handler: ChatHandler, client: MagicMock, upload_dir: Path) -> None:
        with pytest.raises(MissingInput):
            await handler.handle("   ", None, [{"role": "user", "text": "hi"}])
        client.send.assert_not_awaited()
        assert not upload_dir.exists()

    @pytest.mark.asyncio
    async def test_text_message_with_history(self, handler: ChatHandler, client: MagicMock) -> None:
        reply = await handler.handle(
            "and now?",
            None,
            [{"role": "user", "text": "hi"}, {"role": "model", "text": "hello"}, {"role": "system", "text": "x"}],
        )

        assert reply == "model reply"
        history, parts = client.send.await_args.args
        assert [(e.role, e.parts[0].text) for e in history] == [("user", "hi"), ("model", "hello")]
        assert parts == ["and now?"]

    @pytest.mark.asyncio
    async def test_file_only_sends_inline_then_default_prompt(
        self, handler: ChatHandler, client: MagicMock, upload_dir: Path
    ) -> None:
        seen = {}

        async def fake_send(history, parts):
            seen["files"] = list(upload_dir.iterdir())
            return "analysis"

        client.send.side_effect = fake_send
        reply = await handler.handle(None, FakeUpload("report.pdf", b"%PDF", "application/pdf"), [])

        assert reply == "analysis"
        history, parts = client.send.await_args.args
        assert history == []
        assert parts == [{"mime_type": "application/pdf", "data": b"%PDF"}, DEFAULT_FILE_PROMPT]
        assert len(seen["files"]) == 1
        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_upstream_failure_still_cleans_up(
        self, handler: ChatHandler, client: MagicMock, upload_dir: Path
    ) -> None:
        client.send.side_effect = RuntimeError("API key not valid")

        with pytest.raises(UpstreamFailure, match="API key not valid"):
            await handler.handle("listen", FakeUpload("memo.m4a", b"....", "audio/x-m4a"), [])

        assert list(upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_staging_failure_skips_upstream(self, handler: ChatHandler, client: MagicMock) -> None:
        with pytest.raises(UnsupportedFileType):
            await handler.handle("read this", FakeUpload("notes.txt", b"hi", "text/plain"), [])
        client.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_history_is_bounded(self, client: MagicMock, upload_dir: Path) -> None:
        handler = ChatHandler(client, upload_dir=upload_dir, max_upload_bytes=MIB, max_history_turns=2)
        turns = [{"role": "user", "text": f"u{i}"} if i % 2 == 0 else {"role": "model", "text": f"m{i}"} for i in range(6)]

        await handler.handle("next", None, turns)

        history, _ = client.send.await_args.args
        assert [e.parts[0].text for e in history] == ["u4", "m5"]
