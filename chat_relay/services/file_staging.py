# chat_relay/services/file_staging.py
"""
Temporary on-disk staging for uploaded attachments.

An upload is validated, streamed into the upload directory under a unique
name, read once to build an inline part for Gemini, and removed again before
the request returns. ``staged_upload`` wraps the whole lifecycle so callers
never have to delete the file themselves.
"""
import logging
import re
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Any, AsyncIterator, Dict, Optional

import aiofiles

from chat_relay.errors import IOFailure, PayloadTooLarge, UnsupportedFileType

logger = logging.getLogger(__name__)

UPLOAD_FIELD = "file"
CHUNK_SIZE = 1024 * 1024
DEFAULT_MIME_TYPE = "application/octet-stream"

# Extension wins over the declared type so validation and transmission agree.
EXTENSION_MIME_TYPES = {
    ".pdf": "application/pdf",
    ".mp3": "audio/mp3",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
}

_FILENAME_SAFE_RE = re.compile(r"[^A-Za-z0-9._-]+")


def resolve_mime_type(filename: Optional[str], declared: Optional[str] = None) -> str:
    """Returns the single MIME type used for both validation and transmission."""
    suffix = Path(filename or "").suffix.lower()
    if suffix in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[suffix]
    if declared:
        return declared.split(";")[0].strip().lower() or DEFAULT_MIME_TYPE
    return DEFAULT_MIME_TYPE


def is_supported_mime_type(mime_type: str) -> bool:
    return mime_type.startswith("audio/") or mime_type == "application/pdf"


def _sanitize_filename(name: str) -> str:
    name = Path(name).name.strip().replace(" ", "_")
    return _FILENAME_SAFE_RE.sub("", name) or "upload"


def _discard(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning("Could not remove staged file %s: %s", path, e)


def build_staged_name(original_name: str) -> str:
    """<field>-<timestamp>-<random suffix>-<original name>"""
    timestamp = int(time.time() * 1000)
    return f"{UPLOAD_FIELD}-{timestamp}-{uuid.uuid4().hex}-{_sanitize_filename(original_name)}"


@dataclass(frozen=True)
class StagedFile:
    path: Path
    mime_type: str
    original_name: str
    size: int

    async def read_inline(self) -> Dict[str, Any]:
        """Reads the staged bytes into an inline part; the SDK base64-encodes them on the wire."""
        try:
            async with aiofiles.open(self.path, "rb") as f:
                data = await f.read()
        except OSError as e:
            raise IOFailure(f"Could not read staged file {self.original_name}: {e}") from e
        return {"mime_type": self.mime_type, "data": data}

    def remove(self) -> None:
        _discard(self.path)


async def stage(upload, upload_dir: Path, max_bytes: int) -> StagedFile:
    """
    Validates ``upload`` (anything with ``filename``, ``content_type`` and an
    async ``read``) and streams it into ``upload_dir``.

    Raises UnsupportedFileType before anything is written, PayloadTooLarge
    once the size ceiling is crossed (the partial file is removed), and
    IOFailure if the file cannot be written.
    """
    original_name = upload.filename or "upload"
    mime_type = resolve_mime_type(original_name, getattr(upload, "content_type", None))
    if not is_supported_mime_type(mime_type):
        logger.warning("Rejected upload %s with type %s", original_name, mime_type)
        raise UnsupportedFileType(mime_type)

    declared_size = getattr(upload, "size", None)
    if declared_size is not None and declared_size > max_bytes:
        logger.warning("Rejected upload %s: %d bytes", original_name, declared_size)
        raise PayloadTooLarge(max_bytes)

    upload_dir = Path(upload_dir)
    dest_path = upload_dir / build_staged_name(original_name)
    size = 0
    staged = False
    try:
        upload_dir.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(dest_path, "wb") as f:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    logger.warning("Rejected upload %s: exceeded %d bytes", original_name, max_bytes)
                    raise PayloadTooLarge(max_bytes)
                await f.write(chunk)
        staged = True
    except OSError as e:
        raise IOFailure(f"Could not stage {original_name}: {e}") from e
    finally:
        # Any failure, cancellation included, leaves no partial file.
        if not staged:
            _discard(dest_path)

    logger.debug("Staged %s at %s (%d bytes, %s)", original_name, dest_path, size, mime_type)
    return StagedFile(path=dest_path, mime_type=mime_type, original_name=original_name, size=size)


@asynccontextmanager
async def staged_upload(upload, upload_dir: Path, max_bytes: int) -> AsyncIterator[Optional[StagedFile]]:
    """Stages ``upload`` for the duration of the block and always removes it afterwards.

    Yields None when there is nothing to stage.
    """
    if upload is None:
        yield None
        return

    staged = await stage(upload, upload_dir, max_bytes)
    try:
        yield staged
    finally:
        staged.remove()
