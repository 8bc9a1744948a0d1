"""Attachment storage. The chat only keeps the returned metadata."""

from __future__ import annotations

import mimetypes
import os
import uuid
from pathlib import Path
from typing import BinaryIO, NamedTuple, Optional, Protocol

from livechat.config import Settings, get_settings
from livechat.exceptions import ValidationError
from livechat.infra.logging_config import get_logger

logger = get_logger("file_storage")

CHUNK_SIZE = 1024 * 1024


class StoredFile(NamedTuple):
    url: str
    mime_type: str
    size_bytes: int


class FileStorage(Protocol):
    def store(
        self, stream: BinaryIO, filename: str, content_type: Optional[str] = None
    ) -> StoredFile: ...


class LocalFileStorage:
    """Writes uploads under ``attachments_dir`` and serves them from ``attachments_base_url``."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or get_settings()
        self.root = Path(self.settings.attachments_dir)

    def store(
        self, stream: BinaryIO, filename: str, content_type: Optional[str] = None
    ) -> StoredFile:
        extension = Path(filename).suffix.lower()
        stored_name = f"{uuid.uuid4().hex}{extension}"
        self.root.mkdir(parents=True, exist_ok=True)
        target = self.root / stored_name

        size = 0
        with open(target, "wb") as out:
            while True:
                chunk = stream.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > self.settings.attachment_max_bytes:
                    out.close()
                    os.remove(target)
                    raise ValidationError(f"Attachment {filename} is too large")
                out.write(chunk)

        mime_type = (
            content_type
            or mimetypes.guess_type(filename)[0]
            or "application/octet-stream"
        )
        url = f"{self.settings.attachments_base_url.rstrip('/')}/{stored_name}"
        logger.info("Stored attachment %s (%d bytes)", stored_name, size)
        return StoredFile(url=url, mime_type=mime_type, size_bytes=size)
