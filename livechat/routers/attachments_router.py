"""Attachment upload. Returns the metadata to put on a message."""

from __future__ import annotations

from pathlib import Path

from fastapi import APIRouter, Depends, File, UploadFile, status

from livechat.adapters.file_storage import FileStorage
from livechat.auth.dependencies import get_current_actor
from livechat.routers.utils.dependencies import get_file_storage
from livechat.schemas.actor import Actor
from livechat.schemas.message import Attachment

attachments_router = APIRouter(prefix="/attachments", tags=["Attachment"])


@attachments_router.post(
    "", response_model=Attachment, status_code=status.HTTP_201_CREATED
)
def upload_attachment(
    file: UploadFile = File(...),
    _actor: Actor = Depends(get_current_actor),
    storage: FileStorage = Depends(get_file_storage),
) -> Attachment:
    filename = file.filename or "upload"
    stored = storage.store(file.file, filename, file.content_type)
    return Attachment(
        filename=filename,
        extension=Path(filename).suffix.lstrip(".").lower(),
        size_bytes=stored.size_bytes,
        url=stored.url,
        mime_type=stored.mime_type,
    )
