from typing import AsyncIterator
from fastapi import Depends, Request, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession
from learning.core.config import Settings
from learning.core.errors import PayloadTooLargeError
from learning.modules.uploads.coordinator import IncomingFile
from learning.platform.provider_registry import ProviderRegistry

async def get_session(request: Request) -> AsyncIterator[AsyncSession]:
    async with request.app.state.sessionmaker() as session:
        yield session

def get_registry(request: Request) -> ProviderRegistry:
    return request.app.state.registry

def get_settings(request: Request) -> Settings:
    return request.app.state.settings

def _file_size(upload: UploadFile) -> int:
    if upload.size is not None:
        return upload.size
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size

def incoming_file(upload: UploadFile | None, ceiling: int) -> IncomingFile | None:
    """Wraps a multipart file for the upload coordinator, refusing anything above the transport ceiling."""
    if upload is None or not upload.filename:
        return None
    size = _file_size(upload)
    if size > ceiling:
        raise PayloadTooLargeError(f"File too large (>{ceiling / (1024 * 1024):g}MB)")
    return IncomingFile(
        filename=upload.filename,
        content_type=upload.content_type or "application/octet-stream",
        size=size,
        stream=upload.file,
    )
