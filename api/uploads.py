"""
api/uploads.py -- Multipart image handling shared by the content and user routers.

Reads at most max_upload_bytes + 1 bytes so an oversized upload is detected
without buffering the whole body, then hands the bytes to LocalImageStorage.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request, UploadFile

from core.errors import PayloadTooLargeError, ValidationError


async def save_image(request: Request, upload: UploadFile, folder: str) -> str:
    """Validate and store an uploaded image. Returns the stored filename."""
    limit = request.app.state.settings.max_upload_bytes
    data = await upload.read(limit + 1)
    if len(data) > limit:
        raise PayloadTooLargeError(f"Image must be at most {limit // 1024} KB.")
    return request.app.state.image_storage.save(data, upload.filename, folder)


async def save_optional_image(request: Request, upload: Optional[UploadFile], folder: str) -> Optional[str]:
    if upload is None or not upload.filename:
        return None
    return await save_image(request, upload, folder)


async def require_image(request: Request, upload: Optional[UploadFile], folder: str, field: str) -> str:
    filename = await save_optional_image(request, upload, folder)
    if filename is None:
        raise ValidationError(f"{field} is required.")
    return filename


def discard_image(request: Request, folder: str, filename: Optional[str]) -> None:
    """Remove a replaced or orphaned image. The default profile photo is never removed."""
    if filename and filename != request.app.state.settings.default_user_photo:
        request.app.state.image_storage.delete(folder, filename)
