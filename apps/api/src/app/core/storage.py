"""
Document Storage

Saves uploaded supporting documents (report cards, birth certificates) to
the local upload directory and returns their relative paths.
"""

import asyncio
import logging
import re
import uuid
from pathlib import Path

from fastapi import UploadFile

from app.core.config import settings
from app.core.exceptions import ValidationServiceError

logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def safe_filename(filename: str | None) -> str:
    """Strip directories and unusual characters from a client filename."""
    name = Path(filename or "document").name
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    return cleaned[:100] or "document"


def _write(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


async def save_upload(upload: UploadFile, folder: str) -> str:
    """
    Validate and persist one upload.

    Returns:
        Path relative to UPLOAD_DIR

    Raises:
        ValidationServiceError: Unsupported type or file too large
    """
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise ValidationServiceError(
            f"Unsupported file type '{content_type or 'unknown'}'. Upload PDF, JPEG or PNG.",
            error_code="UNSUPPORTED_FILE_TYPE",
        )

    data = await upload.read(settings.max_upload_bytes + 1)
    if len(data) > settings.max_upload_bytes:
        raise ValidationServiceError(
            f"File '{upload.filename}' exceeds the "
            f"{settings.max_upload_bytes // (1024 * 1024)} MB limit.",
            error_code="FILE_TOO_LARGE",
        )
    if not data:
        raise ValidationServiceError(
            f"File '{upload.filename}' is empty.", error_code="EMPTY_FILE"
        )

    relative = Path(folder) / f"{uuid.uuid4().hex}_{safe_filename(upload.filename)}"
    await asyncio.to_thread(_write, Path(settings.upload_dir) / relative, data)

    logger.info(f"Stored upload {relative} ({len(data)} bytes)")
    return relative.as_posix()


async def save_uploads(uploads: list[UploadFile], folder: str) -> list[str]:
    """Persist several uploads, skipping empty form slots."""
    uploads = [u for u in uploads if u is not None and u.filename]
    if len(uploads) > settings.max_upload_files:
        raise ValidationServiceError(
            f"At most {settings.max_upload_files} documents can be uploaded.",
            error_code="TOO_MANY_FILES",
        )
    saved: list[str] = []
    try:
        for upload in uploads:
            saved.append(await save_upload(upload, folder))
    except ValidationServiceError:
        await delete_stored(saved)
        raise
    return saved


async def delete_stored(paths: list[str]) -> None:
    """Remove files written for a submission that could not be saved."""
    for relative in paths:
        target = Path(settings.upload_dir) / relative
        await asyncio.to_thread(target.unlink, True)
