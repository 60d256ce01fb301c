"""Gate and store optional recipe image uploads."""

import logging
import secrets
import time
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Protocol

from kitchen_cloud.config import DEFAULT_MAX_UPLOAD_BYTES
from kitchen_cloud.domain.errors import PayloadTooLarge, UnsupportedMediaType
from kitchen_cloud.domain.uploads import PendingImage

logger = logging.getLogger(__name__)

READ_CHUNK_BYTES = 64 * 1024


class UploadedFile(Protocol):
    """Subset of an incoming multipart file used for validation."""

    filename: str | None
    content_type: str | None

    async def read(self, size: int = -1) -> bytes:
        """Read up to ``size`` bytes."""


class ImageStorage(Protocol):
    """External storage for accepted image bytes."""

    def save(self, image: PendingImage) -> None:
        """Persist image bytes under the image reference."""

    def delete(self, reference: str) -> None:
        """Remove a previously saved image."""


@dataclass
class UploadService:
    """Validates uploads and hands accepted images to storage."""

    storage: ImageStorage
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES

    async def accept(self, upload: UploadedFile | None) -> PendingImage | None:
        """Validate an optional upload and buffer it up to the size ceiling."""
        if upload is None or not upload.filename:
            return None
        content_type = (upload.content_type or "").lower()
        if not content_type.startswith("image/"):
            raise UnsupportedMediaType()
        declared_size = getattr(upload, "size", None)
        if isinstance(declared_size, int) and declared_size > self.max_bytes:
            raise PayloadTooLarge()
        data = await _read_bounded(upload, self.max_bytes)
        return PendingImage(
            reference=generate_reference(upload.filename),
            content_type=content_type,
            data=data,
        )

    def store(self, image: PendingImage) -> str:
        """Persist an accepted image and return its reference."""
        self.storage.save(image)
        logger.info(
            "Stored recipe image",
            extra={"reference": image.reference, "size": len(image.data)},
        )
        return image.reference

    def discard(self, reference: str) -> None:
        """Remove a stored image that no recipe ended up referencing."""
        self.storage.delete(reference)
        logger.info("Discarded recipe image", extra={"reference": reference})


def generate_reference(filename: str, now: float | None = None) -> str:
    """Return a collision-resistant name that keeps the original extension."""
    millis = int((time.time() if now is None else now) * 1000)
    suffix = secrets.randbelow(10**9)
    extension = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    if not extension[1:].isalnum():
        extension = ""
    return f"recipe-{millis}-{suffix}{extension}"


async def _read_bounded(upload: UploadedFile, max_bytes: int) -> bytes:
    chunks: list[bytes] = []
    total = 0
    while True:
        chunk = await upload.read(READ_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise PayloadTooLarge()
        chunks.append(chunk)
    return b"".join(chunks)
