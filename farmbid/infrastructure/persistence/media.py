"""Image storage for auction and product listings.

Uploaded images are written to a local directory with a unique name:
    {uploads_dir}/{uuid}{ext}

The returned reference is the path relative to ``uploads_dir``; the HTTP
layer serves that directory under ``/uploads``.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from farmbid.domain.errors import ValidationError
from farmbid.infrastructure.db.config import get_path_config
from farmbid.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

MAX_IMAGE_BYTES = 5 * 1024 * 1024


@dataclass(frozen=True)
class ImageUpload:
    filename: str
    content: bytes
    content_type: str | None = None


class MediaStore(Protocol):
    def validate(self, upload: ImageUpload) -> None:
        """Raise ``ValidationError`` if ``upload`` cannot be stored."""
        ...

    def store(self, upload: ImageUpload) -> str:
        """Persist ``upload`` and return a stable reference to it."""
        ...

    def delete(self, reference: str) -> None:
        ...


class LocalMediaStore:
    """Stores listing images on the local filesystem."""

    # Supported extensions, keyed by MIME type
    EXTENSIONS = {
        "image/jpeg": ".jpg",
        "image/jpg": ".jpg",
        "image/png": ".png",
        "image/webp": ".webp",
    }
    ALLOWED_SUFFIXES = {".jpeg", ".jpg", ".png", ".webp"}

    def __init__(self, uploads_dir: str | Path, max_bytes: int = MAX_IMAGE_BYTES) -> None:
        self.uploads_dir = Path(uploads_dir)
        self.max_bytes = max_bytes

    @classmethod
    def from_config(cls) -> "LocalMediaStore":
        return cls(get_path_config()["uploads_dir"])

    def _extension_for(self, upload: ImageUpload) -> str:
        content_type = (upload.content_type or "").split(";")[0].strip().lower()
        suffix = Path(upload.filename).suffix.lower()
        if content_type in self.EXTENSIONS and suffix in self.ALLOWED_SUFFIXES:
            return self.EXTENSIONS[content_type]
        if not content_type and suffix in self.ALLOWED_SUFFIXES:
            return ".jpg" if suffix == ".jpeg" else suffix
        raise ValidationError.for_field(
            "images", "Only image files (jpeg, jpg, png, webp) are allowed"
        )

    def validate(self, upload: ImageUpload) -> None:
        self._extension_for(upload)
        if not upload.content:
            raise ValidationError.for_field("images", f"{upload.filename} is empty")
        if len(upload.content) > self.max_bytes:
            raise ValidationError.for_field(
                "images", f"{upload.filename} exceeds the 5MB size limit"
            )

    def store(self, upload: ImageUpload) -> str:
        self.validate(upload)
        ext = self._extension_for(upload)
        name = f"{uuid.uuid4().hex}{ext}"
        path = self.uploads_dir / name
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "wb") as f:
            f.write(upload.content)

        logger.debug("Stored image %s as %s (%d bytes)", upload.filename, name, len(upload.content))
        return name

    def delete(self, reference: str) -> None:
        """Remove a stored image; unknown references are ignored."""
        path = self.uploads_dir / reference
        if path.parent != self.uploads_dir:
            raise ValueError(f"Not a media reference: {reference!r}")
        path.unlink(missing_ok=True)
        logger.debug("Deleted image %s", reference)


__all__ = ["ImageUpload", "LocalMediaStore", "MAX_IMAGE_BYTES", "MediaStore"]
