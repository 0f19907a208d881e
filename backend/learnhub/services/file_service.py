"""
LearnHub Backend: File Storage Service
========================================

What:  Validates and stores quiz images, and resolves stored files for serving.
How:   Extension, size and magic-byte checks, then an async write into a
       date-organized directory under STORAGE_ROOT with a UUID filename. The
       caller gets back a public URL under PUBLIC_FILES_PATH, served by the
       files route.

Security Model:
    1. Extension check:  fast rejection before reading content
    2. Size check:       Content-Length first, then the actual byte count
    3. MIME check:       python-magic inspects the header bytes, so a renamed
                         file is caught
    4. UUID filename:    no user input reaches the file system path
    5. Serving:          resolved paths must stay inside STORAGE_ROOT

Directory Structure:
    storage/
    └── 2024/
        └── 01/
            └── 15/
                ├── a1b2c3d4-....jpg
                └── e5f6g7h8-....png
"""

import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from learnhub.config import settings
from learnhub.exceptions import FileStorageError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/gif": ".gif",
    "image/webp": ".webp",
}

ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}


class FileService:
    """
    Upload validation, storage and lookup for quiz images.

    Lifecycle of an upload:
        1. validate_extension()   (no content read yet)
        2. validate_size()
        3. validate_mime_type()   (magic bytes)
        4. store_file()           → relative path YYYY/MM/DD/<uuid>.<ext>
        5. public_url()           → /api/files/YYYY/MM/DD/<uuid>.<ext>
    """

    def __init__(self, storage_root: Optional[str] = None):
        """
        Args:
            storage_root: Override of settings.storage_root (used in tests).
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        logger.info("FileService initialized with storage_root=%s", self.storage_root)

    def validate_extension(self, filename: str) -> str:
        """Returns the lower-cased extension or raises ValidationError."""
        ext = Path(filename or "").suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"File type '{ext}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="file",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_size(self, content_length: Optional[int], actual_size: int) -> None:
        """
        Rejects uploads above settings.max_file_size.

        Content-Length is checked as well as the real size because clients
        may send a wrong header.
        """
        max_mb = settings.max_file_size / (1024 * 1024)

        if content_length and content_length > settings.max_file_size:
            raise ValidationError(
                message=f"File size exceeds maximum of {max_mb:.0f}MB. Please upload a smaller image.",
                field="file",
                context={"max_size_mb": max_mb, "reported_size": content_length},
            )

        if actual_size > settings.max_file_size:
            raise ValidationError(
                message=f"File size ({actual_size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": actual_size},
            )

        if actual_size == 0:
            raise ValidationError(message="Invalid or missing file", field="file")

    def validate_mime_type(self, file_content: bytes) -> str:
        """
        Detects the real content type from the header bytes.

        Returns:
            Detected MIME type, e.g. "image/jpeg".

        Raises:
            ValidationError: content is not one of ALLOWED_MIME_TYPES.
            FileStorageError: libmagic itself failed.
        """
        try:
            mime_type = magic.from_buffer(file_content, mime=True)
        except Exception as e:
            logger.error("MIME type detection failed: %s", str(e))
            raise FileStorageError(
                message="Could not verify file type. Please try again.",
                context={"error": str(e)},
            ) from e

        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"File content type '{mime_type}' is not supported. "
                    f"The file must be a valid image (PNG, JPEG, GIF or WebP)."
                ),
                field="file",
                context={"detected_mime": mime_type, "allowed": list(ALLOWED_MIME_TYPES)},
            )

        return mime_type

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        now = datetime.now(timezone.utc)
        relative_path = f"{now.strftime('%Y/%m/%d')}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    async def store_file(self, content: bytes, extension: str) -> str:
        """
        Writes validated content to disk.

        Returns:
            Path relative to the storage root.

        Raises:
            FileStorageError on any OS-level failure (disk full, permissions).
        """
        absolute_path, relative_path = self._generate_storage_path(extension)

        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store file at %s: %s", absolute_path, str(e))
            raise FileStorageError(
                message="Upload failed",
                context={"path": str(absolute_path), "os_error": str(e)},
            ) from e

        logger.info("File stored: %s (%d bytes)", relative_path, len(content))
        return relative_path

    def public_url(self, relative_path: str) -> str:
        return f"{settings.public_files_path.rstrip('/')}/{relative_path}"

    def resolve(self, relative_path: str) -> Path:
        """
        Maps a public relative path back to a file inside the storage root.

        Raises:
            ValidationError: the path escapes the storage root.
            NotFoundError: no such file.
        """
        full_path = (self.storage_root / relative_path).resolve()
        if not full_path.is_relative_to(self.storage_root):
            raise ValidationError(message="Invalid file path", field="file_path")
        if not full_path.is_file():
            raise NotFoundError(resource="file", resource_id=relative_path)
        return full_path

    async def save_image(
        self,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> str:
        """
        Full upload pipeline: validate, store, and return the public URL.

        Checks run cheapest first so bad uploads are rejected before any
        disk write.
        """
        ext = self.validate_extension(filename)
        self.validate_size(content_length, len(content))
        self.validate_mime_type(content)
        relative_path = await self.store_file(content, ext)
        return self.public_url(relative_path)


file_service = FileService()
