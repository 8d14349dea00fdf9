"""
Bus Pass Backend — Document Storage Service
===========================================

What:  Stores uploaded application documents and hands back a URL.
How:   Validates extension, declared MIME type, size and the type sniffed
       from the bytes themselves (python-magic), writes the bytes
       into a date-organized directory with a UUID filename, and returns a
       StorageResult `{success, file_url | message}`.
Who:   Passenger application route (upload → submit); cleanup on failed submit.

Contract:
    upload(filename, content, mime_type) -> StorageResult
      - bad input (type, size, empty)    → raises ValidationError (client can fix)
      - bytes do not match the extension → raises ValidationError
      - libmagic cannot read the bytes   → raises FileStorageError
      - disk / permission failure        → StorageResult(success=False, message=...)
      - success                          → StorageResult(success=True, file_url=...)
    Only file_url is persisted by the workflow.

Directory Structure:
    storage/
    └── documents/
        └── 2024/
            └── 01/
                └── 15/
                    └── a1b2c3d4-....pdf
"""

import logging
import os
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import magic

from buspass.config import settings
from buspass.exceptions import FileStorageError, ValidationError

logger = logging.getLogger(__name__)

# MIME type → canonical extension
ALLOWED_MIME_TYPES = {
    "application/pdf": ".pdf",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
}

ALLOWED_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg"}

# .jpeg and .jpg are the same format
CANONICAL_EXTENSIONS = {".jpeg": ".jpg"}

DOCUMENTS_DIR = "documents"


@dataclass
class StorageResult:
    success: bool
    file_url: Optional[str] = None
    message: Optional[str] = None
    path: Optional[str] = None


class StorageService:
    def __init__(self, storage_root: Optional[str] = None, url_prefix: Optional[str] = None):
        """
        Args:
            storage_root: Override the default storage path (used in tests).
            url_prefix:   Override the URL prefix documents are served under.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.url_prefix = (url_prefix or settings.files_url_prefix).rstrip("/")

    # ── Validation ────────────────────────────────────────────────────────

    def validate_extension(self, filename: str) -> str:
        """Returns the normalized extension (lowercase with dot)."""
        ext = Path(filename).suffix.lower()
        if ext not in ALLOWED_EXTENSIONS:
            raise ValidationError(
                message=(
                    f"Document type '{ext or 'none'}' is not supported. "
                    f"Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
                ),
                field="document",
                context={"extension": ext, "allowed": sorted(ALLOWED_EXTENSIONS)},
            )
        return ext

    def validate_declared_type(self, mime_type: Optional[str]) -> str:
        """Checks the client's Content-Type; the bytes are checked separately."""
        normalized = (mime_type or "").split(";")[0].strip().lower()
        if normalized not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=(
                    f"Content type '{normalized or 'unknown'}' is not supported. "
                    "Upload a PDF, PNG or JPEG document."
                ),
                field="document",
                context={"mime_type": normalized, "allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return normalized

    def validate_mime_type(self, content: bytes, filename: str) -> str:
        """
        Detect the real type from the file's leading bytes.

        The detected type must be an allowed document type and must agree
        with the filename's extension, so a renamed executable or a PNG
        uploaded as `.pdf` is refused.

        Returns:
            Detected MIME type (e.g. "application/pdf")

        Raises:
            ValidationError:  bytes are not an allowed type, or not the extension's type
            FileStorageError: libmagic could not inspect the bytes
        """
        try:
            detected = magic.from_buffer(content, mime=True)
        except magic.MagicException as e:
            logger.error("MIME type detection failed for %s: %s", filename, str(e))
            raise FileStorageError(
                message="Could not verify the document type. Please try again.",
                context={"error": str(e)},
            ) from e

        ext = Path(filename).suffix.lower()
        expected = CANONICAL_EXTENSIONS.get(ext, ext)
        if ALLOWED_MIME_TYPES.get(detected) != expected:
            logger.warning(
                "Rejected upload %s: content is %s, extension is %s", filename, detected, ext
            )
            raise ValidationError(
                message=(
                    f"Document content ({detected}) does not match its '{ext}' extension. "
                    "Upload a PDF, PNG or JPEG document."
                ),
                field="document",
                context={"detected": detected, "extension": ext},
            )
        return detected

    def validate_size(self, content: bytes) -> None:
        if not content:
            raise ValidationError(message="Uploaded document is empty", field="document")

        if len(content) > settings.max_document_size:
            max_mb = settings.max_document_size / (1024 * 1024)
            raise ValidationError(
                message=(
                    f"Document size ({len(content) / (1024 * 1024):.1f}MB) "
                    f"exceeds maximum of {max_mb:.0f}MB."
                ),
                field="document",
                context={"max_size_mb": max_mb, "actual_size": len(content)},
            )

    # ── Storage ───────────────────────────────────────────────────────────

    def _generate_storage_path(self, extension: str) -> Tuple[Path, str]:
        """Returns (absolute_path, relative_path) for documents/YYYY/MM/DD/<uuid><ext>."""
        date_dir = datetime.now(timezone.utc).strftime("%Y/%m/%d")
        relative_path = f"{DOCUMENTS_DIR}/{date_dir}/{uuid.uuid4()}{extension}"
        return self.storage_root / relative_path, relative_path

    def url_for(self, relative_path: str) -> str:
        return f"{self.url_prefix}/{relative_path}"

    def resolve_url(self, file_url: str) -> Optional[Path]:
        """Maps a URL produced by `upload` back to its file; None if it is not ours."""
        prefix = f"{self.url_prefix}/"
        if not file_url.startswith(prefix):
            return None
        candidate = (self.storage_root / file_url[len(prefix):]).resolve()
        if not candidate.is_relative_to(self.storage_root):
            return None
        return candidate

    async def upload(self, filename: str, content: bytes, mime_type: Optional[str]) -> StorageResult:
        """
        Validate and store one document.

        Validation order (cheapest first): extension, declared MIME type,
        size, then the type detected from the bytes.
        """
        ext = self.validate_extension(filename)
        self.validate_declared_type(mime_type)
        self.validate_size(content)
        self.validate_mime_type(content, filename)

        absolute_path, relative_path = self._generate_storage_path(ext)
        try:
            absolute_path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(absolute_path, "wb") as f:
                await f.write(content)
        except OSError as e:
            logger.error("Failed to store document at %s: %s", absolute_path, str(e))
            return StorageResult(
                success=False,
                message="Failed to save the uploaded document. Please try again.",
            )

        logger.info("Document stored: %s (%d bytes)", relative_path, len(content))
        return StorageResult(
            success=True,
            file_url=self.url_for(relative_path),
            path=str(absolute_path),
        )

    async def cleanup_file(self, file_path: str) -> None:
        """
        Best-effort removal of a stored document.

        Called when the application insert fails after the upload succeeded,
        so rejected submissions do not leave orphaned files behind. Failures
        are logged, never raised: the caller is already propagating the
        original error.
        """
        try:
            path = Path(file_path)
            if path.exists():
                os.remove(path)
                logger.info("Cleaned up document: %s", path.name)
            else:
                logger.debug("Cleanup: document already gone: %s", path.name)
        except OSError as e:
            logger.warning("Failed to clean up document %s: %s", file_path, str(e))


storage_service = StorageService()
