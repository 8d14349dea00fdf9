"""
Bus Pass Backend — Document Storage Tests
=========================================

What:  StorageService validation, upload, URL mapping and cleanup.
How:   Real writes into pytest's tmp_path and real libmagic detection;
       aiofiles patched only to simulate a failing disk.

Test Strategy:
    ✅ Allowed extensions (.pdf, .png, .jpg, .jpeg), case-insensitive
    ✅ Rejected extensions and declared MIME types
    ✅ Content sniffing (python-magic): bytes must match the extension
    ✅ Size limit and empty uploads
    ✅ Upload writes under documents/YYYY/MM/DD and returns a served URL
    ✅ Disk failure returns success=False instead of raising
    ✅ URL resolution refuses paths outside the storage root
"""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from buspass.config import settings
from buspass.exceptions import ValidationError
from buspass.services.storage_service import StorageService

EXECUTABLE_BYTES = b"MZ\x90\x00\x03\x00\x00\x00\x04\x00\x00\x00\xff\xffthis is a windows executable"
PNG_BYTES = (
    b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
    b"\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"
)


class TestDocumentValidation:

    def setup_method(self):
        self.service = StorageService(storage_root="/tmp/unused", url_prefix="/files")

    @pytest.mark.parametrize("filename", ["id.pdf", "id.PNG", "scan.jpg", "scan.Jpeg"])
    def test_allowed_extensions(self, filename):
        assert self.service.validate_extension(filename) == Path(filename).suffix.lower()

    @pytest.mark.parametrize("filename", ["id.gif", "id.exe", "noextension", "archive.pdf.zip"])
    def test_rejected_extensions(self, filename):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_extension(filename)

    def test_mime_type_parameters_ignored(self):
        assert self.service.validate_declared_type("application/pdf; charset=binary") == "application/pdf"

    @pytest.mark.parametrize("mime_type", [None, "", "text/html", "image/gif"])
    def test_rejected_mime_types(self, mime_type):
        with pytest.raises(ValidationError, match="not supported"):
            self.service.validate_declared_type(mime_type)

    def test_empty_document(self):
        with pytest.raises(ValidationError, match="empty"):
            self.service.validate_size(b"")

    def test_size_at_limit_accepted(self):
        self.service.validate_size(b"x" * settings.max_document_size)

    def test_size_over_limit(self):
        with pytest.raises(ValidationError, match="exceeds maximum"):
            self.service.validate_size(b"x" * (settings.max_document_size + 1))


class TestContentSniffing:

    def setup_method(self):
        self.service = StorageService(storage_root="/tmp/unused")

    def test_pdf_bytes_detected(self, sample_pdf_bytes):
        assert self.service.validate_mime_type(sample_pdf_bytes, "id.pdf") == "application/pdf"

    def test_png_bytes_detected(self):
        assert self.service.validate_mime_type(PNG_BYTES, "photo.PNG") == "image/png"

    def test_executable_named_pdf_rejected(self):
        with pytest.raises(ValidationError, match="does not match"):
            self.service.validate_mime_type(EXECUTABLE_BYTES, "id.pdf")

    def test_png_named_pdf_rejected(self):
        with pytest.raises(ValidationError, match="image/png"):
            self.service.validate_mime_type(PNG_BYTES, "id.pdf")

    @pytest.mark.asyncio
    async def test_upload_refuses_disguised_executable(self, temp_storage):
        service = StorageService(storage_root=temp_storage)

        with pytest.raises(ValidationError, match="does not match"):
            await service.upload("id.pdf", EXECUTABLE_BYTES, "application/pdf")

        assert list(Path(temp_storage).iterdir()) == []


class TestUpload:

    @pytest.mark.asyncio
    async def test_upload_writes_dated_file(self, temp_storage, sample_pdf_bytes):
        service = StorageService(storage_root=temp_storage, url_prefix="/api/v1/files/")

        result = await service.upload("passport.PDF", sample_pdf_bytes, "application/pdf")

        assert result.success is True
        assert result.file_url.startswith("/api/v1/files/documents/")
        assert result.file_url.endswith(".pdf")
        stored = Path(result.path)
        assert stored.read_bytes() == sample_pdf_bytes
        assert stored.relative_to(Path(temp_storage).resolve()).parts[0] == "documents"
        assert service.resolve_url(result.file_url) == stored

    @pytest.mark.asyncio
    async def test_upload_validates_before_writing(self, temp_storage):
        service = StorageService(storage_root=temp_storage)
        with pytest.raises(ValidationError):
            await service.upload("photo.png", b"\x89PNG", "image/gif")
        assert list(Path(temp_storage).iterdir()) == []

    @pytest.mark.asyncio
    async def test_disk_failure_reported_not_raised(self, temp_storage, sample_pdf_bytes):
        service = StorageService(storage_root=temp_storage)
        with patch(
            "buspass.services.storage_service.aiofiles.open",
            new=MagicMock(side_effect=PermissionError("read-only filesystem")),
        ):
            result = await service.upload("id.pdf", sample_pdf_bytes, "application/pdf")

        assert result.success is False
        assert result.file_url is None
        assert "Failed to save" in result.message


class TestUrlsAndCleanup:

    def test_resolve_rejects_traversal(self, temp_storage):
        service = StorageService(storage_root=temp_storage, url_prefix="/files")
        assert service.resolve_url("/files/../../etc/passwd") is None

    def test_resolve_rejects_foreign_prefix(self, temp_storage):
        service = StorageService(storage_root=temp_storage, url_prefix="/files")
        assert service.resolve_url("https://elsewhere.example/documents/a.pdf") is None

    @pytest.mark.asyncio
    async def test_cleanup_removes_file(self, tmp_path):
        doc = tmp_path / "doc.pdf"
        doc.write_bytes(b"%PDF")
        await StorageService(storage_root=str(tmp_path)).cleanup_file(str(doc))
        assert not doc.exists()

    @pytest.mark.asyncio
    async def test_cleanup_missing_file_is_quiet(self, tmp_path):
        await StorageService(storage_root=str(tmp_path)).cleanup_file(str(tmp_path / "gone.pdf"))
