"""Unit tests for docshelf.documents.validation and docshelf.documents.blobs."""

import pytest

from docshelf.documents.blobs import BLOB_SCHEME, BlobRegistry, extract_text
from docshelf.documents.validation import (
    UploadValidator,
    canonical_file_type,
    detect_mime_type,
    display_title,
    file_extension,
    format_file_size,
    safe_filename,
)
from docshelf.engine.config import DocumentsConfig, ShelfConfig
from docshelf.engine.errors import DocShelfNotFoundError, DocShelfValidationError

MB = 1024 * 1024


class TestFileHelpers:
    """File name and type helper tests."""

    def test_file_extension(self):
        assert file_extension("Report.PDF") == "pdf"
        assert file_extension("archive.tar.gz") == "gz"
        assert file_extension("README") == ""
        assert file_extension(".bashrc") == ""

    def test_canonical_file_type(self):
        assert canonical_file_type("old.doc") == "docx"
        assert canonical_file_type("sheet.xls") == "xlsx"
        assert canonical_file_type("deck.ppt") == "pptx"
        assert canonical_file_type("photo.JPEG") == "jpg"
        assert canonical_file_type("tool.exe") == "unknown"

    def test_detect_mime_type(self):
        assert detect_mime_type("a.pdf") == "application/pdf"
        assert detect_mime_type("a.docx").endswith("wordprocessingml.document")
        assert detect_mime_type("notes.txt") == "text/plain"
        assert detect_mime_type("blob.unknownext") == "application/octet-stream"

    def test_display_title(self):
        assert display_title("Q3 report.final.pdf") == "Q3 report.final"
        assert display_title("README") == "README"
        assert display_title("/tmp/up/notes.txt") == "notes"

    def test_safe_filename(self):
        assert safe_filename("../../etc/passwd") == "passwd"
        assert safe_filename("C:\\docs\\a<b>.pdf") == "ab.pdf"
        assert safe_filename("...") == "unnamed_document"
        long_name = safe_filename("x" * 300 + ".pdf")
        assert len(long_name) == 200
        assert long_name.endswith(".pdf")

    @pytest.mark.parametrize("size,expected", [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1536, "1.5 KB"),
        (10 * MB, "10 MB"),
    ])
    def test_format_file_size(self, size, expected):
        assert format_file_size(size) == expected


class TestUploadValidator:
    """Upload validator tests."""

    def test_accepts_allowed(self):
        assert UploadValidator().validate("Report.pdf", 1024) == (True, None)

    def test_declared_mime_type_ignored(self):
        validator = UploadValidator()
        assert validator.validate("Report.pdf", 1024, "application/octet-stream") == (True, None)
        assert validator.validate("Report.pdf", 1024, "text/plain") == (True, None)
        assert not validator.validate("virus.exe", 10, "application/pdf")[0]

    def test_rejects_type(self):
        valid, message = UploadValidator().validate("virus.exe", 10)
        assert not valid
        assert "Unsupported file type 'exe'" in message

    def test_rejects_missing_extension(self):
        valid, message = UploadValidator().validate("Makefile", 10)
        assert not valid
        assert "'none'" in message

    def test_rejects_blank_name(self):
        assert UploadValidator().validate("  ", 10) == (False, "File name is required")

    def test_size_ceiling_inclusive(self):
        validator = UploadValidator(max_upload_size_mb=10)
        assert validator.validate("a.pdf", 10 * MB)[0]
        valid, message = validator.validate("a.pdf", 10 * MB + 1)
        assert not valid
        assert "exceeds the 10 MB limit" in message

    def test_negative_size(self):
        assert not UploadValidator().validate("a.pdf", -1)[0]

    def test_default_ceiling_is_50mb(self):
        assert UploadValidator().max_upload_bytes == 50 * MB

    def test_custom_extensions(self):
        validator = UploadValidator(allowed_extensions=[".CSV"])
        assert validator.is_allowed_type("data.csv")
        assert not validator.is_allowed_type("a.pdf")

    def test_from_config(self):
        cfg = ShelfConfig(documents=DocumentsConfig(max_upload_size_mb=5, allowed_extensions=["txt"]))
        validator = UploadValidator.from_config(cfg)
        assert validator.max_upload_bytes == 5 * MB
        assert validator.allowed_extensions == frozenset({"txt"})

    def test_check_raises(self):
        with pytest.raises(DocShelfValidationError) as exc_info:
            UploadValidator().check("virus.exe", 10)
        assert exc_info.value.object_type == "upload"
        assert exc_info.value.object_ref == "virus.exe"


class TestBlobRegistry:
    """Blob registry tests."""

    def test_create_and_read(self):
        blobs = BlobRegistry()
        url = blobs.create_url(b"hello", "text/plain")
        assert url.startswith(BLOB_SCHEME)
        assert url in blobs
        assert blobs.read(url) == b"hello"
        assert blobs.mime_type(url) == "text/plain"
        assert len(blobs) == 1

    def test_urls_unique(self):
        blobs = BlobRegistry()
        assert blobs.create_url(b"a") != blobs.create_url(b"a")

    def test_revoke(self):
        blobs = BlobRegistry()
        url = blobs.create_url(b"x")
        assert blobs.revoke(url) is True
        assert blobs.revoke(url) is False
        with pytest.raises(DocShelfNotFoundError):
            blobs.read(url)

    def test_extract_text(self):
        assert extract_text("héllo".encode("utf-8"), "text/plain") == "héllo"
        assert extract_text(b"\xff\xfeok", "text/plain").endswith("ok")
        assert extract_text(b"%PDF-1.4", "application/pdf") is None
