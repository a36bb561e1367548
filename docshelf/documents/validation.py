"""
DocShelf Upload Validation — file type allow-list, size ceiling, naming helpers.

The size ceiling is a single configurable value (documents.max_upload_size_mb,
default 50 MB); the allow-list is matched on the file extension.
"""

from __future__ import annotations

import logging
import mimetypes
import os
from typing import Dict, Iterable, Optional, Tuple

from docshelf.engine.config import DEFAULT_ALLOWED_EXTENSIONS
from docshelf.engine.errors import DocShelfValidationError

logger = logging.getLogger("docshelf.documents.validation")

# mimetypes does not know the office formats on every platform
EXTENSION_MIME_TYPES: Dict[str, str] = {
    "pdf": "application/pdf",
    "doc": "application/msword",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "xls": "application/vnd.ms-excel",
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "ppt": "application/vnd.ms-powerpoint",
    "pptx": "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
    "txt": "text/plain",
}

# Canonical file type shown by the UI (legacy formats fold into the modern one)
CANONICAL_FILE_TYPES: Dict[str, str] = {
    "pdf": "pdf",
    "doc": "docx",
    "docx": "docx",
    "xls": "xlsx",
    "xlsx": "xlsx",
    "ppt": "pptx",
    "pptx": "pptx",
    "jpg": "jpg",
    "jpeg": "jpg",
    "png": "png",
    "txt": "txt",
}


def file_extension(file_name: str) -> str:
    """Lower-cased extension without the dot; "" when there is none."""
    base = os.path.basename(file_name)
    if "." not in base.lstrip("."):
        return ""
    return base.rsplit(".", 1)[-1].lower()


def canonical_file_type(file_name: str) -> str:
    return CANONICAL_FILE_TYPES.get(file_extension(file_name), "unknown")


def detect_mime_type(file_name: str) -> str:
    """Detect MIME type from filename."""
    ext = file_extension(file_name)
    if ext in EXTENSION_MIME_TYPES:
        return EXTENSION_MIME_TYPES[ext]
    mime, _ = mimetypes.guess_type(file_name)
    return mime or "application/octet-stream"


def display_title(file_name: str) -> str:
    """
    Default document title for an uploaded file: the name without its extension.

    "Q3 report.final.pdf" -> "Q3 report.final"
    """
    base = os.path.basename(file_name)
    if file_extension(base):
        return base.rsplit(".", 1)[0]
    return base


def safe_filename(filename: str) -> str:
    """
    Sanitize a filename for use as a display/download name.

    Removes path separators, control chars, and leading dots.
    Preserves extension.
    """
    name = os.path.basename(filename.replace("\\", "/"))
    name = "".join(c for c in name if c.isprintable() and c not in '<>:"/\\|?*')
    name = name.lstrip(".")
    if not name:
        name = "unnamed_document"
    if len(name) > 200:
        base, ext = os.path.splitext(name)
        name = base[:200 - len(ext)] + ext
    return name


def format_file_size(size_bytes: int) -> str:
    """Human readable size: "0 Bytes", "512 Bytes", "1.5 KB", "2.25 MB"."""
    if size_bytes <= 0:
        return "0 Bytes"
    units = ["Bytes", "KB", "MB", "GB", "TB"]
    value = float(size_bytes)
    i = 0
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    if i == 0:
        return f"{int(value)} Bytes"
    return f"{round(value, 2):g} {units[i]}"


class UploadValidator:
    """Validates uploads against the extension allow-list and the size ceiling."""

    def __init__(
        self,
        max_upload_size_mb: int = 50,
        allowed_extensions: Optional[Iterable[str]] = None,
    ):
        self._max_upload_size_mb = max_upload_size_mb
        self._allowed = {
            ext.lower().lstrip(".")
            for ext in (allowed_extensions or DEFAULT_ALLOWED_EXTENSIONS)
        }

    @classmethod
    def from_config(cls, config) -> "UploadValidator":
        return cls(
            max_upload_size_mb=config.documents.max_upload_size_mb,
            allowed_extensions=config.documents.allowed_extensions,
        )

    @property
    def max_upload_bytes(self) -> int:
        return self._max_upload_size_mb * 1024 * 1024

    @property
    def allowed_extensions(self) -> frozenset:
        return frozenset(self._allowed)

    def is_allowed_type(self, file_name: str) -> bool:
        return file_extension(file_name) in self._allowed

    def validate(
        self,
        file_name: str,
        file_size: int,
        mime_type: Optional[str] = None,
    ) -> Tuple[bool, Optional[str]]:
        """
        Validate a file upload against the allow-list and size ceiling.

        The extension decides the type; a declared mime_type is not checked
        against it.

        Returns (is_valid, error_message_or_None).
        """
        if not file_name or not file_name.strip():
            return False, "File name is required"

        ext = file_extension(file_name)
        if ext not in self._allowed:
            allowed = ", ".join(sorted(self._allowed))
            return False, (
                f"Unsupported file type '{ext or 'none'}' for '{file_name}'. "
                f"Allowed: {allowed}"
            )

        if file_size < 0:
            return False, f"Invalid file size {file_size}"

        if file_size > self.max_upload_bytes:
            return False, (
                f"File size ({file_size / 1024 / 1024:.1f} MB) exceeds "
                f"the {self._max_upload_size_mb} MB limit"
            )

        return True, None

    def check(self, file_name: str, file_size: int, mime_type: Optional[str] = None) -> None:
        """Like validate(), raising DocShelfValidationError on failure."""
        valid, error = self.validate(file_name, file_size, mime_type)
        if not valid:
            raise DocShelfValidationError(
                error or "Upload validation failed",
                object_type="upload",
                object_ref=file_name,
            )

    def __repr__(self) -> str:
        return f"<UploadValidator max={self._max_upload_size_mb}MB types={sorted(self._allowed)}>"
