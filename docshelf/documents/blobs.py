"""
DocShelf Blob Registry — bytes <-> dereferenceable handle conversion.

Documents and versions reference their content by URL-like handle
("blob:docshelf/<id>"); the bytes themselves live here for the session.
The store never copies content, it only keeps the handle.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional, Tuple

from docshelf.engine.errors import DocShelfNotFoundError
from docshelf.engine.ids import generate_id

logger = logging.getLogger("docshelf.documents.blobs")

BLOB_SCHEME = "blob:docshelf/"


class BlobRegistry:
    """In-memory handle table for uploaded content."""

    def __init__(self):
        self._blobs: Dict[str, Tuple[bytes, str]] = {}

    def create_url(self, data: bytes, mime_type: str = "application/octet-stream") -> str:
        url = f"{BLOB_SCHEME}{generate_id()}"
        while url in self._blobs:
            url = f"{BLOB_SCHEME}{generate_id()}"
        self._blobs[url] = (bytes(data), mime_type)
        logger.debug(f"Created blob {url} ({len(data)} bytes, {mime_type})")
        return url

    def read(self, url: str) -> bytes:
        try:
            return self._blobs[url][0]
        except KeyError:
            raise DocShelfNotFoundError(
                f"Blob '{url}' does not exist or was revoked",
                object_type="blob",
                object_id=url,
            ) from None

    def mime_type(self, url: str) -> Optional[str]:
        entry = self._blobs.get(url)
        return entry[1] if entry else None

    def revoke(self, url: str) -> bool:
        existed = self._blobs.pop(url, None) is not None
        if existed:
            logger.debug(f"Revoked blob {url}")
        return existed

    def __contains__(self, url: object) -> bool:
        return url in self._blobs

    def __len__(self) -> int:
        return len(self._blobs)


def extract_text(data: bytes, mime_type: str) -> Optional[str]:
    """
    Extract searchable text from uploaded bytes.

    Only text/* content is decoded (UTF-8, undecodable bytes replaced).
    Binary formats return None; real document parsing is out of scope.
    """
    if not mime_type.startswith("text/"):
        return None
    return data.decode("utf-8", errors="replace")
