"""
DocShelf Upload Sessions — deterministic upload progress state machine.

    IDLE ──start()──> IN_PROGRESS(0) ──advance()──> ... IN_PROGRESS(100) ──> DONE
      │                    │
      └──cancel()──────────┴──> CANCELLED        (validation/read/commit error) ──> FAILED

The file's bytes are read on the first advance(); the document (or new
version) is committed to the store only when progress reaches 100. A
cancelled or failed session never leaves anything in the store, and
advance() calls arriving after cancel() are ignored.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from docshelf.documents.blobs import BlobRegistry, extract_text
from docshelf.documents.models import Document, DocumentVersion, normalize_folder_id
from docshelf.documents.store import EntityStore
from docshelf.documents.validation import (
    UploadValidator,
    canonical_file_type,
    detect_mime_type,
    display_title,
)
from docshelf.engine.errors import (
    DocShelfError,
    DocShelfNotFoundError,
    DocShelfReadError,
    DocShelfValidationError,
)
from docshelf.engine.logging import log_upload_event

logger = logging.getLogger("docshelf.documents.upload")

ProgressListener = Callable[["UploadSession"], None]


class UploadState(str, Enum):
    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    CANCELLED = "cancelled"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (UploadState.DONE, UploadState.CANCELLED, UploadState.FAILED)


class UploadSession:
    """
    One file upload, creating a new document or, with document_id, a new version.

    Args:
        store: Store the result is committed to.
        validator: Type/size validation applied before and after reading.
        blobs: Registry turning the bytes into a content handle.
        file_name: Original file name (drives type detection and default title).
        size: Declared size in bytes; the read bytes' length replaces it.
        reader: Returns the file's bytes; any exception fails the session.
        name: Document title; defaults to the file name without extension.
        step: Percent added per advance().
    """

    def __init__(
        self,
        store: EntityStore,
        validator: UploadValidator,
        blobs: BlobRegistry,
        file_name: str,
        size: int,
        reader: Callable[[], bytes],
        *,
        name: Optional[str] = None,
        mime_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        description: str = "",
        owner_id: Optional[str] = None,
        document_id: Optional[str] = None,
        change_notes: Optional[str] = None,
        step: int = 10,
    ):
        if not 1 <= step <= 100:
            raise DocShelfValidationError(f"Upload step must be within 1..100, got {step}")
        if isinstance(tags, str):
            raise DocShelfValidationError(
                f"Tags must be a list of ids or names, got the string '{tags}'", object_ref=file_name
            )
        self._store = store
        self._validator = validator
        self._blobs = blobs
        self._reader = reader
        self.file_name = file_name
        self.size = size
        self.name = name
        self.mime_type = mime_type or detect_mime_type(file_name)
        self.folder_id = folder_id
        self.tags = list(tags or [])
        self.description = description
        self.owner_id = owner_id
        self.document_id = document_id
        self.change_notes = change_notes
        self._step = step

        self.state = UploadState.IDLE
        self.percent = 0
        self.error: Optional[DocShelfError] = None
        self.document: Optional[Document] = None
        self.version: Optional[DocumentVersion] = None
        self._data: Optional[bytes] = None
        self._listeners: List[ProgressListener] = []

    # -------------------------------------------------------------------
    # Listeners
    # -------------------------------------------------------------------

    def subscribe(self, listener: ProgressListener) -> None:
        """Call listener(session) after every state or percent change."""
        self._listeners.append(listener)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def _fail(self, error: DocShelfError) -> UploadState:
        self.state = UploadState.FAILED
        self.error = error
        self._data = None
        logger.warning(f"Upload of {self.file_name} failed: {error.message}")
        self._store.activity.record(log_upload_event(
            "upload_failed", self.file_name, error.message, percent=self.percent, level="ERROR",
        ))
        self._notify()
        return self.state

    # -------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------

    def start(self) -> UploadState:
        if self.state is not UploadState.IDLE:
            return self.state

        valid, message = self._validator.validate(self.file_name, self.size, self.mime_type)
        if not valid:
            return self._fail(DocShelfValidationError(message or "Invalid upload", object_ref=self.file_name))

        if self.document_id is not None:
            if not self._store.has_document(self.document_id):
                return self._fail(DocShelfNotFoundError(
                    f"Document '{self.document_id}' not found",
                    object_type="document",
                    object_id=self.document_id,
                ))
        else:
            self.name = (self.name or display_title(self.file_name)).strip()
            if not self.name:
                return self._fail(DocShelfValidationError("Please enter a title", object_ref=self.file_name))
            self.folder_id = normalize_folder_id(self.folder_id)
            if self.folder_id is not None and not self._store.has_folder(self.folder_id):
                return self._fail(DocShelfNotFoundError(
                    f"Folder '{self.folder_id}' not found",
                    object_type="folder",
                    object_id=self.folder_id,
                ))

        self.state = UploadState.IN_PROGRESS
        self.percent = 0
        self._notify()
        return self.state

    def advance(self) -> UploadState:
        """Move one step. Ignored unless the session is in progress."""
        if self.state is not UploadState.IN_PROGRESS:
            logger.debug(f"Ignoring stale advance() for {self.file_name} in state {self.state.value}")
            return self.state

        if self._data is None:
            try:
                data = self._reader()
            except Exception as e:
                return self._fail(DocShelfReadError(f"Error reading file: {e}", object_ref=self.file_name))
            if data is None:
                return self._fail(DocShelfReadError("Failed to read file content", object_ref=self.file_name))
            valid, message = self._validator.validate(self.file_name, len(data), self.mime_type)
            if not valid:
                return self._fail(DocShelfValidationError(message or "Invalid upload", object_ref=self.file_name))
            self._data = bytes(data)
            self.size = len(self._data)

        self.percent = min(100, self.percent + self._step)
        if self.percent < 100:
            self._notify()
            return self.state
        return self._commit()

    def _commit(self) -> UploadState:
        data = self._data or b""
        url = self._blobs.create_url(data, self.mime_type)
        content = extract_text(data, self.mime_type)
        try:
            if self.document_id is not None:
                self.version = self._store.add_version(
                    self.document_id,
                    url=url,
                    size_bytes=len(data),
                    created_by=self.owner_id,
                    change_notes=self.change_notes,
                    content=content,
                )
                if self.version is None:
                    raise DocShelfNotFoundError(
                        f"Document '{self.document_id}' was deleted during upload",
                        object_type="document",
                        object_id=self.document_id,
                    )
                self.document = self._store.get_document(self.document_id)
            else:
                self.document = self._store.create_document(
                    name=self.name,
                    url=url,
                    size_bytes=len(data),
                    mime_type=self.mime_type,
                    file_type=canonical_file_type(self.file_name),
                    folder_id=self.folder_id,
                    tags=self.tags,
                    content=content,
                    description=self.description,
                    owner_id=self.owner_id,
                )
                self.version = self.document.latest_version()
        except DocShelfError as e:
            self._blobs.revoke(url)
            return self._fail(e)

        self._data = None
        self.state = UploadState.DONE
        self._store.activity.record(log_upload_event(
            "upload_done", self.file_name, f"Uploaded {self.file_name}", percent=100,
        ))
        self._notify()
        return self.state

    def cancel(self) -> bool:
        """Abandon the upload. Returns False if it had already finished."""
        if self.state.is_terminal:
            return False
        self.state = UploadState.CANCELLED
        self._data = None
        self._store.activity.record(log_upload_event(
            "upload_cancelled", self.file_name, f"Upload of {self.file_name} cancelled", percent=self.percent,
        ))
        self._notify()
        return True

    def run(self) -> UploadState:
        """Drive the session to a terminal state."""
        if self.state is UploadState.IDLE:
            self.start()
        while self.state is UploadState.IN_PROGRESS:
            self.advance()
        return self.state

    def result(self) -> Union[Document, DocumentVersion]:
        """
        The committed entity: the new document, or the new version when
        uploading a version. Raises the recorded error if the session failed.
        """
        if self.state is UploadState.FAILED and self.error is not None:
            raise self.error
        if self.state is not UploadState.DONE:
            raise DocShelfValidationError(
                f"Upload of {self.file_name} is {self.state.value}",
                object_ref=self.file_name,
            )
        if self.document_id is not None:
            return self.version
        return self.document

    def __repr__(self) -> str:
        return f"<UploadSession {self.file_name!r} {self.state.value} {self.percent}%>"