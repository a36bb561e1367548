"""
DocShelf Document & Folder Management.

Entity models, the in-memory entity store, upload validation, content
blobs and upload sessions. The query engine lives in
docshelf.documents.query (it depends on docshelf.security).
"""

from docshelf.documents.blobs import BlobRegistry, extract_text
from docshelf.documents.models import (
    AccessControlEntry,
    Annotation,
    AnnotationPosition,
    AnnotationType,
    Document,
    DocumentVersion,
    Folder,
    PermissionLevel,
    Role,
    Tag,
    User,
)
from docshelf.documents.store import EntityStore
from docshelf.documents.upload import UploadSession, UploadState
from docshelf.documents.validation import UploadValidator

__all__ = [
    "AccessControlEntry",
    "Annotation",
    "AnnotationPosition",
    "AnnotationType",
    "BlobRegistry",
    "Document",
    "DocumentVersion",
    "EntityStore",
    "Folder",
    "PermissionLevel",
    "Role",
    "Tag",
    "UploadSession",
    "UploadState",
    "UploadValidator",
    "User",
    "extract_text",
]
