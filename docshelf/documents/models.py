"""
DocShelf Entity Models — Pydantic definitions for every entity the store owns.

Document: File metadata, extracted text, tags, versions, annotations, access list.
DocumentVersion: Append-only snapshot of a document's content reference.
Folder: Hierarchical container (parent_id None = root).
Tag: Globally shared label, referenced from documents by id.
User / AccessControlEntry: Sharing and permission data.
Annotation: Page-anchored comment, highlight, note or drawing.

The access list is stored as a list of entries (carries the user's display
name). The map-shaped form {user_id: level} is accepted on input and
normalized by normalize_access().
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docshelf.engine.errors import DocShelfValidationError

logger = logging.getLogger("docshelf.documents.models")

ROOT_FOLDER_ALIAS = "root"


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------

class PermissionLevel(str, Enum):
    """
    Ordered document permission levels.

    Total order: none < view < edit < download < admin. Used both by the
    sharing UI and by permission checks.
    """

    NONE = "none"
    VIEW = "view"
    EDIT = "edit"
    DOWNLOAD = "download"
    ADMIN = "admin"

    @property
    def rank(self) -> int:
        return list(PermissionLevel).index(self)

    def at_least(self, other: Union["PermissionLevel", str]) -> bool:
        return self.rank >= PermissionLevel.parse(other).rank

    @classmethod
    def parse(cls, value: Union["PermissionLevel", str]) -> "PermissionLevel":
        if isinstance(value, PermissionLevel):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise DocShelfValidationError(
                f"Unknown permission level '{value}'. "
                f"Expected one of: {', '.join(p.value for p in cls)}",
                object_type="permission_level",
            ) from None


class Role(str, Enum):
    ADMIN = "admin"
    EDITOR = "editor"
    VIEWER = "viewer"


class AnnotationType(str, Enum):
    COMMENT = "comment"
    HIGHLIGHT = "highlight"
    NOTE = "note"
    DRAWING = "drawing"


def _require_text(v: str, what: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{what} cannot be empty")
    return v.strip()


# ---------------------------------------------------------------------------
# Users, tags, folders
# ---------------------------------------------------------------------------

class User(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[Role] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "User name")


class Tag(BaseModel):
    id: str
    name: str = Field(max_length=64)
    color: str = "#6b7280"

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Tag name")


class Folder(BaseModel):
    """Folder record. parent_id None means the folder sits at the root."""

    id: str
    name: str = Field(max_length=255, description="Folder display name")
    parent_id: Optional[str] = Field(default=None, description="Parent folder ID")
    owner_id: str
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Folder name")

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None


# ---------------------------------------------------------------------------
# Versions, annotations, access
# ---------------------------------------------------------------------------

class DocumentVersion(BaseModel):
    """
    One entry of a document's version history.

    Versions are append-only: created on initial upload (version 1) and on
    every subsequent version upload, never mutated or deleted.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str = Field(description="Parent document ID")
    version_number: int = Field(ge=1, description="Version number (dense, from 1)")
    url: str = Field(description="Content reference for this version")
    size_bytes: int = Field(ge=0)
    created_by: str
    created_at: datetime
    change_notes: Optional[str] = Field(default=None, max_length=500)


class AnnotationPosition(BaseModel):
    page: int = Field(ge=1)
    x: float = 0.0
    y: float = 0.0
    width: Optional[float] = Field(default=None, ge=0)
    height: Optional[float] = Field(default=None, ge=0)


class Annotation(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    document_id: str
    page: int = Field(ge=1)
    type: AnnotationType = AnnotationType.COMMENT
    content: str = ""
    position: Optional[AnnotationPosition] = None
    created_by: str
    created_at: datetime


class AccessControlEntry(BaseModel):
    user_id: str
    user_name: str
    permission_level: PermissionLevel

    @field_validator("permission_level", mode="before")
    @classmethod
    def parse_level(cls, v: Any) -> PermissionLevel:
        try:
            return PermissionLevel.parse(v)
        except DocShelfValidationError as e:
            raise ValueError(e.message) from None


def normalize_access(
    value: Union[None, Mapping[str, Any], Iterable[Any]],
    user_names: Optional[Mapping[str, str]] = None,
) -> List[Dict[str, Any]]:
    """
    Reconcile both access shapes into a list of entry dicts.

    Accepts a {user_id: level} mapping or a list of entries (dicts or
    AccessControlEntry). Later entries for the same user win.
    """
    if value is None:
        return []
    names = user_names or {}
    merged: Dict[str, Dict[str, Any]] = {}
    if isinstance(value, Mapping):
        for user_id, level in value.items():
            merged[user_id] = {
                "user_id": user_id,
                "user_name": names.get(user_id, user_id),
                "permission_level": level,
            }
        return list(merged.values())

    for item in value:
        if isinstance(item, AccessControlEntry):
            item = item.model_dump()
        item = dict(item)
        user_id = item.get("user_id") or item.get("userId")
        if user_id is None:
            raise ValueError("access entry is missing user_id")
        merged[user_id] = {
            "user_id": user_id,
            "user_name": item.get("user_name") or item.get("userName") or names.get(user_id, user_id),
            "permission_level": item.get("permission_level") or item.get("permissionLevel"),
        }
    return list(merged.values())


# ---------------------------------------------------------------------------
# Document
# ---------------------------------------------------------------------------

class Document(BaseModel):
    """
    Document metadata plus its per-document collections.

    Invariants maintained by the store:
    - version numbers are 1..N and current_version == N
    - the owner holds an admin entry in access_list that is never removed
    """

    id: str
    name: str = Field(max_length=255, description="Document display name/title")
    description: str = ""
    mime_type: str = Field(default="application/octet-stream", max_length=100)
    file_type: str = Field(default="unknown", description="Canonical extension (pdf, docx, ...)")
    size_bytes: int = Field(default=0, ge=0)
    url: str = Field(description="Content reference of the current version")
    content: Optional[str] = Field(default=None, description="Extracted text for search")
    folder_id: Optional[str] = Field(default=None, description="Parent folder ID, None = root")
    owner_id: str
    tags: List[str] = Field(default_factory=list, description="Tag ids")
    versions: List[DocumentVersion] = Field(default_factory=list)
    current_version: int = 1
    annotations: List[Annotation] = Field(default_factory=list)
    access_list: List[AccessControlEntry] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _require_text(v, "Document name")

    @field_validator("folder_id", mode="before")
    @classmethod
    def normalize_folder(cls, v: Any) -> Any:
        if v == ROOT_FOLDER_ALIAS or v == "":
            return None
        return v

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: List[str]) -> List[str]:
        return list(dict.fromkeys(v))

    @field_validator("access_list", mode="before")
    @classmethod
    def normalize_access_list(cls, v: Any) -> Any:
        return normalize_access(v)

    def latest_version(self) -> Optional[DocumentVersion]:
        if not self.versions:
            return None
        return max(self.versions, key=lambda ver: ver.version_number)

    def version(self, number: int) -> Optional[DocumentVersion]:
        for ver in self.versions:
            if ver.version_number == number:
                return ver
        return None

    def access_entry(self, user_id: str) -> Optional[AccessControlEntry]:
        for entry in self.access_list:
            if entry.user_id == user_id:
                return entry
        return None

    def access_map(self) -> Dict[str, PermissionLevel]:
        return {entry.user_id: entry.permission_level for entry in self.access_list}

    def annotations_on_page(self, page: int) -> List[Annotation]:
        return [a for a in self.annotations if a.page == page]


def normalize_folder_id(folder_id: Optional[str]) -> Optional[str]:
    """Map the "root" alias and the empty string to the None root sentinel."""
    if folder_id in (None, "", ROOT_FOLDER_ALIAS):
        return None
    return folder_id
