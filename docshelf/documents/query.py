"""
DocShelf Query Engine — read-only derivations over the entity store.

Every call reads the store's current state; nothing is cached, so results
always reflect the latest mutation.

Search syntax:
    "tag:<name>"  documents carrying a tag whose name contains <name>
    anything else case-insensitive substring of document name or extracted text
    ""            no results (search inactive)
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Union

from docshelf.documents.models import (
    Document,
    DocumentVersion,
    Folder,
    PermissionLevel,
    Tag,
    normalize_folder_id,
)
from docshelf.documents.store import EntityStore
from docshelf.security.permissions import AccessResolver

logger = logging.getLogger("docshelf.documents.query")


class _AnyFolder:
    """Search scope meaning "every folder"."""

    def __repr__(self) -> str:
        return "ANY_FOLDER"


ANY_FOLDER: Any = _AnyFolder()


class DocumentQuery:
    """
    Folder listings, breadcrumbs, search and permission checks.

    Args:
        store: The entity store to read from.
        tag_prefix: Reserved query prefix selecting tag search.
        resolver: Access resolver used by has_permission().
    """

    def __init__(
        self,
        store: EntityStore,
        tag_prefix: str = "tag:",
        resolver: Optional[AccessResolver] = None,
    ):
        self._store = store
        self._tag_prefix = tag_prefix
        self._resolver = resolver or AccessResolver()

    # -------------------------------------------------------------------
    # Folder navigation
    # -------------------------------------------------------------------

    def documents_in_folder(self, folder_id: Optional[str]) -> List[Document]:
        """Documents directly in folder_id; None or "root" lists top-level documents."""
        folder_id = normalize_folder_id(folder_id)
        return [d for d in self._store.documents() if d.folder_id == folder_id]

    def subfolders(self, parent_id: Optional[str]) -> List[Folder]:
        parent_id = normalize_folder_id(parent_id)
        return [f for f in self._store.folders() if f.parent_id == parent_id]

    def breadcrumbs(self, folder_id: Optional[str]) -> List[Folder]:
        """
        Ancestor chain [top, ..., folder_id].

        Stops at a dangling parent reference (or a repeated folder) instead of
        failing; an unknown folder_id yields [].
        """
        by_id = {f.id: f for f in self._store.folders()}
        trail: List[Folder] = []
        seen = set()
        current = by_id.get(normalize_folder_id(folder_id))
        while current is not None and current.id not in seen:
            trail.append(current)
            seen.add(current.id)
            if current.parent_id is None:
                break
            parent = by_id.get(current.parent_id)
            if parent is None:
                logger.debug(f"Breadcrumbs for {folder_id} stop at dangling parent {current.parent_id}")
            current = parent
        trail.reverse()
        return trail

    def folder_tree(self, parent_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """Nested [{"folder": Folder, "children": [...]}] below parent_id."""
        folders = self._store.folders()
        children: Dict[Optional[str], List[Folder]] = {}
        for folder in folders:
            children.setdefault(folder.parent_id, []).append(folder)

        def build(pid: Optional[str], seen: frozenset) -> List[Dict[str, Any]]:
            nodes = []
            for folder in children.get(pid, []):
                if folder.id in seen:
                    continue
                nodes.append({
                    "folder": folder,
                    "children": build(folder.id, seen | {folder.id}),
                })
            return nodes

        return build(normalize_folder_id(parent_id), frozenset())

    # -------------------------------------------------------------------
    # Search
    # -------------------------------------------------------------------

    def search(self, query: str, folder_id: Union[Optional[str], Any] = ANY_FOLDER) -> List[Document]:
        """
        Run a search query, optionally restricted to one folder.

        Args:
            query: Free text, or tag search with the "tag:" prefix.
            folder_id: ANY_FOLDER (default) searches everywhere; None/"root"
                       or a folder id restricts to that folder's documents.
        """
        if not query or not query.strip():
            return []

        if folder_id is ANY_FOLDER:
            candidates = self._store.documents()
        else:
            candidates = self.documents_in_folder(folder_id)

        if query.lower().startswith(self._tag_prefix.lower()):
            tag_name = query[len(self._tag_prefix):].strip().lower()
            matching = {t.id for t in self._store.tags() if tag_name in t.name.lower()}
            return [d for d in candidates if matching.intersection(d.tags)]

        needle = query.lower()
        return [
            d for d in candidates
            if needle in d.name.lower() or (d.content is not None and needle in d.content.lower())
        ]

    # -------------------------------------------------------------------
    # Permissions
    # -------------------------------------------------------------------

    def has_permission(
        self,
        document_id: str,
        user_id: Optional[str],
        required_level: Union[PermissionLevel, str],
    ) -> bool:
        """True if the user owns the document or holds at least required_level."""
        doc = self._store.get_document(document_id)
        if doc is None:
            return False
        return self._resolver.check(doc, user_id, required_level)

    def effective_level(self, document_id: str, user_id: Optional[str]) -> PermissionLevel:
        doc = self._store.get_document(document_id)
        if doc is None:
            return PermissionLevel.NONE
        return self._resolver.effective_level(doc, user_id)

    def documents_owned_by(self, user_id: str) -> List[Document]:
        return [d for d in self._store.documents() if d.owner_id == user_id]

    def documents_shared_with(self, user_id: str) -> List[Document]:
        """Documents someone else owns on which user_id holds at least view access."""
        return [
            d for d in self._store.documents()
            if d.owner_id != user_id and self._resolver.check(d, user_id, PermissionLevel.VIEW)
        ]

    # -------------------------------------------------------------------
    # Versions & tags
    # -------------------------------------------------------------------

    def version_history(self, document_id: str) -> List[DocumentVersion]:
        """Versions newest first."""
        return sorted(self._store.versions(document_id), key=lambda v: v.version_number, reverse=True)

    def latest_version(self, document_id: str) -> Optional[DocumentVersion]:
        history = self.version_history(document_id)
        return history[0] if history else None

    def tags_for(self, document_id: str) -> List[Tag]:
        doc = self._store.get_document(document_id)
        if doc is None:
            return []
        catalog = {t.id: t for t in self._store.tags()}
        return [catalog[tid] for tid in doc.tags if tid in catalog]
