"""
DocShelf Entity Store — sole owner of documents, folders, tags, users,
annotations, versions and access lists for the session.

Handles:
- Create / update / delete per entity kind with Pydantic validation
- Append-only document versioning (dense version numbers from 1)
- Folder cascade delete (descendants removed, documents detached to root)
- Access list upserts with the owner pinned at admin
- Activity logging for every mutation

Collaborators receive deep copies; state changes only through the methods
below. NotFound is reported as a None / False result, never raised, except
by the explicit require_* lookups.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import networkx as nx
from pydantic import BaseModel, ValidationError

from docshelf.documents.models import (
    AccessControlEntry,
    Annotation,
    AnnotationPosition,
    Document,
    DocumentVersion,
    Folder,
    PermissionLevel,
    Tag,
    User,
    normalize_folder_id,
)
from docshelf.documents.validation import canonical_file_type, detect_mime_type
from docshelf.engine.errors import (
    DocShelfInvariantError,
    DocShelfNotFoundError,
    DocShelfUnknownUserError,
    DocShelfValidationError,
)
from docshelf.engine.ids import generate_id, utcnow
from docshelf.engine.logging import (
    ActivityLog,
    log_annotation_event,
    log_document_event,
    log_folder_event,
    log_security_event,
    log_tag_event,
)

logger = logging.getLogger("docshelf.documents.store")

# Colors handed to tags created implicitly from an upload's tag names
TAG_PALETTE = ["red", "blue", "green", "yellow", "purple", "pink", "indigo"]

# Fields update_document() accepts; the rest have dedicated operations
DOCUMENT_UPDATABLE_FIELDS = frozenset({
    "name", "description", "mime_type", "file_type", "content", "folder_id", "tags",
})
FOLDER_UPDATABLE_FIELDS = frozenset({"name", "parent_id"})
TAG_UPDATABLE_FIELDS = frozenset({"name", "color"})


class EntityStore:
    """
    In-memory entity store, constructed once per application and injected
    into every consumer.

    Args:
        users: Initial users (User models or dicts).
        tags: Initial tag catalog (Tag models or dicts).
        current_user_id: Default actor for operations that do not name one.
        activity: Activity log receiving one entry per mutation.
        clock: Returns the timestamp stamped on created/updated entities.
        id_factory: Returns fresh identifiers.
    """

    def __init__(
        self,
        users: Optional[Iterable[Union[User, Dict[str, Any]]]] = None,
        tags: Optional[Iterable[Union[Tag, Dict[str, Any]]]] = None,
        current_user_id: Optional[str] = None,
        activity: Optional[ActivityLog] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self._documents: Dict[str, Document] = {}
        self._folders: Dict[str, Folder] = {}
        self._tags: Dict[str, Tag] = {}
        self._users: Dict[str, User] = {}
        self._activity = activity if activity is not None else ActivityLog()
        self._clock = clock or utcnow
        self._id_factory = id_factory or generate_id
        self._current_user_id: Optional[str] = None

        for user in users or []:
            data = user.model_dump() if isinstance(user, BaseModel) else dict(user)
            self.add_user(user_id=data.pop("id", None), **data)
        for tag in tags or []:
            data = tag.model_dump() if isinstance(tag, BaseModel) else dict(tag)
            self.create_tag(tag_id=data.pop("id", None), **data)

        if current_user_id is not None:
            self.current_user_id = current_user_id
        elif self._users:
            self._current_user_id = next(iter(self._users))

    # -------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------

    def _new_id(self, taken: Union[Dict[str, Any], set]) -> str:
        new_id = self._id_factory()
        while new_id in taken:
            new_id = self._id_factory()
        return new_id

    @staticmethod
    def _validated(model_cls: type, data: Dict[str, Any], object_type: str) -> Any:
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            errors = e.errors(include_url=False)
            first = errors[0]["msg"] if errors else "invalid input"
            raise DocShelfValidationError(
                f"Invalid {object_type}: {first}",
                object_type=object_type,
                validation_errors=[
                    {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
                    for err in errors
                ],
            ) from None

    @staticmethod
    def _reject_fields(fields: Dict[str, Any], allowed: frozenset, object_type: str, object_id: str) -> None:
        if "id" in fields and fields["id"] != object_id:
            raise DocShelfValidationError(
                f"The id of a {object_type} cannot be changed",
                object_type=object_type,
                object_ref=object_id,
            )
        unknown = sorted(set(fields) - allowed - {"id"})
        if unknown:
            raise DocShelfValidationError(
                f"Cannot update {object_type} field(s): {', '.join(unknown)}",
                object_type=object_type,
                object_ref=object_id,
            )

    def _actor(self, user_id: Optional[str]) -> str:
        actor = user_id or self._current_user_id
        if actor is None:
            raise DocShelfValidationError("No acting user given and no current user set")
        return actor

    def _check_folder_ref(self, folder_id: Optional[str]) -> Optional[str]:
        folder_id = normalize_folder_id(folder_id)
        if folder_id is not None and folder_id not in self._folders:
            raise DocShelfValidationError(
                f"Folder '{folder_id}' does not exist",
                object_type="folder",
                object_ref=folder_id,
            )
        return folder_id

    def _plan_tags(self, refs: Optional[Sequence[str]]) -> Tuple[List[str], List[Tag]]:
        """
        Resolve tag references (ids or names) without mutating the catalog.

        Unknown names become new Tag models returned for the caller to commit
        once the owning document validated.
        """
        if isinstance(refs, str):
            raise DocShelfValidationError(
                f"Tags must be a list of ids or names, got the string '{refs}'",
                object_type="tag",
                object_ref=refs,
            )
        ids: List[str] = []
        new_tags: List[Tag] = []
        planned_ids = set(self._tags)
        for ref in refs or []:
            if ref in self._tags:
                ids.append(ref)
                continue
            existing = self._find_tag_by_name(ref) or next(
                (t for t in new_tags if t.name.lower() == ref.strip().lower()), None
            )
            if existing is not None:
                ids.append(existing.id)
                continue
            tag_id = self._new_id(planned_ids)
            planned_ids.add(tag_id)
            color = TAG_PALETTE[(len(self._tags) + len(new_tags)) % len(TAG_PALETTE)]
            tag = self._validated(Tag, {"id": tag_id, "name": ref, "color": color}, "tag")
            new_tags.append(tag)
            ids.append(tag.id)
        return ids, new_tags

    def _find_tag_by_name(self, name: str) -> Optional[Tag]:
        wanted = name.strip().lower()
        for tag in self._tags.values():
            if tag.name.lower() == wanted:
                return tag
        return None

    def _folder_graph(self) -> nx.DiGraph:
        """Parent -> child graph of every folder (dangling parents become nodes too)."""
        graph = nx.DiGraph()
        for folder in self._folders.values():
            graph.add_node(folder.id)
            if folder.parent_id is not None:
                graph.add_edge(folder.parent_id, folder.id)
        return graph

    def _record(self, entry) -> None:
        self._activity.record(entry)

    @property
    def activity(self) -> ActivityLog:
        return self._activity

    # -------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------

    def add_user(
        self,
        name: str,
        email: Optional[str] = None,
        avatar: Optional[str] = None,
        role: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> User:
        user_id = user_id or self._new_id(self._users)
        if user_id in self._users:
            raise DocShelfValidationError(f"User '{user_id}' already exists", object_type="user")
        user = self._validated(
            User,
            {"id": user_id, "name": name, "email": email, "avatar": avatar, "role": role},
            "user",
        )
        self._users[user.id] = user
        logger.debug(f"Added user {user.id} ({user.name})")
        return user.model_copy()

    def get_user(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return user.model_copy() if user else None

    def has_user(self, user_id: str) -> bool:
        return user_id in self._users

    def users(self) -> List[User]:
        return [u.model_copy() for u in self._users.values()]

    @property
    def current_user_id(self) -> Optional[str]:
        return self._current_user_id

    @current_user_id.setter
    def current_user_id(self, user_id: str) -> None:
        if user_id not in self._users:
            raise DocShelfUnknownUserError(f"Unknown user '{user_id}'", user_id=user_id)
        self._current_user_id = user_id

    # -------------------------------------------------------------------
    # Documents
    # -------------------------------------------------------------------

    def create_document(
        self,
        name: str,
        url: str,
        size_bytes: int = 0,
        mime_type: Optional[str] = None,
        file_type: Optional[str] = None,
        folder_id: Optional[str] = None,
        tags: Optional[Sequence[str]] = None,
        content: Optional[str] = None,
        description: str = "",
        owner_id: Optional[str] = None,
        change_notes: Optional[str] = "Initial upload",
    ) -> Document:
        """
        Create a document together with its version 1 and the owner's admin entry.

        Tags may be given as tag ids or names; unknown names are added to the
        catalog. Nothing is committed if validation fails.
        """
        owner_id = self._actor(owner_id)
        owner = self._users.get(owner_id)
        if owner is None:
            raise DocShelfUnknownUserError(f"Unknown owner '{owner_id}'", user_id=owner_id)
        folder_id = self._check_folder_ref(folder_id)
        tag_ids, new_tags = self._plan_tags(tags)

        now = self._clock()
        doc_id = self._new_id(self._documents)
        version = {
            "id": self._id_factory(),
            "document_id": doc_id,
            "version_number": 1,
            "url": url,
            "size_bytes": size_bytes,
            "created_by": owner_id,
            "created_at": now,
            "change_notes": change_notes,
        }
        doc = self._validated(Document, {
            "id": doc_id,
            "name": name,
            "description": description,
            "mime_type": mime_type or detect_mime_type(name),
            "file_type": file_type or canonical_file_type(name),
            "size_bytes": size_bytes,
            "url": url,
            "content": content,
            "folder_id": folder_id,
            "owner_id": owner_id,
            "tags": tag_ids,
            "versions": [version],
            "current_version": 1,
            "annotations": [],
            "access_list": [{
                "user_id": owner_id,
                "user_name": owner.name,
                "permission_level": PermissionLevel.ADMIN,
            }],
            "created_at": now,
            "updated_at": now,
        }, "document")

        for tag in new_tags:
            self._tags[tag.id] = tag
        self._documents[doc.id] = doc

        logger.info(f"Created document {doc.id} '{doc.name}' in folder {doc.folder_id or 'root'}")
        self._record(log_document_event(
            "document_created", doc.id, f'Document "{doc.name}" added successfully', user_id=owner_id,
        ))
        return doc.model_copy(deep=True)

    def get_document(self, document_id: str) -> Optional[Document]:
        doc = self._documents.get(document_id)
        return doc.model_copy(deep=True) if doc else None

    def require_document(self, document_id: str) -> Document:
        doc = self.get_document(document_id)
        if doc is None:
            raise DocShelfNotFoundError(
                f"Document '{document_id}' not found",
                object_type="document",
                object_id=document_id,
            )
        return doc

    def has_document(self, document_id: str) -> bool:
        return document_id in self._documents

    def documents(self) -> List[Document]:
        return [d.model_copy(deep=True) for d in self._documents.values()]

    def update_document(self, document_id: str, **fields: Any) -> Optional[Document]:
        """
        Merge fields into a document and refresh updated_at.

        Returns the updated document, or None if the id is unknown.
        """
        doc = self._documents.get(document_id)
        if doc is None:
            logger.warning(f"update_document: document {document_id} not found")
            return None
        self._reject_fields(fields, DOCUMENT_UPDATABLE_FIELDS, "document", document_id)
        fields.pop("id", None)

        new_tags: List[Tag] = []
        if "folder_id" in fields:
            fields["folder_id"] = self._check_folder_ref(fields["folder_id"])
        if "tags" in fields:
            fields["tags"], new_tags = self._plan_tags(fields["tags"])

        data = doc.model_dump()
        data.update(fields)
        data["updated_at"] = self._clock()
        updated = self._validated(Document, data, "document")

        for tag in new_tags:
            self._tags[tag.id] = tag
        self._documents[document_id] = updated
        self._record(log_document_event(
            "document_updated", document_id, f'Document "{updated.name}" updated',
            user_id=self._current_user_id, fields_changed=sorted(fields),
        ))
        return updated.model_copy(deep=True)

    def delete_document(self, document_id: str) -> bool:
        doc = self._documents.pop(document_id, None)
        if doc is None:
            logger.warning(f"delete_document: document {document_id} not found")
            return False
        logger.info(f"Deleted document {document_id} '{doc.name}'")
        self._record(log_document_event(
            "document_deleted", document_id, "Document deleted successfully",
            user_id=self._current_user_id,
        ))
        return True

    # -------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------

    def add_version(
        self,
        document_id: str,
        url: str,
        size_bytes: int,
        created_by: Optional[str] = None,
        change_notes: Optional[str] = None,
        content: Optional[str] = None,
    ) -> Optional[DocumentVersion]:
        """
        Append a version numbered max(existing) + 1 and make it current.

        The document's url and size follow the new version; extracted content
        is replaced only when given. Returns None if the document is unknown.
        """
        doc = self._documents.get(document_id)
        if doc is None:
            logger.warning(f"add_version: document {document_id} not found")
            return None

        created_by = self._actor(created_by)
        number = max((v.version_number for v in doc.versions), default=0) + 1
        now = self._clock()
        version = self._validated(DocumentVersion, {
            "id": self._new_id({v.id for v in doc.versions}),
            "document_id": document_id,
            "version_number": number,
            "url": url,
            "size_bytes": size_bytes,
            "created_by": created_by,
            "created_at": now,
            "change_notes": change_notes or f"Version {number}",
        }, "version")

        update: Dict[str, Any] = {
            "versions": [*doc.versions, version],
            "current_version": number,
            "url": url,
            "size_bytes": size_bytes,
            "updated_at": now,
        }
        if content is not None:
            update["content"] = content
        self._documents[document_id] = doc.model_copy(update=update)

        logger.info(f"New version v{number} for document {document_id} '{doc.name}'")
        self._record(log_document_event(
            "version_added", document_id, f"New version (v{number}) added successfully",
            user_id=created_by, version_number=number,
        ))
        return version

    def versions(self, document_id: str) -> List[DocumentVersion]:
        doc = self._documents.get(document_id)
        return list(doc.versions) if doc else []

    # -------------------------------------------------------------------
    # Folders
    # -------------------------------------------------------------------

    def create_folder(
        self,
        name: str,
        parent_id: Optional[str] = None,
        owner_id: Optional[str] = None,
    ) -> Folder:
        owner_id = self._actor(owner_id)
        parent_id = self._check_folder_ref(parent_id)
        now = self._clock()
        folder = self._validated(Folder, {
            "id": self._new_id(self._folders),
            "name": name,
            "parent_id": parent_id,
            "owner_id": owner_id,
            "created_at": now,
            "updated_at": now,
        }, "folder")
        self._folders[folder.id] = folder

        logger.info(f"Created folder {folder.id} '{folder.name}' under {parent_id or 'root'}")
        self._record(log_folder_event(
            "folder_created", folder.id, f'Folder "{folder.name}" created successfully', user_id=owner_id,
        ))
        return folder.model_copy()

    def get_folder(self, folder_id: Optional[str]) -> Optional[Folder]:
        folder = self._folders.get(folder_id) if folder_id is not None else None
        return folder.model_copy() if folder else None

    def require_folder(self, folder_id: str) -> Folder:
        folder = self.get_folder(folder_id)
        if folder is None:
            raise DocShelfNotFoundError(
                f"Folder '{folder_id}' not found",
                object_type="folder",
                object_id=folder_id,
            )
        return folder

    def has_folder(self, folder_id: Optional[str]) -> bool:
        return folder_id is not None and folder_id in self._folders

    def folders(self) -> List[Folder]:
        return [f.model_copy() for f in self._folders.values()]

    def update_folder(self, folder_id: str, **fields: Any) -> Optional[Folder]:
        """
        Rename and/or move a folder.

        Moving a folder under itself or one of its descendants raises
        DocShelfInvariantError. Returns None if the id is unknown.
        """
        folder = self._folders.get(folder_id)
        if folder is None:
            logger.warning(f"update_folder: folder {folder_id} not found")
            return None
        self._reject_fields(fields, FOLDER_UPDATABLE_FIELDS, "folder", folder_id)
        fields.pop("id", None)

        if "parent_id" in fields:
            new_parent = self._check_folder_ref(fields["parent_id"])
            if new_parent is not None:
                graph = self._folder_graph()
                if new_parent == folder_id or new_parent in nx.descendants(graph, folder_id):
                    raise DocShelfInvariantError(
                        f"Cannot move folder '{folder.name}' into its own subtree",
                        object_type="folder",
                        object_ref=folder_id,
                        invariant="acyclic_folders",
                    )
            fields["parent_id"] = new_parent

        data = folder.model_dump()
        data.update(fields)
        data["updated_at"] = self._clock()
        updated = self._validated(Folder, data, "folder")
        self._folders[folder_id] = updated

        if updated.name != folder.name:
            message = f'Folder renamed to "{updated.name}"'
        else:
            message = f'Folder "{updated.name}" updated'
        self._record(log_folder_event("folder_updated", folder_id, message, user_id=self._current_user_id))
        return updated.model_copy()

    def folder_descendants(self, folder_id: str) -> List[str]:
        """Ids of every folder below folder_id (any order)."""
        if folder_id not in self._folders:
            return []
        return list(nx.descendants(self._folder_graph(), folder_id))

    def delete_folder(self, folder_id: str) -> bool:
        """
        Delete a folder and all its descendant folders.

        Documents in any removed folder are detached to the root. If the
        subtree contains a parent cycle, nothing is changed and
        DocShelfInvariantError is raised.
        """
        folder = self._folders.get(folder_id)
        if folder is None:
            logger.warning(f"delete_folder: folder {folder_id} not found")
            return False

        graph = self._folder_graph()
        try:
            cycle = nx.find_cycle(graph, source=folder_id)
        except nx.NetworkXNoCycle:
            cycle = None
        if cycle:
            path = [edge[0] for edge in cycle]
            raise DocShelfInvariantError(
                f"Folder hierarchy below '{folder.name}' contains a cycle: {' -> '.join(path)}",
                object_type="folder",
                object_ref=folder_id,
                invariant="acyclic_folders",
                cycle=path,
            )

        doomed = {folder_id} | nx.descendants(graph, folder_id)
        now = self._clock()
        detached: List[str] = []
        for doc_id, doc in self._documents.items():
            if doc.folder_id in doomed:
                self._documents[doc_id] = doc.model_copy(update={"folder_id": None, "updated_at": now})
                detached.append(doc_id)
        for fid in doomed:
            self._folders.pop(fid, None)

        logger.info(
            f"Deleted folder {folder_id} '{folder.name}' with {len(doomed) - 1} subfolder(s); "
            f"{len(detached)} document(s) moved to root"
        )
        self._record(log_folder_event(
            "folder_deleted", folder_id, "Folder deleted successfully",
            user_id=self._current_user_id,
            affected_folders=sorted(doomed),
            detached_documents=detached,
        ))
        return True

    # -------------------------------------------------------------------
    # Tags
    # -------------------------------------------------------------------

    def create_tag(self, name: str, color: Optional[str] = None, tag_id: Optional[str] = None) -> Tag:
        if self._find_tag_by_name(name or "") is not None:
            raise DocShelfValidationError(f"Tag '{name}' already exists", object_type="tag")
        tag_id = tag_id or self._new_id(self._tags)
        if tag_id in self._tags:
            raise DocShelfValidationError(f"Tag id '{tag_id}' already exists", object_type="tag")
        color = color or TAG_PALETTE[len(self._tags) % len(TAG_PALETTE)]
        tag = self._validated(Tag, {"id": tag_id, "name": name, "color": color}, "tag")
        self._tags[tag.id] = tag
        self._record(log_tag_event("tag_created", tag.id, f'Tag "{tag.name}" created'))
        return tag.model_copy()

    def get_tag(self, tag_id: str) -> Optional[Tag]:
        tag = self._tags.get(tag_id)
        return tag.model_copy() if tag else None

    def find_tag(self, name: str) -> Optional[Tag]:
        """Tag whose name equals name, case-insensitively."""
        tag = self._find_tag_by_name(name)
        return tag.model_copy() if tag else None

    def tags(self) -> List[Tag]:
        return [t.model_copy() for t in self._tags.values()]

    def update_tag(self, tag_id: str, **fields: Any) -> Optional[Tag]:
        tag = self._tags.get(tag_id)
        if tag is None:
            logger.warning(f"update_tag: tag {tag_id} not found")
            return None
        self._reject_fields(fields, TAG_UPDATABLE_FIELDS, "tag", tag_id)
        fields.pop("id", None)
        if "name" in fields:
            clash = self._find_tag_by_name(fields["name"] or "")
            if clash is not None and clash.id != tag_id:
                raise DocShelfValidationError(f"Tag '{fields['name']}' already exists", object_type="tag")
        data = tag.model_dump()
        data.update(fields)
        updated = self._validated(Tag, data, "tag")
        self._tags[tag_id] = updated
        self._record(log_tag_event("tag_updated", tag_id, f'Tag "{updated.name}" updated'))
        return updated.model_copy()

    def delete_tag(self, tag_id: str) -> bool:
        """Remove a tag from the catalog and from every document carrying it."""
        tag = self._tags.pop(tag_id, None)
        if tag is None:
            return False
        now = self._clock()
        touched = 0
        for doc_id, doc in self._documents.items():
            if tag_id in doc.tags:
                self._documents[doc_id] = doc.model_copy(update={
                    "tags": [t for t in doc.tags if t != tag_id],
                    "updated_at": now,
                })
                touched += 1
        self._record(log_tag_event("tag_deleted", tag_id, f'Tag "{tag.name}" deleted', documents_touched=touched))
        return True

    def tag_document(self, document_id: str, tag_ref: str) -> Optional[Document]:
        """Attach a tag (by id or name, created if unknown) to a document."""
        doc = self._documents.get(document_id)
        if doc is None:
            return None
        return self.update_document(document_id, tags=[*doc.tags, tag_ref])

    def untag_document(self, document_id: str, tag_id: str) -> bool:
        doc = self._documents.get(document_id)
        if doc is None or tag_id not in doc.tags:
            return False
        self.update_document(document_id, tags=[t for t in doc.tags if t != tag_id])
        return True

    # -------------------------------------------------------------------
    # Access control
    # -------------------------------------------------------------------

    def set_access(
        self,
        document_id: str,
        user_id: str,
        level: Union[PermissionLevel, str],
    ) -> Optional[AccessControlEntry]:
        """
        Upsert a user's permission level on a document.

        Raises DocShelfUnknownUserError for users outside the user set and
        DocShelfValidationError when asked to downgrade the owner. Returns
        None if the document is unknown.
        """
        level = PermissionLevel.parse(level)
        doc = self._documents.get(document_id)
        if doc is None:
            logger.warning(f"set_access: document {document_id} not found")
            return None
        user = self._users.get(user_id)
        if user is None:
            raise DocShelfUnknownUserError(
                f"Cannot share with unknown user '{user_id}'",
                object_type="document",
                object_ref=document_id,
                user_id=user_id,
            )

        if user_id == doc.owner_id and level is not PermissionLevel.ADMIN:
            raise DocShelfValidationError(
                f"The owner's access to '{doc.name}' must stay admin",
                object_type="document",
                object_ref=document_id,
            )

        entry = AccessControlEntry(user_id=user_id, user_name=user.name, permission_level=level)
        access_list = [e for e in doc.access_list if e.user_id != user_id]
        position = next((i for i, e in enumerate(doc.access_list) if e.user_id == user_id), len(access_list))
        access_list.insert(position, entry)
        self._documents[document_id] = doc.model_copy(update={
            "access_list": access_list,
            "updated_at": self._clock(),
        })

        self._record(log_security_event(
            "access_granted", document_id, user_id, level.value,
            f"Permission updated for {user.name}", granted_level=level.value, level="INFO",
        ))
        return entry.model_copy()

    def remove_access(self, document_id: str, user_id: str) -> bool:
        doc = self._documents.get(document_id)
        if doc is None or doc.access_entry(user_id) is None:
            return False
        if user_id == doc.owner_id:
            raise DocShelfValidationError(
                f"The owner cannot be removed from '{doc.name}'",
                object_type="document",
                object_ref=document_id,
            )
        self._documents[document_id] = doc.model_copy(update={
            "access_list": [e for e in doc.access_list if e.user_id != user_id],
            "updated_at": self._clock(),
        })
        self._record(log_security_event(
            "access_revoked", document_id, user_id, "none",
            f"Access removed for {user_id}", level="INFO",
        ))
        return True

    # -------------------------------------------------------------------
    # Annotations
    # -------------------------------------------------------------------

    def add_annotation(
        self,
        document_id: str,
        page: int,
        content: str = "",
        type: str = "comment",
        position: Optional[Union[AnnotationPosition, Dict[str, Any]]] = None,
        created_by: Optional[str] = None,
    ) -> Optional[Annotation]:
        doc = self._documents.get(document_id)
        if doc is None:
            logger.warning(f"add_annotation: document {document_id} not found")
            return None
        if isinstance(position, AnnotationPosition):
            position = position.model_dump()
        if position is not None:
            position = {**position, "page": page}

        created_by = self._actor(created_by)
        now = self._clock()
        annotation = self._validated(Annotation, {
            "id": self._new_id({a.id for a in doc.annotations}),
            "document_id": document_id,
            "page": page,
            "type": type,
            "content": content,
            "position": position,
            "created_by": created_by,
            "created_at": now,
        }, "annotation")
        self._documents[document_id] = doc.model_copy(update={
            "annotations": [*doc.annotations, annotation],
            "updated_at": now,
        })
        self._record(log_annotation_event(
            "annotation_added", document_id, annotation.id, "Annotation added successfully",
            user_id=created_by, page=page,
        ))
        return annotation

    def remove_annotation(self, document_id: str, annotation_id: str) -> bool:
        """Remove an annotation; unknown ids are a no-op returning False."""
        doc = self._documents.get(document_id)
        if doc is None or not any(a.id == annotation_id for a in doc.annotations):
            logger.info(f"remove_annotation: {annotation_id} not found on document {document_id}")
            return False
        self._documents[document_id] = doc.model_copy(update={
            "annotations": [a for a in doc.annotations if a.id != annotation_id],
            "updated_at": self._clock(),
        })
        self._record(log_annotation_event(
            "annotation_removed", document_id, annotation_id, "Annotation deleted successfully",
            user_id=self._current_user_id,
        ))
        return True

    def annotations(self, document_id: str, page: Optional[int] = None) -> List[Annotation]:
        doc = self._documents.get(document_id)
        if doc is None:
            return []
        if page is None:
            return list(doc.annotations)
        return doc.annotations_on_page(page)

    def __repr__(self) -> str:
        return (
            f"<EntityStore documents={len(self._documents)} folders={len(self._folders)} "
            f"tags={len(self._tags)} users={len(self._users)}>"
        )
