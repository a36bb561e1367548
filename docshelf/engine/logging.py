"""
DocShelf Logging — Structured log entries, JSON formatter, in-memory activity log.

Implements:
- LogEntry: a structured entry tagged with object type and category
- Log entry builders for documents, folders, tags, security and system events
- ActivityLog: bounded in-memory sink queried newest-first (the session's
  notification feed; nothing is persisted)
- configure_logging(): stdlib logging setup with JSON or text output
"""

from __future__ import annotations

import json
import logging
import sys
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional

logger = logging.getLogger("docshelf.engine.logging")

# Valid object types and their permitted categories
OBJECT_TYPE_CATEGORIES = {
    "documents": ["execution", "security"],
    "folders": ["execution"],
    "tags": ["execution"],
    "annotations": ["execution"],
    "uploads": ["execution"],
    "system": ["execution", "security"],
}


class LogEntry:
    """A structured log entry destined for the activity log."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    @property
    def event(self) -> Optional[str]:
        return self.data.get("event")

    @property
    def message(self) -> Optional[str]:
        return self.data.get("message")

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))

    def __repr__(self) -> str:
        return f"<LogEntry {self.object_type}/{self.category} event={self.event!r}>"


class ActivityLog:
    """
    Bounded in-memory activity feed.

    Every store mutation records one entry; the oldest entries fall off once
    max_entries is reached.
    """

    def __init__(self, max_entries: int = 1000):
        self._entries: Deque[LogEntry] = deque(maxlen=max_entries)

    def record(self, entry: LogEntry) -> LogEntry:
        if entry.object_type not in OBJECT_TYPE_CATEGORIES:
            logger.debug(f"Unknown object type '{entry.object_type}' recorded as system")
            entry.object_type = "system"
        self._entries.append(entry)
        logger.log(
            logging.getLevelName(entry.data.get("level", "INFO")),
            entry.data.get("message") or entry.data.get("event"),
            extra={"activity": entry.data},
        )
        return entry

    def query(
        self,
        object_type: Optional[str] = None,
        category: Optional[str] = None,
        *,
        filters: Optional[Dict[str, Any]] = None,
        limit: int = 500,
    ) -> List[Dict[str, Any]]:
        """
        Query recorded entries.

        Args:
            object_type: Only entries of this object type (e.g. "documents").
            category: Only entries of this category (e.g. "security").
            filters: Optional dict of key/value pairs — only entries matching
                     ALL of them (exact equality on top-level data keys) are returned.
            limit: Max number of entries to return.

        Returns:
            List of entry data dicts, newest first.
        """
        results: List[Dict[str, Any]] = []
        for entry in reversed(self._entries):
            if object_type and entry.object_type != object_type:
                continue
            if category and entry.category != category:
                continue
            if filters and not all(entry.data.get(k) == v for k, v in filters.items()):
                continue
            results.append(entry.data)
            if len(results) >= limit:
                break
        return results

    def latest(self) -> Optional[LogEntry]:
        return self._entries[-1] if self._entries else None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(
    event: str,
    level: str,
    object_ref: str,
    user_id: Optional[Any] = None,
    message: Optional[str] = None,
    **extra: Any,
) -> Dict[str, Any]:
    """Build a base log entry with common fields."""
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
        "object_ref": object_ref,
    }
    if user_id is not None:
        entry["user_id"] = user_id
    if message:
        entry["message"] = message
    entry.update(extra)
    return entry


def log_document_event(
    event: str,
    document_id: str,
    message: str,
    user_id: Optional[str] = None,
    fields_changed: Optional[List[str]] = None,
    version_number: Optional[int] = None,
    level: str = "INFO",
) -> LogEntry:
    """Build a document event entry (created, updated, deleted, version_added...)."""
    data = _base_entry(
        event=event,
        level=level,
        object_ref=document_id,
        user_id=user_id,
        message=message,
    )
    if fields_changed:
        data["fields_changed"] = fields_changed
    if version_number is not None:
        data["version_number"] = version_number
    return LogEntry("documents", "execution", data)


def log_folder_event(
    event: str,
    folder_id: str,
    message: str,
    user_id: Optional[str] = None,
    affected_folders: Optional[List[str]] = None,
    detached_documents: Optional[List[str]] = None,
) -> LogEntry:
    """Build a folder event entry. Cascade deletes list everything they touched."""
    data = _base_entry(
        event=event,
        level="INFO",
        object_ref=folder_id,
        user_id=user_id,
        message=message,
    )
    if affected_folders:
        data["affected_folders"] = affected_folders
    if detached_documents:
        data["detached_documents"] = detached_documents
    return LogEntry("folders", "execution", data)


def log_tag_event(event: str, tag_id: str, message: str, documents_touched: int = 0) -> LogEntry:
    data = _base_entry(event=event, level="INFO", object_ref=tag_id, message=message)
    if documents_touched:
        data["documents_touched"] = documents_touched
    return LogEntry("tags", "execution", data)


def log_annotation_event(
    event: str,
    document_id: str,
    annotation_id: str,
    message: str,
    user_id: Optional[str] = None,
    page: Optional[int] = None,
) -> LogEntry:
    data = _base_entry(
        event=event,
        level="INFO",
        object_ref=document_id,
        user_id=user_id,
        message=message,
        annotation_id=annotation_id,
    )
    if page is not None:
        data["page"] = page
    return LogEntry("annotations", "execution", data)


def log_upload_event(
    event: str,
    file_name: str,
    message: str,
    percent: Optional[int] = None,
    level: str = "INFO",
) -> LogEntry:
    data = _base_entry(event=event, level=level, object_ref=file_name, message=message)
    if percent is not None:
        data["percent"] = percent
    return LogEntry("uploads", "execution", data)


def log_security_event(
    event: str,
    document_id: str,
    user_id: Any,
    permission_needed: str,
    message: str,
    granted_level: Optional[str] = None,
    level: str = "WARNING",
) -> LogEntry:
    """Build a security event entry (access granted/revoked/denied)."""
    data = _base_entry(
        event=event,
        level=level,
        object_ref=document_id,
        user_id=user_id,
        message=message,
        permission_needed=permission_needed,
    )
    if granted_level:
        data["granted_level"] = granted_level
    return LogEntry("documents", "security", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
) -> LogEntry:
    """Build a system event entry (startup, seeding, config changes)."""
    data = _base_entry(
        event=event,
        level=level,
        object_ref="system",
        message=message,
    )
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# stdlib logging setup
# ---------------------------------------------------------------------------

class JsonLineFormatter(logging.Formatter):
    """One JSON object per line; activity payloads are merged in."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        activity = getattr(record, "activity", None)
        if activity:
            payload.update({k: v for k, v in activity.items() if k not in payload})
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


_TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str = "INFO", fmt: str = "json", stream=None) -> logging.Handler:
    """
    Install a single stream handler on the "docshelf" logger.

    Calling it again replaces the previously installed handler.
    """
    root = logging.getLogger("docshelf")
    for handler in list(root.handlers):
        if getattr(handler, "_docshelf_handler", False):
            root.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter() if fmt == "json" else logging.Formatter(_TEXT_FORMAT))
    handler._docshelf_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(level.upper())
    return handler
