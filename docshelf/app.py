"""
DocShelf application context — the one object UI collaborators receive.

Boot sequence (create_app):
    1. Load config (docshelf.yaml or defaults)
    2. Configure logging and the activity log
    3. Build the entity store seeded with config users and tags
    4. Wire query engine, access resolver, upload validator, blob registry

Nothing here is a module-level singleton; callers construct the context at
startup and pass it to whoever needs it.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Mapping, Optional

from docshelf.documents.blobs import BlobRegistry
from docshelf.documents.query import DocumentQuery
from docshelf.documents.store import EntityStore
from docshelf.documents.upload import UploadSession
from docshelf.documents.validation import UploadValidator
from docshelf.engine.config import ShelfConfig, load_config
from docshelf.engine.logging import ActivityLog, configure_logging, log_system_event
from docshelf.security.permissions import AccessResolver
from docshelf.viewer.text_search import TextSearchSession

logger = logging.getLogger("docshelf.app")


class DocShelf:
    """Explicit context object holding the store and every service built on it."""

    def __init__(
        self,
        config: ShelfConfig,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        self.config = config
        self.activity = ActivityLog(max_entries=config.logging.activity_max_entries)
        self.store = EntityStore(
            users=[u.model_dump() for u in config.seed.users],
            tags=[t.model_dump() for t in config.seed.tags],
            current_user_id=config.seed.current_user_id,
            activity=self.activity,
            clock=clock,
            id_factory=id_factory,
        )
        self.resolver = AccessResolver(activity=self.activity)
        self.query = DocumentQuery(self.store, tag_prefix=config.search.tag_prefix, resolver=self.resolver)
        self.validator = UploadValidator.from_config(config)
        self.blobs = BlobRegistry()

        self.activity.record(log_system_event(
            "startup",
            details={
                "name": config.name,
                "environment": config.environment,
                "users": len(config.seed.users),
                "tags": len(config.seed.tags),
            },
            message=f"{config.name} ready",
        ))

    def upload(
        self,
        file_name: str,
        size: int,
        reader: Callable[[], bytes],
        **options,
    ) -> UploadSession:
        """New upload session using this context's store, validator and blobs."""
        options.setdefault("step", self.config.documents.upload_progress_step)
        return UploadSession(self.store, self.validator, self.blobs, file_name, size, reader, **options)

    def upload_bytes(self, file_name: str, data: bytes, **options) -> UploadSession:
        """Upload in-memory bytes to completion; inspect the returned session's state."""
        session = self.upload(file_name, len(data), lambda: data, **options)
        session.run()
        return session

    def viewer_search(self, pages_text: Mapping[int, str]) -> TextSearchSession:
        return TextSearchSession(pages_text, css_class=self.config.search.highlight_class)

    def document_pages(self, document_id: str, separator: str = "\f") -> dict:
        """Extracted text of a document split into {page: text} on form feeds."""
        doc = self.store.get_document(document_id)
        if doc is None or not doc.content:
            return {}
        return split_pages(doc.content, separator)


def split_pages(text: str, separator: str = "\f") -> dict:
    return {i: page for i, page in enumerate(text.split(separator), start=1)}


def create_app(
    config: Optional[ShelfConfig] = None,
    config_path: Optional[str] = None,
    configure_log_output: bool = False,
    **kwargs,
) -> DocShelf:
    """Build a DocShelf context from config (loaded from config_path if not given)."""
    if config is None:
        config = load_config(config_path)
    if configure_log_output:
        configure_logging(config.logging.level, config.logging.format)
    app = DocShelf(config, **kwargs)
    logger.info(f"Created {config.name} context ({config.environment})")
    return app


__all__ = ["DocShelf", "create_app", "split_pages"]
