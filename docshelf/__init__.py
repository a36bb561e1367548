"""
DocShelf — in-memory document management core.

Entity store for documents, folders, tags, versions, annotations and access
control, a query engine over it, viewer text search and upload sessions.
Build one context with ``docshelf.create_app()`` and pass it around.
"""

__version__ = "1.0.0"

from docshelf.app import DocShelf, create_app  # noqa: E402
from docshelf.documents.query import ANY_FOLDER, DocumentQuery  # noqa: E402
from docshelf.documents.store import EntityStore  # noqa: E402

__all__ = ["ANY_FOLDER", "DocShelf", "DocumentQuery", "EntityStore", "create_app", "__version__"]
