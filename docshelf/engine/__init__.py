"""DocShelf Engine — Configuration, errors, logging, identifiers."""

from docshelf.engine.config import ShelfConfig, get_config, load_config  # noqa: F401
from docshelf.engine.errors import DocShelfError  # noqa: F401
from docshelf.engine.logging import ActivityLog, configure_logging  # noqa: F401

__all__ = [
    "ShelfConfig",
    "get_config",
    "load_config",
    "DocShelfError",
    "ActivityLog",
    "configure_logging",
]
