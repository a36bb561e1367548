"""DocShelf Security — document access resolution."""

from docshelf.security.permissions import PERMISSION_HIERARCHY, AccessResolver

__all__ = ["PERMISSION_HIERARCHY", "AccessResolver"]
