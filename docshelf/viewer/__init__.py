"""DocShelf Viewer — in-document text search and highlighting."""

from docshelf.viewer.text_search import (
    TextSearchSession,
    find_matches,
    find_occurrences,
    highlight,
)

__all__ = ["TextSearchSession", "find_matches", "find_occurrences", "highlight"]
