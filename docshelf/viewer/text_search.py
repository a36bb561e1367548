"""
DocShelf Viewer Text Search — page matching, match navigation, highlighting.

Page text comes from an external extraction step as {page_number: text}.
Highlighting always renders from that original text, so applying it again
with the same keyword yields the same markup.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Tuple

logger = logging.getLogger("docshelf.viewer.text_search")

DEFAULT_HIGHLIGHT_CLASS = "search-highlight"


def _pattern(keyword: str) -> re.Pattern:
    return re.compile(re.escape(keyword), re.IGNORECASE)


def find_matches(pages_text: Mapping[int, str], keyword: str) -> List[int]:
    """Ascending page numbers whose text contains keyword (case-insensitive)."""
    if not keyword or not keyword.strip():
        return []
    needle = keyword.lower()
    return sorted(int(page) for page, text in pages_text.items() if text and needle in text.lower())


def find_occurrences(text: str, keyword: str) -> List[Tuple[int, int]]:
    """(start, end) spans of every case-insensitive occurrence of keyword."""
    if not keyword or not text:
        return []
    return [m.span() for m in _pattern(keyword).finditer(text)]


def highlight(text: str, keyword: str, css_class: str = DEFAULT_HIGHLIGHT_CLASS) -> str:
    """
    Wrap each occurrence of keyword in a highlight span.

    The matched text keeps its original case; everything else is untouched.
    """
    if not keyword or not keyword.strip() or not text:
        return text
    return _pattern(keyword).sub(lambda m: f'<span class="{css_class}">{m.group(0)}</span>', text)


class TextSearchSession:
    """
    Search state of one open document in the viewer.

    Holds the original page texts, the pages matching the last keyword and
    the index of the current match (-1 when there is none). next() and
    previous() wrap around.
    """

    def __init__(self, pages_text: Mapping[int, str], css_class: str = DEFAULT_HIGHLIGHT_CLASS):
        self._pages: Dict[int, str] = {int(page): text or "" for page, text in pages_text.items()}
        self._css_class = css_class
        self._keyword = ""
        self._matches: List[int] = []
        self._index = -1

    @property
    def keyword(self) -> str:
        return self._keyword

    @property
    def matches(self) -> List[int]:
        return list(self._matches)

    @property
    def match_count(self) -> int:
        return len(self._matches)

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current_page(self) -> Optional[int]:
        if self._index < 0:
            return None
        return self._matches[self._index]

    @property
    def page_count(self) -> int:
        return len(self._pages)

    def search(self, keyword: str) -> List[int]:
        """Find matching pages and move to the first one."""
        self._keyword = keyword.strip() if keyword else ""
        self._matches = find_matches(self._pages, self._keyword)
        self._index = 0 if self._matches else -1
        logger.debug(f"Search '{self._keyword}': {len(self._matches)} page(s)")
        return self.matches

    def next(self) -> Optional[int]:
        if not self._matches:
            return None
        self._index = (self._index + 1) % len(self._matches)
        return self._matches[self._index]

    def previous(self) -> Optional[int]:
        if not self._matches:
            return None
        self._index = (self._index - 1) % len(self._matches)
        return self._matches[self._index]

    def render_page(self, page: int) -> str:
        """Page text with the current keyword highlighted (from the original text)."""
        text = self._pages.get(page, "")
        if not self._keyword:
            return text
        return highlight(text, self._keyword, self._css_class)

    def page_status(self) -> str:
        """Indicator like "2 of 5"; empty when there are no matches."""
        if self._index < 0:
            return ""
        return f"{self._index + 1} of {len(self._matches)}"

    def clear(self) -> None:
        self._keyword = ""
        self._matches = []
        self._index = -1
