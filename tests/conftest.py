"""
DocShelf Test Suite — Shared fixtures and configuration.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from docshelf.documents.blobs import BlobRegistry
from docshelf.documents.query import DocumentQuery
from docshelf.documents.store import EntityStore
from docshelf.documents.validation import UploadValidator
from docshelf.engine.logging import ActivityLog
from docshelf.security.permissions import AccessResolver


# ---------------------------------------------------------------------------
# Global state isolation
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_config():
    """Reset the cached config between tests."""
    import docshelf.engine.config as cfg_mod

    cfg_mod._config = None
    yield
    cfg_mod._config = None


# ---------------------------------------------------------------------------
# Deterministic clock / ids
# ---------------------------------------------------------------------------

class FixedClock:
    """Returns a fixed instant; tick() moves it forward."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, seconds: int = 60) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


@pytest.fixture
def clock():
    return FixedClock(datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def id_factory():
    counter = itertools.count(1)
    return lambda: f"id-{next(counter)}"


# ---------------------------------------------------------------------------
# Store / services
# ---------------------------------------------------------------------------

SEED_USERS = [
    {"id": "user-1", "name": "Demo User", "role": "admin"},
    {"id": "user-2", "name": "Jane Smith"},
    {"id": "user-3", "name": "Bob Johnson"},
]

SEED_TAGS = [
    {"id": "t1", "name": "Important", "color": "#ef4444"},
    {"id": "t2", "name": "Work", "color": "#3b82f6"},
]


@pytest.fixture
def activity():
    return ActivityLog()


@pytest.fixture
def store(activity, clock, id_factory):
    """Store seeded with three users and two tags; user-1 is current."""
    return EntityStore(
        users=SEED_USERS,
        tags=SEED_TAGS,
        current_user_id="user-1",
        activity=activity,
        clock=clock,
        id_factory=id_factory,
    )


@pytest.fixture
def resolver(activity):
    return AccessResolver(activity=activity)


@pytest.fixture
def query(store, resolver):
    return DocumentQuery(store, resolver=resolver)


@pytest.fixture
def validator():
    return UploadValidator(max_upload_size_mb=1)


@pytest.fixture
def blobs():
    return BlobRegistry()


@pytest.fixture
def make_document(store):
    """Create a document with sensible defaults."""

    def _make(name="Report.pdf", **kwargs):
        kwargs.setdefault("url", f"blob:docshelf/{name}")
        kwargs.setdefault("size_bytes", 1024)
        return store.create_document(name=name, **kwargs)

    return _make


# ---------------------------------------------------------------------------
# Config files
# ---------------------------------------------------------------------------

@pytest.fixture
def project_root(tmp_path):
    """
    Create a minimal project directory holding a docshelf.yaml.
    Returns the root Path.
    """
    root = tmp_path / "project"
    root.mkdir()
    (root / "docshelf.yaml").write_text(
        "shelf:\n"
        "  name: TestShelf\n"
        "  version: '2.0.0'\n"
        "  environment: staging\n"
        "documents:\n"
        "  max_upload_size_mb: 10\n"
        "  allowed_extensions: [pdf, TXT, .png]\n"
        "  upload_progress_step: 25\n"
        "logging:\n"
        "  level: debug\n"
        "  format: text\n"
        "search:\n"
        "  tag_prefix: 'label:'\n"
        "seed:\n"
        "  users:\n"
        "    - {id: alice, name: Alice}\n"
        "    - {id: bob, name: Bob}\n"
        "  tags:\n"
        "    - {id: t-red, name: Urgent, color: '#ff0000'}\n"
        "  current_user_id: alice\n",
        encoding="utf-8",
    )
    return root
