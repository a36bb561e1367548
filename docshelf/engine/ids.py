"""Identifier and clock helpers shared by the store and upload sessions."""

from __future__ import annotations

import random
from datetime import datetime, timezone

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36_segment(length: int = 11) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


def generate_id() -> str:
    """
    Random base36 token, unique for the session.

    Not cryptographically strong; the store retries on the (unlikely) collision.
    """
    return _base36_segment() + _base36_segment()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
