"""Technical id generation for stored documents."""

from __future__ import annotations

import uuid
from collections.abc import Callable

__all__ = ["IdFactory", "new_technical_id"]

IdFactory = Callable[[], str]


def new_technical_id() -> str:
    """Return a new opaque technical id (32 lowercase hex chars)."""
    return uuid.uuid4().hex
