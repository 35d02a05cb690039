"""Duplicate handling policy consulted when adding items."""

from __future__ import annotations

from enum import Enum


class DuplicateHandling(str, Enum):
    """What to do when an added item equals one already stored."""

    ALLOW = "allow"
    UPDATE = "update"
    SKIP = "skip"
    THROW = "throw"
