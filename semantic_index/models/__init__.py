"""Shared dataclasses and enums for the semantic index."""

from .duplicates import DuplicateHandling
from .record import SearchHit, SemanticRecord, to_vector

__all__ = [
    "DuplicateHandling",
    "SearchHit",
    "SemanticRecord",
    "to_vector",
]
