"""Exception hierarchy raised by the semantic index."""

from __future__ import annotations


class SemanticIndexError(Exception):
    """Base class for all semantic index errors."""


class ValidationError(SemanticIndexError, ValueError):
    """Raised for missing arguments or mismatched embedding dimensions."""


class DuplicateError(SemanticIndexError):
    """Raised when an item already exists and duplicates are rejected."""


class ProviderError(SemanticIndexError):
    """Raised when the embedding provider fails to return vectors."""


class PersistenceError(SemanticIndexError):
    """Raised when a snapshot or log file cannot be read or written."""


__all__ = [
    "SemanticIndexError",
    "ValidationError",
    "DuplicateError",
    "ProviderError",
    "PersistenceError",
]
