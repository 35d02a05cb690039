"""Embedded vector store with exact top-K similarity search."""

from .config import EmbeddingSettings, PersistenceSettings, Settings, StoreSettings, get_settings
from .database import SemanticDatabase
from .embeddings import EmbeddingProvider, HashEmbedder, OpenAIEmbedder, create_embedding_provider
from .exceptions import (
    DuplicateError,
    PersistenceError,
    ProviderError,
    SemanticIndexError,
    ValidationError,
)
from .models import DuplicateHandling, SearchHit, SemanticRecord
from .persistence import LogEntry, TaggedLogStore, load_snapshot, save_snapshot
from .store import RecordStore

__all__ = [
    "DuplicateError",
    "DuplicateHandling",
    "EmbeddingProvider",
    "EmbeddingSettings",
    "HashEmbedder",
    "LogEntry",
    "OpenAIEmbedder",
    "PersistenceError",
    "PersistenceSettings",
    "ProviderError",
    "RecordStore",
    "SearchHit",
    "SemanticDatabase",
    "SemanticIndexError",
    "SemanticRecord",
    "Settings",
    "StoreSettings",
    "TaggedLogStore",
    "ValidationError",
    "create_embedding_provider",
    "get_settings",
    "load_snapshot",
    "save_snapshot",
]
