"""In-memory semantic database built on an embedding provider."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar, Union

import numpy as np

from semantic_index.config import Settings, StoreSettings
from semantic_index.embeddings import EmbeddingProvider, OpenAIEmbedder, create_embedding_provider
from semantic_index.exceptions import PersistenceError, ProviderError, ValidationError
from semantic_index.models import DuplicateHandling, SearchHit, SemanticRecord, to_vector
from semantic_index.persistence import load_snapshot, save_snapshot
from semantic_index.retrieval import get_scorer
from semantic_index.serialization import to_serializable, to_text
from semantic_index.store import Equality, RecordStore

logger = logging.getLogger(__name__)

T = TypeVar("T")

PathLike = Union[str, Path]


class SemanticDatabase(Generic[T]):
    """Stores items alongside their embeddings and answers similarity queries.

    Items are embedded as text: strings as-is, anything else as JSON. Embedding
    calls never run under the store lock, so a slow provider does not block
    concurrent searches or other inserts.
    """

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        settings: Optional[StoreSettings] = None,
        *,
        equals: Optional[Equality] = None,
        payload_encoder: Callable[[Any], Any] = to_serializable,
        payload_decoder: Optional[Callable[[Any], Any]] = None,
        encoding: str = "utf-8",
        snapshot_path: Optional[PathLike] = None,
    ) -> None:
        self.provider: EmbeddingProvider = provider if provider is not None else OpenAIEmbedder()
        self.settings = settings.model_copy() if settings is not None else StoreSettings()
        self._store: RecordStore[T] = RecordStore(
            duplicate_handling=self.settings.duplicate_handling,
            dimension=self.settings.dimensions,
            equals=equals,
        )
        self._payload_encoder = payload_encoder
        self._payload_decoder = payload_decoder
        self._encoding = encoding
        self.snapshot_path = Path(snapshot_path) if snapshot_path is not None else None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs: Any) -> "SemanticDatabase[Any]":
        provider = create_embedding_provider(settings.embedding)
        kwargs.setdefault("snapshot_path", settings.persistence.snapshot_path)
        return cls(provider, settings.store, encoding=settings.persistence.encoding, **kwargs)

    @classmethod
    def from_file(
        cls,
        path: PathLike,
        provider: Optional[EmbeddingProvider] = None,
        settings: Optional[StoreSettings] = None,
        **kwargs: Any,
    ) -> "SemanticDatabase[Any]":
        """Create a database and populate it from a snapshot file."""

        database = cls(provider, settings, **kwargs)
        database.load(path)
        return database

    @property
    def duplicate_handling(self) -> DuplicateHandling:
        return self.settings.duplicate_handling

    @duplicate_handling.setter
    def duplicate_handling(self, value: Union[DuplicateHandling, str]) -> None:
        self.settings.duplicate_handling = value
        self._store.duplicate_handling = self.settings.duplicate_handling

    @property
    def embedding_model(self) -> str:
        return self.provider.model

    @embedding_model.setter
    def embedding_model(self, value: str) -> None:
        if not value or not value.strip():
            raise ValidationError("embedding model must not be empty")
        self.provider.model = value

    @property
    def dimension(self) -> Optional[int]:
        return self._store.dimension

    @property
    def records(self) -> List[SemanticRecord[T]]:
        """Point-in-time copy of all stored records."""

        return self._store.snapshot()

    def __len__(self) -> int:
        return self._store.count()

    def __contains__(self, item: object) -> bool:
        return item is not None and self._store.contains(item)  # type: ignore[arg-type]

    def count(self) -> int:
        return self._store.count()

    def payloads(self) -> List[T]:
        return self._store.payloads()

    def add(self, item: T) -> bool:
        """Embed ``item`` and store it under the current duplicate policy.

        Returns False when the item was skipped as a duplicate.
        """

        self._require_item(item)
        embedding = self._embed([to_text(item)])[0]
        stored = self._store.insert(SemanticRecord(payload=item, embedding=embedding))
        if stored:
            logger.debug("Added item %r", item)
        return stored

    def add_many(self, items: Iterable[T]) -> int:
        """Add items one by one; returns how many were stored."""

        if items is None:
            raise ValidationError("items must not be None")
        return sum(1 for item in items if self.add(item))

    def contains(self, item: T) -> bool:
        self._require_item(item)
        return self._store.contains(item)

    def search_with_scores(
        self, embedding: Sequence[float], count: Optional[int] = None
    ) -> List[SearchHit[T]]:
        if embedding is None:
            raise ValidationError("embedding must not be None")
        count = self.settings.default_count if count is None else count
        scorer = get_scorer(self.settings.similarity)
        return self._store.search(to_vector(embedding), count, scorer)

    def search(self, embedding: Sequence[float], count: Optional[int] = None) -> List[T]:
        """Items most similar to ``embedding``, best first."""

        return [hit.payload for hit in self.search_with_scores(embedding, count)]

    def search_first(self, embedding: Sequence[float]) -> Optional[T]:
        results = self.search(embedding, 1)
        return results[0] if results else None

    def search_text(self, query: str, count: Optional[int] = None) -> List[T]:
        if not isinstance(query, str):
            raise ValidationError(f"query must be a string, got {type(query).__name__}")
        return self.search(self._embed([to_text(query)])[0], count)

    def search_text_first(self, query: str) -> Optional[T]:
        results = self.search_text(query, 1)
        return results[0] if results else None

    def search_object(self, query: Any, count: Optional[int] = None) -> List[T]:
        """Search with any object; non-strings are serialized to JSON first."""

        return self.search(self._embed([to_text(query)])[0], count)

    def search_object_first(self, query: Any) -> Optional[T]:
        results = self.search_object(query, 1)
        return results[0] if results else None

    def refresh_embeddings(self) -> int:
        """Re-embed every stored item with the current provider and model.

        Items are embedded in one call outside the lock, then swapped in under a
        single write lock. Records added or removed while the provider call ran
        are left as they are.
        """

        snapshot = self._store.snapshot()
        if not snapshot:
            return 0
        vectors = self._embed([to_text(record.payload) for record in snapshot])
        refreshed = {
            id(record): record.with_embedding(vector) for record, vector in zip(snapshot, vectors)
        }

        updated = 0

        def swap(current: List[SemanticRecord[T]]) -> List[SemanticRecord[T]]:
            nonlocal updated
            result = []
            for record in current:
                replacement = refreshed.get(id(record))
                if replacement is not None:
                    updated += 1
                    result.append(replacement)
                else:
                    result.append(record)
            return result

        self._store.update(swap)
        logger.info("Refreshed embeddings for %d record(s) using %s", updated, self.embedding_model)
        return updated

    def remove(self, item: T) -> int:
        self._require_item(item)
        return self._store.remove(item)

    def remove_many(self, items: Iterable[T]) -> int:
        if items is None:
            raise ValidationError("items must not be None")
        return self._store.remove_many(items)

    def clear(self) -> None:
        self._store.clear()

    def save(self, path: Optional[PathLike] = None) -> Path:
        """Write a snapshot to ``path``, or to the configured snapshot path."""

        target = self._snapshot_target(path)
        return save_snapshot(target, self._store.snapshot(), self._payload_encoder, self._encoding)

    def load(self, path: Optional[PathLike] = None) -> int:
        """Replace the contents with a snapshot file; returns the record count.

        The store is only touched once the whole file has been read and
        validated.
        """

        path = self._snapshot_target(path)
        records = load_snapshot(path, self._payload_decoder, self._encoding)
        try:
            self._store.replace_all(records)
        except ValidationError as exc:
            raise PersistenceError(f"snapshot {path} does not fit this database: {exc}") from exc
        return len(records)

    def _embed(self, texts: List[str]) -> List[np.ndarray]:
        try:
            vectors = self.provider.embed(texts)
            if len(vectors) != len(texts):
                raise ProviderError(f"expected {len(texts)} embeddings, received {len(vectors)}")
            return [to_vector(vector) for vector in vectors]
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"embedding provider failed: {exc}") from exc

    def _snapshot_target(self, path: Optional[PathLike]) -> PathLike:
        if path is not None:
            return path
        if self.snapshot_path is None:
            raise ValidationError("no snapshot path given and none configured")
        return self.snapshot_path

    @staticmethod
    def _require_item(item: object) -> None:
        if item is None:
            raise ValidationError("item must not be None")


__all__ = ["SemanticDatabase"]
