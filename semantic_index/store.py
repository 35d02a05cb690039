"""Thread-safe in-memory record store with duplicate handling."""

from __future__ import annotations

import logging
import operator
from typing import Any, Callable, Generic, Iterable, List, Optional, Sequence, TypeVar

import numpy as np

from semantic_index.exceptions import DuplicateError, ValidationError
from semantic_index.locking import ReadWriteLock
from semantic_index.models import DuplicateHandling, SearchHit, SemanticRecord, to_vector
from semantic_index.retrieval import BoundedTopK, Scorer, dot_product

logger = logging.getLogger(__name__)

T = TypeVar("T")

Equality = Callable[[Any, Any], bool]


class RecordStore(Generic[T]):
    """Insertion-ordered list of records guarded by a readers-writer lock.

    Only list mutations run under the write lock. Callers embed payloads
    before calling :meth:`insert` so slow providers never block readers.
    """

    def __init__(
        self,
        duplicate_handling: DuplicateHandling = DuplicateHandling.UPDATE,
        dimension: Optional[int] = None,
        equals: Optional[Equality] = None,
    ) -> None:
        if dimension is not None and dimension <= 0:
            raise ValidationError(f"dimension must be positive, got {dimension}")
        self.duplicate_handling = DuplicateHandling(duplicate_handling)
        self._configured_dimension = dimension
        self._equals: Equality = equals or operator.eq
        self._lock = ReadWriteLock()
        self._records: List[SemanticRecord[T]] = []

    @property
    def dimension(self) -> Optional[int]:
        """Configured dimension, else the dimension of the stored records."""

        if self._configured_dimension is not None:
            return self._configured_dimension
        with self._lock.read():
            return self._records[0].dimension if self._records else None

    def __len__(self) -> int:
        return self.count()

    def count(self) -> int:
        with self._lock.read():
            return len(self._records)

    def insert(self, record: SemanticRecord[T]) -> bool:
        """Store ``record`` according to the duplicate policy.

        Returns False when the policy is SKIP and an equal payload exists.
        """

        policy = self.duplicate_handling
        with self._lock.write():
            self._check_dimension(record.dimension, self._current_dimension())
            if policy is not DuplicateHandling.ALLOW and self._has_payload(record.payload):
                if policy is DuplicateHandling.SKIP:
                    logger.debug("Skipping duplicate payload %r", record.payload)
                    return False
                if policy is DuplicateHandling.THROW:
                    raise DuplicateError(f"item already exists in the database: {record.payload!r}")
                removed = self._remove_unlocked(record.payload)
                logger.debug("Replacing %d record(s) for payload %r", removed, record.payload)
            self._records.append(record)
        return True

    def remove(self, payload: T) -> int:
        """Remove every record whose payload equals ``payload``."""

        with self._lock.write():
            return self._remove_unlocked(payload)

    def remove_many(self, payloads: Iterable[T]) -> int:
        targets = list(payloads)
        with self._lock.write():
            return sum(self._remove_unlocked(payload) for payload in targets)

    def contains(self, payload: T) -> bool:
        with self._lock.read():
            return self._has_payload(payload)

    def snapshot(self) -> List[SemanticRecord[T]]:
        with self._lock.read():
            return list(self._records)

    def payloads(self) -> List[T]:
        with self._lock.read():
            return [record.payload for record in self._records]

    def clear(self) -> None:
        with self._lock.write():
            self._records = []

    def replace_all(self, records: Sequence[SemanticRecord[T]]) -> None:
        """Swap in ``records`` as the entire contents of the store."""

        replacement = list(records)
        self._validate_batch(replacement)
        with self._lock.write():
            self._records = replacement

    def update(
        self,
        transform: Callable[[List[SemanticRecord[T]]], List[SemanticRecord[T]]],
    ) -> None:
        """Apply ``transform`` to the current list under a single write lock.

        ``transform`` must be pure in-memory work; it receives a copy and
        returns the new list.
        """

        with self._lock.write():
            replacement = list(transform(list(self._records)))
            self._validate_batch(replacement)
            self._records = replacement

    def search(
        self,
        query: Sequence[float],
        k: int,
        scorer: Scorer = dot_product,
    ) -> List[SearchHit[T]]:
        """Scan every record and return the ``k`` best hits, best first."""

        query_vector = query if isinstance(query, np.ndarray) else to_vector(query)
        top: BoundedTopK[T] = BoundedTopK(k)
        if k == 0:
            return []
        with self._lock.read():
            self._check_dimension(int(query_vector.shape[0]), self._current_dimension(), "query")
            for record in self._records:
                top.push(scorer(query_vector, record.embedding), record.payload)
        return top.results()

    def _current_dimension(self) -> Optional[int]:
        if self._configured_dimension is not None:
            return self._configured_dimension
        return self._records[0].dimension if self._records else None

    @staticmethod
    def _check_dimension(actual: int, expected: Optional[int], what: str = "record") -> None:
        if expected is not None and actual != expected:
            raise ValidationError(f"{what} embedding has dimension {actual}, expected {expected}")

    def _validate_batch(self, records: Sequence[SemanticRecord[T]]) -> None:
        expected = self._configured_dimension
        for record in records:
            if expected is None:
                expected = record.dimension
            self._check_dimension(record.dimension, expected)

    def _has_payload(self, payload: T) -> bool:
        return any(self._equals(record.payload, payload) for record in self._records)

    def _remove_unlocked(self, payload: T) -> int:
        kept = [record for record in self._records if not self._equals(record.payload, payload)]
        removed = len(self._records) - len(kept)
        if removed:
            self._records = kept
        return removed


__all__ = ["RecordStore"]
