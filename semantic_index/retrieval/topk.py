"""Bounded top-K selection over a stream of scored candidates."""

from __future__ import annotations

import heapq
import itertools
from typing import Generic, List, Tuple, TypeVar

from semantic_index.exceptions import ValidationError
from semantic_index.models import SearchHit

T = TypeVar("T")


class BoundedTopK(Generic[T]):
    """Keep the ``k`` best-scoring payloads seen so far.

    Entries live in a min-heap keyed by ``(score, -sequence)`` so the root is
    always the worst retained entry. Equal scores are ordered by arrival and
    never replace each other: a candidate evicts the root only when its score
    is strictly higher.
    """

    def __init__(self, k: int) -> None:
        if k < 0:
            raise ValidationError(f"count must be non-negative, got {k}")
        self.k = k
        self._heap: List[Tuple[float, int, T]] = []
        self._counter = itertools.count()

    def __len__(self) -> int:
        return len(self._heap)

    def push(self, score: float, payload: T) -> bool:
        """Offer a candidate; returns True when it was retained."""

        if self.k == 0:
            return False
        entry = (score, -next(self._counter), payload)
        if len(self._heap) < self.k:
            heapq.heappush(self._heap, entry)
            return True
        if score > self._heap[0][0]:
            heapq.heapreplace(self._heap, entry)
            return True
        return False

    def results(self) -> List[SearchHit[T]]:
        ordered = sorted(self._heap, key=lambda entry: (entry[0], entry[1]), reverse=True)
        return [SearchHit(payload=payload, score=score) for score, _, payload in ordered]


__all__ = ["BoundedTopK"]
