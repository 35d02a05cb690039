"""Dataclasses for stored records and search results."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, Sequence, TypeVar

import numpy as np

from semantic_index.exceptions import ValidationError

T = TypeVar("T")


def to_vector(values: Sequence[float]) -> np.ndarray:
    """Copy ``values`` into a read-only one-dimensional float32 array."""

    try:
        vector = np.array(values, dtype=np.float32)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"embedding must contain only numbers: {exc}") from exc
    if vector.ndim != 1 or vector.size == 0:
        raise ValidationError(f"embedding must be a non-empty 1-D sequence, got shape {vector.shape}")
    vector.flags.writeable = False
    return vector


@dataclass(frozen=True, eq=False)
class SemanticRecord(Generic[T]):
    """Single payload paired with its embedding."""

    payload: T
    embedding: np.ndarray

    def __post_init__(self) -> None:
        embedding = self.embedding
        if (
            not isinstance(embedding, np.ndarray)
            or embedding.flags.writeable
            or embedding.dtype != np.float32
            or embedding.ndim != 1
        ):
            object.__setattr__(self, "embedding", to_vector(self.embedding))

    @property
    def dimension(self) -> int:
        return int(self.embedding.shape[0])

    def with_embedding(self, embedding: Sequence[float]) -> "SemanticRecord[T]":
        return SemanticRecord(payload=self.payload, embedding=to_vector(embedding))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SemanticRecord):
            return NotImplemented
        return self.payload == other.payload and np.array_equal(self.embedding, other.embedding)

    def to_dict(self, encode: Optional[Callable[[Any], Any]] = None) -> Dict[str, Any]:
        payload = encode(self.payload) if encode is not None else self.payload
        return {
            "payload": payload,
            "embedding": [float(value) for value in self.embedding],
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], decode: Optional[Callable[[Any], Any]] = None
    ) -> "SemanticRecord[Any]":
        payload = data["payload"]
        if decode is not None:
            payload = decode(payload)
        return cls(payload=payload, embedding=to_vector(data["embedding"]))


@dataclass(frozen=True)
class SearchHit(Generic[T]):
    """Result item returned by similarity search."""

    payload: T
    score: float
