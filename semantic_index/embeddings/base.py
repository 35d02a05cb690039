"""Embedding provider interface."""

from __future__ import annotations

from typing import Protocol, Sequence, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Minimal protocol for embedding services.

    ``embed`` returns one vector per input text, in input order, all of the
    same dimension. Failures should raise :class:`ProviderError`.
    """

    model: str

    def embed(self, texts: Sequence[str]) -> Sequence[Sequence[float]]:
        ...


__all__ = ["EmbeddingProvider"]
