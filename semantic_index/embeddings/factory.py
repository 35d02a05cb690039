"""Factory helpers for embedding providers."""

from __future__ import annotations

import logging

from semantic_index.config import EmbeddingSettings

from .base import EmbeddingProvider
from .hashing import HashEmbedder
from .openai_embedder import OpenAIEmbedder

LOGGER = logging.getLogger(__name__)


def create_embedding_provider(settings: EmbeddingSettings) -> EmbeddingProvider:
    """Create an embedding provider based on runtime configuration."""

    if settings.provider == "hash":
        LOGGER.info("Using offline hash embeddings (%d dimensions)", settings.dimensions or 384)
        return HashEmbedder(dimension=settings.dimensions or 384)
    return OpenAIEmbedder(
        model=settings.model,
        dimensions=settings.dimensions,
        request_timeout=settings.request_timeout,
    )


__all__ = ["create_embedding_provider"]
