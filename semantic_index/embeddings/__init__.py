"""Embedding backends used across the project."""

from .base import EmbeddingProvider
from .factory import create_embedding_provider
from .hashing import HashEmbedder
from .openai_embedder import OpenAIEmbedder

__all__ = ["EmbeddingProvider", "HashEmbedder", "OpenAIEmbedder", "create_embedding_provider"]
