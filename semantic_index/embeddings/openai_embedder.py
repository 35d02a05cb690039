"""Embedding provider backed by the OpenAI embeddings API."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Sequence

from dotenv import load_dotenv
from openai import OpenAI, OpenAIError

from semantic_index.exceptions import ProviderError, ValidationError

load_dotenv()

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "text-embedding-3-large"


class OpenAIEmbedder:
    """Generate embeddings with an OpenAI client."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        dimensions: Optional[int] = None,
        request_timeout: Optional[float] = None,
        client: Optional[OpenAI] = None,
    ) -> None:
        self.model = model
        self.dimensions = dimensions
        if client is not None:
            self._client = client
            return
        api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ProviderError("OPENAI_API_KEY is not set")
        if request_timeout is not None:
            self._client = OpenAI(api_key=api_key, timeout=request_timeout)
        else:
            self._client = OpenAI(api_key=api_key)

    @property
    def api_key(self) -> Optional[str]:
        return getattr(self._client, "api_key", None)

    @api_key.setter
    def api_key(self, value: str) -> None:
        if not value or not value.strip():
            raise ValidationError("api key must not be empty")
        self._client.api_key = value

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        if not texts:
            return []

        request: Dict[str, Any] = {"model": self.model, "input": list(texts)}
        if self.dimensions is not None:
            request["dimensions"] = self.dimensions

        LOGGER.debug("Requesting %d embedding(s) from %s", len(texts), self.model)
        try:
            response = self._client.embeddings.create(**request)
        except OpenAIError as exc:
            raise ProviderError(f"embedding request to {self.model} failed: {exc}") from exc

        items = sorted(response.data, key=lambda item: item.index)
        if len(items) != len(texts):
            raise ProviderError(
                f"expected {len(texts)} embeddings from {self.model}, received {len(items)}"
            )
        return [list(item.embedding) for item in items]


__all__ = ["DEFAULT_MODEL", "OpenAIEmbedder"]
