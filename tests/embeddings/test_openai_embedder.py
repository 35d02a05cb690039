from types import SimpleNamespace
from typing import Any, Dict, List

import httpx
import pytest
from openai import APIConnectionError

from semantic_index.config import EmbeddingSettings
from semantic_index.embeddings import HashEmbedder, OpenAIEmbedder, create_embedding_provider
from semantic_index.exceptions import ProviderError, ValidationError


class FakeEmbeddings:
    def __init__(self, error: Exception = None) -> None:
        self.requests: List[Dict[str, Any]] = []
        self.error = error

    def create(self, **kwargs: Any) -> SimpleNamespace:
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        data = [
            SimpleNamespace(index=idx, embedding=[float(idx), float(len(text))])
            for idx, text in enumerate(kwargs["input"])
        ]
        return SimpleNamespace(data=list(reversed(data)))


class FakeClient:
    def __init__(self, error: Exception = None) -> None:
        self.embeddings = FakeEmbeddings(error)
        self.api_key = "sk-test"


def test_openai_embedder_orders_results_by_index() -> None:
    client = FakeClient()
    embedder = OpenAIEmbedder(model="text-embedding-3-small", client=client)

    vectors = embedder.embed(["a", "bbb"])

    assert vectors == [[0.0, 1.0], [1.0, 3.0]]
    assert client.embeddings.requests == [{"model": "text-embedding-3-small", "input": ["a", "bbb"]}]
    assert embedder.api_key == "sk-test"


def test_openai_embedder_passes_dimensions() -> None:
    client = FakeClient()
    embedder = OpenAIEmbedder(dimensions=256, client=client)

    embedder.embed(["a"])

    assert client.embeddings.requests[0]["dimensions"] == 256


def test_openai_embedder_skips_empty_batches() -> None:
    client = FakeClient()

    assert OpenAIEmbedder(client=client).embed([]) == []
    assert client.embeddings.requests == []


def test_openai_errors_become_provider_errors() -> None:
    request = httpx.Request("POST", "https://api.openai.com/v1/embeddings")
    client = FakeClient(error=APIConnectionError(request=request))

    with pytest.raises(ProviderError):
        OpenAIEmbedder(client=client).embed(["a"])


def test_missing_api_key_is_reported(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    with pytest.raises(ProviderError):
        OpenAIEmbedder()


def test_factory_selects_provider(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    hashed = create_embedding_provider(EmbeddingSettings(provider="hash", dimensions=64))
    remote = create_embedding_provider(EmbeddingSettings(model="text-embedding-3-small"))

    assert isinstance(hashed, HashEmbedder)
    assert hashed.dimension == 64
    assert isinstance(remote, OpenAIEmbedder)
    assert remote.model == "text-embedding-3-small"


def test_api_key_can_be_replaced() -> None:
    client = FakeClient()
    embedder = OpenAIEmbedder(client=client)

    embedder.api_key = "sk-rotated"

    assert embedder.api_key == "sk-rotated"
    assert client.api_key == "sk-rotated"
    with pytest.raises(ValidationError):
        embedder.api_key = " "
