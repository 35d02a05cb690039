from pathlib import Path
from typing import Dict, List, Sequence

import pytest

from semantic_index.config import Settings
from semantic_index.embeddings import HashEmbedder
from semantic_index.exceptions import ProviderError, ValidationError
from semantic_index.persistence import TaggedLogStore
from semantic_index.persistence.log_store import (
    FIELD_SEPARATOR,
    ITEM_SEPARATOR,
    escape_text,
    parse_line,
    unescape_text,
)


class KeywordEmbedder:
    model = "keyword"

    VECTORS: Dict[str, List[float]] = {
        "wolf": [0.9, 0.1, 0.0],
        "carrot": [0.1, 0.9, 0.0],
        "wolf-like query": [1.0, 0.0, 0.0],
        "dog": [0.8, 0.2, 0.0],
        "cabbage": [0.0, 1.0, 0.1],
    }

    def __init__(self) -> None:
        self.calls: List[List[str]] = []

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        self.calls.append(list(texts))
        return [self.VECTORS.get(text, [0.0, 0.0, 1.0]) for text in texts]


class FailingEmbedder:
    model = "broken"

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        raise ConnectionError("network down")


@pytest.fixture
def log_store(tmp_path: Path) -> TaggedLogStore:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())
    store.add("wolf", tags=["animal", "wild"])
    store.add("carrot", tags=["food"])
    store.add("dog", tags=["animal"])
    store.add("cabbage", tags=["food", "green"])
    return store


def test_each_add_appends_one_line(log_store: TaggedLogStore) -> None:
    lines = log_store.path.read_text(encoding="utf-8").split("\n")[:-1]

    assert len(lines) == 4
    tags, embedding, magnitude, text = lines[0].split(FIELD_SEPARATOR)
    assert tags.split(ITEM_SEPARATOR) == ["animal", "wild"]
    assert len(embedding.split(ITEM_SEPARATOR)) == 3
    assert float(magnitude) == pytest.approx((0.9**2 + 0.1**2) ** 0.5, rel=1e-6)
    assert text == "wolf"


def test_find_filters_by_tag(log_store: TaggedLogStore) -> None:
    assert log_store.find("wolf-like query", tags=["food"], count=1) == ["carrot"]
    assert log_store.find("wolf-like query", tags=["animal"], count=1) == ["wolf"]


def test_find_requires_all_tags(log_store: TaggedLogStore) -> None:
    assert log_store.find("wolf-like query", tags=["animal", "wild"]) == ["wolf"]
    assert log_store.find("wolf-like query", tags=["animal", "food"]) == []


def test_find_without_tags_ranks_by_cosine(log_store: TaggedLogStore) -> None:
    hits = log_store.find_with_scores("wolf-like query", count=3)

    assert [hit.payload for hit in hits] == ["wolf", "dog", "carrot"]
    assert hits[0].score > hits[1].score > hits[2].score


def test_find_accepts_vectors_and_zero_count(log_store: TaggedLogStore) -> None:
    assert log_store.find([0.1, 0.9, 0.0], count=1) == ["carrot"]
    assert log_store.find_first([0.1, 0.9, 0.0], tags=["green"]) == "cabbage"
    assert log_store.find("wolf-like query", count=0) == []


def test_find_rejects_dimension_mismatch(log_store: TaggedLogStore) -> None:
    with pytest.raises(ValidationError):
        log_store.find([1.0, 0.0])


def test_find_on_missing_file_is_empty(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "absent.txt", KeywordEmbedder())

    assert store.find("wolf") == []
    assert store.find_first("wolf") is None


def test_payload_text_cannot_break_lines(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())
    text = "line one\nline two\r\nback\\slash" + FIELD_SEPARATOR + "x" + ITEM_SEPARATOR + "y"

    store.add(text, tags=["bad\ntag"], embedding=[1.0, 0.0, 0.0])

    lines = store.path.read_text(encoding="utf-8").split("\n")
    assert lines[1:] == [""]
    entry = next(store.entries())
    assert entry.text == "line one\nline two\r\nback\\slash x y"
    assert entry.tags == frozenset({"bad tag"})


def test_escape_roundtrip_keeps_literal_backslash_sequences() -> None:
    text = "a literal \\n is not a newline"

    assert unescape_text(escape_text(text)) == text


def test_malformed_lines_are_skipped(log_store: TaggedLogStore) -> None:
    with log_store.path.open("a", encoding="utf-8") as handle:
        handle.write("garbage without separators\n")
        handle.write(FIELD_SEPARATOR.join(["", "1.0" + ITEM_SEPARATOR + "abc", "1.0", "bad"]) + "\n")

    assert parse_line("garbage without separators\n") is None
    assert log_store.count() == 4
    assert log_store.find("wolf-like query", count=10)[0] == "wolf"


def test_add_many_embeds_in_one_call(tmp_path: Path) -> None:
    embedder = KeywordEmbedder()
    store = TaggedLogStore(tmp_path / "log.txt", embedder)

    store.add_many(["wolf", "dog"], tags=["animal"])

    assert embedder.calls == [["wolf", "dog"]]
    assert [entry.text for entry in store.entries()] == ["wolf", "dog"]


def test_remove_by_payload_rewrites_file(log_store: TaggedLogStore) -> None:
    assert log_store.remove("dog") == 1

    assert [entry.text for entry in log_store.entries()] == ["wolf", "carrot", "cabbage"]


def test_remove_by_tags_and_payload(log_store: TaggedLogStore) -> None:
    assert log_store.remove("carrot", tags=["animal"]) == 0
    assert log_store.remove(tags=["food"]) == 2

    assert [entry.text for entry in log_store.entries()] == ["wolf", "dog"]


def test_remove_keeps_malformed_lines(log_store: TaggedLogStore) -> None:
    with log_store.path.open("a", encoding="utf-8") as handle:
        handle.write("garbage\n")

    log_store.remove("wolf")

    assert log_store.path.read_text(encoding="utf-8").split("\n")[-2] == "garbage"


def test_remove_requires_criteria(log_store: TaggedLogStore) -> None:
    with pytest.raises(ValidationError):
        log_store.remove()


def test_remove_missing_payload_is_noop(log_store: TaggedLogStore) -> None:
    assert log_store.remove("unicorn") == 0
    assert log_store.count() == 4


def test_provider_failure_appends_nothing(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", FailingEmbedder())

    with pytest.raises(ProviderError):
        store.add("wolf")
    assert not store.path.exists()


def test_undecodable_line_is_skipped(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())
    store.add("wolf", tags=["animal"])
    with store.path.open("ab") as handle:
        handle.write(b"\xff\xfe garbage\n")
    store.add("dog", tags=["animal"])

    assert store.find("wolf-like query", count=5) == ["wolf", "dog"]
    assert store.count() == 2


def test_remove_keeps_undecodable_line_bytes(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())
    store.add("wolf")
    with store.path.open("ab") as handle:
        handle.write(b"\xff\xfe garbage\n")
    store.add("dog")

    assert store.remove("wolf") == 1

    assert b"\xff\xfe garbage\n" in store.path.read_bytes()
    assert [entry.text for entry in store.entries()] == ["dog"]


def test_append_after_torn_last_line_starts_a_new_line(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())
    store.add("wolf")
    with store.path.open("a", encoding="utf-8", newline="") as handle:
        handle.write("animal" + FIELD_SEPARATOR + "1.0")

    store.add("dog")

    assert [entry.text for entry in store.entries()] == ["wolf", "dog"]
    assert store.find("wolf-like query", count=5) == ["wolf", "dog"]


def test_bare_string_tags_are_one_tag(tmp_path: Path) -> None:
    store = TaggedLogStore(tmp_path / "log.txt", KeywordEmbedder())

    entry = store.add("wolf", tags="animal")
    store.add_many(["carrot", "cabbage"], tags="food")

    assert entry.tags == frozenset({"animal"})
    assert store.find("wolf-like query", tags=["animal"]) == ["wolf"]
    assert store.find("wolf-like query", tags="animal") == ["wolf"]
    assert store.remove(tags="food") == 2
    assert [entry.text for entry in store.entries()] == ["wolf"]


def test_from_settings_uses_configured_log_path(tmp_path: Path) -> None:
    settings = Settings.model_validate(
        {
            "embedding": {"provider": "hash", "dimensions": 8},
            "persistence": {"log_path": str(tmp_path / "logs" / "semantic-log.txt")},
        }
    )

    store = TaggedLogStore.from_settings(settings)
    store.add("red apple", tags=["fruit"])

    assert isinstance(store.provider, HashEmbedder)
    assert store.path == tmp_path / "logs" / "semantic-log.txt"
    assert store.find_first("apple", tags=["fruit"]) == "red apple"


def test_from_settings_requires_log_path() -> None:
    with pytest.raises(ValidationError):
        TaggedLogStore.from_settings(Settings(), provider=KeywordEmbedder())
