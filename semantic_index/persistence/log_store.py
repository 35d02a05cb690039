"""Append-only, tag-filterable text log of embedded items.

Each line holds one record::

    tags <RS> embedding <RS> magnitude <RS> text

where RS is the ASCII record separator (``\\x1e``). Tags and embedding
components are joined with the unit separator (``\\x1f``). Text has both
separators replaced by a space and backslash, CR and LF backslash-escaped,
so a record can never span lines. The file is read by streaming, never
loaded whole.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, FrozenSet, Iterable, Iterator, List, Optional, Sequence, Tuple, Union

import numpy as np

from semantic_index.config import Settings
from semantic_index.embeddings import EmbeddingProvider, create_embedding_provider
from semantic_index.exceptions import PersistenceError, ProviderError, ValidationError
from semantic_index.models import SearchHit, to_vector
from semantic_index.retrieval import BoundedTopK, cosine_similarity
from semantic_index.serialization import is_vector, to_text

logger = logging.getLogger(__name__)

FIELD_SEPARATOR = "\x1e"
ITEM_SEPARATOR = "\x1f"

_ESCAPES = {"\\": "\\\\", "\r": "\\r", "\n": "\\n"}
_UNESCAPES = {"\\": "\\", "r": "\r", "n": "\n"}
_ESCAPE_PATTERN = re.compile(r"[\\\r\n]")
_UNESCAPE_PATTERN = re.compile(r"\\([\\rn])")

PathLike = Union[str, Path]


@dataclass(frozen=True, eq=False)
class LogEntry:
    """One parsed line of the log."""

    text: str
    tags: FrozenSet[str]
    embedding: np.ndarray
    magnitude: float

    def has_tags(self, required: Iterable[str]) -> bool:
        return all(tag in self.tags for tag in required)


def _strip_separators(value: str) -> str:
    return value.replace(FIELD_SEPARATOR, " ").replace(ITEM_SEPARATOR, " ")


def escape_text(text: str) -> str:
    return _ESCAPE_PATTERN.sub(lambda match: _ESCAPES[match.group(0)], _strip_separators(text))


def unescape_text(text: str) -> str:
    return _UNESCAPE_PATTERN.sub(lambda match: _UNESCAPES[match.group(1)], text)


def clean_tag(tag: str) -> str:
    return _strip_separators(tag).replace("\r", " ").replace("\n", " ")


def format_line(text: str, tags: Iterable[str], embedding: np.ndarray, magnitude: float) -> str:
    return FIELD_SEPARATOR.join(
        [
            ITEM_SEPARATOR.join(tags),
            ITEM_SEPARATOR.join(repr(float(value)) for value in embedding),
            repr(float(magnitude)),
            escape_text(text),
        ]
    )


def parse_line(line: str) -> Optional[LogEntry]:
    """Parse one line, returning None when it is malformed."""

    fields = line.rstrip("\n").split(FIELD_SEPARATOR)
    if len(fields) != 4:
        return None
    raw_tags, raw_embedding, raw_magnitude, raw_text = fields
    try:
        embedding = to_vector([float(value) for value in raw_embedding.split(ITEM_SEPARATOR)])
        magnitude = float(raw_magnitude)
    except (ValueError, ValidationError):
        return None
    tags = frozenset(tag for tag in raw_tags.split(ITEM_SEPARATOR) if tag)
    return LogEntry(text=unescape_text(raw_text), tags=tags, embedding=embedding, magnitude=magnitude)


def _tag_list(tags: Union[str, Iterable[str], None]) -> List[str]:
    """Cleaned tags; a bare string counts as a single tag."""

    if tags is None:
        return []
    if isinstance(tags, str):
        tags = [tags]
    return [clean_tag(tag) for tag in tags if tag]


class TaggedLogStore:
    """Text items with tags, appended to a log file and searched by cosine similarity."""

    def __init__(self, path: PathLike, provider: EmbeddingProvider, encoding: str = "utf-8") -> None:
        if path is None or not str(path).strip():
            raise ValidationError("log path must not be empty")
        self.path = Path(path)
        self.provider = provider
        self.encoding = encoding
        self._write_lock = threading.Lock()

    @classmethod
    def from_settings(
        cls, settings: Settings, provider: Optional[EmbeddingProvider] = None
    ) -> "TaggedLogStore":
        """Open the log configured under ``persistence.log_path``."""

        if settings.persistence.log_path is None:
            raise ValidationError("persistence.log_path is not configured")
        if provider is None:
            provider = create_embedding_provider(settings.embedding)
        return cls(settings.persistence.log_path, provider, settings.persistence.encoding)

    def add(
        self,
        item: Any,
        tags: Union[str, Sequence[str]] = (),
        embedding: Optional[Sequence[float]] = None,
    ) -> LogEntry:
        """Append ``item`` with ``tags``, embedding it unless a vector is given."""

        text = to_text(item)
        vector = to_vector(embedding) if embedding is not None else self._embed([text])[0]
        return self._append([(text, _tag_list(tags), vector)])[0]

    def add_many(self, items: Sequence[Any], tags: Union[str, Sequence[str]] = ()) -> List[LogEntry]:
        """Embed ``items`` in one provider call and append them with the same tags."""

        texts = [to_text(item) for item in items]
        if not texts:
            return []
        clean_tags = _tag_list(tags)
        vectors = self._embed(texts)
        return self._append([(text, clean_tags, vector) for text, vector in zip(texts, vectors)])

    def entries(self) -> Iterator[LogEntry]:
        """Stream valid entries in file order, skipping malformed lines."""

        for _, entry in self._read_lines():
            if entry is not None:
                yield entry

    def count(self) -> int:
        return sum(1 for _ in self.entries())

    def find_with_scores(
        self,
        query: Any,
        tags: Union[str, Sequence[str], None] = None,
        count: int = 10,
    ) -> List[SearchHit[str]]:
        """Top ``count`` entries carrying every tag in ``tags``, best first."""

        top: BoundedTopK[str] = BoundedTopK(count)
        if count == 0:
            return []
        query_vector = self._query_vector(query)
        query_norm = float(np.linalg.norm(query_vector))
        required = _tag_list(tags)
        for entry in self.entries():
            if required and not entry.has_tags(required):
                continue
            score = cosine_similarity(query_vector, entry.embedding, query_norm, entry.magnitude)
            top.push(score, entry.text)
        return top.results()

    def find(
        self, query: Any, tags: Union[str, Sequence[str], None] = None, count: int = 10
    ) -> List[str]:
        return [hit.payload for hit in self.find_with_scores(query, tags, count)]

    def find_first(self, query: Any, tags: Union[str, Sequence[str], None] = None) -> Optional[str]:
        results = self.find(query, tags, 1)
        return results[0] if results else None

    def remove(self, item: Any = None, tags: Union[str, Sequence[str], None] = None) -> int:
        """Rewrite the log without entries matching ``item`` and/or ``tags``.

        With both given, an entry must match both to be removed. Malformed
        lines are kept byte for byte. Returns the number of entries removed.
        """

        required = _tag_list(tags)
        if item is None and not required:
            raise ValidationError("remove requires an item, tags, or both")
        target_text = unescape_text(escape_text(to_text(item))) if item is not None else None

        def matches(entry: LogEntry) -> bool:
            if target_text is not None and entry.text != target_text:
                return False
            return entry.has_tags(required)

        with self._write_lock:
            if not self.path.exists():
                return 0
            removed = 0
            try:
                fd, tmp_name = tempfile.mkstemp(
                    prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
                )
                try:
                    with os.fdopen(fd, "wb") as out:
                        for raw, entry in self._read_lines():
                            if entry is not None and matches(entry):
                                removed += 1
                                continue
                            out.write(raw if raw.endswith(b"\n") else raw + b"\n")
                    os.replace(tmp_name, self.path)
                except BaseException:
                    Path(tmp_name).unlink(missing_ok=True)
                    raise
            except OSError as exc:
                raise PersistenceError(f"cannot rewrite log {self.path}: {exc}") from exc

        logger.info("Removed %d entr%s from %s", removed, "y" if removed == 1 else "ies", self.path)
        return removed

    def _read_lines(self) -> Iterator[Tuple[bytes, Optional[LogEntry]]]:
        """Raw lines paired with their parsed entry, or None when malformed.

        Lines are decoded one at a time so an undecodable line only costs
        itself.
        """

        if not self.path.exists():
            return
        try:
            with self.path.open("rb") as handle:
                for lineno, raw in enumerate(handle, start=1):
                    try:
                        entry = parse_line(raw.decode(self.encoding))
                    except UnicodeDecodeError:
                        entry = None
                    if entry is None:
                        logger.debug("Skipping malformed line %d in %s", lineno, self.path)
                    yield raw, entry
        except OSError as exc:
            raise PersistenceError(f"cannot read log {self.path}: {exc}") from exc

    def _embed(self, texts: List[str]) -> List[np.ndarray]:
        try:
            vectors = self.provider.embed(texts)
        except ProviderError:
            raise
        except Exception as exc:
            raise ProviderError(f"embedding provider failed: {exc}") from exc
        if len(vectors) != len(texts):
            raise ProviderError(f"expected {len(texts)} embeddings, received {len(vectors)}")
        return [to_vector(vector) for vector in vectors]

    def _query_vector(self, query: Any) -> np.ndarray:
        if is_vector(query):
            return to_vector(query)
        return self._embed([to_text(query)])[0]

    def _append(self, rows: List[Tuple[str, List[str], np.ndarray]]) -> List[LogEntry]:
        entries: List[LogEntry] = []
        lines: List[str] = []
        for text, clean_tags, vector in rows:
            magnitude = float(np.linalg.norm(vector))
            lines.append(format_line(text, clean_tags, vector, magnitude) + "\n")
            entries.append(
                LogEntry(
                    text=unescape_text(escape_text(text)),
                    tags=frozenset(clean_tags),
                    embedding=vector,
                    magnitude=magnitude,
                )
            )
        data = "".join(lines).encode(self.encoding)
        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with self.path.open("a+b") as handle:
                    # A torn last line must not swallow the next record.
                    end = handle.seek(0, os.SEEK_END)
                    if end > 0:
                        handle.seek(end - 1)
                        if handle.read(1) != b"\n":
                            data = b"\n" + data
                    handle.write(data)
            except OSError as exc:
                raise PersistenceError(f"cannot append to log {self.path}: {exc}") from exc
        logger.debug("Appended %d entr%s to %s", len(lines), "y" if len(lines) == 1 else "ies", self.path)
        return entries


__all__ = [
    "FIELD_SEPARATOR",
    "ITEM_SEPARATOR",
    "LogEntry",
    "TaggedLogStore",
    "escape_text",
    "format_line",
    "parse_line",
    "unescape_text",
]
