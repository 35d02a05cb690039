"""Whole-database JSON snapshots."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence, Union

from semantic_index.exceptions import PersistenceError, ValidationError
from semantic_index.models import SemanticRecord
from semantic_index.serialization import to_serializable

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def save_snapshot(
    path: PathLike,
    records: Sequence[SemanticRecord[Any]],
    payload_encoder: Callable[[Any], Any] = to_serializable,
    encoding: str = "utf-8",
) -> Path:
    """Write ``records`` as a JSON array of ``{payload, embedding}`` objects.

    The document is written to a sibling temp file and renamed into place,
    so readers see either the old file or the complete new one.
    """

    target = _require_path(path)
    try:
        document = [record.to_dict(payload_encoder) for record in records]
        body = json.dumps(document, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise PersistenceError(f"cannot serialize records for {target}: {exc}") from exc

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        try:
            with os.fdopen(fd, "w", encoding=encoding) as handle:
                handle.write(body)
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
    except OSError as exc:
        raise PersistenceError(f"cannot write snapshot {target}: {exc}") from exc

    logger.info("Saved %d record(s) to %s", len(document), target)
    return target


def load_snapshot(
    path: PathLike,
    payload_decoder: Optional[Callable[[Any], Any]] = None,
    encoding: str = "utf-8",
) -> List[SemanticRecord[Any]]:
    """Read a snapshot written by :func:`save_snapshot`.

    A document of ``null`` or ``[]`` yields an empty list. Anything that is not
    an array of records with one shared embedding dimension is rejected.
    """

    target = _require_path(path)
    if not target.exists():
        raise PersistenceError(f"snapshot file not found: {target}")
    try:
        with target.open("r", encoding=encoding) as handle:
            raw = json.load(handle)
    except (OSError, UnicodeDecodeError) as exc:
        raise PersistenceError(f"cannot read snapshot {target}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise PersistenceError(f"snapshot {target} is not valid JSON: {exc}") from exc

    if raw is None:
        return []
    if not isinstance(raw, list):
        raise PersistenceError(f"snapshot {target} must contain a JSON array, got {type(raw).__name__}")

    records: List[SemanticRecord[Any]] = []
    dimension: Optional[int] = None
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise PersistenceError(f"snapshot {target} item {idx} is not an object")
        try:
            record = SemanticRecord.from_dict(item, payload_decoder)
        except KeyError as exc:
            raise PersistenceError(f"snapshot {target} item {idx} is missing field {exc}") from exc
        except (TypeError, ValueError, ValidationError) as exc:
            raise PersistenceError(f"snapshot {target} item {idx} is invalid: {exc}") from exc
        if dimension is None:
            dimension = record.dimension
        elif record.dimension != dimension:
            raise PersistenceError(
                f"snapshot {target} item {idx} has dimension {record.dimension}, expected {dimension}"
            )
        records.append(record)

    logger.info("Loaded %d record(s) from %s", len(records), target)
    return records


def _require_path(path: Optional[PathLike]) -> Path:
    if path is None or not str(path).strip():
        raise ValidationError("file path must not be empty")
    return Path(path)


__all__ = ["load_snapshot", "save_snapshot"]
