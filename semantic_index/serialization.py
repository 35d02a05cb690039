"""Conversion of payloads and queries to embeddable text and JSON values."""

from __future__ import annotations

import dataclasses
import json
import numbers
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any

import numpy as np
from pydantic import BaseModel

from semantic_index.exceptions import ValidationError


def to_serializable(obj: Any) -> Any:
    """Turn ``obj`` into JSON-native values.

    Dataclasses and pydantic models become dicts; dates become ISO strings.
    """

    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json")
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return to_serializable(dataclasses.asdict(obj))
    if isinstance(obj, Enum):
        return to_serializable(obj.value)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, dict):
        return {str(key): to_serializable(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_serializable(item) for item in obj]
    return obj


def is_vector(obj: Any) -> bool:
    """True for numpy arrays and non-empty lists or tuples of numbers."""

    if isinstance(obj, np.ndarray):
        return True
    return (
        isinstance(obj, (list, tuple))
        and len(obj) > 0
        and all(isinstance(value, numbers.Real) and not isinstance(value, bool) for value in obj)
    )


def to_text(obj: Any) -> str:
    """Text sent to the embedding provider for a payload or query.

    Strings pass through unchanged; anything else is serialized to JSON.
    """

    if obj is None:
        raise ValidationError("cannot embed None")
    if isinstance(obj, str):
        text = obj
    else:
        try:
            text = json.dumps(to_serializable(obj), ensure_ascii=False, sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise ValidationError(f"cannot serialize {type(obj).__name__} for embedding: {exc}") from exc
    if not text.strip():
        raise ValidationError("cannot embed empty text")
    return text


__all__ = ["is_vector", "to_serializable", "to_text"]
