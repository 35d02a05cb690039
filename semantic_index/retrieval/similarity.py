"""Similarity scorers used by the linear scan."""

from __future__ import annotations

from typing import Callable, Optional

import numpy as np

from semantic_index.exceptions import ValidationError

Scorer = Callable[[np.ndarray, np.ndarray], float]


def check_dimensions(query: np.ndarray, candidate: np.ndarray) -> None:
    if query.shape != candidate.shape:
        raise ValidationError(
            f"embedding dimension mismatch: query has {query.shape[0]}, record has {candidate.shape[0]}"
        )


def dot_product(query: np.ndarray, candidate: np.ndarray) -> float:
    check_dimensions(query, candidate)
    return float(np.dot(query, candidate))


def cosine_similarity(
    query: np.ndarray,
    candidate: np.ndarray,
    query_norm: Optional[float] = None,
    candidate_norm: Optional[float] = None,
) -> float:
    """Cosine similarity; either norm may be passed in when already known."""

    check_dimensions(query, candidate)
    if query_norm is None:
        query_norm = float(np.linalg.norm(query))
    if candidate_norm is None:
        candidate_norm = float(np.linalg.norm(candidate))
    denom = query_norm * candidate_norm
    if denom == 0:
        return 0.0
    return float(np.dot(query, candidate) / denom)


SCORERS = {
    "dot": dot_product,
    "cosine": cosine_similarity,
}


def get_scorer(name: str) -> Scorer:
    try:
        return SCORERS[name]
    except KeyError:
        raise ValidationError(f"unknown similarity metric: {name!r}") from None


__all__ = ["Scorer", "check_dimensions", "cosine_similarity", "dot_product", "get_scorer"]
