"""Exact similarity search helpers."""

from .similarity import Scorer, cosine_similarity, dot_product, get_scorer
from .topk import BoundedTopK

__all__ = ["BoundedTopK", "Scorer", "cosine_similarity", "dot_product", "get_scorer"]
