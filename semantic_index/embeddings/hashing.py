"""Deterministic token-hashing embedder for offline use and tests.

Not semantic, but stable across processes: texts sharing tokens land close
together, which is enough to exercise search without network access.
"""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

_TOKEN_PATTERN = re.compile(r"\w+", re.UNICODE)


@dataclass
class HashEmbedder:
    """Embedder that buckets tokens into a fixed number of dimensions."""

    dimension: int = 384
    model: str = "token-hash"

    def embed(self, texts: Sequence[str]) -> List[List[float]]:
        return [self._embed_one(text) for text in texts]

    def _embed_one(self, text: str) -> List[float]:
        vec = np.zeros(self.dimension, dtype=float)
        for token in _TOKEN_PATTERN.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            idx = int.from_bytes(digest[:4], "little") % self.dimension
            vec[idx] += 1.0
        norm = np.linalg.norm(vec)
        if norm > 0:
            vec = vec / norm
        return vec.tolist()


__all__ = ["HashEmbedder"]
