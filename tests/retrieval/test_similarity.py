import numpy as np
import pytest

from semantic_index.exceptions import ValidationError
from semantic_index.retrieval import cosine_similarity, dot_product, get_scorer


def vec(*values: float) -> np.ndarray:
    return np.array(values, dtype=np.float32)


def test_dot_product() -> None:
    assert dot_product(vec(1.0, 2.0), vec(3.0, 4.0)) == pytest.approx(11.0)


def test_cosine_similarity_ignores_magnitude() -> None:
    assert cosine_similarity(vec(1.0, 0.0), vec(5.0, 0.0)) == pytest.approx(1.0)
    assert cosine_similarity(vec(1.0, 0.0), vec(0.0, 2.0)) == pytest.approx(0.0)


def test_cosine_similarity_uses_given_norms() -> None:
    score = cosine_similarity(vec(1.0, 1.0), vec(1.0, 1.0), query_norm=2.0, candidate_norm=1.0)

    assert score == pytest.approx(1.0)


def test_cosine_similarity_zero_vector_scores_zero() -> None:
    assert cosine_similarity(vec(0.0, 0.0), vec(1.0, 1.0)) == 0.0


def test_dimension_mismatch_fails_fast() -> None:
    with pytest.raises(ValidationError):
        dot_product(vec(1.0, 0.0), vec(1.0, 0.0, 0.0))
    with pytest.raises(ValidationError):
        cosine_similarity(vec(1.0), vec(1.0, 0.0))


def test_get_scorer() -> None:
    assert get_scorer("dot") is dot_product
    assert get_scorer("cosine") is cosine_similarity
    with pytest.raises(ValidationError):
        get_scorer("manhattan")
