"""
Pseudo-embedding and cosine similarity tests.
"""

import numpy as np
import pytest

from devstore.core.config import DEFAULT_EMBEDDING_DIMENSION
from devstore.vector.embeddings import cosine_similarity, simple_embedding


def test_deterministic_embedding():
    """Test that the same input always produces the same output."""
    vector1 = simple_embedding("Hello, world!")
    vector2 = simple_embedding("Hello, world!")

    assert vector1 == vector2
    assert len(vector1) == DEFAULT_EMBEDDING_DIMENSION


def test_custom_dimension():
    assert len(simple_embedding("Hello", 3)) == 3
    assert len(simple_embedding("Hello", 768)) == 768


def test_embedding_is_unit_length():
    vector = np.array(simple_embedding("normalize me"))
    assert np.linalg.norm(vector) == pytest.approx(1.0)


def test_different_inputs_produce_different_vectors():
    assert simple_embedding("Hello, world!") != simple_embedding("Goodbye, world!")
    # Order of characters matters
    assert simple_embedding("ab") != simple_embedding("ba")


def test_empty_text_is_zero_vector():
    assert simple_embedding("", 4) == [0.0, 0.0, 0.0, 0.0]


def test_invalid_dimension():
    with pytest.raises(ValueError):
        simple_embedding("text", 0)


def test_cosine_similarity():
    assert cosine_similarity([1.0, 0.0], [1.0, 0.0]) == pytest.approx(1.0)
    assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == pytest.approx(0.0)
    assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)
    assert cosine_similarity([3.0, 4.0], [6.0, 8.0]) == pytest.approx(1.0)


def test_cosine_similarity_of_zero_vector():
    assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


def test_cosine_similarity_dimension_mismatch():
    with pytest.raises(ValueError):
        cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


def test_self_similarity_is_highest():
    text = "the quick brown fox"
    query = simple_embedding(text)
    others = [simple_embedding(t) for t in ("a lazy dog", "quick brown", "unrelated words")]

    self_score = cosine_similarity(query, simple_embedding(text))
    assert self_score == pytest.approx(1.0)
    assert all(cosine_similarity(query, other) < self_score for other in others)
