"""
Pseudo-embeddings and similarity for local vector search.

simple_embedding() is a deterministic trigonometric hash of character codes.
It carries no semantic meaning; identical text always maps to the identical
unit vector, which is all local development and tests need.
"""

from typing import Sequence

import numpy as np

from ..core.config import DEFAULT_EMBEDDING_DIMENSION

EMBEDDING_SEED = 0.618033988749895


def simple_embedding(text: str, dimension: int = DEFAULT_EMBEDDING_DIMENSION) -> list[float]:
    """Generate a deterministic unit-length embedding for text."""
    if dimension < 1:
        raise ValueError("dimension must be at least 1")
    if not text:
        return [0.0] * dimension

    codes = np.array([ord(ch) for ch in text], dtype=np.float64)
    positions = np.arange(len(codes), dtype=np.float64)
    frequencies = np.arange(1, dimension + 1, dtype=np.float64) * EMBEDDING_SEED

    # phase[i, d] mixes the character code, its position and the output dimension
    phase = np.outer(codes, frequencies) + (positions * EMBEDDING_SEED)[:, None]
    vector = np.sin(phase).sum(axis=0) + np.cos(phase * EMBEDDING_SEED).sum(axis=0)

    norm = np.linalg.norm(vector)
    if norm > 0:
        vector = vector / norm
    return vector.tolist()


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors. Zero vectors score 0."""
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValueError(f"dimension mismatch: {va.shape[0]} != {vb.shape[0]}")

    norm = np.linalg.norm(va) * np.linalg.norm(vb)
    if norm == 0:
        return 0.0
    return float(np.dot(va, vb) / norm)
