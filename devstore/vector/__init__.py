"""
Brute-force vector search over the shared local database.
"""

from .embeddings import cosine_similarity, simple_embedding
from .store import LocalVectorStorage

__all__ = [
    'cosine_similarity',
    'simple_embedding',
    'LocalVectorStorage',
]
