"""Vector similarity helpers."""

from collections.abc import Sequence

import numpy as np


def cosine_similarity(vector_a: Sequence[float], vector_b: Sequence[float]) -> float:
    """Cosine similarity of two vectors; 0.0 when either has zero norm.

    Raises:
        ValueError: If the vectors differ in length or are empty
    """
    if not len(vector_a) or len(vector_a) != len(vector_b):
        raise ValueError(f"Cannot compare vectors of length {len(vector_a)} and {len(vector_b)}")

    a = np.asarray(vector_a, dtype=np.float64)
    b = np.asarray(vector_b, dtype=np.float64)

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(a, b) / (norm_a * norm_b))


def cosine_similarities(query: Sequence[float], matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of ``query`` against every row of ``matrix``."""
    q = np.asarray(query, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[1] != q.shape[0]:
        raise ValueError(f"Query of length {q.shape[0]} does not match matrix shape {matrix.shape}")
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms == 0, 0.0, dots / norms)
    return scores
