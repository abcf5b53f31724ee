"""Similarity metrics over fixed-length embedding vectors.

Every metric yields a ``score`` (higher = more similar) and a metric-native
``distance`` (lower = more similar), so results can always be ranked by
score regardless of the configured metric:

- cosine:    score = cos(a, b),        distance = 1 - score
- dot:       score = a . b,            distance = -score
- euclidean: distance = ||a - b||,     score = 1 / (1 + distance)
"""
from typing import Sequence, Tuple
import numpy as np

METRICS = ("cosine", "dot", "euclidean")


def _as_vector(values: Sequence[float]) -> np.ndarray:
    return np.asarray(values, dtype=np.float64)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between ``a`` and ``b``; 0.0 if either is all zeros."""
    a, b = _as_vector(a), _as_vector(b)
    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0
    return float(np.dot(a, b) / magnitude)


def dot_product(a: Sequence[float], b: Sequence[float]) -> float:
    return float(np.dot(_as_vector(a), _as_vector(b)))


def euclidean_distance(a: Sequence[float], b: Sequence[float]) -> float:
    return float(np.linalg.norm(_as_vector(a) - _as_vector(b)))


def score_and_distance(
    metric: str, a: Sequence[float], b: Sequence[float]
) -> Tuple[float, float]:
    """Compute ``(score, distance)`` for one pair of vectors.

    Raises:
        ValueError: If the metric is unknown
    """
    if metric == "cosine":
        score = cosine_similarity(a, b)
        return score, 1.0 - score
    if metric == "dot":
        score = dot_product(a, b)
        return score, -score
    if metric == "euclidean":
        distance = euclidean_distance(a, b)
        return 1.0 / (1.0 + distance), distance
    raise ValueError(f"Unknown distance metric: {metric}")


def score_matrix(
    metric: str, query: np.ndarray, matrix: np.ndarray
) -> Tuple[np.ndarray, np.ndarray]:
    """Score one query vector against every row of ``matrix`` at once.

    Args:
        metric: One of ``METRICS``
        query: Vector of shape (d,)
        matrix: Candidate vectors of shape (n, d)

    Returns:
        Tuple of (scores, distances), each of shape (n,)

    Raises:
        ValueError: If the metric is unknown
    """
    if metric == "cosine":
        dots = matrix @ query
        magnitudes = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        scores = np.zeros_like(dots)
        np.divide(dots, magnitudes, out=scores, where=magnitudes != 0)
        return scores, 1.0 - scores
    if metric == "dot":
        scores = matrix @ query
        return scores, -scores
    if metric == "euclidean":
        distances = np.linalg.norm(matrix - query, axis=1)
        return 1.0 / (1.0 + distances), distances
    raise ValueError(f"Unknown distance metric: {metric}")
