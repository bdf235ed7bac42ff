"""
Vector comparison functions shared by the exact and approximate indexes.
"""

from typing import Sequence

import numpy as np

from ..core.errors import DimensionError


def _as_arrays(vec_a: Sequence[float], vec_b: Sequence[float]):
    if len(vec_a) != len(vec_b):
        raise DimensionError(
            f"Vectors must have the same length ({len(vec_a)} != {len(vec_b)})"
        )
    return np.asarray(vec_a, dtype=np.float64), np.asarray(vec_b, dtype=np.float64)


def cosine_similarity(vec_a: Sequence[float], vec_b: Sequence[float], precision: int = 6) -> float:
    """Cosine similarity rounded to ``precision`` decimals; 0.0 for zero vectors."""
    a, b = _as_arrays(vec_a, vec_b)

    magnitude_a = np.linalg.norm(a)
    magnitude_b = np.linalg.norm(b)
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return round(float(np.dot(a, b) / (magnitude_a * magnitude_b)), precision)


def euclidean_distance(vec_a: Sequence[float], vec_b: Sequence[float]) -> float:
    a, b = _as_arrays(vec_a, vec_b)
    return float(np.linalg.norm(a - b))
