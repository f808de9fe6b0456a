"""Cosine similarity between embedding vectors."""

from __future__ import annotations

from typing import Sequence

import numpy as np

from matching.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float] | np.ndarray, b: Sequence[float] | np.ndarray) -> float:
    """Cosine of the angle between ``a`` and ``b``, in [-1, 1].

    Zero-magnitude input scores 0.0 so such records rank last instead of
    producing NaN. Raises DimensionMismatch when the lengths differ.
    """
    a = np.asarray(a, dtype=np.float64)
    b = np.asarray(b, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatch(a.size, b.size)

    magnitude = np.linalg.norm(a) * np.linalg.norm(b)
    if magnitude == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / magnitude, -1.0, 1.0))
