"""Deterministic bag-of-words hash embedding.

A stand-in for a learned embedding model: each whitespace token is hashed
with the 31-multiplier rolling hash (signed 32-bit) into one of ``dimension``
slots, and the count vector is L2-normalised.
"""

from __future__ import annotations

import numpy as np

from matching.embeddings.base import EmbeddingProvider

DEFAULT_DIMENSION = 384


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def token_hash(token: str) -> int:
    """Rolling polynomial hash ``h = h*31 + code`` in signed 32-bit arithmetic."""
    h = 0
    for char in token:
        h = _to_int32(h * 31 + ord(char))
    return h


class HashEmbedding(EmbeddingProvider):
    """Hash-based pseudo-embedding. Pure and bit-for-bit deterministic."""

    def __init__(self, dimension: int = DEFAULT_DIMENSION) -> None:
        if dimension <= 0:
            raise ValueError("dimension must be positive")
        self._dimension = dimension

    @property
    def dimension(self) -> int:
        return self._dimension

    def slot(self, token: str) -> int:
        return abs(token_hash(token)) % self._dimension

    def embed(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float64)
        for token in text.lower().split():
            vector[self.slot(token)] += 1.0

        magnitude = np.linalg.norm(vector)
        if magnitude == 0:
            return vector
        return vector / magnitude
