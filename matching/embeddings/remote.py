"""Learned embeddings from a remote embedding service over HTTP.

The service accepts ``POST /embed`` with ``{"texts": [...]}`` and answers
``{"embeddings": [[...], ...]}`` in the same order.
"""

from __future__ import annotations

import logging

import httpx
import numpy as np

from matching.embeddings.base import EmbeddingProvider
from matching.errors import DimensionMismatch

log = logging.getLogger("matching.embeddings.remote")


class HttpEmbeddingProvider(EmbeddingProvider):
    """Calls an embedding service; the vector length is fixed per instance."""

    def __init__(
        self,
        base_url: str,
        dimension: int,
        timeout: float = 15.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._dimension = dimension
        self._client = client or httpx.Client(timeout=timeout)

    @property
    def dimension(self) -> int:
        return self._dimension

    def embed(self, text: str) -> np.ndarray:
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[np.ndarray]:
        if not texts:
            return []

        resp = self._client.post(f"{self._base_url}/embed", json={"texts": texts})
        resp.raise_for_status()
        rows = resp.json().get("embeddings", [])

        if len(rows) != len(texts):
            raise ValueError(
                f"Embedding service returned {len(rows)} vectors for {len(texts)} texts"
            )

        vectors = []
        for row in rows:
            vector = np.asarray(row, dtype=np.float64)
            if vector.shape != (self._dimension,):
                raise DimensionMismatch(self._dimension, vector.size)
            vectors.append(vector)
        log.debug("Embedded %d texts via %s", len(texts), self._base_url)
        return vectors

    def close(self) -> None:
        self._client.close()
