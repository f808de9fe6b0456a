"""Learned embeddings from a local sentence-transformers model."""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from matching.embeddings.base import EmbeddingProvider

log = logging.getLogger("matching.embeddings.sentence")

DEFAULT_MODEL = "all-MiniLM-L6-v2"


class SentenceTransformerEmbedding(EmbeddingProvider):
    """Embeds text with a SentenceTransformer model (384-d for MiniLM).

    ``model`` may be passed in directly; otherwise ``model_name`` is loaded
    with the optional ``sentence-transformers`` dependency.
    """

    def __init__(self, model_name: str = DEFAULT_MODEL, model: Any = None) -> None:
        if model is None:
            from sentence_transformers import SentenceTransformer

            log.info("Loading sentence-transformers model %s", model_name)
            model = SentenceTransformer(model_name)
        self._model = model
        self._model_name = model_name
        self._dimension = int(model.get_sentence_embedding_dimension())

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def model_name(self) -> str:
        return self._model_name

    def embed(self, text: str) -> np.ndarray:
        return self.embed_many([text])[0]

    def embed_many(self, texts: list[str]) -> list[np.ndarray]:
        if not texts:
            return []
        encoded = self._model.encode(texts, normalize_embeddings=True)
        return [np.asarray(row, dtype=np.float64) for row in encoded]
