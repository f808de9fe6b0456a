"""Embedding provider abstractions and implementations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .base import EmbeddingProvider
from .hashing import HashEmbedding
from .remote import HttpEmbeddingProvider
from .sentence import SentenceTransformerEmbedding

if TYPE_CHECKING:
    from matching.config import Settings

__all__ = [
    "EmbeddingProvider",
    "HashEmbedding",
    "HttpEmbeddingProvider",
    "SentenceTransformerEmbedding",
    "create_embedding_provider",
]


def create_embedding_provider(settings: "Settings") -> EmbeddingProvider:
    """Instantiate the embedding backend named by ``settings.embedding_provider``."""
    if settings.embedding_provider == "hash":
        return HashEmbedding(settings.embedding_dimension)
    if settings.embedding_provider == "sentence_transformers":
        return SentenceTransformerEmbedding(settings.embedding_model)
    if settings.embedding_provider == "http":
        return HttpEmbeddingProvider(
            settings.embedding_service_url,
            dimension=settings.embedding_dimension,
            timeout=settings.embedding_timeout,
        )
    raise ValueError(f"Unknown embedding provider: {settings.embedding_provider!r}")
