"""Application configuration via environment variables."""

from __future__ import annotations

import logging

from pydantic_settings import BaseSettings

log = logging.getLogger("matching.config")

EMBEDDING_PROVIDERS = ("hash", "sentence_transformers", "http")


class Settings(BaseSettings):
    # Embeddings
    embedding_provider: str = "hash"
    embedding_dimension: int = 384
    embedding_model: str = "all-MiniLM-L6-v2"
    embedding_service_url: str = "http://localhost:8000"
    embedding_timeout: float = 15.0

    # Catalog: empty means the bundled sample listings
    catalog_path: str = ""

    # Matching
    match_limit: int = 3
    matching_threshold: int = 50

    # Sessions: 0 disables idle eviction
    session_ttl_seconds: float = 0.0

    debug: bool = False

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def validate_startup(self) -> list[str]:
        """Validate configuration at startup. Returns warnings, raises on errors."""
        warnings: list[str] = []

        if self.embedding_provider not in EMBEDDING_PROVIDERS:
            raise ValueError(
                f"EMBEDDING_PROVIDER must be one of {', '.join(EMBEDDING_PROVIDERS)}, "
                f"got {self.embedding_provider!r}."
            )

        if self.embedding_dimension <= 0:
            raise ValueError("EMBEDDING_DIMENSION must be positive.")

        if self.match_limit <= 0:
            raise ValueError("MATCH_LIMIT must be positive.")

        if not 0 <= self.matching_threshold <= 100:
            raise ValueError("MATCHING_THRESHOLD must be between 0 and 100.")

        if self.embedding_provider == "http" and not self.embedding_service_url:
            raise ValueError(
                "EMBEDDING_SERVICE_URL is required when EMBEDDING_PROVIDER=http."
            )

        if self.embedding_provider == "sentence_transformers" and self.embedding_dimension != 384:
            warnings.append(
                "EMBEDDING_DIMENSION is ignored for sentence_transformers; "
                "the model's own dimension is used."
            )

        if self.session_ttl_seconds < 0:
            warnings.append("SESSION_TTL_SECONDS is negative; idle eviction disabled.")

        return warnings


settings = Settings()
