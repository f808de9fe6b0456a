"""Abstract base class for embedding providers.

Defines the interface the property index uses to turn text into vectors.
Any embedding backend (hash, local model, remote service) implements this ABC.
"""

from abc import ABC, abstractmethod

import numpy as np


class EmbeddingProvider(ABC):
    """Abstract text embedding backend.

    Every vector returned by one provider instance has the same length,
    ``dimension``, so vectors are comparable under cosine similarity.
    """

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Length of every vector produced by ``embed``."""

    @abstractmethod
    def embed(self, text: str) -> np.ndarray:
        """Embed one text.

        Args:
            text: Arbitrary text; may be empty.

        Returns:
            1-D float array of length ``dimension``. A zero vector means
            "no similarity to anything" and is not an error.
        """

    def embed_many(self, texts: list[str]) -> list[np.ndarray]:
        """Embed several texts. Backends with batch APIs override this."""
        return [self.embed(text) for text in texts]
