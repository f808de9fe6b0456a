"""Exceptions raised by the matching core."""


class MatchingError(Exception):
    """Base class for matching-core errors."""


class DimensionMismatch(MatchingError, ValueError):
    """Two embedding vectors of different lengths were compared.

    Signals a mismatched embedding provider or a corrupted index; the index
    instance that raised it should not be used further.
    """

    def __init__(self, left: int, right: int) -> None:
        super().__init__(f"Embedding dimension mismatch: {left} != {right}")
        self.left = left
        self.right = right


class InvalidContext(MatchingError, ValueError):
    """A preference value is malformed (e.g. non-positive budget)."""
