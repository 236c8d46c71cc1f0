"""Exception hierarchy shared by the engine, stores and API layer."""

from __future__ import annotations


class CommonbaseError(Exception):
    """Base class for all commonbase errors."""


class ValidationError(CommonbaseError):
    """Input rejected before any I/O took place."""


class EmbeddingError(CommonbaseError):
    """Embedding could not be produced."""


class EmbeddingUnavailable(EmbeddingError):
    """No embedding credential or backend is configured."""


class EmbeddingProviderError(EmbeddingError):
    """The upstream embedding call failed (network, rate limit, timeout)."""


class DimensionMismatch(EmbeddingProviderError):
    """A vector does not have the index dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        super().__init__(f"Expected vector of length {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class NotFound(CommonbaseError):
    """Requested entry does not exist."""


class StoreError(CommonbaseError):
    """Underlying persistence failure."""


__all__ = [
    "CommonbaseError",
    "ValidationError",
    "EmbeddingError",
    "EmbeddingUnavailable",
    "EmbeddingProviderError",
    "DimensionMismatch",
    "NotFound",
    "StoreError",
]
