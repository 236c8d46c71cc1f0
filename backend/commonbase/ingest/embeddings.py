"""Embedding providers."""

from __future__ import annotations

import hashlib
import logging
import math
import re
from typing import Any

import openai

from commonbase.core.config import Settings
from commonbase.core.errors import DimensionMismatch, EmbeddingProviderError, EmbeddingUnavailable
from commonbase.utils.text import collapse_newlines

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"\w+")

DEFAULT_DIM = 1536


class EmbeddingProvider:
    """Turns text into a fixed-length vector."""

    name = "base"

    def __init__(self, dim: int = DEFAULT_DIM) -> None:
        self._dim = dim

    @property
    def dim(self) -> int:
        return self._dim

    def embed(self, text: str) -> list[float]:  # pragma: no cover - interface
        raise NotImplementedError


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """
    OpenAI embeddings API client.

    The SDK client is created on first use so a missing key only matters when
    an embedding is actually requested.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        model: str = "text-embedding-3-small",
        dim: int = DEFAULT_DIM,
        timeout: float = 30.0,
        max_retries: int = 0,
        client: Any | None = None,
    ) -> None:
        super().__init__(dim=dim)
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.api_key:
                raise EmbeddingUnavailable("No embedding API key configured")
            self._client = openai.OpenAI(
                api_key=self.api_key,
                timeout=self.timeout,
                max_retries=self.max_retries,
            )
        return self._client

    def embed(self, text: str) -> list[float]:
        client = self.client
        try:
            response = client.embeddings.create(
                model=self.model,
                input=collapse_newlines(text),
                dimensions=self.dim,
            )
        except openai.OpenAIError as exc:
            raise EmbeddingProviderError(f"Embedding request failed: {exc}") from exc
        if not response.data:
            raise EmbeddingProviderError("Embedding response contained no vectors")
        vector = [float(value) for value in response.data[0].embedding]
        if len(vector) != self.dim:
            raise DimensionMismatch(self.dim, len(vector))
        return vector


class HashedEmbeddingProvider(EmbeddingProvider):
    """Lightweight hashed embedding model with deterministic output."""

    name = "hashed"

    def embed(self, text: str) -> list[float]:
        vector = [0.0] * self._dim
        for token in _tokenize(collapse_newlines(text)):
            vector[_hash_token(token, self._dim)] += 1.0
        _normalize(vector)
        return vector


def build_embedding_provider(settings: Settings) -> EmbeddingProvider:
    """Pick the configured embedding backend."""
    if settings.embedding_backend == "hashed":
        return HashedEmbeddingProvider(dim=settings.embedding_dim)
    if not settings.embedding_api_key:
        logger.warning("No embedding API key configured; semantic search is unavailable")
    return OpenAIEmbeddingProvider(
        api_key=settings.embedding_api_key,
        model=settings.embedding_model,
        dim=settings.embedding_dim,
        timeout=settings.embedding_timeout,
        max_retries=settings.embedding_max_retries,
    )


def _tokenize(text: str) -> list[str]:
    return _TOKEN_RE.findall(text.lower())


def _hash_token(token: str, dim: int) -> int:
    digest = hashlib.blake2b(token.encode("utf-8"), digest_size=8).digest()
    value = int.from_bytes(digest, "big")
    return value % dim


def _normalize(vector: list[float]) -> None:
    norm = math.sqrt(sum(value * value for value in vector))
    if norm == 0:
        return
    inv = 1.0 / norm
    for idx, value in enumerate(vector):
        vector[idx] = value * inv


__all__ = [
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "HashedEmbeddingProvider",
    "build_embedding_provider",
]
