"""Cosine similarity and nearest-neighbour ranking shared by every backend."""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import Iterable, Sequence


@dataclass(slots=True)
class SearchResult:
    entry_id: str
    score: float


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (|a| * |b|)`` clamped to [-1, 1]; 0.0 if either vector is zero."""
    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    score = dot / (math.sqrt(norm_a) * math.sqrt(norm_b))
    return max(-1.0, min(1.0, score))


def rank_nearest(
    query: Sequence[float],
    candidates: Iterable[tuple[str, Sequence[float]]],
    limit: int,
    min_similarity: float | None = None,
    exclude_id: str | None = None,
) -> list[SearchResult]:
    """Score candidates against ``query`` and keep the best ``limit``.

    Ordered by similarity descending, then id ascending.
    """
    if limit <= 0:
        return []
    scored: list[tuple[float, str]] = []
    for entry_id, vector in candidates:
        if exclude_id is not None and entry_id == exclude_id:
            continue
        score = cosine_similarity(query, vector)
        if min_similarity is not None and score < min_similarity:
            continue
        scored.append((score, entry_id))
    best = heapq.nsmallest(limit, scored, key=lambda item: (-item[0], item[1]))
    return [SearchResult(entry_id=entry_id, score=score) for score, entry_id in best]


__all__ = ["SearchResult", "cosine_similarity", "rank_nearest"]
