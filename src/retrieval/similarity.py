"""Brute-force cosine-similarity ranking over in-memory candidates."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence

from src.ingestion.models import SegmentEmbedding, SimilarityMatch

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine of the angle between *a* and *b*; 0.0 if either is a zero vector.

    Raises:
        ValueError: If the vectors differ in length.
    """
    if len(a) != len(b):
        raise ValueError(f"Vectors must have the same length ({len(a)} != {len(b)})")

    dot = 0.0
    norm_a = 0.0
    norm_b = 0.0
    for x, y in zip(a, b):
        dot += x * y
        norm_a += x * x
        norm_b += y * y

    magnitude = math.sqrt(norm_a) * math.sqrt(norm_b)
    if magnitude == 0:
        return 0.0
    return dot / magnitude


def rank(
    query_embedding: Sequence[float],
    candidates: Iterable[SegmentEmbedding],
    threshold: float = 0.7,
    limit: int = 10,
) -> list[SimilarityMatch]:
    """Score *candidates* against *query_embedding* and keep the best *limit*.

    Matches below *threshold* are discarded; the rest are sorted by
    descending similarity (ties keep candidate order).

    Args:
        query_embedding: Vector for the search query.
        candidates: Stored segment/embedding pairs.
        threshold: Minimum similarity to keep.
        limit: Maximum matches returned.
    """
    scored = [
        SimilarityMatch(
            segment=candidate.segment,
            similarity=cosine_similarity(query_embedding, candidate.embedding),
        )
        for candidate in candidates
    ]
    matches = [m for m in scored if m.similarity >= threshold]
    matches.sort(key=lambda m: m.similarity, reverse=True)
    results = matches[: max(0, limit)]

    logger.info("Found %d similar segments (threshold: %s)", len(results), threshold)
    return results


search_similar_segments = rank
