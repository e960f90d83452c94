"""Search implementations: keyword and semantic retrieval over transcript segments."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from openai import OpenAI

from src.config import settings
from src.ingestion.embeddings import embed_texts
from src.ingestion.models import SegmentEmbedding, SimilarityMatch
from src.pipeline_config import SearchStrategy
from src.retrieval.similarity import rank

logger = logging.getLogger(__name__)

_WORD_RE = re.compile(r"[\w']+")


def _terms(text: str) -> list[str]:
    return _WORD_RE.findall(text.lower())


def get_query_embedding(query: str, model: str | None = None, client: OpenAI | None = None) -> list[float]:
    """Generate an embedding vector for the given query string."""
    return embed_texts([query], model=model or settings.embedding_model, client=client)[0]


def keyword_search(
    query: str,
    candidates: Sequence[SegmentEmbedding],
    limit: int = 10,
) -> list[SimilarityMatch]:
    """Case-insensitive term match over segment text.

    Each hit is scored by the fraction of distinct query terms its text
    contains; segments containing none of them are not returned.
    """
    terms = set(_terms(query))
    if not terms:
        return []

    matches: list[SimilarityMatch] = []
    for candidate in candidates:
        words = set(_terms(candidate.segment.text))
        hits = len(terms & words)
        if hits:
            matches.append(SimilarityMatch(segment=candidate.segment, similarity=hits / len(terms)))

    matches.sort(key=lambda m: m.similarity, reverse=True)
    return matches[: max(0, limit)]


def semantic_search(
    query: str,
    candidates: Sequence[SegmentEmbedding],
    threshold: float = 0.7,
    limit: int = 10,
    client: OpenAI | None = None,
) -> list[SimilarityMatch]:
    """Embed *query* and rank *candidates* by cosine similarity."""
    embedding = get_query_embedding(query, client=client)
    return rank(embedding, candidates, threshold=threshold, limit=limit)


def search(
    query: str,
    candidates: Sequence[SegmentEmbedding],
    strategy: str | SearchStrategy = SearchStrategy.SEMANTIC,
    threshold: float | None = None,
    limit: int | None = None,
) -> list[SimilarityMatch]:
    """Dispatch to the appropriate search strategy.

    Args:
        query: The user's search text.
        candidates: Stored segment/embedding pairs to search.
        strategy: ``"keyword"`` or ``"semantic"`` (string or enum).
        threshold: Minimum cosine similarity (semantic only).
        limit: Maximum number of matches.

    Returns:
        Matches sorted by descending score.
    """
    if isinstance(strategy, str):
        strategy = SearchStrategy(strategy)
    limit = settings.search_limit if limit is None else limit

    logger.info("Searching %d segments (%s): %r", len(candidates), strategy.value, query)
    if strategy is SearchStrategy.KEYWORD:
        return keyword_search(query, candidates, limit=limit)
    threshold = settings.similarity_threshold if threshold is None else threshold
    return semantic_search(query, candidates, threshold=threshold, limit=limit)
