"""Embedding helpers using OpenAI text-embedding-3-small."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from typing import Protocol, TypeVar

import openai
from openai import OpenAI

from src.config import settings
from src.errors import EmbeddingError, ProcessingError
from src.ingestion.models import CleanSegment, SegmentEmbedding

logger = logging.getLogger(__name__)

T = TypeVar("T")

EmbedFn = Callable[[list[str], str], list[list[float]]]


def get_openai_client() -> OpenAI:
    """Create an OpenAI client from settings."""
    return OpenAI(
        api_key=settings.openai_api_key or None,
        organization=settings.openai_organization,
        base_url=settings.openai_base_url,
        timeout=settings.openai_timeout,
    )


def is_retryable_openai_error(exc: Exception) -> bool:
    """Timeouts, connection drops, rate limits and 5xx responses are worth retrying."""
    if isinstance(exc, openai.APIConnectionError):  # includes APITimeoutError
        return True
    if isinstance(exc, openai.APIStatusError):
        return exc.status_code == 429 or exc.status_code >= 500
    return False


def embed_texts(
    texts: list[str],
    model: str = "text-embedding-3-small",
    client: OpenAI | None = None,
) -> list[list[float]]:
    """Embed a list of texts using the OpenAI embeddings API.

    The provider tags each vector with the index of its input; vectors are
    returned in input order regardless of the order they arrive in.

    Args:
        texts: Strings to embed.
        model: OpenAI embedding model name.
        client: Optional pre-built client (defaults to one built from settings).

    Returns:
        A list of embedding vectors (one per input text).

    Raises:
        EmbeddingError: If the call fails or the response does not contain
            exactly one vector per input.
    """
    if not texts:
        return []
    client = client or get_openai_client()
    try:
        response = client.embeddings.create(input=texts, model=model)
    except openai.OpenAIError as exc:
        raise EmbeddingError(
            f"Batch embedding creation failed: {exc}",
            details={"status_code": getattr(exc, "status_code", None)},
            retryable=is_retryable_openai_error(exc),
        ) from exc

    if len(response.data) != len(texts):
        raise EmbeddingError(f"Expected {len(texts)} embeddings, got {len(response.data)}")

    ordered = sorted(response.data, key=lambda item: item.index)
    if [item.index for item in ordered] != list(range(len(texts))):
        raise EmbeddingError(
            f"Embedding indices do not cover inputs 0..{len(texts) - 1}: "
            f"{[item.index for item in ordered]}"
        )
    return [list(item.embedding) for item in ordered]


def batched(items: Sequence[T], size: int) -> list[list[T]]:
    """Split *items* into consecutive lists of at most *size* elements."""
    if size <= 0:
        raise ValueError(f"batch size must be positive, got {size}")
    return [list(items[i : i + size]) for i in range(0, len(items), size)]


class RateLimiter(Protocol):
    def wait(self) -> None:
        """Block until the next batch may be sent."""


class FixedDelayLimiter:
    """Sleeps a fixed interval between consecutive batches."""

    def __init__(self, delay_seconds: float = 1.0, sleep: Callable[[float], None] = time.sleep) -> None:
        self.delay_seconds = delay_seconds
        self._sleep = sleep

    def wait(self) -> None:
        if self.delay_seconds > 0:
            self._sleep(self.delay_seconds)


class NoDelayLimiter:
    def wait(self) -> None:
        return None


class EmbeddingBatcher:
    """Embeds segments in fixed-size, sequential, rate-paced batches.

    Batches are never sent concurrently so the pacing delay between them is
    honoured. Any failing batch aborts the whole run; no partial list is
    returned.
    """

    def __init__(
        self,
        embed_fn: EmbedFn | None = None,
        limiter: RateLimiter | None = None,
        model: str | None = None,
    ) -> None:
        self.embed_fn = embed_fn or (lambda texts, model: embed_texts(texts, model=model))
        self.limiter = limiter or FixedDelayLimiter()
        self.model = model or settings.embedding_model

    def embed(self, segments: Sequence[CleanSegment], batch_size: int = 100) -> list[SegmentEmbedding]:
        logger.info("Creating embeddings for %d segments", len(segments))
        batches = batched(segments, batch_size)
        results: list[SegmentEmbedding] = []

        for batch_index, batch in enumerate(batches):
            if batch_index > 0:
                self.limiter.wait()
            logger.info(
                "Processing batch %d/%d (%d segments)", batch_index + 1, len(batches), len(batch)
            )
            texts = [segment.text.strip() for segment in batch]
            vectors = self.embed_fn(texts, self.model)
            if len(vectors) != len(batch):
                raise EmbeddingError(
                    f"Batch {batch_index + 1}: expected {len(batch)} embeddings, got {len(vectors)}"
                )
            results.extend(
                SegmentEmbedding(segment=segment, embedding=tuple(vector))
                for segment, vector in zip(batch, vectors, strict=True)
            )

        logger.info("Created embeddings for %d segments", len(results))
        return results


def create_embeddings_for_segments(
    segments: Sequence[CleanSegment],
    batch_size: int = 100,
    batcher: EmbeddingBatcher | None = None,
) -> list[SegmentEmbedding]:
    """Embed *segments*, reporting failures as ``embedding_creation`` errors."""
    batcher = batcher or EmbeddingBatcher(
        limiter=FixedDelayLimiter(settings.embedding_batch_delay_seconds)
    )
    try:
        return batcher.embed(segments, batch_size=batch_size)
    except EmbeddingError as exc:
        raise ProcessingError(
            f"Failed to create embeddings: {exc.message}",
            stage="embedding_creation",
            details=exc.details,
            retryable=exc.retryable,
        ) from exc
