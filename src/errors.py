"""Error taxonomy for the episode processing pipeline.

Every error carries a ``stage`` naming the pipeline phase that failed and a
``retryable`` flag so callers can decide between a retry and marking the
episode as permanently failed.
"""

from __future__ import annotations

from typing import Any


class PipelineError(Exception):
    """Base class for all pipeline failures."""

    def __init__(
        self,
        message: str,
        stage: str | None = None,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.details = details or {}
        self.retryable = retryable

    def __str__(self) -> str:
        if self.stage:
            return f"[{self.stage}] {self.message}"
        return self.message


class MediaError(PipelineError):
    """Inspection or extraction failure.

    ``stage`` is one of ``inspect``, ``audio-extraction``,
    ``thumbnail-generation``, ``thumbnail-extraction`` or ``clip-creation``;
    ``reason`` is one of ``timeout``, ``nonzero-exit``, ``command-not-found``,
    ``no-video-stream`` or ``parse-failure`` where known.
    """

    def __init__(
        self,
        message: str,
        stage: str,
        reason: str | None = None,
        command: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            message,
            stage=stage,
            details=details,
            retryable=reason == "timeout",
        )
        self.reason = reason
        self.command = command


class ProcessingError(PipelineError):
    """Pipeline-level failure tagged with the orchestration stage.

    Stages: ``video_info``, ``audio_extraction``, ``thumbnail_generation``,
    ``transcription``, ``embedding_creation``, ``validation``,
    ``thumbnail_extraction``, ``clip_creation``.
    """


class EmbeddingError(PipelineError):
    """Embedding provider failure or a malformed provider response."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        retryable: bool = False,
    ) -> None:
        super().__init__(message, stage="embedding", details=details, retryable=retryable)


def wrap_processing_error(exc: PipelineError, stage: str, prefix: str) -> ProcessingError:
    """Build a :class:`ProcessingError` for *stage* that keeps *exc*'s context."""
    details = dict(exc.details)
    if isinstance(exc, MediaError):
        details.update({"media_stage": exc.stage, "reason": exc.reason, "command": exc.command})
    return ProcessingError(
        f"{prefix}: {exc.message}",
        stage=stage,
        details=details,
        retryable=exc.retryable,
    )
