"""Pipeline configuration: strategy enums and PipelineConfig dataclass."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from src.config import Settings


class FailurePolicy(str, Enum):
    """How a multi-item stage (thumbnails) reacts to a single item failing."""

    FAIL_FAST = "fail_fast"
    COLLECT = "collect"


class SearchStrategy(str, Enum):
    """Available strategies for searching transcript segments."""

    KEYWORD = "keyword"
    SEMANTIC = "semantic"


class ProcessingStatus(str, Enum):
    """Lifecycle of each of an episode's four status fields."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable configuration for one episode processing run.

    Defaults mirror the production behaviour: at most ten thumbnails (one per
    minute of video), three concurrent thumbnail commands, fail-fast thumbnail
    batches and 100-segment embedding batches paced one second apart.
    """

    max_thumbnails: int = 10
    seconds_per_thumbnail: float = 60.0
    thumbnail_concurrency: int = 3
    thumbnail_failure_policy: FailurePolicy = FailurePolicy.FAIL_FAST
    probe_timeout: float = 30.0
    audio_timeout: float = 300.0
    thumbnail_timeout: float = 30.0
    clip_timeout: float = 180.0
    min_segment_length: int = 10
    max_segment_length: int = 300
    embedding_batch_size: int = 100
    embedding_batch_delay: float = 1.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PipelineConfig:
        return cls(
            max_thumbnails=settings.max_thumbnails,
            thumbnail_concurrency=settings.thumbnail_concurrency,
            probe_timeout=settings.probe_timeout_seconds,
            audio_timeout=settings.audio_timeout_seconds,
            thumbnail_timeout=settings.thumbnail_timeout_seconds,
            clip_timeout=settings.clip_timeout_seconds,
            min_segment_length=settings.min_segment_length,
            max_segment_length=settings.max_segment_length,
            embedding_batch_size=settings.embedding_batch_size,
            embedding_batch_delay=settings.embedding_batch_delay_seconds,
        )
