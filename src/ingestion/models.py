"""Data models for the transcription and indexing pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field

from src.pipeline_config import ProcessingStatus


@dataclass
class RawTranscriptSegment:
    """A segment exactly as the speech-to-text provider returned it."""

    start: float
    end: float
    text: str
    id: int = 0
    seek: int = 0
    tokens: list[int] = field(default_factory=list)
    temperature: float = 0.0
    avg_logprob: float = 0.0
    compression_ratio: float = 0.0
    no_speech_prob: float = 0.0

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Segment end ({self.end}) must be after start ({self.start})")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class CleanSegment:
    """A filtered/merged segment ready for embedding and storage."""

    start: float
    end: float
    text: str
    tokens: list[int] = field(default_factory=list)
    avg_logprob: float = 0.0
    compression_ratio: float = 0.0
    no_speech_prob: float = 0.0
    segment_index: int = 0
    episode_id: str | None = None

    def __post_init__(self) -> None:
        if self.end <= self.start:
            raise ValueError(f"Segment end ({self.end}) must be after start ({self.start})")

    @property
    def duration(self) -> float:
        return self.end - self.start


@dataclass
class Transcription:
    """Full speech-to-text result for one audio file."""

    duration: float
    text: str
    segments: list[RawTranscriptSegment] = field(default_factory=list)
    language: str | None = None


@dataclass(frozen=True)
class SegmentEmbedding:
    """A segment paired with its embedding vector."""

    segment: CleanSegment
    embedding: tuple[float, ...]


@dataclass(frozen=True)
class SimilarityMatch:
    """A search hit; ``similarity`` is cosine similarity for semantic search
    and the matched-term fraction for keyword search."""

    segment: CleanSegment
    similarity: float


@dataclass
class Episode:
    """The catalogued episode whose statuses the pipeline updates."""

    id: str
    file_path: str
    title: str | None = None
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    transcription_status: ProcessingStatus = ProcessingStatus.PENDING
    thumbnail_status: ProcessingStatus = ProcessingStatus.PENDING
    metadata_status: ProcessingStatus = ProcessingStatus.PENDING
    error_message: str | None = None
