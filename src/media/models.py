"""Data models for media inspection and extraction."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


@dataclass(frozen=True)
class VideoDescriptor:
    """What ffprobe reports about a source video file."""

    duration: float
    codec: str
    width: int | None = None
    height: int | None = None
    frame_rate: float | None = None
    bitrate: int | None = None
    audio_codec: str | None = None
    audio_channels: int | None = None
    audio_sample_rate: int | None = None


@dataclass(frozen=True)
class AudioExtractionOptions:
    """Audio track settings sized for transcription input, not playback.

    The defaults (16 kHz mono WAV) match what speech-to-text models expect.
    """

    format: Literal["wav", "mp3", "flac"] = "wav"
    sample_rate: int = 16000
    channels: int = 1
    bitrate: str | None = "128k"

    def __post_init__(self) -> None:
        if self.sample_rate <= 0:
            raise ValueError(f"sample_rate must be positive, got {self.sample_rate}")
        if self.channels not in (1, 2):
            raise ValueError(f"channels must be 1 or 2, got {self.channels}")


@dataclass(frozen=True)
class ThumbnailOptions:
    """Size, format and quality of extracted preview frames."""

    width: int | None = 320
    height: int | None = 180
    format: Literal["jpg", "png", "webp"] = "jpg"
    quality: int = 85

    def __post_init__(self) -> None:
        if not 1 <= self.quality <= 100:
            raise ValueError(f"quality must be between 1 and 100, got {self.quality}")


@dataclass(frozen=True)
class ThumbnailFailure:
    """A single thumbnail that could not be extracted."""

    index: int
    timestamp: float
    error: str


@dataclass
class ThumbnailBatch:
    """Outcome of a thumbnail run under the ``collect`` failure policy."""

    paths: list[str] = field(default_factory=list)
    timestamps: list[float] = field(default_factory=list)
    errors: list[ThumbnailFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


@dataclass
class ExtractionResult:
    """Everything :meth:`VideoProcessor.process_video` produced for one episode."""

    video: VideoDescriptor
    audio_path: str
    thumbnail_paths: list[str] = field(default_factory=list)
    thumbnail_timestamps: list[float] = field(default_factory=list)
    thumbnail_errors: list[ThumbnailFailure] = field(default_factory=list)
