"""Pydantic request/response schemas for the Episode Catalog API."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.pipeline_config import SearchStrategy


class ProcessEpisodeRequest(BaseModel):
    """Request body for the /api/episodes/process endpoint."""

    episode_id: str = Field(min_length=1)
    input_path: str = Field(min_length=1)
    output_dir: str | None = None


class VideoInfo(BaseModel):
    duration: float
    codec: str
    width: int | None = None
    height: int | None = None
    frame_rate: float | None = None
    bitrate: int | None = None
    audio_codec: str | None = None
    audio_channels: int | None = None
    audio_sample_rate: int | None = None


class ProcessEpisodeResponse(BaseModel):
    """Response body for the /api/episodes/process endpoint."""

    episode_id: str
    video: VideoInfo
    audio_path: str
    thumbnails: list[str]
    thumbnail_errors: list[str] = []


class SearchRequest(BaseModel):
    """Request body for the /api/search endpoint."""

    query: str = Field(min_length=1)
    strategy: SearchStrategy = SearchStrategy.SEMANTIC
    episode_id: str | None = None
    threshold: float | None = Field(default=None, ge=-1.0, le=1.0)
    limit: int | None = Field(default=None, ge=1, le=100)


class SearchResult(BaseModel):
    """A single matching transcript segment."""

    text: str
    start_time: float
    end_time: float
    similarity: float
    episode_id: str | None = None
    segment_index: int = 0


class SearchResponse(BaseModel):
    query: str
    strategy: SearchStrategy
    results: list[SearchResult]
