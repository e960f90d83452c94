"""Episode endpoints: run video processing for one episode."""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from pathlib import Path

from fastapi import APIRouter, HTTPException

from src.api.models import ProcessEpisodeRequest, ProcessEpisodeResponse, VideoInfo
from src.config import settings
from src.media.processor import VideoProcessor, build_video_processor

logger = logging.getLogger(__name__)

router = APIRouter()


def get_video_processor() -> VideoProcessor:
    return build_video_processor()


@router.post("/api/episodes/process", response_model=ProcessEpisodeResponse)
async def process_episode(request: ProcessEpisodeRequest) -> ProcessEpisodeResponse:
    """Extract audio and thumbnails for an episode's video file.

    ffmpeg runs in a worker thread. Transcription and indexing are left to
    the caller (see ``scripts/process_episode.py`` for the full pipeline).
    Pipeline failures are turned into 422/503 responses by the app-level
    handler.
    """
    if not Path(request.input_path).is_file():
        raise HTTPException(status_code=404, detail=f"Video file not found: {request.input_path}")

    output_dir = request.output_dir or str(Path(settings.data_dir) / request.episode_id)
    logger.info("Processing episode %s into %s", request.episode_id, output_dir)
    processor = get_video_processor()
    result = await asyncio.to_thread(
        processor.process_video, request.input_path, output_dir, request.episode_id
    )

    return ProcessEpisodeResponse(
        episode_id=request.episode_id,
        video=VideoInfo(**dataclasses.asdict(result.video)),
        audio_path=result.audio_path,
        thumbnails=result.thumbnail_paths,
        thumbnail_errors=[f"#{f.index} at {f.timestamp:.2f}s: {f.error}" for f in result.thumbnail_errors],
    )
