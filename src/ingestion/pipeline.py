"""End-to-end episode pipeline: extract -> transcribe -> segment -> embed -> store."""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from src.ingestion.embeddings import EmbeddingBatcher, FixedDelayLimiter, create_embeddings_for_segments
from src.ingestion.models import CleanSegment, Episode, SegmentEmbedding, Transcription
from src.ingestion.segmenter import process_transcription_segments
from src.ingestion.storage import (
    store_segments,
    store_thumbnails,
    store_video_metadata,
    update_episode_status,
)
from src.ingestion.transcriber import transcribe_audio_file
from src.media.models import ExtractionResult
from src.media.processor import VideoProcessor, build_video_processor
from src.pipeline_config import PipelineConfig, ProcessingStatus

if TYPE_CHECKING:
    from supabase import Client

logger = logging.getLogger(__name__)

_STAGE_STATUS_FIELDS = ("metadata_status", "thumbnail_status", "transcription_status")


@dataclass
class EpisodeProcessingResult:
    episode: Episode
    extraction: ExtractionResult
    transcription: Transcription | None = None
    segments: list[CleanSegment] = field(default_factory=list)
    embeddings: list[SegmentEmbedding] = field(default_factory=list)


def process_episode(
    episode: Episode,
    output_dir: str,
    client: Client,
    config: PipelineConfig | None = None,
    processor: VideoProcessor | None = None,
    transcribe: Callable[[str], Transcription] = transcribe_audio_file,
    batcher: EmbeddingBatcher | None = None,
    skip_transcription: bool = False,
    skip_thumbnails: bool = False,
) -> EpisodeProcessingResult:
    """Run the full pipeline for *episode*, updating its status fields as it goes.

    On any failure, including storage errors, the processing status and every
    stage status still in ``processing`` are set to ``failed`` with the error
    message, then the error is re-raised. Partially written output in
    *output_dir* is left in place.

    When some thumbnails fail under the ``collect`` policy the run continues,
    but ``thumbnail_status`` ends as ``failed`` and the failures are recorded
    in ``error_message``.
    """
    config = config or PipelineConfig()
    if skip_thumbnails:
        config = dataclasses.replace(config, max_thumbnails=0)
    if processor is None:
        processor = build_video_processor(config)
    elif skip_thumbnails:
        processor = processor.with_config(dataclasses.replace(processor.config, max_thumbnails=0))

    update_episode_status(client, episode, "processing_status", ProcessingStatus.PROCESSING)

    try:
        update_episode_status(client, episode, "metadata_status", ProcessingStatus.PROCESSING)
        if not skip_thumbnails:
            update_episode_status(client, episode, "thumbnail_status", ProcessingStatus.PROCESSING)
        extraction = processor.process_video(episode.file_path, output_dir, episode.id)
        logger.info("Audio extracted: %s", extraction.audio_path)

        store_video_metadata(client, episode.id, dataclasses.asdict(extraction.video))
        update_episode_status(client, episode, "metadata_status", ProcessingStatus.COMPLETED)

        if not skip_thumbnails:
            store_thumbnails(
                client, episode.id, extraction.thumbnail_paths, extraction.thumbnail_timestamps
            )
            if extraction.thumbnail_errors:
                failed = ", ".join(f"#{f.index} at {f.timestamp:.2f}s" for f in extraction.thumbnail_errors)
                message = f"{len(extraction.thumbnail_errors)} thumbnail(s) failed: {failed}"
                logger.warning("Episode %s: %s", episode.id, message)
                update_episode_status(
                    client, episode, "thumbnail_status", ProcessingStatus.FAILED, error_message=message
                )
            else:
                update_episode_status(client, episode, "thumbnail_status", ProcessingStatus.COMPLETED)

        result = EpisodeProcessingResult(episode=episode, extraction=extraction)

        if not skip_transcription:
            update_episode_status(client, episode, "transcription_status", ProcessingStatus.PROCESSING)
            transcription = transcribe(extraction.audio_path)
            segments = process_transcription_segments(
                transcription.segments,
                min_length=config.min_segment_length,
                max_length=config.max_segment_length,
            )
            for segment in segments:
                segment.episode_id = episode.id
            embeddings = create_embeddings_for_segments(
                segments,
                batch_size=config.embedding_batch_size,
                batcher=batcher or EmbeddingBatcher(limiter=FixedDelayLimiter(config.embedding_batch_delay)),
            )
            store_segments(client, episode.id, embeddings)
            update_episode_status(client, episode, "transcription_status", ProcessingStatus.COMPLETED)
            result.transcription = transcription
            result.segments = segments
            result.embeddings = embeddings

        update_episode_status(client, episode, "processing_status", ProcessingStatus.COMPLETED)
        logger.info("Episode %s processing completed successfully", episode.id)
        return result
    except Exception as exc:
        for status_field in _STAGE_STATUS_FIELDS:
            if getattr(episode, status_field) is ProcessingStatus.PROCESSING:
                update_episode_status(client, episode, status_field, ProcessingStatus.FAILED)
        update_episode_status(
            client, episode, "processing_status", ProcessingStatus.FAILED, error_message=str(exc)
        )
        logger.error("Episode %s failed: %s", episode.id, exc)
        raise
