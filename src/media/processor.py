"""Per-episode video processing: inspect -> extract audio -> extract thumbnails.

The run is modelled as a small state machine; the stage at which a run failed
is recorded on the run and on the raised error.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from src.errors import MediaError, ProcessingError, wrap_processing_error
from src.media.extractor import MediaExtractor
from src.media.inspector import MediaInspector
from src.media.models import (
    AudioExtractionOptions,
    ExtractionResult,
    ThumbnailOptions,
    VideoDescriptor,
)
from src.media.runner import MediaCommandRunner, SubprocessRunner
from src.pipeline_config import PipelineConfig

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    INSPECTING = "inspecting"
    EXTRACTING_AUDIO = "extracting_audio"
    EXTRACTING_THUMBNAILS = "extracting_thumbnails"
    DONE = "done"
    FAILED = "failed"


_NEXT_STATE = {
    PipelineState.INSPECTING: PipelineState.EXTRACTING_AUDIO,
    PipelineState.EXTRACTING_AUDIO: PipelineState.EXTRACTING_THUMBNAILS,
    PipelineState.EXTRACTING_THUMBNAILS: PipelineState.DONE,
}

# ProcessingError stage tag for a failure while in each working state
STAGE_FOR_STATE = {
    PipelineState.INSPECTING: "video_info",
    PipelineState.EXTRACTING_AUDIO: "audio_extraction",
    PipelineState.EXTRACTING_THUMBNAILS: "thumbnail_generation",
}


def advance(state: PipelineState) -> PipelineState:
    """Transition taken when *state*'s work succeeds."""
    try:
        return _NEXT_STATE[state]
    except KeyError:
        raise ValueError(f"Cannot advance from terminal state {state.value!r}") from None


def fail(state: PipelineState) -> tuple[PipelineState, str]:
    """Transition taken when *state*'s work fails; returns the failed stage tag."""
    try:
        return PipelineState.FAILED, STAGE_FOR_STATE[state]
    except KeyError:
        raise ValueError(f"Cannot fail from terminal state {state.value!r}") from None


@dataclass
class ProcessingRun:
    """Bookkeeping for one :meth:`VideoProcessor.process_video` call."""

    episode_id: str
    state: PipelineState = PipelineState.INSPECTING
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.INSPECTING])
    failed_stage: str | None = None

    def advance(self) -> None:
        self.state = advance(self.state)
        self.history.append(self.state)

    def fail(self) -> str:
        self.state, self.failed_stage = fail(self.state)
        self.history.append(self.state)
        return self.failed_stage


def sanitize_filename(name: str) -> str:
    """Make *name* safe to embed in a file name."""
    name = re.sub(r'[<>:"/\\|?*]', "_", name)
    name = re.sub(r"\s+", "_", name)
    name = re.sub(r"_+", "_", name)
    return name.strip("_")


def format_duration(seconds: float) -> str:
    """``83.4`` -> ``"1:23"``, ``3723`` -> ``"1:02:03"``."""
    total = int(seconds)
    hours, rem = divmod(total, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def thumbnail_count_for(duration: float, cap: int = 10, seconds_per_thumbnail: float = 60.0) -> int:
    """Roughly one thumbnail per minute, never more than *cap*."""
    if duration <= 0:
        return 0
    return max(0, min(cap, math.floor(duration / seconds_per_thumbnail)))


class VideoProcessor:
    """Sequences inspection and extraction for a single episode.

    Holds no per-run state, so one instance may serve concurrent episodes.
    Partial output left behind by a failed run is not cleaned up.
    """

    def __init__(
        self,
        config: PipelineConfig | None = None,
        runner: MediaCommandRunner | None = None,
        inspector: MediaInspector | None = None,
        extractor: MediaExtractor | None = None,
        audio_options: AudioExtractionOptions | None = None,
        thumbnail_options: ThumbnailOptions | None = None,
    ) -> None:
        self.config = config or PipelineConfig()
        runner = runner or SubprocessRunner()
        self.inspector = inspector or MediaInspector(runner=runner, timeout=self.config.probe_timeout)
        self.extractor = extractor or MediaExtractor(
            runner=runner,
            inspector=self.inspector,
            audio_timeout=self.config.audio_timeout,
            thumbnail_timeout=self.config.thumbnail_timeout,
            clip_timeout=self.config.clip_timeout,
            max_concurrency=self.config.thumbnail_concurrency,
        )
        self.audio_options = audio_options or AudioExtractionOptions()
        self.thumbnail_options = thumbnail_options or ThumbnailOptions()

    def with_config(self, config: PipelineConfig) -> VideoProcessor:
        """A processor sharing this one's inspector and extractor under *config*."""
        return VideoProcessor(
            config=config,
            inspector=self.inspector,
            extractor=self.extractor,
            audio_options=self.audio_options,
            thumbnail_options=self.thumbnail_options,
        )

    def process_video(
        self,
        input_path: str,
        output_dir: str,
        episode_id: str,
        run: ProcessingRun | None = None,
    ) -> ExtractionResult:
        """Inspect *input_path*, then extract its audio track and thumbnails.

        Args:
            input_path: Source video file.
            output_dir: Directory receiving ``<episode>_audio.wav`` and ``thumbnails/``.
            episode_id: Identifier used in file names and log lines.
            run: Optional run record to observe state transitions.

        Returns:
            The descriptor, audio path and ordered thumbnail paths.

        Raises:
            ProcessingError: Tagged ``video_info``, ``audio_extraction`` or
                ``thumbnail_generation``; the underlying :class:`MediaError`
                is chained as ``__cause__``.
        """
        run = run or ProcessingRun(episode_id=episode_id)
        logger.info("Starting video processing for episode %s", episode_id)

        try:
            video = self.inspector.inspect(input_path)
            logger.info(
                "Video info extracted: %s, %sx%s",
                format_duration(video.duration),
                video.width,
                video.height,
            )
            run.advance()

            audio_path = str(Path(output_dir) / f"{sanitize_filename(episode_id)}_audio.{self.audio_options.format}")
            self.extractor.extract_audio(input_path, audio_path, self.audio_options)
            run.advance()

            count = thumbnail_count_for(
                video.duration,
                cap=self.config.max_thumbnails,
                seconds_per_thumbnail=self.config.seconds_per_thumbnail,
            )
            batch = self.extractor.extract_thumbnail_batch(
                input_path,
                str(Path(output_dir) / "thumbnails"),
                count,
                options=self.thumbnail_options,
                duration=video.duration,
                policy=self.config.thumbnail_failure_policy,
            )
            run.advance()
        except MediaError as exc:
            stage = run.fail()
            logger.error("Episode %s failed at %s: %s", episode_id, stage, exc.message)
            prefix = {
                "video_info": "Failed to get video info",
                "audio_extraction": "Failed to extract audio",
                "thumbnail_generation": "Failed to generate thumbnails",
            }[stage]
            raise wrap_processing_error(exc, stage, prefix) from exc

        logger.info("Generated %d thumbnails for episode %s", len(batch.paths), episode_id)
        return ExtractionResult(
            video=video,
            audio_path=audio_path,
            thumbnail_paths=batch.paths,
            thumbnail_timestamps=batch.timestamps,
            thumbnail_errors=batch.errors,
        )

    def validate_video_file(self, path: str) -> VideoDescriptor:
        """Check ffmpeg is usable and that *path* is a playable video."""
        if not self.extractor.check_available():
            raise ProcessingError("FFmpeg is not available on this system", stage="validation")
        try:
            video = self.inspector.inspect(path)
        except MediaError as exc:
            raise wrap_processing_error(exc, "validation", "Invalid video file") from exc
        if video.duration <= 0:
            raise ProcessingError("Video has invalid duration", stage="validation")
        if not video.width or not video.height or video.width <= 0 or video.height <= 0:
            raise ProcessingError("Video has invalid dimensions", stage="validation")
        logger.info("Video validated: %s, %sx%s", format_duration(video.duration), video.width, video.height)
        return video

    def extract_thumbnail_at_time(
        self,
        input_path: str,
        output_path: str,
        timestamp: float,
        width: int | None = None,
        height: int | None = None,
    ) -> str:
        logger.info("Extracting thumbnail at %s", format_duration(timestamp))
        options = ThumbnailOptions(
            width=width or self.thumbnail_options.width,
            height=height or self.thumbnail_options.height,
            format=self.thumbnail_options.format,
            quality=self.thumbnail_options.quality,
        )
        try:
            return self.extractor.extract_thumbnail_at(input_path, output_path, timestamp, options)
        except MediaError as exc:
            raise wrap_processing_error(exc, "thumbnail_extraction", "Failed to extract thumbnail") from exc

    def create_clip(
        self,
        input_path: str,
        output_path: str,
        start: float,
        duration: float,
        max_width: int | None = None,
    ) -> str:
        logger.info("Creating clip: %s - %s", format_duration(start), format_duration(start + duration))
        try:
            return self.extractor.create_clip(input_path, output_path, start, duration, max_width)
        except MediaError as exc:
            raise wrap_processing_error(exc, "clip_creation", "Failed to create video clip") from exc


def build_video_processor(config: PipelineConfig | None = None) -> VideoProcessor:
    """Production wiring using the binaries named in settings."""
    from src.config import settings

    config = config or PipelineConfig.from_settings(settings)
    runner = SubprocessRunner()
    inspector = MediaInspector(runner=runner, ffprobe_binary=settings.ffprobe_binary, timeout=config.probe_timeout)
    extractor = MediaExtractor(
        runner=runner,
        inspector=inspector,
        ffmpeg_binary=settings.ffmpeg_binary,
        audio_timeout=config.audio_timeout,
        thumbnail_timeout=config.thumbnail_timeout,
        clip_timeout=config.clip_timeout,
        max_concurrency=config.thumbnail_concurrency,
    )
    return VideoProcessor(config=config, runner=runner, inspector=inspector, extractor=extractor)

