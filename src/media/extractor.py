"""Audio, thumbnail and clip extraction via ffmpeg."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from pathlib import Path

from src.errors import MediaError
from src.media.inspector import MediaInspector
from src.media.models import AudioExtractionOptions, ThumbnailBatch, ThumbnailFailure, ThumbnailOptions
from src.media.runner import CommandNotFound, CommandTimeout, MediaCommandRunner, SubprocessRunner
from src.pipeline_config import FailurePolicy

logger = logging.getLogger(__name__)

DEFAULT_AUDIO_TIMEOUT = 300.0
DEFAULT_THUMBNAIL_TIMEOUT = 30.0
DEFAULT_CLIP_TIMEOUT = 180.0
DEFAULT_THUMBNAIL_CONCURRENCY = 3

_AUDIO_CODECS = {"wav": "pcm_s16le", "mp3": "libmp3lame", "flac": "flac"}


def thumbnail_timestamps(duration: float, count: int) -> list[float]:
    """Evenly spaced sample points that never land on the first or last frame.

    >>> thumbnail_timestamps(600, 5)
    [100.0, 200.0, 300.0, 400.0, 500.0]
    """
    if duration <= 0 or count <= 0:
        return []
    interval = duration / (count + 1)
    return [interval * i for i in range(1, count + 1)]


def _qscale(quality: int) -> int:
    """Map a 1-100 quality percentage onto ffmpeg's 31 (worst) .. 2 (best) ``-q:v`` scale."""
    return round(31 - (quality - 1) * 29 / 99)


def _size_args(width: int | None, height: int | None) -> list[str]:
    if width and height:
        return ["-s", f"{width}x{height}"]
    if width:
        return ["-vf", f"scale={width}:-1"]
    return []


class MediaExtractor:
    """Issues ffmpeg commands for audio tracks, preview frames and clips.

    Every command carries an explicit timeout; expiry surfaces as a
    :class:`MediaError` with ``reason="timeout"``.
    """

    def __init__(
        self,
        runner: MediaCommandRunner | None = None,
        inspector: MediaInspector | None = None,
        ffmpeg_binary: str = "ffmpeg",
        audio_timeout: float = DEFAULT_AUDIO_TIMEOUT,
        thumbnail_timeout: float = DEFAULT_THUMBNAIL_TIMEOUT,
        clip_timeout: float = DEFAULT_CLIP_TIMEOUT,
        max_concurrency: int = DEFAULT_THUMBNAIL_CONCURRENCY,
    ) -> None:
        self.runner = runner or SubprocessRunner()
        self.inspector = inspector or MediaInspector(runner=self.runner)
        self.ffmpeg_binary = ffmpeg_binary
        self.audio_timeout = audio_timeout
        self.thumbnail_timeout = thumbnail_timeout
        self.clip_timeout = clip_timeout
        self.max_concurrency = max(1, max_concurrency)

    def _execute(self, cmd: list[str], timeout: float, stage: str) -> None:
        command = " ".join(cmd)
        try:
            result = self.runner.run(cmd, timeout=timeout)
        except CommandTimeout as exc:
            raise MediaError(str(exc), stage=stage, reason="timeout", command=command) from exc
        except CommandNotFound as exc:
            raise MediaError(str(exc), stage=stage, reason="command-not-found", command=command) from exc
        if result.exit_code != 0:
            raise MediaError(
                f"FFmpeg command failed (exit {result.exit_code}): {result.stderr.strip()}",
                stage=stage,
                reason="nonzero-exit",
                command=command,
            )

    # -- audio ---------------------------------------------------------------

    def audio_command(self, input_path: str, output_path: str, options: AudioExtractionOptions) -> list[str]:
        cmd = [
            self.ffmpeg_binary,
            "-y",
            "-i",
            str(input_path),
            "-vn",
            "-acodec",
            _AUDIO_CODECS[options.format],
            "-ar",
            str(options.sample_rate),
            "-ac",
            str(options.channels),
        ]
        if options.bitrate:
            cmd += ["-b:a", options.bitrate]
        cmd.append(str(output_path))
        return cmd

    def extract_audio(
        self,
        input_path: str,
        output_path: str,
        options: AudioExtractionOptions | None = None,
    ) -> str:
        """Write a transcription-ready audio track for *input_path* and return its path."""
        options = options or AudioExtractionOptions()
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        self._execute(
            self.audio_command(input_path, output_path, options),
            timeout=self.audio_timeout,
            stage="audio-extraction",
        )
        logger.info("Audio extracted to %s", output_path)
        return str(output_path)

    # -- thumbnails ----------------------------------------------------------

    def thumbnail_command(
        self,
        input_path: str,
        output_path: str,
        timestamp: float,
        options: ThumbnailOptions,
    ) -> list[str]:
        return [
            self.ffmpeg_binary,
            "-y",
            "-ss",
            f"{timestamp:.3f}",
            "-i",
            str(input_path),
            "-vframes",
            "1",
            "-f",
            "image2",
            "-q:v",
            str(_qscale(options.quality)),
            *_size_args(options.width, options.height),
            str(output_path),
        ]

    def extract_thumbnail_at(
        self,
        input_path: str,
        output_path: str,
        timestamp: float,
        options: ThumbnailOptions | None = None,
        stage: str = "thumbnail-extraction",
    ) -> str:
        """Grab the single frame at *timestamp* seconds."""
        options = options or ThumbnailOptions()
        self._execute(
            self.thumbnail_command(input_path, output_path, timestamp, options),
            timeout=self.thumbnail_timeout,
            stage=stage,
        )
        return str(output_path)

    def extract_thumbnail_batch(
        self,
        input_path: str,
        output_dir: str,
        count: int,
        options: ThumbnailOptions | None = None,
        duration: float | None = None,
        policy: FailurePolicy = FailurePolicy.FAIL_FAST,
    ) -> ThumbnailBatch:
        """Extract *count* evenly spaced frames with bounded concurrency.

        Under :attr:`FailurePolicy.FAIL_FAST` the first failure cancels any
        pending commands and raises; under :attr:`FailurePolicy.COLLECT` every
        failure is reported in :attr:`ThumbnailBatch.errors`. Returned paths
        always follow timestamp order.
        """
        options = options or ThumbnailOptions()
        if count <= 0:
            return ThumbnailBatch()
        if duration is None:
            duration = self.inspector.inspect(input_path).duration
        timestamps = thumbnail_timestamps(duration, count)
        if not timestamps:
            return ThumbnailBatch()

        out_dir = Path(output_dir)
        out_dir.mkdir(parents=True, exist_ok=True)
        targets = [
            (idx, ts, str(out_dir / f"thumbnail_{idx:03d}.{options.format}"))
            for idx, ts in enumerate(timestamps, start=1)
        ]

        by_index = {idx: ts for idx, ts, _ in targets}
        paths: dict[int, str] = {}
        failures: list[ThumbnailFailure] = []
        with ThreadPoolExecutor(max_workers=self.max_concurrency) as executor:
            future_map: dict[Future[str], tuple[int, float]] = {
                executor.submit(
                    self.extract_thumbnail_at,
                    input_path,
                    path,
                    ts,
                    options,
                    "thumbnail-generation",
                ): (idx, ts)
                for idx, ts, path in targets
            }
            for future in as_completed(future_map):
                idx, ts = future_map[future]
                try:
                    paths[idx] = future.result()
                except MediaError as exc:
                    if policy is FailurePolicy.FAIL_FAST:
                        for pending in future_map:
                            pending.cancel()
                        raise MediaError(
                            f"Thumbnail {idx}/{len(targets)} at {ts:.2f}s failed: {exc.message}",
                            stage="thumbnail-generation",
                            reason=exc.reason,
                            command=exc.command,
                        ) from exc
                    logger.warning("Thumbnail %d at %.2fs failed: %s", idx, ts, exc.message)
                    failures.append(ThumbnailFailure(index=idx, timestamp=ts, error=exc.message))

        failures.sort(key=lambda f: f.index)
        logger.info("Generated %d/%d thumbnails in %s", len(paths), len(targets), out_dir)
        done = sorted(paths)
        return ThumbnailBatch(
            paths=[paths[i] for i in done],
            timestamps=[by_index[i] for i in done],
            errors=failures,
        )

    def extract_thumbnails(
        self,
        input_path: str,
        output_dir: str,
        count: int,
        options: ThumbnailOptions | None = None,
        duration: float | None = None,
    ) -> list[str]:
        """All-or-nothing thumbnail extraction; see :meth:`extract_thumbnail_batch`."""
        batch = self.extract_thumbnail_batch(
            input_path, output_dir, count, options=options, duration=duration
        )
        return batch.paths

    # -- clips ---------------------------------------------------------------

    def clip_command(
        self,
        input_path: str,
        output_path: str,
        start: float,
        duration: float,
        max_width: int | None = None,
    ) -> list[str]:
        cmd = [
            self.ffmpeg_binary,
            "-y",
            "-ss",
            f"{start:.3f}",
            "-i",
            str(input_path),
            "-t",
            f"{duration:.3f}",
        ]
        if max_width:
            # Re-encode video at 16:9, keep the audio stream as is
            height = (max_width * 9 // 16) // 2 * 2
            cmd += ["-vf", f"scale={max_width}:{height}", "-c:a", "copy"]
        else:
            cmd += ["-c", "copy"]
        cmd.append(str(output_path))
        return cmd

    def create_clip(
        self,
        input_path: str,
        output_path: str,
        start: float,
        duration: float,
        max_width: int | None = None,
    ) -> str:
        """Cut ``[start, start + duration)`` out of *input_path*."""
        if start < 0:
            raise ValueError(f"start must be non-negative, got {start}")
        if duration <= 0:
            raise ValueError(f"duration must be positive, got {duration}")
        Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        self._execute(
            self.clip_command(input_path, output_path, start, duration, max_width),
            timeout=self.clip_timeout,
            stage="clip-creation",
        )
        return str(output_path)

    def check_available(self) -> bool:
        """Return True when the ffmpeg binary runs."""
        try:
            result = self.runner.run([self.ffmpeg_binary, "-version"], timeout=10.0)
        except (CommandTimeout, CommandNotFound):
            return False
        return result.exit_code == 0
