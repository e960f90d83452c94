"""Video inspection via ffprobe."""

from __future__ import annotations

import json
import logging
from typing import Any

from src.errors import MediaError
from src.media.models import VideoDescriptor
from src.media.runner import CommandNotFound, CommandTimeout, MediaCommandRunner, SubprocessRunner

logger = logging.getLogger(__name__)

DEFAULT_PROBE_TIMEOUT = 30.0


def _parse_frame_rate(value: str | None) -> float | None:
    """Convert an ffprobe rational such as ``"24000/1001"`` to frames per second."""
    if not value:
        return None
    if "/" in value:
        num, den = value.split("/", 1)
        if float(den) == 0:
            return None
        return float(num) / float(den)
    return float(value)


def _optional_int(value: Any) -> int | None:
    if value in (None, "", "N/A"):
        return None
    return int(value)


def parse_probe_output(output: str) -> VideoDescriptor:
    """Build a :class:`VideoDescriptor` from ffprobe's JSON output.

    Raises:
        MediaError: ``no-video-stream`` when the file carries no video, or
            ``parse-failure`` when the payload is malformed.
    """
    try:
        data = json.loads(output)
    except json.JSONDecodeError as exc:
        raise MediaError(
            f"Failed to parse ffprobe output: {exc}", stage="inspect", reason="parse-failure"
        ) from exc
    if not isinstance(data, dict):
        raise MediaError("ffprobe output is not a JSON object", stage="inspect", reason="parse-failure")

    streams = data.get("streams") or []
    fmt = data.get("format") or {}
    if not isinstance(streams, list) or not all(isinstance(s, dict) for s in streams):
        raise MediaError("ffprobe 'streams' is not a list of objects", stage="inspect", reason="parse-failure")
    if not isinstance(fmt, dict):
        raise MediaError("ffprobe 'format' is not an object", stage="inspect", reason="parse-failure")

    video_stream = next((s for s in streams if s.get("codec_type") == "video"), None)
    audio_stream = next((s for s in streams if s.get("codec_type") == "audio"), None)
    if video_stream is None:
        raise MediaError("No video stream found in file", stage="inspect", reason="no-video-stream")

    try:
        duration = float(fmt.get("duration") or video_stream.get("duration") or 0)
        descriptor = VideoDescriptor(
            duration=duration,
            codec=str(video_stream.get("codec_name", "unknown")),
            width=_optional_int(video_stream.get("width")),
            height=_optional_int(video_stream.get("height")),
            frame_rate=_parse_frame_rate(video_stream.get("r_frame_rate")),
            bitrate=_optional_int(fmt.get("bit_rate")),
            audio_codec=audio_stream.get("codec_name") if audio_stream else None,
            audio_channels=_optional_int(audio_stream.get("channels")) if audio_stream else None,
            audio_sample_rate=_optional_int(audio_stream.get("sample_rate")) if audio_stream else None,
        )
    except (TypeError, ValueError) as exc:
        raise MediaError(
            f"Failed to parse ffprobe output: {exc}", stage="inspect", reason="parse-failure"
        ) from exc

    if descriptor.duration <= 0:
        raise MediaError(
            f"Invalid duration reported by ffprobe: {descriptor.duration}",
            stage="inspect",
            reason="parse-failure",
        )
    return descriptor


class MediaInspector:
    """Runs ffprobe against a file and parses the result."""

    def __init__(
        self,
        runner: MediaCommandRunner | None = None,
        ffprobe_binary: str = "ffprobe",
        timeout: float = DEFAULT_PROBE_TIMEOUT,
    ) -> None:
        self.runner = runner or SubprocessRunner()
        self.ffprobe_binary = ffprobe_binary
        self.timeout = timeout

    def probe_command(self, path: str) -> list[str]:
        return [
            self.ffprobe_binary,
            "-v",
            "quiet",
            "-print_format",
            "json",
            "-show_format",
            "-show_streams",
            str(path),
        ]

    def inspect(self, path: str) -> VideoDescriptor:
        """Return the :class:`VideoDescriptor` for *path*.

        No retries are attempted; the caller decides.
        """
        cmd = self.probe_command(path)
        command = " ".join(cmd)
        try:
            result = self.runner.run(cmd, timeout=self.timeout)
        except CommandTimeout as exc:
            raise MediaError(str(exc), stage="inspect", reason="timeout", command=command) from exc
        except CommandNotFound as exc:
            raise MediaError(str(exc), stage="inspect", reason="command-not-found", command=command) from exc

        if result.exit_code != 0:
            raise MediaError(
                f"Failed to get video info (exit {result.exit_code}): {result.stderr.strip()}",
                stage="inspect",
                reason="nonzero-exit",
                command=command,
            )

        descriptor = parse_probe_output(result.stdout)
        logger.debug("Inspected %s: %.1fs %sx%s", path, descriptor.duration, descriptor.width, descriptor.height)
        return descriptor
