"""Shared test doubles for media command tests."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable

from src.media.runner import CommandResult


def probe_json(
    duration: float | str | None = 600.0,
    with_video: bool = True,
    with_audio: bool = True,
) -> str:
    """ffprobe-style JSON for a 1080p h264 file."""
    streams: list[dict] = []
    if with_video:
        streams.append(
            {
                "codec_type": "video",
                "codec_name": "h264",
                "width": 1920,
                "height": 1080,
                "r_frame_rate": "30000/1001",
            }
        )
    if with_audio:
        streams.append({"codec_type": "audio", "codec_name": "aac", "channels": 2, "sample_rate": "48000"})
    fmt: dict = {"bit_rate": "5000000"}
    if duration is not None:
        fmt["duration"] = str(duration)
    return json.dumps({"streams": streams, "format": fmt})


class FakeRunner:
    """Records every command; ``handler`` decides each command's outcome."""

    def __init__(self, handler: Callable[[list[str]], CommandResult] | None = None) -> None:
        self.calls: list[tuple[list[str], float]] = []
        self.handler = handler or (lambda args: CommandResult("", "", 0))
        self._lock = threading.Lock()

    def run(self, args: list[str], timeout: float) -> CommandResult:
        with self._lock:
            self.calls.append((list(args), timeout))
        return self.handler(args)


def raising(exc: Exception) -> Callable[[list[str]], CommandResult]:
    def handler(args: list[str]) -> CommandResult:
        raise exc

    return handler


def seek_of(args: list[str]) -> float:
    return float(args[args.index("-ss") + 1])
