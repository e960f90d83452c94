"""Speech-to-text via the OpenAI Whisper API."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal

import openai
from openai import OpenAI

from src.config import settings
from src.errors import ProcessingError
from src.ingestion.embeddings import get_openai_client, is_retryable_openai_error
from src.ingestion.models import RawTranscriptSegment, Transcription
from src.media.processor import format_duration

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TranscriptionRequest:
    audio_path: str
    model: str = "whisper-1"
    response_format: Literal["json", "text", "verbose_json"] = "verbose_json"
    temperature: float = 0.0

    def __post_init__(self) -> None:
        if not self.audio_path:
            raise ValueError("audio_path must not be empty")
        if not 0.0 <= self.temperature <= 1.0:
            raise ValueError(f"temperature must be between 0 and 1, got {self.temperature}")


def _field(obj: Any, name: str, default: Any = None) -> Any:
    """Read *name* from an SDK model or a plain dict."""
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


def parse_segments(raw_segments: list[Any]) -> list[RawTranscriptSegment]:
    """Convert verbose_json segments into :class:`RawTranscriptSegment` objects.

    Zero-length segments (``end <= start``) are skipped with a warning.
    """
    segments: list[RawTranscriptSegment] = []
    for seg in raw_segments:
        start = float(_field(seg, "start", 0.0))
        end = float(_field(seg, "end", 0.0))
        if end <= start:
            logger.warning("Skipping zero-length segment %s at %.2fs", _field(seg, "id"), start)
            continue
        segments.append(
            RawTranscriptSegment(
                id=int(_field(seg, "id", 0)),
                seek=int(_field(seg, "seek", 0)),
                start=start,
                end=end,
                text=str(_field(seg, "text", "")),
                tokens=list(_field(seg, "tokens", None) or []),
                temperature=float(_field(seg, "temperature", 0.0)),
                avg_logprob=float(_field(seg, "avg_logprob", 0.0)),
                compression_ratio=float(_field(seg, "compression_ratio", 0.0)),
                no_speech_prob=float(_field(seg, "no_speech_prob", 0.0)),
            )
        )
    return segments


def transcribe_audio_file(
    audio_path: str,
    request: TranscriptionRequest | None = None,
    client: OpenAI | None = None,
) -> Transcription:
    """Transcribe *audio_path* and return timestamped segments.

    Raises:
        ProcessingError: ``stage="transcription"``. A missing file is not
            retryable; timeouts, rate limits and provider 5xx are.
    """
    request = request or TranscriptionRequest(audio_path=audio_path, model=settings.transcription_model)
    logger.info("Starting transcription for: %s", audio_path)

    path = Path(audio_path)
    if not path.is_file():
        raise ProcessingError(
            f"Audio file not found: {audio_path}",
            stage="transcription",
            details={"path": audio_path},
            retryable=False,
        )

    client = client or get_openai_client()
    try:
        with path.open("rb") as audio_file:
            response = client.audio.transcriptions.create(
                file=audio_file,
                model=request.model,
                response_format=request.response_format,
                temperature=request.temperature,
            )
    except openai.OpenAIError as exc:
        raise ProcessingError(
            f"Transcription failed: {exc}",
            stage="transcription",
            details={"status_code": getattr(exc, "status_code", None), "path": audio_path},
            retryable=is_retryable_openai_error(exc),
        ) from exc

    segments = parse_segments(_field(response, "segments", None) or [])
    duration = float(_field(response, "duration", 0.0) or (segments[-1].end if segments else 0.0))
    transcription = Transcription(
        duration=duration,
        text=str(_field(response, "text", "")),
        segments=segments,
        language=_field(response, "language"),
    )
    logger.info(
        "Transcription completed: %d segments, %s",
        len(transcription.segments),
        format_duration(transcription.duration),
    )
    return transcription
