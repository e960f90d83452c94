"""Tests for Whisper transcription (OpenAI client mocked)."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock

import httpx
import openai
import pytest

from src.errors import ProcessingError
from src.ingestion.transcriber import TranscriptionRequest, parse_segments, transcribe_audio_file


@pytest.fixture
def audio_file(tmp_path):
    path = tmp_path / "ep1_audio.wav"
    path.write_bytes(b"RIFF0000WAVE")
    return path


def verbose_response() -> SimpleNamespace:
    return SimpleNamespace(
        text="Hello there. General Kenobi.",
        language="english",
        duration=6.0,
        segments=[
            SimpleNamespace(
                id=0, seek=0, start=0.0, end=2.5, text=" Hello there.", tokens=[1, 2],
                temperature=0.0, avg_logprob=-0.2, compression_ratio=1.1, no_speech_prob=0.01,
            ),
            SimpleNamespace(
                id=1, seek=0, start=3.0, end=6.0, text=" General Kenobi.", tokens=[3],
                temperature=0.0, avg_logprob=-0.3, compression_ratio=1.2, no_speech_prob=0.02,
            ),
        ],
    )


class TestTranscribeAudioFile:
    def test_success(self, audio_file) -> None:
        client = MagicMock()
        client.audio.transcriptions.create.return_value = verbose_response()

        result = transcribe_audio_file(str(audio_file), client=client)

        assert result.duration == 6.0
        assert result.language == "english"
        assert [s.text for s in result.segments] == [" Hello there.", " General Kenobi."]
        assert result.segments[1].avg_logprob == -0.3

        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-1"
        assert kwargs["response_format"] == "verbose_json"
        assert kwargs["temperature"] == 0.0

    def test_custom_request(self, audio_file) -> None:
        client = MagicMock()
        client.audio.transcriptions.create.return_value = verbose_response()
        request = TranscriptionRequest(audio_path=str(audio_file), model="whisper-large", temperature=0.2)
        transcribe_audio_file(str(audio_file), request=request, client=client)
        kwargs = client.audio.transcriptions.create.call_args.kwargs
        assert kwargs["model"] == "whisper-large"
        assert kwargs["temperature"] == 0.2

    def test_missing_file_not_retryable(self, tmp_path) -> None:
        client = MagicMock()
        with pytest.raises(ProcessingError) as exc_info:
            transcribe_audio_file(str(tmp_path / "missing.wav"), client=client)
        assert exc_info.value.stage == "transcription"
        assert exc_info.value.retryable is False
        client.audio.transcriptions.create.assert_not_called()

    def test_rate_limit_is_retryable(self, audio_file) -> None:
        request = httpx.Request("POST", "https://api.openai.com/v1/audio/transcriptions")
        response = httpx.Response(429, request=request)
        client = MagicMock()
        client.audio.transcriptions.create.side_effect = openai.RateLimitError(
            "slow down", response=response, body=None
        )
        with pytest.raises(ProcessingError) as exc_info:
            transcribe_audio_file(str(audio_file), client=client)
        assert exc_info.value.retryable is True
        assert exc_info.value.details["status_code"] == 429

    def test_duration_falls_back_to_last_segment(self, audio_file) -> None:
        response = verbose_response()
        response.duration = None
        client = MagicMock()
        client.audio.transcriptions.create.return_value = response
        assert transcribe_audio_file(str(audio_file), client=client).duration == 6.0


class TestParseSegments:
    def test_accepts_dicts(self) -> None:
        [seg] = parse_segments([{"id": 4, "start": 1.0, "end": 2.0, "text": "hi"}])
        assert seg.id == 4
        assert seg.tokens == []

    def test_skips_zero_length(self) -> None:
        segments = parse_segments(
            [{"start": 1.0, "end": 1.0, "text": "blip"}, {"start": 1.0, "end": 3.0, "text": "real"}]
        )
        assert [s.text for s in segments] == ["real"]


class TestTranscriptionRequest:
    def test_rejects_empty_path(self) -> None:
        with pytest.raises(ValueError):
            TranscriptionRequest(audio_path="")

    def test_rejects_bad_temperature(self) -> None:
        with pytest.raises(ValueError):
            TranscriptionRequest(audio_path="a.wav", temperature=1.5)
