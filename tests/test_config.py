"""Tests for Settings, PipelineConfig and the strategy/status enums."""

from __future__ import annotations

import dataclasses

import pytest
from fastapi.testclient import TestClient

from src.api.main import app
from src.config import Settings
from src.pipeline_config import FailurePolicy, PipelineConfig, ProcessingStatus, SearchStrategy

client = TestClient(app)


# ---------------------------------------------------------------------------
# Enum tests
# ---------------------------------------------------------------------------


class TestSearchStrategy:
    def test_values(self) -> None:
        assert SearchStrategy.KEYWORD.value == "keyword"
        assert SearchStrategy.SEMANTIC.value == "semantic"

    def test_from_string(self) -> None:
        assert SearchStrategy("keyword") is SearchStrategy.KEYWORD

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            SearchStrategy("hybrid")

    def test_is_str_subclass(self) -> None:
        """Enum values behave as plain strings for JSON serialization."""
        assert isinstance(SearchStrategy.SEMANTIC, str)


class TestFailurePolicy:
    def test_values(self) -> None:
        assert FailurePolicy.FAIL_FAST.value == "fail_fast"
        assert FailurePolicy.COLLECT.value == "collect"


class TestProcessingStatus:
    def test_four_states(self) -> None:
        assert [s.value for s in ProcessingStatus] == ["pending", "processing", "completed", "failed"]


# ---------------------------------------------------------------------------
# PipelineConfig
# ---------------------------------------------------------------------------


class TestPipelineConfig:
    def test_defaults(self) -> None:
        config = PipelineConfig()
        assert config.max_thumbnails == 10
        assert config.thumbnail_concurrency == 3
        assert config.thumbnail_failure_policy is FailurePolicy.FAIL_FAST
        assert config.probe_timeout == 30.0
        assert config.audio_timeout == 300.0
        assert config.thumbnail_timeout == 30.0
        assert config.clip_timeout == 180.0
        assert config.min_segment_length == 10
        assert config.max_segment_length == 300
        assert config.embedding_batch_size == 100
        assert config.embedding_batch_delay == 1.0

    def test_custom_values(self) -> None:
        config = PipelineConfig(max_thumbnails=4, thumbnail_failure_policy=FailurePolicy.COLLECT)
        assert config.max_thumbnails == 4
        assert config.thumbnail_failure_policy is FailurePolicy.COLLECT

    def test_immutable(self) -> None:
        config = PipelineConfig()
        with pytest.raises(dataclasses.FrozenInstanceError):
            config.max_thumbnails = 5  # type: ignore[misc]

    def test_from_settings(self) -> None:
        settings = Settings(
            _env_file=None,  # type: ignore[call-arg]
            max_thumbnails=6,
            thumbnail_concurrency=2,
            audio_timeout_seconds=120.0,
            embedding_batch_size=25,
            embedding_batch_delay_seconds=0.0,
        )
        config = PipelineConfig.from_settings(settings)
        assert config.max_thumbnails == 6
        assert config.thumbnail_concurrency == 2
        assert config.audio_timeout == 120.0
        assert config.embedding_batch_size == 25
        assert config.embedding_batch_delay == 0.0


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


class TestSettings:
    def test_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("EMBEDDING_MODEL", raising=False)
        monkeypatch.delenv("SIMILARITY_THRESHOLD", raising=False)
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.embedding_model == "text-embedding-3-small"
        assert settings.embedding_dimensions == 1536
        assert settings.similarity_threshold == 0.7
        assert settings.ffmpeg_binary == "ffmpeg"

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FFMPEG_BINARY", "/opt/ffmpeg/bin/ffmpeg")
        monkeypatch.setenv("SEARCH_LIMIT", "25")
        settings = Settings(_env_file=None)  # type: ignore[call-arg]
        assert settings.ffmpeg_binary == "/opt/ffmpeg/bin/ffmpeg"
        assert settings.search_limit == 25


# ---------------------------------------------------------------------------
# Strategy wiring through the API
# ---------------------------------------------------------------------------


class TestSearchEndpointStrategy:
    def test_rejects_invalid_strategy(self) -> None:
        response = client.post("/api/search", json={"query": "budget", "strategy": "hybrid"})
        assert response.status_code == 422

    def test_rejects_out_of_range_threshold(self) -> None:
        response = client.post("/api/search", json={"query": "budget", "threshold": 1.5})
        assert response.status_code == 422
