"""Tests for API endpoints (no external services required)."""

from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from src.api.main import app
from src.errors import EmbeddingError, ProcessingError
from src.ingestion.models import CleanSegment, SimilarityMatch
from src.media.models import ExtractionResult, ThumbnailFailure, VideoDescriptor

client = TestClient(app)


def test_health():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


# --- /api/episodes/process ---


def test_process_validation():
    response = client.post("/api/episodes/process", json={})
    assert response.status_code == 422


def test_process_missing_file():
    response = client.post(
        "/api/episodes/process",
        json={"episode_id": "ep1", "input_path": "/definitely/not/here.mp4"},
    )
    assert response.status_code == 404


def test_process_success(tmp_path):
    video = tmp_path / "ep1.mp4"
    video.write_bytes(b"\x00")
    processor = MagicMock()
    processor.process_video.return_value = ExtractionResult(
        video=VideoDescriptor(duration=120.0, codec="h264", width=1280, height=720),
        audio_path=str(tmp_path / "out" / "ep1_audio.wav"),
        thumbnail_paths=[str(tmp_path / "out" / "thumbnails" / "thumbnail_001.jpg")],
        thumbnail_timestamps=[40.0],
        thumbnail_errors=[ThumbnailFailure(index=2, timestamp=80.0, error="decode error")],
    )

    with patch("src.api.routes.episodes.get_video_processor", return_value=processor):
        response = client.post(
            "/api/episodes/process",
            json={"episode_id": "ep1", "input_path": str(video), "output_dir": str(tmp_path / "out")},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["episode_id"] == "ep1"
    assert body["video"]["duration"] == 120.0
    assert body["video"]["width"] == 1280
    assert body["thumbnails"] == [str(tmp_path / "out" / "thumbnails" / "thumbnail_001.jpg")]
    assert body["thumbnail_errors"] == ["#2 at 80.00s: decode error"]
    processor.process_video.assert_called_once_with(str(video), str(tmp_path / "out"), "ep1")


def test_process_permanent_failure_returns_422(tmp_path):
    video = tmp_path / "ep1.mp4"
    video.write_bytes(b"\x00")
    processor = MagicMock()
    processor.process_video.side_effect = ProcessingError(
        "Failed to get video info: No video stream found in file", stage="video_info"
    )

    with patch("src.api.routes.episodes.get_video_processor", return_value=processor):
        response = client.post("/api/episodes/process", json={"episode_id": "ep1", "input_path": str(video)})

    assert response.status_code == 422
    assert response.json()["detail"].startswith("[video_info]")
    assert response.json()["stage"] == "video_info"
    assert response.json()["retryable"] is False


def test_process_retryable_failure_returns_503(tmp_path):
    video = tmp_path / "ep1.mp4"
    video.write_bytes(b"\x00")
    processor = MagicMock()
    processor.process_video.side_effect = ProcessingError(
        "Failed to extract audio: timed out", stage="audio_extraction", retryable=True
    )

    with patch("src.api.routes.episodes.get_video_processor", return_value=processor):
        response = client.post("/api/episodes/process", json={"episode_id": "ep1", "input_path": str(video)})

    assert response.status_code == 503
    assert "audio_extraction" in response.json()["detail"]


# --- /api/search ---


def test_search_validation():
    response = client.post("/api/search", json={})
    assert response.status_code == 422


def test_search_rejects_empty_query():
    response = client.post("/api/search", json={"query": ""})
    assert response.status_code == 422


def test_search_returns_matches():
    segment = CleanSegment(start=12.0, end=20.5, text="Budget vote passed", segment_index=3, episode_id="ep1")
    matches = [SimilarityMatch(segment=segment, similarity=0.91)]

    with (
        patch("src.api.routes.search.get_supabase_client") as mock_client,
        patch("src.api.routes.search.fetch_segment_embeddings", return_value=[]) as mock_fetch,
        patch("src.api.routes.search.search", return_value=matches) as mock_search,
    ):
        response = client.post(
            "/api/search",
            json={"query": "budget", "strategy": "semantic", "episode_id": "ep1", "limit": 5},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["strategy"] == "semantic"
    assert body["results"] == [
        {
            "text": "Budget vote passed",
            "start_time": 12.0,
            "end_time": 20.5,
            "similarity": 0.91,
            "episode_id": "ep1",
            "segment_index": 3,
        }
    ]
    mock_fetch.assert_called_once_with(mock_client.return_value, episode_id="ep1")
    mock_search.assert_called_once()
    assert mock_search.call_args.kwargs["limit"] == 5
    assert mock_search.call_args.kwargs["threshold"] is None


def test_search_provider_failure_returns_503():
    with (
        patch("src.api.routes.search.get_supabase_client"),
        patch("src.api.routes.search.fetch_segment_embeddings", return_value=[]),
        patch("src.api.routes.search.search", side_effect=EmbeddingError("rate limited", retryable=True)),
    ):
        response = client.post("/api/search", json={"query": "budget"})

    assert response.status_code == 503
    assert "rate limited" in response.json()["detail"]
