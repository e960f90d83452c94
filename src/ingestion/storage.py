"""Supabase storage helpers for episodes, thumbnails and segment embeddings."""

from __future__ import annotations

import json
import os
from collections.abc import Sequence
from typing import Any, cast

from supabase import Client, create_client

from src.ingestion.models import CleanSegment, Episode, SegmentEmbedding
from src.pipeline_config import ProcessingStatus

BATCH_SIZE = 50

STATUS_FIELDS = ("processing_status", "transcription_status", "thumbnail_status", "metadata_status")


def get_supabase_client() -> Client:
    """Create and return a Supabase client from environment variables."""
    return create_client(
        os.getenv("SUPABASE_URL", ""),
        os.getenv("SUPABASE_KEY", ""),
    )


def update_episode_status(
    client: Client,
    episode: Episode,
    field: str,
    status: ProcessingStatus,
    error_message: str | None = None,
) -> None:
    """Set one of the episode's four status fields, locally and in Supabase."""
    if field not in STATUS_FIELDS:
        raise ValueError(f"Unknown status field: {field!r}. Expected one of {STATUS_FIELDS}")
    setattr(episode, field, status)
    payload: dict[str, Any] = {field: status.value}
    if error_message is not None:
        episode.error_message = error_message
        payload["error_message"] = error_message
    client.table("episodes").update(payload).eq("id", episode.id).execute()


def store_video_metadata(client: Client, episode_id: str, metadata: dict[str, Any]) -> None:
    client.table("episodes").update({"video_metadata": metadata}).eq("id", episode_id).execute()


def store_thumbnails(
    client: Client,
    episode_id: str,
    thumbnail_paths: Sequence[str],
    timestamps: Sequence[float],
) -> None:
    """Store thumbnail rows (batched by 50)."""
    rows: list[dict[str, object]] = [
        {"episode_id": episode_id, "file_path": path, "timestamp": ts, "thumbnail_index": i}
        for i, (path, ts) in enumerate(zip(thumbnail_paths, timestamps, strict=True))
    ]
    for i in range(0, len(rows), BATCH_SIZE):
        client.table("thumbnails").insert(rows[i : i + BATCH_SIZE]).execute()


def store_segments(
    client: Client,
    episode_id: str,
    segment_embeddings: Sequence[SegmentEmbedding],
) -> None:
    """Store transcript segments with embeddings in Supabase (batched by 50)."""
    rows: list[dict[str, object]] = []
    for item in segment_embeddings:
        seg = item.segment
        rows.append(
            {
                "episode_id": episode_id,
                "segment_index": seg.segment_index,
                "start_time": seg.start,
                "end_time": seg.end,
                "text": seg.text,
                "avg_logprob": seg.avg_logprob,
                "compression_ratio": seg.compression_ratio,
                "no_speech_prob": seg.no_speech_prob,
                "embedding": list(item.embedding),
            }
        )

    for i in range(0, len(rows), BATCH_SIZE):
        client.table("transcription_segments").insert(rows[i : i + BATCH_SIZE]).execute()


def _parse_embedding(value: Any) -> tuple[float, ...]:
    # pgvector columns come back from PostgREST as a JSON-encoded string
    if isinstance(value, str):
        value = json.loads(value)
    return tuple(float(x) for x in value)


def fetch_segment_embeddings(client: Client, episode_id: str | None = None) -> list[SegmentEmbedding]:
    """Load stored segments (optionally for one episode) as search candidates."""
    query = client.table("transcription_segments").select("*")
    if episode_id:
        query = query.eq("episode_id", episode_id)
    result = query.order("segment_index").execute()
    # Supabase .data is typed as JSON (broad union); cast to concrete type.
    rows = cast(list[dict[str, Any]], result.data)

    return [
        SegmentEmbedding(
            segment=CleanSegment(
                start=float(row["start_time"]),
                end=float(row["end_time"]),
                text=row["text"],
                avg_logprob=float(row.get("avg_logprob") or 0.0),
                compression_ratio=float(row.get("compression_ratio") or 0.0),
                no_speech_prob=float(row.get("no_speech_prob") or 0.0),
                segment_index=int(row.get("segment_index") or 0),
                episode_id=row.get("episode_id"),
            ),
            embedding=_parse_embedding(row["embedding"]),
        )
        for row in rows
    ]
