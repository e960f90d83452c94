"""Search endpoint: keyword or semantic search over stored transcript segments."""

from __future__ import annotations

from fastapi import APIRouter

from src.api.models import SearchRequest, SearchResponse, SearchResult
from src.ingestion.storage import fetch_segment_embeddings, get_supabase_client
from src.retrieval.search import search

router = APIRouter()


@router.post("/api/search", response_model=SearchResponse)
async def search_segments(request: SearchRequest) -> SearchResponse:
    """Search transcript segments, optionally restricted to one episode."""
    client = get_supabase_client()
    candidates = fetch_segment_embeddings(client, episode_id=request.episode_id)

    matches = search(
        request.query,
        candidates,
        strategy=request.strategy,
        threshold=request.threshold,
        limit=request.limit,
    )

    return SearchResponse(
        query=request.query,
        strategy=request.strategy,
        results=[
            SearchResult(
                text=m.segment.text,
                start_time=m.segment.start,
                end_time=m.segment.end,
                similarity=m.similarity,
                episode_id=m.segment.episode_id,
                segment_index=m.segment.segment_index,
            )
            for m in matches
        ],
    )
