"""HTTP API routes for the YouTube Tracker service."""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse

from yt_tracker.api.deps import get_pipeline, get_youtube_client
from yt_tracker.core.config import Settings, get_settings
from yt_tracker.domain.content import ExtractChannelRequest, ResolvedContent
from yt_tracker.domain.upstream import VideoItem
from yt_tracker.domain.videos import MetadataRequest, MetadataResponse, StreamMetadataRequest
from yt_tracker.infra.ndjson import MEDIA_TYPE, frame_records
from yt_tracker.services.pipeline import BatchPipeline
from yt_tracker.services.resolver import resolve_content
from yt_tracker.services.youtube_api import YouTubeClient

logger = logging.getLogger(__name__)

router: APIRouter = APIRouter(prefix="/api/youtube", tags=["youtube"])


@router.post("/extract-channel-id")
async def post_extract_channel_id(
    payload: ExtractChannelRequest,
    client: YouTubeClient = Depends(get_youtube_client),
) -> dict[str, Any]:
    """Resolve a channel/playlist URL, handle, or bare id.

    Returns
    -------
    dict[str, Any]
        ``{"channelId": ...}`` or ``{"playlistId": ..., "type": "playlist"}``.

    Notes
    -----
    - ``@handle``, ``/c/`` and ``/user/`` forms cost one channel search call and
      take the first hit.
    - Unresolvable input answers 500 ``{"error": ...}``.
    """

    resolved: ResolvedContent = await resolve_content(payload.url, client)
    return resolved.to_payload()


@router.get("/channel/{channel_id}")
async def get_channel(channel_id: str, client: YouTubeClient = Depends(get_youtube_client)) -> dict[str, Any]:
    """Raw ``channels.list`` snippet passthrough."""

    return await client.get_channel(channel_id)


@router.get("/channel/{channel_id}/videos")
async def get_channel_videos(
    channel_id: str,
    maxResults: int = Query(default=6, ge=1, le=50),
    client: YouTubeClient = Depends(get_youtube_client),
    settings: Settings = Depends(get_settings),
) -> dict[str, Any]:
    """Raw recent-uploads search passthrough.

    Notes
    -----
    - Over-fetches ``maxResults * channel_overfetch_factor`` (capped at 50 by the API)
      so enough long-form videos survive Shorts filtering; the caller post-filters.
    """

    request_count: int = maxResults * settings.channel_overfetch_factor
    return await client.list_channel_videos(channel_id, request_count)


@router.get("/playlist/{playlist_id}")
async def get_playlist(playlist_id: str, client: YouTubeClient = Depends(get_youtube_client)) -> dict[str, Any]:
    return await client.get_playlist(playlist_id)


@router.get("/playlist/{playlist_id}/videos")
async def get_playlist_videos(
    playlist_id: str,
    maxResults: int = Query(default=6, ge=1, le=50),
    client: YouTubeClient = Depends(get_youtube_client),
) -> dict[str, Any]:
    return await client.list_playlist_items(playlist_id, maxResults)


@router.get("/videos/{video_ids}")
async def get_video_details(video_ids: str, client: YouTubeClient = Depends(get_youtube_client)) -> dict[str, Any]:
    """Raw ``contentDetails`` passthrough for comma-separated ids (duration lookup)."""

    return await client.get_video_details(video_ids)


@router.post("/videos/metadata", response_model=MetadataResponse)
async def post_videos_metadata(
    payload: MetadataRequest,
    pipeline: BatchPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> MetadataResponse:
    """Fetch, classify and return all long-form videos in one response.

    Notes
    -----
    - Blocks until every chunk and probe has finished.
    - Items are the raw upstream ``videos.list`` entries of videos kept.
    - An upstream failure before any chunk succeeded answers 500.
    """

    if not payload.videoIds:
        return MetadataResponse(items=[])
    kept: list[VideoItem] = await pipeline.collect(payload.videoIds, settings.metadata_batch_size)
    logger.info("Metadata request filtered", extra={"requested": len(payload.videoIds), "kept": len(kept)})
    return MetadataResponse(items=[item.raw() for item in kept])


@router.post("/videos/metadata/stream")
async def post_videos_metadata_stream(
    payload: StreamMetadataRequest,
    pipeline: BatchPipeline = Depends(get_pipeline),
    settings: Settings = Depends(get_settings),
) -> StreamingResponse:
    """Stream batch records as newline-delimited JSON.

    Notes
    -----
    - Message types (one JSON object per line):
      - ``{"type":"batch","batchNumber":int,"totalBatches":int,"videos":[...],...}`` per chunk.
      - ``{"type":"complete","totalVideos":int,"totalBatches":int}`` once at the end.
      - ``{"type":"error","message":str}`` instead of ``complete`` on failure.
    - The body closes after the terminal record.
    """

    batch_size: int = payload.batchSize or settings.stream_batch_size
    logger.info(
        "Streaming metadata",
        extra={"requested": len(payload.videoIds), "batchSize": batch_size, "channelId": payload.channelId},
    )
    records = pipeline.stream(payload.videoIds, batch_size)
    return StreamingResponse(frame_records(records), media_type=MEDIA_TYPE)
