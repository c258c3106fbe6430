"""Async client for the subset of the YouTube Data API v3 used by the tracker."""
from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import httpx
from pydantic import ValidationError

from yt_tracker.core.errors import UpstreamAPIError
from yt_tracker.domain.upstream import SearchListResponse, VideoItem, VideoListResponse

logger = logging.getLogger(__name__)

MAX_IDS_PER_CALL: int = 50
MAX_RESULTS_PER_PAGE: int = 50


class YouTubeClient:
    """Thin wrapper over ``httpx.AsyncClient`` that injects the API key.

    Parameters
    ----------
    api_key: str
        YouTube Data API key.
    base_url: str
        API root, normally ``https://www.googleapis.com/youtube/v3``.
    timeout: float
        Per-request timeout in seconds.
    transport: Optional[httpx.AsyncBaseTransport]
        Custom transport; tests pass ``httpx.MockTransport``.

    Notes
    -----
    - A fresh ``httpx.AsyncClient`` is opened per call so the client can be shared
      by streaming responses that outlive the request handler.
    - Any non-2xx answer or transport failure raises ``UpstreamAPIError``.
    - Passthrough methods return the decoded JSON body untouched.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._api_key: str = api_key
        self._base_url: str = base_url.rstrip("/")
        self._timeout: float = timeout
        self._transport: Optional[httpx.AsyncBaseTransport] = transport

    async def _get(self, path: str, params: dict[str, Any]) -> dict[str, Any]:
        query: dict[str, Any] = {**params, "key": self._api_key}
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url, timeout=self._timeout, transport=self._transport
            ) as http:
                response: httpx.Response = await http.get(path, params=query)
        except httpx.HTTPError as ex:
            logger.error("YouTube API request failed", extra={"path": path, "error": str(ex)})
            raise UpstreamAPIError(f"YouTube API request failed: {ex}") from ex

        if response.is_error:
            logger.error(
                "YouTube API error",
                extra={"path": path, "status": response.status_code, "body": response.text},
            )
            raise UpstreamAPIError(
                f"YouTube API error: {response.status_code} - {response.text}",
                status_code=response.status_code,
            )
        try:
            data: Any = response.json()
        except ValueError as ex:
            raise UpstreamAPIError("YouTube API returned invalid JSON", status_code=response.status_code) from ex
        if not isinstance(data, dict):
            raise UpstreamAPIError("YouTube API returned an unexpected payload", status_code=response.status_code)
        return data

    async def get_channel(self, channel_id: str) -> dict[str, Any]:
        return await self._get("/channels", {"part": "snippet", "id": channel_id})

    async def list_channel_videos(self, channel_id: str, max_results: int) -> dict[str, Any]:
        """Most recent uploads of a channel via ``search.list``, newest first."""

        return await self._get(
            "/search",
            {
                "part": "snippet",
                "channelId": channel_id,
                "maxResults": min(max(max_results, 1), MAX_RESULTS_PER_PAGE),
                "order": "date",
                "type": "video",
            },
        )

    async def get_playlist(self, playlist_id: str) -> dict[str, Any]:
        return await self._get("/playlists", {"part": "snippet,contentDetails", "id": playlist_id})

    async def list_playlist_items(self, playlist_id: str, max_results: int) -> dict[str, Any]:
        return await self._get(
            "/playlistItems",
            {
                "part": "snippet",
                "playlistId": playlist_id,
                "maxResults": min(max(max_results, 1), MAX_RESULTS_PER_PAGE),
            },
        )

    async def get_video_details(self, video_ids: str) -> dict[str, Any]:
        """``videos.list`` with ``contentDetails`` only, ids comma-separated."""

        return await self._get("/videos", {"part": "contentDetails", "id": video_ids})

    async def fetch_videos(self, video_ids: Sequence[str]) -> list[VideoItem]:
        """Fetch snippet and content details for up to 50 videos in one call.

        Raises
        ------
        ValueError
            If more than 50 ids are requested.
        UpstreamAPIError
            If the API call fails.
        """

        if len(video_ids) > MAX_IDS_PER_CALL:
            raise ValueError(f"At most {MAX_IDS_PER_CALL} video ids per call, got {len(video_ids)}")
        if not video_ids:
            return []
        data: dict[str, Any] = await self._get(
            "/videos", {"part": "snippet,contentDetails", "id": ",".join(video_ids)}
        )
        try:
            return VideoListResponse.model_validate(data).items
        except ValidationError as ex:
            raise UpstreamAPIError(f"YouTube API returned malformed video items: {ex}") from ex

    async def search_channel_id(self, query: str) -> Optional[str]:
        """Return the channel id of the first channel search hit, if any."""

        data: dict[str, Any] = await self._get(
            "/search", {"part": "snippet", "type": "channel", "q": query, "maxResults": 1}
        )
        for item in SearchListResponse.model_validate(data).items:
            if item.channel_id:
                return item.channel_id
        return None
