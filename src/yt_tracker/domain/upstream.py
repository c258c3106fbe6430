"""Typed views over the YouTube Data API v3 responses this service consumes.

Every field is optional because the API omits parts that were not requested and
drops fields for private or deleted videos. Unknown fields are retained
(``extra="allow"``) so filtered items can be handed back to clients unchanged.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _Upstream(BaseModel):
    model_config = ConfigDict(extra="allow")


class Thumbnail(_Upstream):
    url: Optional[str] = None
    width: Optional[int] = None
    height: Optional[int] = None


class Thumbnails(_Upstream):
    default: Optional[Thumbnail] = None
    medium: Optional[Thumbnail] = None
    high: Optional[Thumbnail] = None

    def best_for_card(self) -> Optional[str]:
        """Return the thumbnail used on video cards: medium, then default, then high."""

        for thumb in (self.medium, self.default, self.high):
            if thumb is not None and thumb.url:
                return thumb.url
        return None


class VideoSnippet(_Upstream):
    title: Optional[str] = None
    description: Optional[str] = None
    publishedAt: Optional[str] = None
    channelId: Optional[str] = None
    channelTitle: Optional[str] = None
    thumbnails: Thumbnails = Field(default_factory=Thumbnails)


class ContentDetails(_Upstream):
    duration: Optional[str] = None


class VideoItem(_Upstream):
    """One entry of ``videos.list`` (``part=snippet,contentDetails``)."""

    id: str
    snippet: VideoSnippet = Field(default_factory=VideoSnippet)
    contentDetails: ContentDetails = Field(default_factory=ContentDetails)

    @property
    def title(self) -> str:
        return self.snippet.title or ""

    @property
    def duration_iso(self) -> str:
        return self.contentDetails.duration or ""

    def raw(self) -> dict:
        """Return the item as the API delivered it."""

        return self.model_dump(mode="json", exclude_unset=True)


class VideoListResponse(_Upstream):
    items: list[VideoItem] = Field(default_factory=list)


class SearchId(_Upstream):
    kind: Optional[str] = None
    videoId: Optional[str] = None
    channelId: Optional[str] = None
    playlistId: Optional[str] = None


class SearchSnippet(_Upstream):
    channelId: Optional[str] = None
    title: Optional[str] = None


class SearchItem(_Upstream):
    id: SearchId = Field(default_factory=SearchId)
    snippet: SearchSnippet = Field(default_factory=SearchSnippet)

    @property
    def channel_id(self) -> Optional[str]:
        return self.snippet.channelId or self.id.channelId


class SearchListResponse(_Upstream):
    items: list[SearchItem] = Field(default_factory=list)
