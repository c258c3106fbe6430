"""Models describing what a user-supplied channel or playlist reference resolves to."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ContentType(str, Enum):
    CHANNEL = "channel"
    PLAYLIST = "playlist"


@dataclass(frozen=True)
class ResolvedContent:
    """A channel or playlist id derived from a URL or raw identifier."""

    content_type: ContentType
    content_id: str

    def to_payload(self) -> dict[str, Any]:
        """Render the ``extract-channel-id`` response body."""

        if self.content_type is ContentType.PLAYLIST:
            return {"playlistId": self.content_id, "type": ContentType.PLAYLIST.value}
        return {"channelId": self.content_id}


class ExtractChannelRequest(BaseModel):
    """Request payload to resolve a channel or playlist reference."""

    url: str = Field(description="Channel/playlist URL, @handle, or bare id")
