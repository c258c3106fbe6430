"""Domain models for classifying videos and the wire records built from them.

Internal state (candidates, probe results, classifications) uses frozen
dataclasses; request and response payloads use pydantic models with the
camelCase field names the browser client expects.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field

from yt_tracker.domain.duration import parse_duration
from yt_tracker.domain.upstream import VideoItem

WATCH_URL: str = "https://www.youtube.com/watch?v={video_id}"


@dataclass(frozen=True)
class VideoCandidate:
    """Raw input to classification."""

    id: str
    duration_iso: str
    title: str

    @classmethod
    def from_item(cls, item: VideoItem) -> "VideoCandidate":
        return cls(id=item.id, duration_iso=item.duration_iso, title=item.title)


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of inspecting a video's real pixel dimensions.

    Notes
    -----
    - ``None`` fields mean the tool did not report them.
    - ``aspect_ratio`` is ``width / height`` rounded to two decimals.
    """

    video_id: str
    width: Optional[int] = None
    height: Optional[int] = None
    aspect_ratio: Optional[float] = None

    @property
    def has_dimensions(self) -> bool:
        return bool(self.width and self.height and self.aspect_ratio is not None)


class Verdict(str, Enum):
    SHORT = "Short"
    LONG_FORM = "LongForm"


class Evidence(str, Enum):
    """What decided a verdict."""

    DURATION = "duration"
    TITLE = "title"
    ASPECT_RATIO = "aspect_ratio"
    NO_DIMENSIONS = "no_dimensions"
    PROBE_FAILED = "probe_failed"


@dataclass(frozen=True)
class Classification:
    verdict: Verdict
    evidence: Evidence
    probe: Optional[ProbeResult] = None
    error: Optional[str] = None

    @property
    def is_short(self) -> bool:
        return self.verdict is Verdict.SHORT


class EnrichedVideo(BaseModel):
    """Video card payload delivered to the client for long-form videos."""

    id: str = Field(description="YouTube video id")
    title: str = Field(description="Video title")
    thumbnailUrl: Optional[str] = Field(default=None, description="Card thumbnail URL")
    publishedAt: Optional[str] = Field(default=None, description="Upload time (ISO-8601)")
    durationDisplay: str = Field(description="Duration formatted as H:MM:SS or M:SS")
    url: str = Field(description="Watch page URL")

    @classmethod
    def from_item(cls, item: VideoItem) -> "EnrichedVideo":
        return cls(
            id=item.id,
            title=item.snippet.title or "No Title",
            thumbnailUrl=item.snippet.thumbnails.best_for_card(),
            publishedAt=item.snippet.publishedAt,
            durationDisplay=parse_duration(item.contentDetails.duration).display,
            url=WATCH_URL.format(video_id=item.id),
        )


class BatchRecord(BaseModel):
    """One processed chunk on the stream."""

    type: Literal["batch"] = "batch"
    batchNumber: int = Field(description="1-indexed, contiguous chunk number")
    totalBatches: int = Field(description="Number of chunks in this run")
    videos: list[EnrichedVideo] = Field(default_factory=list, description="Long-form videos of this chunk")
    processedCount: int = Field(description="Video ids handled in this chunk")
    totalProcessed: int = Field(description="Video ids handled so far")
    totalToProcess: int = Field(description="Video ids in the request")


class CompleteRecord(BaseModel):
    """Terminal record of a successful run."""

    type: Literal["complete"] = "complete"
    totalVideos: int = Field(description="Long-form videos delivered across all batches")
    totalBatches: int = Field(description="Number of batch records emitted")


class ErrorRecord(BaseModel):
    """Terminal record of a failed run."""

    type: Literal["error"] = "error"
    message: str = Field(description="Human-readable failure reason")


StreamRecord = Union[BatchRecord, CompleteRecord, ErrorRecord]


class MetadataRequest(BaseModel):
    """Request payload for the single-shot metadata endpoint."""

    videoIds: list[str] = Field(description="Video ids to fetch and filter")


class StreamMetadataRequest(BaseModel):
    """Request payload for the streaming metadata endpoint.

    Notes
    -----
    - ``batchSize`` falls back to the configured stream batch size; it must be
      between 1 and 50 (the upstream per-call id cap).
    - ``channelId`` is informational and only used for logging.
    """

    videoIds: list[str] = Field(description="Video ids to fetch and filter")
    batchSize: Optional[int] = Field(default=None, ge=1, le=50, description="Ids per emitted batch")
    channelId: Optional[str] = Field(default=None, description="Channel the ids belong to")


class MetadataResponse(BaseModel):
    items: list[dict] = Field(default_factory=list, description="Raw upstream items of long-form videos")
