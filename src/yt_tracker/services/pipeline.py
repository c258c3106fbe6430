"""Batch pipeline: fetch metadata per chunk, drop Shorts, emit results chunk by chunk.

Chunks are processed strictly in order so batch records leave the pipeline in
ascending ``batchNumber`` order. Inside a chunk every candidate is classified
concurrently; the prober's global semaphore is the only concurrency limit.
"""
from __future__ import annotations

import asyncio
import logging
from typing import AsyncIterator, Awaitable, Callable, Protocol, Sequence

from yt_tracker.core.errors import InvalidRequestError, UpstreamAPIError
from yt_tracker.domain.upstream import VideoItem
from yt_tracker.domain.videos import (
    BatchRecord,
    Classification,
    CompleteRecord,
    EnrichedVideo,
    ErrorRecord,
    StreamRecord,
    VideoCandidate,
)
from yt_tracker.services.classifier import ShortsClassifier

logger = logging.getLogger(__name__)

MAX_BATCH_SIZE: int = 50

Emit = Callable[[StreamRecord], Awaitable[None]]


class VideoMetadataSource(Protocol):
    async def fetch_videos(self, video_ids: Sequence[str]) -> list[VideoItem]: ...


def partition(video_ids: Sequence[str], batch_size: int) -> list[list[str]]:
    """Split ``video_ids`` into consecutive chunks of ``batch_size``.

    Repeated ids are kept only at their first position, so each video is
    fetched, probed, and delivered once per request.

    Raises
    ------
    InvalidRequestError
        If ``batch_size`` is outside ``1..50`` or an id is not a non-empty string.
    """

    if isinstance(batch_size, bool) or not isinstance(batch_size, int) or not 1 <= batch_size <= MAX_BATCH_SIZE:
        raise InvalidRequestError(f"batchSize must be an integer between 1 and {MAX_BATCH_SIZE}")
    for video_id in video_ids:
        if not isinstance(video_id, str) or not video_id.strip():
            raise InvalidRequestError("videoIds must contain non-empty strings")
    unique: list[str] = list(dict.fromkeys(video_ids))
    return [unique[i : i + batch_size] for i in range(0, len(unique), batch_size)]


class BatchPipeline:
    """Drive classification over successive chunks of video ids.

    Parameters
    ----------
    source: VideoMetadataSource
        Upstream metadata provider; one ``fetch_videos`` call per chunk.
    classifier: ShortsClassifier
        Decides Short vs. LongForm per video.
    """

    def __init__(self, source: VideoMetadataSource, classifier: ShortsClassifier) -> None:
        self._source = source
        self._classifier = classifier

    async def _process_chunk(self, chunk: Sequence[str]) -> list[VideoItem]:
        """Return the long-form items of ``chunk`` in input order.

        Ids the API does not return (deleted or private videos) are dropped.
        """

        items: list[VideoItem] = await self._source.fetch_videos(chunk)
        by_id: dict[str, VideoItem] = {item.id: item for item in items}
        ordered: list[VideoItem] = [by_id[video_id] for video_id in chunk if video_id in by_id]

        verdicts: list[Classification] = await asyncio.gather(
            *(self._classifier.classify(VideoCandidate.from_item(item)) for item in ordered)
        )
        survivors: list[VideoItem] = [item for item, c in zip(ordered, verdicts) if not c.is_short]
        logger.info(
            "Chunk classified",
            extra={
                "requested": len(chunk),
                "found": len(ordered),
                "shorts": len(ordered) - len(survivors),
                "probeFailures": sum(1 for c in verdicts if c.error),
            },
        )
        return survivors

    async def stream(self, video_ids: Sequence[str], batch_size: int) -> AsyncIterator[StreamRecord]:
        """Yield one ``BatchRecord`` per chunk, then a single terminal record.

        Notes
        -----
        - Empty input yields only ``CompleteRecord(totalVideos=0, totalBatches=0)``.
        - A chunk whose metadata fetch fails still yields a batch record, with no videos.
        - Invalid input or an unexpected failure yields an ``ErrorRecord`` and ends the stream.
        - Closing the generator (client disconnect) stops before the next chunk starts.
        """

        try:
            chunks: list[list[str]] = partition(video_ids, batch_size)
        except InvalidRequestError as ex:
            yield ErrorRecord(message=str(ex))
            return

        total_batches: int = len(chunks)
        total_to_process: int = sum(len(chunk) for chunk in chunks)
        total_processed: int = 0
        total_videos: int = 0

        for number, chunk in enumerate(chunks, start=1):
            try:
                survivors: list[VideoItem] = await self._process_chunk(chunk)
            except UpstreamAPIError as ex:
                logger.warning("Skipping chunk after upstream failure", extra={"batchNumber": number, "error": str(ex)})
                survivors = []
            except Exception as ex:  # noqa: BLE001 - reported to the client as the terminal record
                logger.exception("Pipeline failed", extra={"batchNumber": number})
                yield ErrorRecord(message=str(ex) or type(ex).__name__)
                return

            videos: list[EnrichedVideo] = [EnrichedVideo.from_item(item) for item in survivors]
            total_processed += len(chunk)
            total_videos += len(videos)
            yield BatchRecord(
                batchNumber=number,
                totalBatches=total_batches,
                videos=videos,
                processedCount=len(chunk),
                totalProcessed=total_processed,
                totalToProcess=total_to_process,
            )

        yield CompleteRecord(totalVideos=total_videos, totalBatches=total_batches)

    async def run(self, video_ids: Sequence[str], batch_size: int, emit: Emit) -> None:
        """Push every record of ``stream`` to ``emit``."""

        records = self.stream(video_ids, batch_size)
        try:
            async for record in records:
                await emit(record)
        finally:
            await records.aclose()

    async def collect(self, video_ids: Sequence[str], batch_size: int = MAX_BATCH_SIZE) -> list[VideoItem]:
        """Run every chunk and return all long-form items at once.

        Raises
        ------
        InvalidRequestError
            On invalid ids or batch size.
        UpstreamAPIError
            If a chunk fails before any chunk has succeeded. Later failures are skipped.
        """

        chunks: list[list[str]] = partition(video_ids, batch_size)
        survivors: list[VideoItem] = []
        succeeded: bool = False
        for number, chunk in enumerate(chunks, start=1):
            try:
                items: list[VideoItem] = await self._process_chunk(chunk)
            except UpstreamAPIError as ex:
                if not succeeded:
                    raise
                logger.warning("Skipping chunk after upstream failure", extra={"batchNumber": number, "error": str(ex)})
                continue
            succeeded = True
            survivors.extend(items)
        return survivors
