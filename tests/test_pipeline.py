"""Unit tests for the batch pipeline using fake metadata and probe sources."""
from __future__ import annotations

import unittest
from typing import Any, Sequence

from yt_tracker.core.errors import InvalidRequestError, ProbeError, UpstreamAPIError
from yt_tracker.domain.upstream import VideoItem
from yt_tracker.domain.videos import BatchRecord, CompleteRecord, ErrorRecord, ProbeResult
from yt_tracker.services.classifier import ShortsClassifier
from yt_tracker.services.pipeline import BatchPipeline, partition


def _item(video_id: str, duration: str = "PT10M", title: str | None = None) -> VideoItem:
    return VideoItem.model_validate(
        {
            "kind": "youtube#video",
            "id": video_id,
            "snippet": {
                "title": title if title is not None else f"Video {video_id}",
                "publishedAt": "2024-05-01T12:00:00Z",
                "thumbnails": {
                    "default": {"url": f"https://i.ytimg.com/vi/{video_id}/default.jpg"},
                    "medium": {"url": f"https://i.ytimg.com/vi/{video_id}/mqdefault.jpg"},
                },
            },
            "contentDetails": {"duration": duration},
        }
    )


class _FakeSource:
    """Serves VideoItems from a catalog; optionally fails specific call numbers."""

    def __init__(self, catalog: dict[str, VideoItem], fail_calls: Sequence[int] = ()) -> None:
        self.catalog = catalog
        self.fail_calls = set(fail_calls)
        self.calls: list[list[str]] = []

    async def fetch_videos(self, video_ids: Sequence[str]) -> list[VideoItem]:
        self.calls.append(list(video_ids))
        if len(self.calls) in self.fail_calls:
            raise UpstreamAPIError("YouTube API error: 403 - quotaExceeded", status_code=403)
        # Upstream does not promise input order
        return [self.catalog[v] for v in reversed(video_ids) if v in self.catalog]


class _FakeProber:
    def __init__(self, failing: Sequence[str] = (), portrait: Sequence[str] = ()) -> None:
        self.failing = set(failing)
        self.portrait = set(portrait)
        self.probed: list[str] = []

    async def probe(self, video_id: str) -> ProbeResult:
        self.probed.append(video_id)
        if video_id in self.failing:
            raise ProbeError(video_id, "tool error")
        if video_id in self.portrait:
            return ProbeResult(video_id, 1080, 1920, 0.56)
        return ProbeResult(video_id, 1920, 1080, 1.78)


async def _collect(pipeline: BatchPipeline, ids: Sequence[str], batch_size: int) -> list[Any]:
    records: list[Any] = []

    async def emit(record: Any) -> None:
        records.append(record)

    await pipeline.run(ids, batch_size, emit)
    return records


class TestPartition(unittest.TestCase):
    """Tests for chunking and input validation."""

    def test_chunks_preserve_order(self) -> None:
        """Chunks are consecutive slices of the input."""
        self.assertEqual(partition(["a", "b", "c", "d", "e"], 2), [["a", "b"], ["c", "d"], ["e"]])
        self.assertEqual(partition([], 10), [])

    def test_repeated_ids_keep_first_position(self) -> None:
        """Duplicates are dropped after their first occurrence."""
        self.assertEqual(partition(["a", "b", "a", "c", "b"], 2), [["a", "b"], ["c"]])

    def test_rejects_invalid_batch_size_and_ids(self) -> None:
        """Batch sizes outside 1..50 and blank ids are rejected."""
        for size in (0, 51, -1):
            with self.subTest(size=size):
                with self.assertRaises(InvalidRequestError):
                    partition(["a"], size)
        with self.assertRaises(InvalidRequestError):
            partition(["a", " "], 10)


class TestBatchPipeline(unittest.IsolatedAsyncioTestCase):
    """Async tests for streaming and single-shot pipeline modes."""

    async def test_batches_are_ordered_and_complete_follows(self) -> None:
        """125 ids at batch size 50 yield batches 1, 2, 3 and one complete record."""
        ids: list[str] = [f"id{i:03d}" for i in range(125)]
        source = _FakeSource({v: _item(v) for v in ids})
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, ids, 50)

        self.assertEqual([type(r) for r in records], [BatchRecord, BatchRecord, BatchRecord, CompleteRecord])
        self.assertEqual([r.batchNumber for r in records[:3]], [1, 2, 3])
        self.assertTrue(all(r.totalBatches == 3 for r in records[:3]))
        self.assertEqual([r.processedCount for r in records[:3]], [50, 50, 25])
        self.assertEqual([r.totalProcessed for r in records[:3]], [50, 100, 125])
        self.assertEqual(records[-1], CompleteRecord(totalVideos=125, totalBatches=3))
        self.assertEqual([len(c) for c in source.calls], [50, 50, 25])

    async def test_empty_input_emits_only_complete(self) -> None:
        """No ids yields exactly one complete record with zero counts."""
        source = _FakeSource({})
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, [], 10)

        self.assertEqual(records, [CompleteRecord(totalVideos=0, totalBatches=0)])
        self.assertEqual(source.calls, [])

    async def test_end_to_end_filtering_keeps_order_and_fails_open(self) -> None:
        """2 title Shorts dropped, 1 probe failure kept, 3 normal kept, order preserved."""
        catalog: dict[str, VideoItem] = {
            "n1": _item("n1"),
            "s1": _item("s1", title="Day in my life #shorts"),
            "f1": _item("f1"),
            "n2": _item("n2", duration="PT1H3M"),
            "s2": _item("s2", title="Quick tip #Short"),
            "n3": _item("n3"),
        }
        ids: list[str] = list(catalog)
        prober = _FakeProber(failing=["f1"])
        pipeline = BatchPipeline(_FakeSource(catalog), ShortsClassifier(prober))

        records = await _collect(pipeline, ids, 50)

        batch: BatchRecord = records[0]
        self.assertEqual([v.id for v in batch.videos], ["n1", "f1", "n2", "n3"])
        self.assertEqual(records[-1], CompleteRecord(totalVideos=4, totalBatches=1))
        self.assertNotIn("s1", prober.probed)
        self.assertNotIn("s2", prober.probed)

        video = batch.videos[2]
        self.assertEqual(video.durationDisplay, "1:03:00")
        self.assertEqual(video.url, "https://www.youtube.com/watch?v=n2")
        self.assertEqual(video.thumbnailUrl, "https://i.ytimg.com/vi/n2/mqdefault.jpg")
        self.assertEqual(video.publishedAt, "2024-05-01T12:00:00Z")

    async def test_portrait_videos_are_dropped(self) -> None:
        """Long vertical uploads are removed by the aspect-ratio probe."""
        catalog = {"a": _item("a", duration="PT2M30S"), "b": _item("b")}
        pipeline = BatchPipeline(_FakeSource(catalog), ShortsClassifier(_FakeProber(portrait=["a"])))

        records = await _collect(pipeline, ["a", "b"], 10)

        self.assertEqual([v.id for v in records[0].videos], ["b"])

    async def test_failed_chunk_is_skipped_and_numbering_stays_contiguous(self) -> None:
        """An upstream error empties that batch but processing continues."""
        ids: list[str] = [f"id{i}" for i in range(6)]
        source = _FakeSource({v: _item(v) for v in ids}, fail_calls=[2])
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, ids, 2)

        self.assertEqual([r.batchNumber for r in records[:3]], [1, 2, 3])
        self.assertEqual([len(r.videos) for r in records[:3]], [2, 0, 2])
        self.assertEqual(records[-1], CompleteRecord(totalVideos=4, totalBatches=3))

    async def test_invalid_batch_size_emits_error(self) -> None:
        """Malformed input produces a single error record and no batches."""
        pipeline = BatchPipeline(_FakeSource({}), ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, ["a"], 500)

        self.assertEqual(len(records), 1)
        self.assertIsInstance(records[0], ErrorRecord)

    async def test_unexpected_failure_terminates_with_error(self) -> None:
        """A non-upstream exception ends the stream with an error record."""

        class _Exploding(_FakeSource):
            async def fetch_videos(self, video_ids: Sequence[str]) -> list[VideoItem]:
                raise KeyError("snippet")

        pipeline = BatchPipeline(_Exploding({}), ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, ["a", "b"], 1)

        self.assertEqual(len(records), 1)
        self.assertIsInstance(records[0], ErrorRecord)

    async def test_closing_stream_stops_further_chunks(self) -> None:
        """A consumer that stops after the first batch prevents later fetches."""
        ids: list[str] = [f"id{i}" for i in range(30)]
        source = _FakeSource({v: _item(v) for v in ids})
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        records = pipeline.stream(ids, 10)
        first = await records.__anext__()
        await records.aclose()

        self.assertEqual(first.batchNumber, 1)
        self.assertEqual(len(source.calls), 1)

    async def test_repeated_ids_are_probed_and_delivered_once(self) -> None:
        """A video id listed twice yields one probe and one kept video."""
        prober = _FakeProber()
        source = _FakeSource({"a": _item("a"), "b": _item("b")})
        pipeline = BatchPipeline(source, ShortsClassifier(prober))

        kept = await pipeline.collect(["a", "b", "a"])

        self.assertEqual([item.id for item in kept], ["a", "b"])
        self.assertEqual(sorted(prober.probed), ["a", "b"])
        self.assertEqual(source.calls, [["a", "b"]])

    async def test_repeated_ids_do_not_inflate_counters(self) -> None:
        """Batch and complete counters count distinct videos."""
        pipeline = BatchPipeline(_FakeSource({"a": _item("a")}), ShortsClassifier(_FakeProber()))

        records = await _collect(pipeline, ["a", "a", "a"], 2)

        self.assertEqual(len(records), 2)
        self.assertEqual(records[0].totalToProcess, 1)
        self.assertEqual(records[0].processedCount, 1)
        self.assertEqual(records[-1], CompleteRecord(totalVideos=1, totalBatches=1))

    async def test_collect_fails_when_first_chunk_fails(self) -> None:
        """Single-shot mode surfaces an upstream error before any success."""
        source = _FakeSource({"a": _item("a")}, fail_calls=[1])
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        with self.assertRaises(UpstreamAPIError):
            await pipeline.collect(["a"])

    async def test_collect_skips_later_failures(self) -> None:
        """Single-shot mode keeps results once a chunk succeeded."""
        ids: list[str] = ["a", "b", "c"]
        source = _FakeSource({v: _item(v) for v in ids}, fail_calls=[2])
        pipeline = BatchPipeline(source, ShortsClassifier(_FakeProber()))

        kept = await pipeline.collect(ids, batch_size=1)

        self.assertEqual([item.id for item in kept], ["a", "c"])


if __name__ == "__main__":
    unittest.main()
