"""Unit tests for NDJSON framing and incremental decoding."""
from __future__ import annotations

import unittest
from typing import Any, AsyncIterator

from yt_tracker.domain.videos import BatchRecord, CompleteRecord, EnrichedVideo
from yt_tracker.infra.ndjson import NdjsonDecoder, decode_stream, encode_record, frame_records, read_records


def _batch() -> BatchRecord:
    return BatchRecord(
        batchNumber=1,
        totalBatches=1,
        videos=[
            EnrichedVideo(
                id="abc",
                title="Line\nbreak in title",
                thumbnailUrl=None,
                publishedAt="2024-01-01T00:00:00Z",
                durationDisplay="10:00",
                url="https://www.youtube.com/watch?v=abc",
            )
        ],
        processedCount=1,
        totalProcessed=1,
        totalToProcess=1,
    )


class TestNdjson(unittest.TestCase):
    """Tests for encode_record and NdjsonDecoder."""

    def test_record_is_one_line(self) -> None:
        """Embedded newlines are escaped so each record occupies exactly one line."""
        line: bytes = encode_record(_batch())
        self.assertTrue(line.endswith(b"\n"))
        self.assertEqual(line.count(b"\n"), 1)

    def test_decoder_reassembles_split_records(self) -> None:
        """Records split at arbitrary byte offsets are reconstructed in order."""
        body: bytes = encode_record(_batch()) + encode_record(CompleteRecord(totalVideos=1, totalBatches=1))
        for step in (1, 3, 7, len(body)):
            with self.subTest(step=step):
                chunks: list[bytes] = [body[i : i + step] for i in range(0, len(body), step)]
                records: list[dict[str, Any]] = decode_stream(chunks)
                self.assertEqual([r["type"] for r in records], ["batch", "complete"])
                self.assertEqual(records[0]["videos"][0]["title"], "Line\nbreak in title")

    def test_decoder_buffers_partial_line(self) -> None:
        """A partial line yields nothing until its newline arrives; flush handles a missing final newline."""
        decoder = NdjsonDecoder()
        self.assertEqual(decoder.feed(b'{"type":"comp'), [])
        self.assertEqual(decoder.feed('lete","totalVideos":0,"totalBatches":0}\n{"type":"x"}'), [
            {"type": "complete", "totalVideos": 0, "totalBatches": 0}
        ])
        self.assertEqual(decoder.flush(), [{"type": "x"}])
        self.assertEqual(decoder.flush(), [])


class TestNdjsonAsync(unittest.IsolatedAsyncioTestCase):
    """Async framing and reading."""

    async def test_frame_then_read(self) -> None:
        """frame_records output can be consumed by read_records."""

        async def produce() -> AsyncIterator[Any]:
            yield _batch()
            yield CompleteRecord(totalVideos=1, totalBatches=1)

        frames: list[bytes] = [frame async for frame in frame_records(produce())]
        self.assertEqual(len(frames), 2)

        async def chunks() -> AsyncIterator[bytes]:
            body: bytes = b"".join(frames)
            for i in range(0, len(body), 5):
                yield body[i : i + 5]

        types: list[str] = [record["type"] async for record in read_records(chunks())]
        self.assertEqual(types, ["batch", "complete"])


if __name__ == "__main__":
    unittest.main()
