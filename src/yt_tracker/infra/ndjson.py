"""Newline-delimited JSON framing for streamed batch records.

Each record travels as one JSON object followed by ``\\n``. Producers wrap an
async iterator of pydantic models with ``frame_records``; consumers feed raw
chunks (which may split records anywhere) into ``NdjsonDecoder``.
"""
from __future__ import annotations

import json
from typing import Any, AsyncIterable, AsyncIterator, Iterable

from pydantic import BaseModel

MEDIA_TYPE: str = "application/x-ndjson"


def encode_record(record: BaseModel) -> bytes:
    """Serialize one record as a single NDJSON line."""

    return record.model_dump_json().encode("utf-8") + b"\n"


async def frame_records(records: AsyncIterable[BaseModel]) -> AsyncIterator[bytes]:
    """Encode each record as soon as the producer yields it."""

    async for record in records:
        yield encode_record(record)


class NdjsonDecoder:
    """Reassemble JSON objects from arbitrarily split byte chunks.

    Notes
    -----
    - Incomplete trailing data is buffered until the next ``feed``.
    - Blank lines are ignored. A malformed complete line raises ``ValueError``.
    """

    def __init__(self) -> None:
        self._buffer: bytes = b""

    def feed(self, chunk: bytes | str) -> list[dict[str, Any]]:
        if isinstance(chunk, str):
            chunk = chunk.encode("utf-8")
        self._buffer += chunk
        *lines, self._buffer = self._buffer.split(b"\n")
        return [json.loads(line) for line in lines if line.strip()]

    def flush(self) -> list[dict[str, Any]]:
        """Decode whatever remains once the stream has ended."""

        rest, self._buffer = self._buffer, b""
        return [json.loads(rest)] if rest.strip() else []


def decode_stream(chunks: Iterable[bytes | str]) -> list[dict[str, Any]]:
    """Decode a complete NDJSON body delivered as ``chunks``."""

    decoder = NdjsonDecoder()
    records: list[dict[str, Any]] = []
    for chunk in chunks:
        records.extend(decoder.feed(chunk))
    records.extend(decoder.flush())
    return records


async def read_records(chunks: AsyncIterable[bytes]) -> AsyncIterator[dict[str, Any]]:
    """Yield records from an async byte stream, e.g. ``httpx.Response.aiter_bytes()``."""

    decoder = NdjsonDecoder()
    async for chunk in chunks:
        for record in decoder.feed(chunk):
            yield record
    for record in decoder.flush():
        yield record
