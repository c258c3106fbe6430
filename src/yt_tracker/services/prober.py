"""Probe service running yt-dlp out of process to read a video's real dimensions.

The prober is the only owner of process-global mutable state besides settings:
a TTL cache of probe results and a semaphore bounding concurrent yt-dlp
processes. Both live on a single ``Prober`` instance handed out by
``get_prober`` so every request in the process shares them.
"""
from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Awaitable, Callable, Optional, Sequence

from yt_tracker.core.config import Settings, get_settings
from yt_tracker.core.errors import ProbeError
from yt_tracker.domain.videos import WATCH_URL, ProbeResult

logger = logging.getLogger(__name__)

# Takes a video id, returns the tool's JSON document. Raises ProbeError on failure.
ProbeRunner = Callable[[str], Awaitable[dict[str, Any]]]
Clock = Callable[[], float]


@dataclass(frozen=True)
class CacheEntry:
    result: ProbeResult
    inserted_at: float


class ProbeCache:
    """Probe results keyed by video id, considered fresh for ``ttl_seconds``.

    Notes
    -----
    - A stale entry is dropped when it is looked up; there is no background sweep.
    - ``clock`` must be monotonic; tests pass a fake to simulate elapsed time.
    """

    def __init__(self, ttl_seconds: float, clock: Clock = time.monotonic) -> None:
        self._ttl: float = ttl_seconds
        self._clock: Clock = clock
        self._entries: dict[str, CacheEntry] = {}

    def get(self, video_id: str) -> Optional[ProbeResult]:
        entry = self._entries.get(video_id)
        if entry is None:
            return None
        if self._clock() - entry.inserted_at >= self._ttl:
            del self._entries[video_id]
            return None
        return entry.result

    def put(self, result: ProbeResult) -> None:
        self._entries[result.video_id] = CacheEntry(result=result, inserted_at=self._clock())

    def __len__(self) -> int:
        return len(self._entries)


def _as_dimension(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return None
    return int(value)


def result_from_metadata(video_id: str, metadata: dict[str, Any]) -> ProbeResult:
    """Build a ProbeResult from yt-dlp's ``-j`` output.

    Notes
    -----
    - Non-numeric or non-positive dimensions are treated as missing.
    - ``aspect_ratio`` is only set when both dimensions are known.
    """

    width: Optional[int] = _as_dimension(metadata.get("width"))
    height: Optional[int] = _as_dimension(metadata.get("height"))
    ratio: Optional[float] = round(width / height, 2) if width and height else None
    return ProbeResult(video_id=video_id, width=width, height=height, aspect_ratio=ratio)


def ytdlp_runner(command: Sequence[str]) -> ProbeRunner:
    """Return a runner that executes ``<command> -j --no-warnings --skip-download <url>``.

    Notes
    -----
    - The subprocess is killed if the awaiting task is cancelled, which is how
      ``Prober`` enforces its per-video timeout.
    """

    async def run(video_id: str) -> dict[str, Any]:
        url: str = WATCH_URL.format(video_id=video_id)
        try:
            proc = await asyncio.create_subprocess_exec(
                *command,
                "-j",
                "--no-warnings",
                "--skip-download",
                url,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as ex:
            raise ProbeError(video_id, f"could not start yt-dlp: {ex}") from ex

        try:
            stdout, stderr = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                proc.kill()
                await proc.wait()
            raise

        if proc.returncode != 0:
            detail: str = stderr.decode(errors="replace").strip() or f"exit code {proc.returncode}"
            raise ProbeError(video_id, detail)
        if stderr:
            logger.warning("yt-dlp stderr output", extra={"videoId": video_id, "stderr": stderr.decode(errors="replace")})
        try:
            data: Any = json.loads(stdout)
        except ValueError as ex:
            raise ProbeError(video_id, f"unparsable yt-dlp output: {ex}") from ex
        if not isinstance(data, dict):
            raise ProbeError(video_id, "unexpected yt-dlp output shape")
        return data

    return run


class Prober:
    """Cached, concurrency-limited access to the media-inspection tool.

    Parameters
    ----------
    runner: ProbeRunner
        Coroutine producing the tool's JSON output for one video id.
    concurrency: int
        Maximum number of runner invocations in flight at once.
    timeout_seconds: float
        Per-invocation timeout; starts once the invocation holds a slot.
    cache: ProbeCache
        Shared result cache.

    Notes
    -----
    - Waiters on the semaphore are served in FIFO order.
    - Concurrent calls for one video id share a single invocation and its outcome.
    - Failures are raised as ``ProbeError`` and never retried or cached.
    - The semaphore and in-flight futures belong to the event loop that first uses them.
    """

    def __init__(self, runner: ProbeRunner, concurrency: int, timeout_seconds: float, cache: ProbeCache) -> None:
        self._runner: ProbeRunner = runner
        self._semaphore: asyncio.Semaphore = asyncio.Semaphore(concurrency)
        self._timeout: float = timeout_seconds
        self._in_flight: dict[str, asyncio.Future[ProbeResult]] = {}
        self.cache: ProbeCache = cache

    async def probe(self, video_id: str) -> ProbeResult:
        """Return the dimensions of ``video_id``, from cache when fresh.

        Raises
        ------
        ProbeError
            On tool failure, timeout, or unparsable output.
        """

        cached: Optional[ProbeResult] = self.cache.get(video_id)
        if cached is not None:
            logger.debug("Probe cache hit", extra={"videoId": video_id})
            return cached

        pending: Optional[asyncio.Future[ProbeResult]] = self._in_flight.get(video_id)
        if pending is not None:
            logger.debug("Joining in-flight probe", extra={"videoId": video_id})
            return await asyncio.shield(pending)

        future: asyncio.Future[ProbeResult] = asyncio.get_running_loop().create_future()
        # Mark the outcome retrieved so an unjoined failure is not reported as never awaited
        future.add_done_callback(lambda f: f.cancelled() or f.exception())
        self._in_flight[video_id] = future
        try:
            result: ProbeResult = await self._invoke(video_id)
        except ProbeError as ex:
            future.set_exception(ex)
            raise
        except BaseException:
            # Cancelled or crashed owner; joined callers fail open instead of hanging
            future.set_exception(ProbeError(video_id, "probe interrupted"))
            raise
        else:
            future.set_result(result)
            return result
        finally:
            del self._in_flight[video_id]

    async def _invoke(self, video_id: str) -> ProbeResult:
        async with self._semaphore:
            logger.info("Running yt-dlp probe", extra={"videoId": video_id})
            try:
                metadata: dict[str, Any] = await asyncio.wait_for(self._runner(video_id), self._timeout)
            except asyncio.TimeoutError as ex:
                raise ProbeError(video_id, f"timed out after {self._timeout:g}s") from ex
            except ProbeError:
                raise
            except Exception as ex:  # noqa: BLE001 - any runner failure is a probe failure
                raise ProbeError(video_id, str(ex) or type(ex).__name__) from ex

        if not isinstance(metadata, dict):
            raise ProbeError(video_id, "unexpected probe output shape")
        result: ProbeResult = result_from_metadata(video_id, metadata)
        logger.info(
            "Probe finished",
            extra={"videoId": video_id, "width": result.width, "height": result.height, "aspectRatio": result.aspect_ratio},
        )
        self.cache.put(result)
        return result


def build_prober(settings: Settings) -> Prober:
    """Create a Prober wired to the real yt-dlp command from settings."""

    return Prober(
        runner=ytdlp_runner(settings.ytdlp_command),
        concurrency=settings.probe_concurrency,
        timeout_seconds=settings.probe_timeout_seconds,
        cache=ProbeCache(settings.probe_cache_ttl_seconds),
    )


@lru_cache(maxsize=1)
def get_prober() -> Prober:
    """Return the process-wide Prober (one cache, one semaphore).

    Notes
    -----
    - The instance is tied to the serving event loop; call ``get_prober.cache_clear()``
      before reusing it from a different loop.
    """

    return build_prober(get_settings())
