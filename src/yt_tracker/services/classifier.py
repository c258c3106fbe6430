"""Two-tier Shorts detection: a cheap heuristic, then an aspect-ratio probe."""
from __future__ import annotations

import logging
from typing import Optional, Protocol

from yt_tracker.core.errors import ProbeError
from yt_tracker.domain.duration import parse_seconds
from yt_tracker.domain.videos import Classification, Evidence, ProbeResult, Verdict, VideoCandidate

logger = logging.getLogger(__name__)

MAX_SHORT_SECONDS: int = 120
PORTRAIT_RATIO: float = 0.8
TITLE_MARKERS: tuple[str, ...] = ("#shorts", "#short")


class SupportsProbe(Protocol):
    async def probe(self, video_id: str) -> ProbeResult: ...


def heuristic_evidence(candidate: VideoCandidate, max_seconds: int = MAX_SHORT_SECONDS) -> Evidence | None:
    """Return why ``candidate`` is obviously a Short, or ``None`` if it is not.

    Notes
    -----
    - Duration is checked first. A missing or unparsable duration (live streams
      report ``P0D``) gives no duration evidence; such videos go to the probe.
    - Title markers are matched case-insensitively as plain substrings.
    """

    seconds: Optional[int] = parse_seconds(candidate.duration_iso)
    if seconds is not None and seconds <= max_seconds:
        return Evidence.DURATION
    title: str = candidate.title.lower()
    if any(marker in title for marker in TITLE_MARKERS):
        return Evidence.TITLE
    return None


def is_heuristically_short(candidate: VideoCandidate, max_seconds: int = MAX_SHORT_SECONDS) -> bool:
    return heuristic_evidence(candidate, max_seconds) is not None


def is_portrait(result: ProbeResult, threshold: float = PORTRAIT_RATIO) -> bool:
    """True when the probed aspect ratio is portrait-dominant; missing dimensions are not."""

    if not result.has_dimensions:
        return False
    return result.aspect_ratio < threshold  # type: ignore[operator]


class ShortsClassifier:
    """Decide Short vs. LongForm for one candidate.

    Only candidates the heuristic cannot reject are probed, so probe volume is
    bounded by the borderline tail rather than the full candidate list. Probe
    failures fail open: the video is reported as LongForm.
    """

    def __init__(
        self,
        prober: SupportsProbe,
        max_short_seconds: int = MAX_SHORT_SECONDS,
        portrait_ratio: float = PORTRAIT_RATIO,
    ) -> None:
        self._prober = prober
        self._max_short_seconds = max_short_seconds
        self._portrait_ratio = portrait_ratio

    async def classify(self, candidate: VideoCandidate) -> Classification:
        evidence = heuristic_evidence(candidate, self._max_short_seconds)
        if evidence is not None:
            return Classification(verdict=Verdict.SHORT, evidence=evidence)

        try:
            result: ProbeResult = await self._prober.probe(candidate.id)
        except ProbeError as ex:
            logger.warning("Probe failed, keeping video", extra={"videoId": candidate.id, "cause": ex.cause})
            return Classification(verdict=Verdict.LONG_FORM, evidence=Evidence.PROBE_FAILED, error=str(ex))

        if not result.has_dimensions:
            logger.info("Probe returned no dimensions, keeping video", extra={"videoId": candidate.id})
            return Classification(verdict=Verdict.LONG_FORM, evidence=Evidence.NO_DIMENSIONS, probe=result)

        verdict: Verdict = Verdict.SHORT if is_portrait(result, self._portrait_ratio) else Verdict.LONG_FORM
        return Classification(verdict=verdict, evidence=Evidence.ASPECT_RATIO, probe=result)
