"""ISO-8601 duration parsing for YouTube ``contentDetails.duration`` values.

Only the ``PT#H#M#S`` subset is supported; YouTube never reports days for regular
uploads and fractional seconds do not occur.
"""
from __future__ import annotations

import re
from typing import NamedTuple, Optional

_DURATION_RE: re.Pattern[str] = re.compile(r"PT(?:(\d+)H)?(?:(\d+)M)?(?:(\d+)S)?")


class ParsedDuration(NamedTuple):
    """Total seconds plus the display string shown next to a thumbnail."""

    seconds: int
    display: str


ZERO: ParsedDuration = ParsedDuration(0, "0:00")


def format_duration(seconds: int) -> str:
    """Render seconds as ``H:MM:SS`` or ``M:SS`` (minutes unpadded)."""

    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def to_iso_duration(seconds: int) -> str:
    """Render seconds in the canonical ``PT#H#M#S`` form (``PT0S`` for zero)."""

    seconds = max(0, int(seconds))
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    parts: list[str] = ["PT"]
    if hours:
        parts.append(f"{hours}H")
    if minutes:
        parts.append(f"{minutes}M")
    if secs or (not hours and not minutes):
        parts.append(f"{secs}S")
    return "".join(parts)


def parse_seconds(value: Optional[str]) -> Optional[int]:
    """Return total seconds, or ``None`` when ``value`` is not a ``PT#H#M#S`` duration."""

    if not value or not isinstance(value, str):
        return None
    match = _DURATION_RE.fullmatch(value.strip())
    if match is None:
        return None
    hours, minutes, secs = (int(g) if g else 0 for g in match.groups())
    return hours * 3600 + minutes * 60 + secs


def parse_duration(value: Optional[str]) -> ParsedDuration:
    """Parse an ISO-8601 duration into total seconds and a display string.

    Parameters
    ----------
    value: Optional[str]
        Duration such as ``"PT1H2M10S"``.

    Returns
    -------
    ParsedDuration
        ``(seconds, display)``; ``(0, "0:00")`` for empty or malformed input.

    Notes
    -----
    - Never raises. Missing components count as zero.
    """

    total: Optional[int] = parse_seconds(value)
    if total is None:
        return ZERO
    return ParsedDuration(total, format_duration(total))
