"""Resolve a user-supplied channel/playlist reference to a concrete id."""
from __future__ import annotations

import logging
import re
from typing import Optional, Protocol
from urllib.parse import parse_qs, urlparse

from yt_tracker.core.errors import ResolutionError
from yt_tracker.domain.content import ContentType, ResolvedContent

logger = logging.getLogger(__name__)

PLAYLIST_PREFIXES: tuple[str, ...] = ("PL", "UU", "FL")
CHANNEL_PREFIX: str = "UC"

_PATH_NAME_RE: re.Pattern[str] = re.compile(r"/(?:c|user)/([^/?#]+)")
_HANDLE_RE: re.Pattern[str] = re.compile(r"@([^/?#]+)")
_CHANNEL_PATH_RE: re.Pattern[str] = re.compile(r"/channel/([^/?#]+)")
_BARE_ID_RE: re.Pattern[str] = re.compile(r"[A-Za-z0-9_-]+")


class SupportsChannelSearch(Protocol):
    async def search_channel_id(self, query: str) -> Optional[str]: ...


def _playlist_from_query(raw: str) -> Optional[str]:
    parsed = urlparse(raw if "://" in raw else f"https://{raw}")
    values = parse_qs(parsed.query).get("list")
    if values and values[0]:
        return values[0]
    # Fragments such as "watch?v=x&list=PL..." without a scheme/host still carry the id
    tail: str = raw.split("list=", 1)[1]
    return tail.split("&", 1)[0].split("#", 1)[0] or None


def classify_reference(raw: str) -> ResolvedContent | str | None:
    """Resolve what can be resolved without network access.

    Returns
    -------
    ResolvedContent | str | None
        A ``ResolvedContent`` for playlist/channel ids found in the input, a
        search query (``str``) for handles and custom names, or ``None`` when the
        input carries nothing usable.
    """

    text: str = raw.strip()
    if not text:
        return None

    if "list=" in text:
        playlist_id = _playlist_from_query(text)
        if playlist_id:
            return ResolvedContent(ContentType.PLAYLIST, playlist_id)

    match = _CHANNEL_PATH_RE.search(text)
    if match:
        return ResolvedContent(ContentType.CHANNEL, match.group(1))

    match = _HANDLE_RE.search(text)
    if match:
        return match.group(1)

    match = _PATH_NAME_RE.search(text)
    if match:
        return match.group(1)

    if "/" in text:
        return None
    if _BARE_ID_RE.fullmatch(text):
        if text.startswith(PLAYLIST_PREFIXES):
            return ResolvedContent(ContentType.PLAYLIST, text)
        if text.startswith(CHANNEL_PREFIX):
            return ResolvedContent(ContentType.CHANNEL, text)
    # Anything else is treated as a channel name to search for
    return text


async def resolve_content(raw: str, client: SupportsChannelSearch) -> ResolvedContent:
    """Resolve ``raw`` to a channel or playlist id.

    Notes
    -----
    - Handles and custom names are resolved through a channel search taking the
      first hit; handle collisions can therefore pick the wrong channel.

    Raises
    ------
    ResolutionError
        If no id can be derived from ``raw``.
    UpstreamAPIError
        If the channel search call fails.
    """

    reference = classify_reference(raw)
    if isinstance(reference, ResolvedContent):
        return reference
    if reference is None:
        raise ResolutionError("Could not extract channel ID from URL")

    channel_id: Optional[str] = await client.search_channel_id(reference)
    if not channel_id:
        raise ResolutionError(f"Could not extract channel ID from URL: no channel matches {reference!r}")
    logger.info("Resolved channel by search", extra={"query": reference, "channelId": channel_id})
    return ResolvedContent(ContentType.CHANNEL, channel_id)
