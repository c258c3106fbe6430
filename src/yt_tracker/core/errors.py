"""Error taxonomy for the tracker service.

Notes
-----
- HTTP mapping is done by the exception handlers registered in ``main.create_app``:
  ``InvalidRequestError`` maps to 400; ``UpstreamAPIError``, ``ResolutionError``
  and ``ConfigurationError`` map to 500. All of them render as ``{"error": message}``.
- ``ProbeError`` never reaches HTTP clients; the classifier converts it into a
  fail-open LongForm verdict.
"""
from __future__ import annotations

from typing import Optional


class TrackerError(Exception):
    """Base class for all service errors."""


class ConfigurationError(TrackerError):
    """Raised when required configuration (e.g., the API key) is missing."""


class InvalidRequestError(TrackerError):
    """Raised for malformed request input before any upstream work is done."""


class UpstreamAPIError(TrackerError):
    """Raised when the YouTube Data API answers non-2xx or cannot be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code: Optional[int] = status_code


class ResolutionError(TrackerError):
    """Raised when a channel or playlist id cannot be derived from user input."""


class ProbeError(TrackerError):
    """Raised when the media-inspection tool fails, times out, or returns garbage."""

    def __init__(self, video_id: str, cause: str) -> None:
        super().__init__(f"Probe failed for {video_id}: {cause}")
        self.video_id: str = video_id
        self.cause: str = cause
