"""FastAPI dependencies wiring services to request handlers.

Tests replace these through ``app.dependency_overrides``.
"""
from __future__ import annotations

from fastapi import Depends

from yt_tracker.core.config import Settings, get_settings, require_api_key
from yt_tracker.services.classifier import ShortsClassifier
from yt_tracker.services.pipeline import BatchPipeline
from yt_tracker.services.prober import Prober, get_prober
from yt_tracker.services.youtube_api import YouTubeClient


def get_youtube_client(settings: Settings = Depends(get_settings)) -> YouTubeClient:
    """Build an API client; raises ``ConfigurationError`` when no key is configured."""

    return YouTubeClient(
        api_key=require_api_key(settings),
        base_url=settings.youtube_api_base_url,
        timeout=settings.upstream_timeout_seconds,
    )


def get_pipeline(
    client: YouTubeClient = Depends(get_youtube_client),
    prober: Prober = Depends(get_prober),
) -> BatchPipeline:
    """Pipeline for one request, sharing the process-wide prober."""

    return BatchPipeline(source=client, classifier=ShortsClassifier(prober))
