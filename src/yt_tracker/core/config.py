"""Application configuration utilities.

This module defines application settings loaded from environment variables.
"""
from __future__ import annotations

import os
import sys
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from yt_tracker.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Typed application settings loaded from the environment.

    Notes
    -----
    - Environment variables are read with the ``YTT_`` prefix (e.g., ``YTT_PROBE_CONCURRENCY``).
    - The conventional ``YOUTUBE_API_KEY`` and ``PORT`` variables are honoured as well;
      see ``get_settings``.
    - Probe limits are process-wide: one semaphore and one cache are built from these
      values for the lifetime of the process.
    """

    model_config = SettingsConfigDict(env_prefix="YTT_", env_file=".env", extra="ignore")

    app_name: str = Field(default="YouTube Tracker", description="Application display name")
    debug: bool = Field(default=False, description="Enable debug mode")
    host: str = Field(default="127.0.0.1", description="Bind address for the development server")
    port: int = Field(default=3001, description="Port for the development server")
    cors_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser",
    )

    youtube_api_key: str | None = Field(
        default=None,
        description="YouTube Data API v3 key; endpoints that call the API fail without it",
    )
    youtube_api_base_url: str = Field(
        default="https://www.googleapis.com/youtube/v3",
        description="Base URL of the YouTube Data API",
    )
    upstream_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout for a single YouTube Data API request",
    )

    probe_concurrency: int = Field(
        default=5,
        description="Maximum number of media-inspection processes running at once",
    )
    probe_timeout_seconds: float = Field(
        default=30.0,
        description="Per-video timeout for one media-inspection process",
    )
    probe_cache_ttl_seconds: float = Field(
        default=30 * 60,
        description="Age after which a cached probe result is considered stale",
    )
    ytdlp_command: list[str] = Field(
        default_factory=lambda: [sys.executable, "-m", "yt_dlp"],
        description="Command prefix used to run yt-dlp out of process",
    )

    metadata_batch_size: int = Field(
        default=50,
        description="Chunk size for the single-shot metadata endpoint (upstream cap is 50)",
    )
    stream_batch_size: int = Field(
        default=10,
        description="Default chunk size for the streaming metadata endpoint",
    )
    channel_overfetch_factor: int = Field(
        default=4,
        description="Multiplier applied to maxResults when listing channel videos",
    )


def require_api_key(settings: Settings) -> str:
    """Return the configured API key or raise.

    Raises
    ------
    ConfigurationError
        If no YouTube API key is configured.
    """

    if not settings.youtube_api_key:
        raise ConfigurationError("YouTube API key is not configured (set YOUTUBE_API_KEY)")
    return settings.youtube_api_key


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load and cache application settings.

    Notes
    -----
    - Cached with ``functools.lru_cache(maxsize=1)`` to provide a single settings instance
      across the process. Subsequent calls return the same object.
    - ``YOUTUBE_API_KEY`` and ``PORT`` fill in the corresponding fields when the prefixed
      variables are absent.

    Returns
    -------
    Settings
        The application settings instance.
    """

    settings: Settings = Settings()
    api_key_env: str | None = os.environ.get("YOUTUBE_API_KEY")
    if api_key_env and not settings.youtube_api_key:
        settings.youtube_api_key = api_key_env
    port_env: str | None = os.environ.get("PORT")
    if port_env and "YTT_PORT" not in os.environ:
        try:
            settings.port = int(port_env)
        except ValueError as ex:
            raise ConfigurationError(f"PORT must be an integer, got {port_env!r}") from ex
    return settings
