"""FastAPI application entrypoint for the YouTube Tracker service."""
from __future__ import annotations

import logging
from typing import Final

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from yt_tracker.api.http import router as api_router
from yt_tracker.core.config import Settings, get_settings
from yt_tracker.core.errors import InvalidRequestError, TrackerError
from yt_tracker.core.logging import setup_logging

logger = logging.getLogger(__name__)


def _describe_validation_error(exc: RequestValidationError) -> str:
    parts: list[str] = []
    for err in exc.errors():
        loc: str = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        parts.append(f"{loc}: {err.get('msg')}" if loc else str(err.get("msg")))
    return "; ".join(parts) or "Invalid request"


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Notes
    -----
    - The browser UI is served separately; this app only exposes JSON and NDJSON APIs.
    - Errors are rendered as ``{"error": message}``: request validation answers 400,
      every other service error answers 500.
    - Logging is configured up front based on settings; settings are loaded once.

    Returns
    -------
    FastAPI
        The configured FastAPI application.
    """

    settings: Settings = get_settings()
    setup_logging(settings.debug)
    if not settings.youtube_api_key:
        logger.warning("YOUTUBE_API_KEY is not set; YouTube API endpoints will fail")

    app: FastAPI = FastAPI(title=settings.app_name)
    app.add_middleware(CORSMiddleware, allow_origins=settings.cors_origins, allow_methods=["*"], allow_headers=["*"])
    app.include_router(api_router)

    @app.exception_handler(RequestValidationError)
    async def on_request_validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": _describe_validation_error(exc)})

    @app.exception_handler(InvalidRequestError)
    async def on_invalid_request(_: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.exception_handler(TrackerError)
    async def on_tracker_error(request: Request, exc: TrackerError) -> JSONResponse:
        logger.error("Request failed", extra={"path": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health", tags=["system"])
    def health() -> dict[str, str]:
        """Health check endpoint.

        Notes
        -----
        - Lightweight liveness probe intended for readiness checks; does not perform
          external calls.
        """

        return {"status": "OK"}

    return app


app: Final[FastAPI] = create_app()


if __name__ == "__main__":
    import uvicorn

    _settings: Settings = get_settings()
    uvicorn.run("yt_tracker.main:app", host=_settings.host, port=_settings.port, reload=_settings.debug)
