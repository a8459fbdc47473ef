"""
FastAPI application entrypoint for the dropcart dashboard API.

This module sets up the FastAPI app, configures logging, and registers
route handlers.
"""

from __future__ import annotations

import redis
from dotenv import load_dotenv
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routes import drops, pages, settings
from shared.config import get_config
from shared.logging import configure_from_config, get_logger

load_dotenv()

logger = get_logger(__name__)


async def _redis_unavailable(request: Request, exc: redis.ConnectionError) -> JSONResponse:
    logger.error("redis_unavailable", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": "Settings store unavailable"},
    )


async def _bad_request(request: Request, exc: ValueError) -> JSONResponse:
    logger.warning("bad_request", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"detail": str(exc)})


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    config = get_config()
    configure_from_config(config)

    app = FastAPI(
        title="dropcart API",
        description="Settings, auto-checkout toggle, drop alerts and page command relay",
        version="0.1.0",
    )

    # CORS middleware (dashboard runs on another origin)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(redis.ConnectionError, _redis_unavailable)
    app.add_exception_handler(ValueError, _bad_request)

    app.include_router(settings.router)
    app.include_router(drops.router)
    app.include_router(pages.router)

    @app.get("/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
