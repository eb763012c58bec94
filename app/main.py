"""
HTML Arcade

FastAPI application for uploading, moderating and playing browser games.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .api.router import api_router
from .config import Settings, get_settings
from .infra.db.session import close_db, configure_engine, init_db
from .services.errors import GameServiceError
from .services.ingestion import SlugClaims
from .services.scratch_sweeper import ScratchSweeper
from .storage import get_storage_backend
from .storage.local import THUMBNAIL_URL_PREFIX
from .utils.logging_utils import configure_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings
    logger.info("Starting %s (storage=%s)...", settings.app_name, app.state.storage.name)

    configure_engine(settings.database_url, echo=settings.debug)
    await init_db()
    logger.info("Database tables initialized")

    sweeper = ScratchSweeper(
        settings.scratch_dir,
        max_age_seconds=settings.scratch_max_age_seconds,
        interval_seconds=settings.scratch_sweep_interval_seconds,
    )
    sweeper.start()

    yield

    # Shutdown
    await sweeper.stop()
    await app.state.storage.aclose()
    await app.state.http_client.aclose()
    await close_db()
    logger.info("Shutting down %s...", settings.app_name)


async def game_service_error_handler(request: Request, exc: GameServiceError) -> JSONResponse:
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # Malformed input is a client error like any other rejected upload.
    return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=400)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or get_settings()
    settings.ensure_dirs()
    configure_logging(settings.logs_dir, "DEBUG" if settings.debug else "INFO")

    app = FastAPI(
        title=settings.app_name,
        description="Upload, moderate and play HTML games",
        version=settings.app_version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.storage = get_storage_backend(settings)
    app.state.http_client = httpx.AsyncClient(timeout=settings.remote_fetch_timeout)
    app.state.slug_claims = SlugClaims()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(GameServiceError, game_service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(api_router)

    if app.state.storage.name == "local":
        logger.info("Serving thumbnails from: %s", settings.thumbnails_dir)
        app.mount(
            THUMBNAIL_URL_PREFIX,
            StaticFiles(directory=str(settings.thumbnails_dir)),
            name="thumbnails",
        )

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:create_app", host="0.0.0.0", port=8000, reload=True, factory=True)
