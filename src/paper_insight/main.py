"""
Paper Insight Application Entry Point

This module defines the FastAPI application factory, registers all routers,
configures logging and global exception handling.

Design Goals
------------
- Configuration built once and injected, never imported as a global
- Centralized router registration
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .api import analysis_routes, health_routes, project_routes, search_routes
from .config import Settings, get_settings
from .core.errors import (
    PaperInsightError,
    paper_insight_error_handler,
    unhandled_exception_handler,
)
from .db.session import create_session_factory, init_models

logger = logging.getLogger("paper_insight.app")

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    settings : Settings, optional
        Explicit configuration; read from the environment when omitted.

    Returns
    -------
    FastAPI
        Fully configured application. The database engine is created here
        but not connected until the first request or startup.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    engine, session_factory = create_session_factory(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "Starting paper-insight (embedding provider=%s)",
            settings.embedding_provider,
        )
        await init_models(engine)
        yield
        logger.info("Shutting down paper-insight")
        await engine.dispose()

    app = FastAPI(
        title="paper-insight",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.embedding_provider = None
    app.state.generation_client = None

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(PaperInsightError, paper_insight_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(project_routes.router)
    app.include_router(search_routes.router)
    app.include_router(analysis_routes.router)

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
