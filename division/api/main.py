"""
Division HTTP API.

FastAPI application exposing the coordinator over JSON, SSE and NDJSON.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

from division import __version__
from division.core.config import Settings, get_settings
from division.core.logging import configure_logging
from division.core.orchestrator import Division
from division.knowledge.database import close_db, open_catalog


def create_app(division: Division | None = None, settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        division: Orchestrator to serve. Built from settings at startup if omitted.
        settings: Optional settings override.

    Returns:
        Configured application.
    """
    settings = settings or (division.settings if division else get_settings())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings)
        logger.info("Starting Division API...")

        uses_db = False
        if getattr(app.state, "division", None) is None:
            catalog, uses_db = await open_catalog(settings)
            app.state.division = Division(settings=settings, catalog=catalog)

        yield

        if uses_db:
            await close_db()
        logger.info("Shutting down Division API...")

    app = FastAPI(
        title="Division API",
        description="Multi-AI coordinator: leader decomposition, wave scheduling, live events",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.division = division

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from division.api.routes import agent

    app.include_router(agent.router, prefix="/api/agent", tags=["agent"])

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        """
        Health check endpoint.

        Returns:
            Health status and version.
        """
        return {"status": "healthy", "version": __version__}

    return app


app = create_app()
