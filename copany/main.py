"""FastAPI application instance."""
from __future__ import annotations

from fastapi import FastAPI

from copany.core import get_logger
from copany.routers import distributions_router

LOGGER = get_logger(__name__)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(title="Copany Distributions", version="0.1.0")
    app.include_router(distributions_router)

    @app.get("/health", tags=["health"])
    def health() -> dict[str, str]:
        return {"status": "ok"}

    LOGGER.info("FastAPI application initialised")
    return app


app = create_app()
