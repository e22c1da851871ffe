# PolicyCore - Policy Decision Management System
# Copyright (C) 2025 Luiz Frias <luizf35@gmail.com>
# Form F[x] Labs
#
# This software is dual-licensed under AGPL-3.0 and Commercial License.
# For commercial licensing, contact: luizf35@gmail.com
# See LICENSE file for full terms.

"""Main FastAPI application entry point."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import uvicorn
from beartype import beartype
from fastapi import FastAPI

from .api.v1 import router as v1_router
from .api.v1.health import router as health_router
from .core.config import get_settings
from .core.logging_utils import configure_logging
from .services.rating.offload import RatingComputationChannel
from .services.rating.store import InMemoryRateProgramStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Manage application lifecycle - startup and shutdown."""
    settings = get_settings()
    configure_logging(level=settings.log_level)
    logger.info("Starting %s in %s mode", settings.app_name, settings.api_env)

    app.state.channel = RatingComputationChannel()
    if getattr(app.state, "store", None) is None:
        app.state.store = InMemoryRateProgramStore()
    logger.info(
        "Rating computation channel ready (%s pool)", app.state.channel.mode
    )

    yield

    logger.info("Shutting down %s", settings.app_name)
    app.state.channel.close()


@beartype
def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Rating calculation engine and rate program lifecycle",
        version="1.0.0",
        docs_url="/docs" if not settings.is_production else None,
        redoc_url="/redoc" if not settings.is_production else None,
        openapi_url="/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    app.include_router(health_router, tags=["health"])
    app.include_router(v1_router)

    return app


@beartype
def main() -> None:
    """Run the main application entry point."""
    settings = get_settings()

    uvicorn.run(
        "ratebook.main:create_app",
        factory=True,
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.is_development,
        log_level="info" if not settings.is_production else "error",
    )


if __name__ == "__main__":
    main()
