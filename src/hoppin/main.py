"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from hoppin.config import get_settings
from hoppin.gamification.router import router as gamification_router
from hoppin.health.router import router as health_router
from hoppin.middleware import setup_middleware
from hoppin.redis_client import close_redis, init_redis
from hoppin.store.client import close_store, init_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_store(settings)
    if settings.publish_events:
        await init_redis(settings.redis_url)
    else:
        logger.info("Event publishing disabled")

    yield

    await close_store()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Hoppin Gamification API",
        description="Visit rewards, badge tiers and daily streaks for Hoppin",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(gamification_router)

    return app


app = create_app()
