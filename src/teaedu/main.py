"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from teaedu.chain.client import close_chain, init_chain
from teaedu.chain.router import router as chain_router
from teaedu.config import get_settings
from teaedu.database import close_db, init_db
from teaedu.health.router import router as health_router
from teaedu.middleware import setup_middleware
from teaedu.progress.router import router as progress_router
from teaedu.redis_client import close_redis, init_redis
from teaedu.rewards.router import function_router as reward_function_router
from teaedu.rewards.router import router as rewards_router
from teaedu.wallets.router import router as wallets_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, required=settings.environment == "production")
    init_chain(settings)
    if settings.distributor_private_key is None:
        logger.warning("distributor_key_missing", detail="reward claims will fail until TEA_DISTRIBUTOR_PRIVATE_KEY is set")

    yield

    close_chain()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="TEA Education API",
        description="Backend API for the TEA crypto course: progress, wallets and completion rewards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progress_router)
    app.include_router(wallets_router)
    app.include_router(chain_router)
    app.include_router(rewards_router)
    app.include_router(reward_function_router)

    return app


app = create_app()
