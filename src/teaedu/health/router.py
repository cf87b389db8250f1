"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from web3.exceptions import Web3Exception

from teaedu.chain.client import get_web3
from teaedu.config import get_settings
from teaedu.database import get_session
from teaedu.redis_client import get_redis_optional

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe: database, Redis (when configured) and the RPC node."""
    checks: dict[str, object] = {}

    try:
        result = await db.execute(text("SELECT 1"))
        result.scalar()
        checks["database"] = "ok"
    except SQLAlchemyError as exc:
        checks["database"] = f"error: {exc}"

    redis = get_redis_optional()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except RedisError as exc:
            checks["redis"] = f"error: {exc}"

    try:
        block = await get_web3().eth.block_number
        checks["chain"] = "ok"
        checks["block_number"] = block
    except RuntimeError:
        checks["chain"] = "disabled"
    except (Web3Exception, OSError) as exc:
        checks["chain"] = f"error: {exc}"

    failed = [k for k in ("database", "redis", "chain") if str(checks[k]).startswith("error")]
    return {"status": "degraded" if failed else "ready", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version, environment and target chain."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "chain_id": str(settings.chain_id),
    }
