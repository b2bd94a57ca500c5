"""Health check endpoints for load balancers and monitoring."""

from datetime import datetime, timezone
from typing import Awaitable, Callable

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse
from sqlalchemy import text

from onboarding.config import settings
from onboarding.database import engine
from onboarding.utils.redis_client import get_redis

router = APIRouter(tags=["health"])


async def _database_ping() -> None:
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))


async def _redis_ping() -> None:
    redis_client = await get_redis()
    await redis_client.ping()


async def _probe(check: Callable[[], Awaitable[None]]) -> str:
    try:
        await check()
    except Exception as e:
        return f"error: {str(e)[:100]}"
    return "ok"


@router.get("/health")
async def health_check():
    """Liveness only; touches no dependencies."""
    return {
        "status": "ok",
        "service": "onboarding",
        "environment": settings.environment,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/health/ready")
async def readiness_check():
    """200 only when both the database and Redis answer, 503 otherwise."""
    checks = {
        "database": await _probe(_database_ping),
        "redis": await _probe(_redis_ping),
    }
    healthy = all(result == "ok" for result in checks.values())
    return JSONResponse(
        status_code=status.HTTP_200_OK if healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "onboarding",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
