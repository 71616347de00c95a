"""
Health check endpoint.

Checks Postgres and Redis connectivity and reports how many staged export
runs this process is currently driving. Load balancers and container
orchestrators poll it to decide if the service is ready for traffic.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import text
from redis.asyncio import Redis

from api.dependencies import get_db, get_redis, get_run_scheduler
from pipeline.runner import RunScheduler

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check(
    db: AsyncSession = Depends(get_db),
    redis: Redis = Depends(get_redis),
    run_scheduler: RunScheduler = Depends(get_run_scheduler),
) -> dict:
    """Check that Postgres and Redis are reachable."""
    await db.execute(text("SELECT 1"))
    await redis.ping()

    return {
        "status": "healthy",
        "postgres": "ok",
        "redis": "ok",
        "active_runs": run_scheduler.pending_count(),
    }
