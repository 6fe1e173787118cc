"""Liveness, readiness and component health probes."""

import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from linkgate.core.config import settings
from linkgate.db.session import get_db

router = APIRouter(tags=["health"])


async def _probe_database(db: AsyncSession) -> dict:
    started = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
        await db.commit()
    except Exception as e:
        return {"status": "unhealthy", "error": str(e)}
    return {"status": "healthy", "latency_ms": round((time.perf_counter() - started) * 1000, 2)}


@router.get("/health", summary="Component health")
async def health_check(db: AsyncSession = Depends(get_db)):
    """Report the database and object store status; degraded when the database is down."""
    database = await _probe_database(db)
    return {
        "status": "healthy" if database["status"] == "healthy" else "degraded",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        "components": {
            "database": database,
            # Without a bucket, only database-stored assets are served
            "object_store": {"status": "configured" if settings.OBJECT_STORE_ENABLED else "disabled"},
        },
    }


@router.get("/health/ready", summary="Readiness probe")
async def readiness_probe(db: AsyncSession = Depends(get_db)):
    database_ok = (await _probe_database(db))["status"] == "healthy"
    return {"ready": database_ok, "components": {"api": True, "database": database_ok}}


@router.get("/health/live", summary="Liveness probe")
async def liveness_probe():
    return {"alive": True}
