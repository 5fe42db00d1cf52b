# src/libs/delivery-common/delivery_common/health.py
import asyncio
import logging
from typing import Awaitable, Callable, Dict

from fastapi import APIRouter, HTTPException, status
from sqlalchemy import text

from . import db

logger = logging.getLogger(__name__)

Probe = Callable[[], Awaitable[bool]]


async def check_db_health() -> bool:
    """True when the engine exists and answers a trivial query."""
    engine = db.async_engine
    if engine is None:
        logger.error("Readiness probe: database engine not initialized.")
        return False
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("Readiness probe: database unreachable.", extra={"error": str(exc)})
        return False
    return True


PROBES: Dict[str, Probe] = {
    "database": check_db_health,
}


def create_health_router(*dependencies: str) -> APIRouter:
    """
    Liveness and readiness endpoints. Readiness runs the named probes
    (keys of PROBES) concurrently and answers 503 if any of them fails.
    """
    probes = {name: PROBES[name] for name in dependencies}
    router = APIRouter(tags=["Health"])

    @router.get("/health/live")
    async def liveness():
        return {"status": "alive"}

    @router.get("/health/ready")
    async def readiness():
        outcomes = await asyncio.gather(*(probe() for probe in probes.values()))
        report = {name: "ok" if ok else "unavailable" for name, ok in zip(probes, outcomes)}
        if not all(outcomes):
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"status": "not_ready", "dependencies": report},
            )
        return {"status": "ready", "dependencies": report}

    return router
