"""Liveness and readiness probes."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from sqlalchemy import func, select

from uniadmin.db.models.org_unit import OrganizationalUnitRow

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "healthy", "service": "uniadmin-api", "version": "0.1.0"}


@router.get("/health/live")
async def liveness():
    return {"status": "alive"}


async def _check_database(request: Request) -> tuple[str, int | None]:
    """Count live units, which also proves the schema is in place."""
    stmt = select(func.count()).select_from(OrganizationalUnitRow).where(
        OrganizationalUnitRow.soft_deleted.is_(False)
    )
    try:
        async with request.app.state.db_session_factory() as session:
            units = (await session.execute(stmt)).scalar_one()
    except Exception as exc:
        logger.warning("Readiness database check failed: %s", exc)
        return f"error: {exc}", None
    return "ok", int(units)


async def _check_redis(request: Request) -> str:
    redis = getattr(request.app.state, "redis", None)
    if redis is None:
        return "disabled"
    try:
        await redis.ping()
    except Exception as exc:
        logger.warning("Readiness redis check failed: %s", exc)
        return f"error: {exc}"
    return "ok"


@router.get("/health/ready")
async def readiness(request: Request):
    """503 when the database or a configured Redis is unreachable."""
    database, units = await _check_database(request)
    checks = {"database": database, "redis": await _check_redis(request)}
    ready = all(status in ("ok", "disabled") for status in checks.values())

    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ready" if ready else "not_ready", "checks": checks, "units": units},
    )
