"""Health, readiness, and version endpoints."""

from fastapi import APIRouter

from hoppin.config import get_settings
from hoppin.redis_client import get_redis_or_none
from hoppin.store.client import get_store
from hoppin.store.documents import DocumentRef

router = APIRouter()

_PROBE_REF = DocumentRef.from_segments("health", "probe")


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness probe: checks the record store and Redis."""
    checks: dict[str, object] = {}

    try:
        await get_store().get(_PROBE_REF)
        checks["store"] = "ok"
    except Exception as exc:
        checks["store"] = f"error: {exc}"

    redis = get_redis_or_none()
    if redis is None:
        checks["redis"] = "disabled"
    else:
        try:
            await redis.ping()
            checks["redis"] = "ok"
        except Exception as exc:
            checks["redis"] = f"error: {exc}"

    all_ok = all(v in ("ok", "disabled") for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    """Return API version and environment."""
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
