"""Health, readiness and liveness probes (no authentication)."""

import time
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from protean.utils.globals import current_domain

from relay.api.deps import get_services
from relay.services import RelayServices
from relay.tenant.tenant_key import TenantKey

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_STARTED_AT = time.monotonic()


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.get("")
async def health(services: RelayServices = Depends(get_services)):
    settings = services.settings
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.version,
        "timestamp": _now(),
        "uptime": round(time.monotonic() - _STARTED_AT, 3),
    }


@router.get("/ready")
async def ready(services: RelayServices = Depends(get_services)):
    checks = {"store": False, "cloud_push": False, "web_push": False}

    try:
        current_domain.repository_for(TenantKey)._dao.query.limit(1).all()
        checks["store"] = True
    except Exception as exc:
        logger.warning("Store readiness check failed", error=str(exc))

    checks["cloud_push"] = services.router.cloud_push is not None
    checks["web_push"] = services.router.web_push is not None

    is_ready = all(checks.values())
    return JSONResponse(
        status_code=200 if is_ready else 503,
        content={
            "status": "ready" if is_ready else "not ready",
            "service": services.settings.service_name,
            "timestamp": _now(),
            "checks": checks,
            "environment": services.settings.environment,
        },
    )


@router.get("/live")
async def live():
    return {"status": "alive", "timestamp": _now()}
