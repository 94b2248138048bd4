"""
Health check endpoints.

/healthz only proves the process serves requests. /readyz checks the
remote scheduling service, the one dependency every discovery route needs.
"""

import time

from fastapi import APIRouter, Request

from slot_discovery.infrastructure.observability.logging import log_dependency_check

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz():
    """Liveness - always 200 while the app is running."""
    return {"status": "ok", "service": "slot-discovery"}


@router.get("/readyz")
async def readyz(request: Request):
    """Readiness against the remote scheduling service; always 200, check overall_ok."""
    checks = {}

    t0 = time.time()
    try:
        scheduling_ok = bool(await request.app.state.scheduling_client.ping())
        latency_ms = round((time.time() - t0) * 1000, 1)
        checks["scheduling_service"] = {"ok": scheduling_ok, "latency_ms": latency_ms}
        log_dependency_check("scheduling_service", scheduling_ok, latency_ms)
    except Exception as e:
        error = f"{type(e).__name__}: {e}"
        checks["scheduling_service"] = {"ok": False, "error": error}
        log_dependency_check(
            "scheduling_service", False, round((time.time() - t0) * 1000, 1), error=error
        )

    overall_ok = all(check["ok"] for check in checks.values())
    return {"overall_ok": overall_ok, "checks": checks}
