"""
Health Check Endpoints

Liveness and readiness probes for container orchestration.
"""

from datetime import datetime, timezone
from typing import Dict, Any

from fastapi import APIRouter, Request, Response

from .... import __version__

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check() -> Dict[str, Any]:
    """
    Basic health check.

    Returns 200 if the service is running.
    """
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__
    }


@router.get("/health/ready")
async def readiness_check(request: Request, response: Response) -> Dict[str, Any]:
    """
    Readiness probe.

    Returns 503 when the employee store cannot be queried.
    """
    checks = {}
    ready = True

    try:
        await request.app.state.auth.employees.list_employees(limit=1)
        checks["employee_store"] = "healthy"
    except Exception as e:
        checks["employee_store"] = f"unhealthy: {type(e).__name__}"
        ready = False

    if not ready:
        response.status_code = 503

    return {
        "status": "ready" if ready else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(timezone.utc).isoformat()
    }
