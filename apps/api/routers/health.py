"""
Health check endpoints.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from routers.dependencies import get_report_store
from services.report_store import ReportStore
from services.share_errors import StoreError

router = APIRouter()


@router.get("/health")
async def health_check(request: Request, store: ReportStore = Depends(get_report_store)):
    """
    Health check endpoint.
    Returns overall system health status.
    """
    health_status = {
        "status": "healthy",
        "api": "up",
        "store_backend": store.backend_name,
        "database": "unknown",
        "redis": "unknown",
    }

    try:
        await store.ping()
        health_status["database"] = "up"
    except StoreError as e:
        health_status["database"] = f"down: {e.operation}"
        health_status["status"] = "degraded"

    # Redis only backs rate limiting; an outage falls back to local counters.
    redis_client = getattr(request.app.state, "redis", None)
    if redis_client is None:
        health_status["redis"] = "disabled"
    else:
        try:
            await redis_client.ping()
            health_status["redis"] = "up"
        except Exception as e:
            health_status["redis"] = f"down: {str(e)}"

    return health_status


@router.get("/health/ready")
async def readiness_check(store: ReportStore = Depends(get_report_store)):
    """Kubernetes-style readiness probe."""
    try:
        await store.ping()
    except StoreError:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "missing": ["report_store"]},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
