"""
Maintenance endpoints: sweep expired shared reports and report counts.
"""

import hmac
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from config import settings
from routers.dependencies import get_report_store
from services.cleanup import cleanup_expired_reports, get_report_stats
from services.report_store import ReportStore
from services.share_errors import ShareError

router = APIRouter()
logger = logging.getLogger(__name__)


def require_cleanup_secret(request: Request) -> None:
    """Enforce ``Authorization: Bearer <CLEANUP_SECRET>`` when a secret is configured."""
    secret = (settings.CLEANUP_SECRET or "").strip()
    if not secret:
        return
    header = request.headers.get("authorization", "")
    scheme, _, value = header.partition(" ")
    if scheme.lower() != "bearer" or not hmac.compare_digest(value.strip(), secret):
        raise HTTPException(status_code=401, detail="Unauthorized")


@router.post("/cleanup", dependencies=[Depends(require_cleanup_secret)])
async def sweep_expired_reports(store: ReportStore = Depends(get_report_store)):
    """Delete expired shared reports and return fresh stats."""
    try:
        deleted = await cleanup_expired_reports(store)
        stats = await get_report_stats(store)
    except ShareError as exc:
        logger.error("Cleanup failed: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "message": "Cleanup failed"})
    return {
        "success": True,
        "message": f"Cleaned up {deleted} expired reports",
        "stats": stats,
    }


@router.get("/cleanup", dependencies=[Depends(require_cleanup_secret)])
async def shared_report_stats(store: ReportStore = Depends(get_report_store)):
    """Read-only counts for monitoring."""
    try:
        stats = await get_report_stats(store)
    except ShareError as exc:
        logger.error("Failed to get stats: %s", exc)
        return JSONResponse(status_code=500, content={"success": False, "message": "Failed to get stats"})
    return {"success": True, "stats": stats}
