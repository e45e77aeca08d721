"""
Router for issuing and resolving shareable report links.
"""

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from config import settings
from routers.dependencies import get_report_store, share_error_response
from routers.rate_limit import rate_limit
from services.report_share import create_shared_report, resolve_shared_report
from services.report_store import ReportStore
from services.share_errors import ShareError, ValidationError

router = APIRouter()
logger = logging.getLogger(__name__)

ISSUE_FAILURE_MESSAGE = "Failed to generate share link"


class ShareReportRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    audit_result: Optional[Any] = Field(default=None, alias="auditResult")
    lighthouse_data: Optional[Any] = Field(default=None, alias="lighthouseData")
    website: Optional[Any] = None


class ResolveReportRequest(BaseModel):
    token: Optional[Any] = None


@router.post(
    "/share",
    dependencies=[Depends(rate_limit("share", settings.SHARE_RATE_LIMIT_PER_HOUR, 3600))],
)
async def create_share_link(
    request: Request,
    body: Optional[ShareReportRequest] = None,
    store: ReportStore = Depends(get_report_store),
):
    """Persist an audit payload and return its share URL."""
    body = body or ShareReportRequest()
    try:
        issued = await create_shared_report(
            store=store,
            audit_result=body.audit_result,
            lighthouse_data=body.lighthouse_data,
            website=body.website,
            origin=request.headers.get("origin"),
        )
    except ValidationError as exc:
        return share_error_response(exc)
    except ShareError as exc:
        # Collision exhaustion and store outages look the same to end users.
        logger.error("Share link issuance failed: %s", exc)
        return share_error_response(exc, ISSUE_FAILURE_MESSAGE)
    except Exception:
        logger.exception("Unexpected failure issuing share link")
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": ISSUE_FAILURE_MESSAGE},
        )
    return {"success": True, **issued}


async def _resolve(token: Any, store: ReportStore, decode: bool = False):
    try:
        payload = await resolve_shared_report(store=store, short_id=token, decode=decode)
    except ShareError as exc:
        if exc.status_code >= 500:
            logger.error("Shared report lookup failed token=%s: %s", token, exc)
            return share_error_response(exc, "Failed to fetch shared report")
        return share_error_response(exc)
    except Exception:
        logger.exception("Unexpected failure resolving shared report token=%s", token)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Failed to fetch shared report"},
        )
    return {"success": True, "payload": payload}


@router.post("/resolve")
async def resolve_share_token(
    body: Optional[ResolveReportRequest] = None,
    store: ReportStore = Depends(get_report_store),
):
    """Public report retrieval via short ID posted in the body."""
    return await _resolve(body.token if body else None, store, decode=True)


@router.get("/report/{short_id}")
async def get_shared_report(
    short_id: str,
    store: ReportStore = Depends(get_report_store),
):
    """Public report retrieval via short ID in the path."""
    return await _resolve(short_id, store)
