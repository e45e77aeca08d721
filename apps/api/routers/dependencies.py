"""Shared FastAPI dependencies and error responses."""

from __future__ import annotations

from fastapi import Request
from fastapi.responses import JSONResponse

from services.report_store import ReportStore
from services.share_errors import ShareError


def get_report_store(request: Request) -> ReportStore:
    """Return the store constructed during application startup."""
    store = getattr(request.app.state, "report_store", None)
    if store is None:
        raise RuntimeError("Report store is not initialised; is the app lifespan running?")
    return store


def share_error_response(exc: ShareError, message: str | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message or exc.message},
    )
