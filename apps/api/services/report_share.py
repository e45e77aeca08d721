"""Share-link helpers for brand audit reports."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import unquote

from config import settings
from services.report_store import ReportStore, SharedReportRecord
from services.share_errors import (
    DuplicateShortId,
    Expired,
    ExhaustedRetries,
    NotFound,
    ValidationError,
)
from services.short_id import generate_short_id, retry_bounded

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def build_share_url(origin: Optional[str], short_id: str) -> str:
    base = (origin or "").strip() or settings.PUBLIC_BASE_URL or "http://localhost:3000"
    return f"{base.rstrip('/')}/report/{short_id}"


async def is_short_id_unique(store: ReportStore, short_id: str) -> bool:
    """True only when the store positively reports no row for ``short_id``.

    Store failures propagate as ``StoreError``; they never count as unique.
    """
    return not await store.exists(short_id)


async def create_shared_report(
    *,
    store: ReportStore,
    audit_result: Optional[Mapping[str, Any]],
    lighthouse_data: Optional[Mapping[str, Any]],
    website: Optional[str],
    origin: Optional[str] = None,
    retention: Optional[timedelta] = None,
    max_attempts: Optional[int] = None,
    id_factory: Optional[Callable[[], str]] = None,
) -> Dict[str, Any]:
    # Payloads are opaque: only presence and container type are checked.
    if audit_result is None or not isinstance(audit_result, Mapping):
        raise ValidationError()
    if lighthouse_data is not None and not isinstance(lighthouse_data, Mapping):
        raise ValidationError()
    if not isinstance(website, str) or not website.strip():
        raise ValidationError()
    site = website.strip()

    ttl = retention if retention is not None else timedelta(days=int(settings.SHARE_RETENTION_DAYS))
    budget = int(max_attempts if max_attempts is not None else settings.SHORT_ID_MAX_ATTEMPTS)
    draw = id_factory or generate_short_id

    async def _attempt(number: int) -> Optional[SharedReportRecord]:
        candidate = draw()
        if not await is_short_id_unique(store, candidate):
            logger.warning("Short ID collision on attempt %d", number)
            return None
        now = _utcnow()
        record = SharedReportRecord(
            short_id=candidate,
            audit_result=dict(audit_result),
            lighthouse_data=dict(lighthouse_data) if lighthouse_data is not None else None,
            website=site,
            created_at=now,
            expires_at=now + ttl,
        )
        try:
            await store.insert(record)
        except DuplicateShortId:
            logger.warning("Short ID taken between check and insert on attempt %d", number)
            return None
        return record

    outcome = await retry_bounded(_attempt, budget)
    if outcome.exhausted:
        logger.error("Short ID generation exhausted %d attempts; check the random source", outcome.attempts)
        raise ExhaustedRetries(outcome.attempts)

    record = outcome.value
    logger.info("Issued shared report short_id=%s attempts=%d", record.short_id, outcome.attempts)
    return {
        "short_id": record.short_id,
        "url": build_share_url(origin, record.short_id),
        "expires_at": record.expires_at.isoformat(),
    }


async def resolve_shared_report(
    *,
    store: ReportStore,
    short_id: Optional[str],
    decode: bool = False,
) -> Dict[str, Any]:
    """Return the stored payload for ``short_id``.

    ``decode`` URL-decodes the token first; use it for tokens taken from a
    request body, not for path parameters the framework already decoded.
    """
    if short_id is not None and not isinstance(short_id, str):
        raise ValidationError("Token must be a string.")
    token = (short_id or "").strip()
    if decode:
        token = unquote(token).strip()
    if not token:
        raise ValidationError("Token is required.")

    record = await store.get(token)
    if record is None:
        raise NotFound()

    if record.is_expired(_utcnow()):
        raise Expired()

    return {
        "auditResult": record.audit_result,
        "lighthouseData": record.lighthouse_data,
        "website": record.website,
        "created_at": record.created_at.isoformat(),
        "expires_at": record.expires_at.isoformat(),
    }
