"""Expired shared-report cleanup and statistics."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Dict

from services.report_store import ReportStore

logger = logging.getLogger(__name__)


async def cleanup_expired_reports(store: ReportStore) -> int:
    """Delete every report past its expiration and return how many went."""
    now = datetime.now(timezone.utc)
    deleted = await store.delete_expired(now)
    logger.info("Cleaned up %d expired shared reports", deleted)
    return deleted


async def get_report_stats(store: ReportStore) -> Dict[str, int]:
    now = datetime.now(timezone.utc)
    total = await store.count_all()
    active = await store.count_active(now)
    return {
        "total": total,
        "active": active,
        "expired": max(total - active, 0),
    }


async def run_sweep(store: ReportStore, stats_only: bool = False) -> Dict[str, object]:
    """Sweep (unless ``stats_only``) and return the deleted count with fresh stats."""
    result: Dict[str, object] = {}
    if not stats_only:
        result["deleted"] = await cleanup_expired_reports(store)
    result["stats"] = await get_report_stats(store)
    return result
