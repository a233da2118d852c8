"""Diagnostic API routes for the quota monitor."""

import logging
from typing import Any

from fastapi import APIRouter, Depends, Query

from drive_quota.quota.monitor import QuotaMonitor, default_quota_monitor

logger = logging.getLogger(__name__)
router = APIRouter()


def get_quota_monitor() -> QuotaMonitor:
    """Quota monitor served by the API (overridable in tests)."""
    return default_quota_monitor


@router.get("/quota/stats")
async def quota_stats(
    caller_id: str | None = Query(default=None, min_length=1, description="Caller to report on"),
    monitor: QuotaMonitor = Depends(get_quota_monitor),
) -> dict[str, Any]:
    """Usage statistics for a caller, or the global scope."""
    stats = monitor.get_quota_stats(caller_id)
    return {
        "scope": "caller" if caller_id else "global",
        "caller_id": caller_id,
        "stats": stats.to_dict(),
    }


@router.get("/quota/alerts")
async def quota_alerts(
    caller_id: str | None = Query(default=None, min_length=1, description="Caller to check"),
    monitor: QuotaMonitor = Depends(get_quota_monitor),
) -> dict[str, Any]:
    """Current alert for a caller, or the global scope."""
    alert = monitor.check_quota_alerts(caller_id)
    return {"alert": alert.to_dict() if alert else None}


@router.get("/quota/errors")
async def quota_errors(
    limit: int = Query(default=20, ge=1, le=1000),
    monitor: QuotaMonitor = Depends(get_quota_monitor),
) -> dict[str, Any]:
    """Most recent quota errors, oldest first."""
    errors = monitor.get_recent_quota_errors(limit)
    return {"errors": [record.to_dict() for record in errors], "count": len(errors)}


@router.post("/quota/reset")
async def quota_reset(
    caller_id: str | None = Query(default=None, min_length=1, description="Caller to reset"),
    monitor: QuotaMonitor = Depends(get_quota_monitor),
) -> dict[str, Any]:
    """Reset one caller's window, or all tracking when no caller is given."""
    monitor.reset_quota_tracking(caller_id)
    return {"reset": caller_id or "all"}


@router.post("/quota/cleanup")
async def quota_cleanup(
    monitor: QuotaMonitor = Depends(get_quota_monitor),
) -> dict[str, Any]:
    """Evict expired quota windows now."""
    removed = monitor.cleanup_expired_quotas()
    return {"removed": removed}
