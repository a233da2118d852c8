"""
Quota monitoring for Drive API requests.

Tracks usage against per-caller and global windowed limits, records
quota-related failures, and exposes usage statistics and alerts.
"""

from drive_quota.quota.error_log import QuotaErrorLog, QuotaErrorRecord
from drive_quota.quota.monitor import (
    AlertLevel,
    QuotaAlert,
    QuotaMonitor,
    QuotaStats,
    check_quota_alerts,
    cleanup_expired_quotas,
    default_quota_monitor,
    get_quota_stats,
    get_recent_quota_errors,
    reset_quota_tracking,
    track_quota_error,
    track_quota_usage,
    with_quota_tracking,
)
from drive_quota.quota.tracker import (
    QuotaConfig,
    QuotaScope,
    QuotaTracker,
    QuotaUsageResult,
)
from drive_quota.quota.window import WindowCounter, WindowStore

__all__ = [
    "AlertLevel",
    "QuotaAlert",
    "QuotaConfig",
    "QuotaErrorLog",
    "QuotaErrorRecord",
    "QuotaMonitor",
    "QuotaScope",
    "QuotaStats",
    "QuotaTracker",
    "QuotaUsageResult",
    "WindowCounter",
    "WindowStore",
    "check_quota_alerts",
    "cleanup_expired_quotas",
    "default_quota_monitor",
    "get_quota_stats",
    "get_recent_quota_errors",
    "reset_quota_tracking",
    "track_quota_error",
    "track_quota_usage",
    "with_quota_tracking",
]
