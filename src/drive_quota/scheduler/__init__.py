"""Background jobs."""

from drive_quota.scheduler.service import QuotaCleanupScheduler

__all__ = ["QuotaCleanupScheduler"]
