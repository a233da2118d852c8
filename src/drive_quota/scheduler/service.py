"""APScheduler-based periodic cleanup of expired quota windows."""

import logging
from datetime import datetime
from typing import Any

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from drive_quota.quota.monitor import QuotaMonitor

logger = logging.getLogger(__name__)

CLEANUP_JOB_ID = "quota_cleanup"


class QuotaCleanupScheduler:
    """
    Background job that evicts idle quota windows.

    Runs QuotaMonitor.cleanup_expired_quotas on a fixed interval in a
    single worker thread. The window store lock keeps eviction safe
    alongside in-flight increments.
    """

    def __init__(
        self,
        monitor: QuotaMonitor,
        interval_seconds: int | None = None,
        timezone: str = "UTC",
    ) -> None:
        """
        Initialize the cleanup scheduler.

        Args:
            monitor: Quota monitor to clean up
            interval_seconds: Seconds between runs (defaults to the monitor config)
            timezone: Scheduler timezone
        """
        self._monitor = monitor
        self._interval_seconds = interval_seconds or monitor.config.cleanup_interval_seconds
        self._timezone = timezone
        self._scheduler: BackgroundScheduler | None = None

    @property
    def scheduler(self) -> BackgroundScheduler:
        """Get or create the scheduler instance."""
        if self._scheduler is None:
            self._scheduler = self._create_scheduler()
        return self._scheduler

    def _create_scheduler(self) -> BackgroundScheduler:
        """Create and configure the APScheduler instance."""
        job_defaults = {
            "coalesce": True,  # Combine missed runs into one
            "max_instances": 1,  # Prevent overlapping runs
            "misfire_grace_time": 60,
        }

        scheduler = BackgroundScheduler(
            executors={"default": ThreadPoolExecutor(max_workers=1)},
            job_defaults=job_defaults,
            timezone=self._timezone,
        )
        scheduler.add_job(
            self._run_cleanup,
            trigger=IntervalTrigger(seconds=self._interval_seconds),
            id=CLEANUP_JOB_ID,
            name=CLEANUP_JOB_ID,
            replace_existing=True,
        )
        logger.info(f"Quota cleanup scheduled every {self._interval_seconds}s")
        return scheduler

    def _run_cleanup(self) -> int:
        """Job callback for quota cleanup."""
        try:
            return self._monitor.cleanup_expired_quotas()
        except Exception as e:
            logger.error(f"Quota cleanup failed: {e}")
            return 0

    def start(self) -> None:
        """Start the scheduler."""
        if not self.scheduler.running:
            self.scheduler.start()
            logger.info("Quota cleanup scheduler started")
        else:
            logger.warning("Quota cleanup scheduler is already running")

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the scheduler.

        Args:
            wait: Wait for a running cleanup to complete
        """
        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("Quota cleanup scheduler shutdown complete")

    def run_now(self) -> int:
        """Run a cleanup pass in the calling thread."""
        return self._run_cleanup()

    def get_job_status(self) -> dict[str, Any] | None:
        """Status of the cleanup job, or None if not scheduled."""
        job = self.scheduler.get_job(CLEANUP_JOB_ID)
        if job:
            next_run: datetime | None = getattr(job, "next_run_time", None)
            return {
                "id": job.id,
                "name": job.name,
                "next_run_time": next_run,
                "interval_seconds": self._interval_seconds,
            }
        return None

    @property
    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._scheduler is not None and self._scheduler.running
