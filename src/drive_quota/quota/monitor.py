"""
Drive API quota monitor.

Tracks Google Drive API usage against the per-caller and project quotas
(20,000 and 12,000 queries per 100 seconds), records quota failures
reported by Drive, and raises alerts when usage approaches the limits.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from drive_quota.config import settings
from drive_quota.errors import (
    QUOTA_ERROR_CODES,
    ClassifiedError,
    QuotaExceededError,
    classify_drive_error,
)
from drive_quota.quota.error_log import QuotaErrorLog, QuotaErrorRecord
from drive_quota.quota.tracker import (
    QuotaConfig,
    QuotaScope,
    QuotaTracker,
    QuotaUsageResult,
)
from drive_quota.quota.window import GLOBAL_SCOPE_KEY, WindowStore, caller_scope_key

logger = logging.getLogger(__name__)

T = TypeVar("T")

Classifier = Callable[[BaseException], ClassifiedError]


class AlertLevel(str, Enum):
    """Severity of a quota alert."""

    WARNING = "warning"  # >= 80% of limit
    CRITICAL = "critical"  # >= 95% of limit
    EXCEEDED = "exceeded"  # beyond the limit


@dataclass
class QuotaStats:
    """Usage of one scope in its live window."""

    total: int
    successful: int
    failed: int
    quota_errors: int
    rate_limit: int
    window_started_at: datetime | None = None
    resets_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "quota_errors": self.quota_errors,
            "rate_limit": self.rate_limit,
            "window_started_at": (
                self.window_started_at.isoformat() if self.window_started_at else None
            ),
            "resets_at": self.resets_at.isoformat() if self.resets_at else None,
        }


@dataclass
class QuotaAlert:
    """Alert raised when usage crosses a threshold."""

    level: AlertLevel
    message: str
    stats: QuotaStats

    def to_dict(self) -> dict[str, Any]:
        return {
            "level": self.level.value,
            "message": self.message,
            "stats": self.stats.to_dict(),
        }


def _to_datetime(seconds: float) -> datetime:
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


class QuotaMonitor:
    """
    Admission control for Drive API calls.

    Holds the window store and error log for one process. Application
    code performs quota-governed calls through with_quota_tracking().
    """

    def __init__(
        self,
        config: QuotaConfig | None = None,
        clock: Callable[[], float] = time.time,
        classifier: Classifier = classify_drive_error,
    ) -> None:
        """
        Initialize the quota monitor.

        Args:
            config: Quota limit policy (defaults to Drive's published quotas)
            clock: Time source in seconds (injectable for tests)
            classifier: Turns raw operation errors into ClassifiedErrors
        """
        self.config = config or QuotaConfig()
        self._store = WindowStore(self.config.window_seconds, clock=clock)
        self._errors = QuotaErrorLog(self.config.error_log_size)
        self._tracker = QuotaTracker(self._store, self.config)
        self._classifier = classifier

    @property
    def store(self) -> WindowStore:
        return self._store

    @property
    def error_log(self) -> QuotaErrorLog:
        return self._errors

    def track_quota_usage(self, caller_id: str, operation_name: str) -> QuotaUsageResult:
        """Count a request; see QuotaTracker.track_usage."""
        return self._tracker.track_usage(caller_id, operation_name)

    def track_quota_error(
        self,
        classified_error: ClassifiedError,
        caller_id: str | None = None,
    ) -> bool:
        """
        Record a classified Drive error if it is quota-related.

        Args:
            classified_error: Output of the error classifier
            caller_id: Caller the failed request belonged to

        Returns:
            True if the error was recorded
        """
        if classified_error.error_code not in QUOTA_ERROR_CODES:
            return False

        retry_after = getattr(classified_error, "retry_after", None)
        self._errors.append(
            QuotaErrorRecord(
                error_code=classified_error.error_code,
                message=classified_error.message,
                caller_id=caller_id,
                timestamp=_to_datetime(self._store.now()),
                retry_after=retry_after,
            )
        )

        logger.error(
            f"Drive API quota error: caller={caller_id} "
            f"code={classified_error.error_code.value} "
            f"message={classified_error.message!r} retry_after={retry_after}",
            extra={
                "quota": {
                    "caller_id": caller_id,
                    "error_code": classified_error.error_code.value,
                    "message": classified_error.message,
                    "retry_after": retry_after,
                }
            },
        )
        return True

    def get_quota_stats(self, caller_id: str | None = None) -> QuotaStats:
        """
        Get usage statistics for the live window.

        Args:
            caller_id: Caller to report on (global scope if omitted)

        Returns:
            QuotaStats; all zero when the scope has no live window

        Raises:
            ValueError: If caller_id is an empty string
        """
        if caller_id is not None:
            if not caller_id:
                raise ValueError("caller_id must be a non-empty string")
            key = caller_scope_key(caller_id)
            rate_limit = self.config.per_caller_limit
        else:
            key = GLOBAL_SCOPE_KEY
            rate_limit = self.config.global_limit

        counter = self._store.snapshot(key)
        if counter is None:
            return QuotaStats(
                total=0,
                successful=0,
                failed=0,
                quota_errors=0,
                rate_limit=rate_limit,
            )

        window_start = _to_datetime(counter.window_started_at)
        quota_errors = self._errors.count_since(window_start, caller_id=caller_id)

        return QuotaStats(
            total=counter.count,
            successful=max(0, counter.count - quota_errors),
            failed=quota_errors,
            quota_errors=quota_errors,
            rate_limit=rate_limit,
            window_started_at=window_start,
            resets_at=_to_datetime(counter.resets_at),
        )

    def check_quota_alerts(self, caller_id: str | None = None) -> QuotaAlert | None:
        """
        Check whether usage warrants an alert. Does not count a request.

        Args:
            caller_id: Caller to check (global scope if omitted)

        Returns:
            QuotaAlert, or None below the warning threshold
        """
        stats = self.get_quota_stats(caller_id)
        usage = stats.total / stats.rate_limit
        percent = math.floor(usage * 100 + 0.5)

        if stats.total > stats.rate_limit:
            return QuotaAlert(
                level=AlertLevel.EXCEEDED,
                message=(
                    f"Quota exceeded: {percent}% "
                    f"({stats.total}/{stats.rate_limit} requests used)"
                ),
                stats=stats,
            )
        if usage >= self.config.critical_threshold:
            return QuotaAlert(
                level=AlertLevel.CRITICAL,
                message=(
                    f"Critical quota usage: {percent}% "
                    f"({stats.total}/{stats.rate_limit})"
                ),
                stats=stats,
            )
        if usage >= self.config.warning_threshold:
            return QuotaAlert(
                level=AlertLevel.WARNING,
                message=f"High quota usage: {percent}% ({stats.total}/{stats.rate_limit})",
                stats=stats,
            )
        return None

    def get_recent_quota_errors(self, limit: int = 20) -> list[QuotaErrorRecord]:
        """Most recent quota errors across all callers, oldest first."""
        return self._errors.recent(limit)

    async def with_quota_tracking(
        self,
        caller_id: str,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Run a Drive API call under quota tracking.

        Args:
            caller_id: Caller making the request
            operation_name: Drive method (e.g. "files.list")
            operation: Zero-argument coroutine function performing the call

        Returns:
            The operation's result, unchanged

        Raises:
            QuotaExceededError: If the request is denied (operation not run)
            Exception: Whatever the operation raised, after recording it
        """
        usage = self.track_quota_usage(caller_id, operation_name)

        if not usage.allowed:
            raise QuotaExceededError(
                caller_id,
                usage.exceeded_scope or QuotaScope.CALLER,
                usage,
            )

        if usage.warning:
            stats = self.get_quota_stats(caller_id)
            logger.warning(
                f"Drive API quota warning for caller {caller_id}: {usage.warning} "
                f"(method={operation_name}, "
                f"user_remaining={usage.user_quota_remaining}, "
                f"global_remaining={usage.global_quota_remaining})",
                extra={
                    "quota": {
                        "caller_id": caller_id,
                        "method": operation_name,
                        "warning": usage.warning,
                        "user_quota_remaining": usage.user_quota_remaining,
                        "global_quota_remaining": usage.global_quota_remaining,
                        "stats": stats.to_dict(),
                    }
                },
            )

        try:
            return await operation()
        except Exception as e:
            try:
                self.track_quota_error(self._classifier(e), caller_id)
            except Exception:
                logger.exception(f"Failed to classify Drive error for caller {caller_id}")
            raise

    def reset_quota_tracking(self, caller_id: str | None = None) -> None:
        """
        Reset quota tracking.

        Args:
            caller_id: Reset only this caller's window; if omitted, reset
                every window and the error log
        """
        if caller_id:
            self._store.remove(caller_scope_key(caller_id))
            logger.info(f"Reset quota tracking for caller {caller_id}")
        else:
            self._store.clear()
            self._errors.clear()
            logger.info("Reset all quota tracking")

    def cleanup_expired_quotas(self) -> int:
        """
        Evict windows that have elapsed with no new request.

        Returns:
            Number of windows removed
        """
        removed = self._store.evict_expired()
        if removed:
            logger.info(f"Cleaned up {len(removed)} expired quota windows")
        return len(removed)


# Global default instance
default_quota_monitor = QuotaMonitor(config=QuotaConfig.from_settings(settings))


def track_quota_usage(caller_id: str, operation_name: str) -> QuotaUsageResult:
    return default_quota_monitor.track_quota_usage(caller_id, operation_name)


def track_quota_error(
    classified_error: ClassifiedError, caller_id: str | None = None
) -> bool:
    return default_quota_monitor.track_quota_error(classified_error, caller_id)


def get_quota_stats(caller_id: str | None = None) -> QuotaStats:
    return default_quota_monitor.get_quota_stats(caller_id)


def check_quota_alerts(caller_id: str | None = None) -> QuotaAlert | None:
    return default_quota_monitor.check_quota_alerts(caller_id)


def get_recent_quota_errors(limit: int = 20) -> list[QuotaErrorRecord]:
    return default_quota_monitor.get_recent_quota_errors(limit)


async def with_quota_tracking(
    caller_id: str,
    operation_name: str,
    operation: Callable[[], Awaitable[T]],
) -> T:
    return await default_quota_monitor.with_quota_tracking(
        caller_id, operation_name, operation
    )


def reset_quota_tracking(caller_id: str | None = None) -> None:
    default_quota_monitor.reset_quota_tracking(caller_id)


def cleanup_expired_quotas() -> int:
    return default_quota_monitor.cleanup_expired_quotas()
