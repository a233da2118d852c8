"""
Quota tracking against per-caller and global limits.

Every tracked request counts against both the caller's window and the
global (project) window. A request is allowed only if neither limit is
exceeded; denied attempts stay counted.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from drive_quota.quota.window import GLOBAL_SCOPE_KEY, WindowStore, caller_scope_key

logger = logging.getLogger(__name__)

USER_QUOTA_EXCEEDED = "User quota exceeded"
PROJECT_QUOTA_EXCEEDED = "Project quota exceeded"
CRITICAL_WARNING = "Critical: Approaching quota limit"
HIGH_USAGE_WARNING = "Warning: High quota usage"


class QuotaScope(str, Enum):
    """Which limit a count or denial belongs to."""

    CALLER = "caller"
    GLOBAL = "global"


@dataclass
class QuotaConfig:
    """
    Quota limit policy.

    Both limits share one window duration and apply to every
    tracked request.
    """

    per_caller_limit: int = 20000
    global_limit: int = 12000
    window_seconds: float = 100.0
    warning_threshold: float = 0.8  # Warn at 80% usage
    critical_threshold: float = 0.95  # Critical at 95% usage
    error_log_size: int = 100
    cleanup_interval_seconds: int = 300

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> QuotaConfig:
        return cls(
            per_caller_limit=data.get("per_caller_limit", 20000),
            global_limit=data.get("global_limit", 12000),
            window_seconds=data.get("window_seconds", 100.0),
            warning_threshold=data.get("warning_threshold", 0.8),
            critical_threshold=data.get("critical_threshold", 0.95),
            error_log_size=data.get("error_log_size", 100),
            cleanup_interval_seconds=data.get("cleanup_interval_seconds", 300),
        )

    @classmethod
    def from_settings(cls, settings: Any) -> QuotaConfig:
        return cls(
            per_caller_limit=settings.quota_per_caller_limit,
            global_limit=settings.quota_global_limit,
            window_seconds=settings.quota_window_seconds,
            warning_threshold=settings.quota_warning_threshold,
            critical_threshold=settings.quota_critical_threshold,
            error_log_size=settings.quota_error_log_size,
            cleanup_interval_seconds=settings.quota_cleanup_interval_seconds,
        )


@dataclass
class QuotaUsageResult:
    """Result of tracking one request."""

    allowed: bool
    """Whether the request may proceed."""

    user_quota_remaining: int
    """Requests left for the caller this window (-1 once exceeded)."""

    global_quota_remaining: int
    """Requests left globally this window (-1 once exceeded)."""

    warning: str | None = None
    """Threshold or denial message, if any."""

    exceeded_scope: QuotaScope | None = None
    """Limit that denied the request."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "allowed": self.allowed,
            "user_quota_remaining": self.user_quota_remaining,
            "global_quota_remaining": self.global_quota_remaining,
            "warning": self.warning,
            "exceeded_scope": self.exceeded_scope.value if self.exceeded_scope else None,
        }


class QuotaTracker:
    """Applies the quota policy to a WindowStore."""

    def __init__(self, store: WindowStore, config: QuotaConfig) -> None:
        self._store = store
        self._config = config

    @property
    def config(self) -> QuotaConfig:
        return self._config

    def usage_warning(self, ratio: float) -> str | None:
        """Warning for a usage ratio within limits."""
        if ratio >= self._config.critical_threshold:
            return CRITICAL_WARNING
        if ratio >= self._config.warning_threshold:
            return HIGH_USAGE_WARNING
        return None

    def track_usage(self, caller_id: str, operation_name: str) -> QuotaUsageResult:
        """
        Count a request against the caller and global windows.

        Args:
            caller_id: Identity the per-caller limit applies to
            operation_name: Drive method name, for diagnostics only

        Returns:
            QuotaUsageResult with allow/deny and remaining quota

        Raises:
            ValueError: If caller_id is empty
        """
        if not caller_id:
            raise ValueError("caller_id must be a non-empty string")

        config = self._config
        caller_count, global_count = self._store.increment(
            caller_scope_key(caller_id), GLOBAL_SCOPE_KEY
        )

        user_remaining = config.per_caller_limit - caller_count
        global_remaining = config.global_limit - global_count

        if caller_count > config.per_caller_limit:
            result = QuotaUsageResult(
                allowed=False,
                user_quota_remaining=-1,
                global_quota_remaining=global_remaining,
                warning=USER_QUOTA_EXCEEDED,
                exceeded_scope=QuotaScope.CALLER,
            )
        elif global_count > config.global_limit:
            result = QuotaUsageResult(
                allowed=False,
                user_quota_remaining=user_remaining,
                global_quota_remaining=-1,
                warning=PROJECT_QUOTA_EXCEEDED,
                exceeded_scope=QuotaScope.GLOBAL,
            )
        else:
            ratio = max(
                caller_count / config.per_caller_limit,
                global_count / config.global_limit,
            )
            return QuotaUsageResult(
                allowed=True,
                user_quota_remaining=user_remaining,
                global_quota_remaining=global_remaining,
                warning=self.usage_warning(ratio),
            )

        logger.warning(
            f"Drive API quota exceeded: caller={caller_id} method={operation_name} "
            f"caller_count={caller_count} global_count={global_count}",
            extra={
                "quota": {
                    "caller_id": caller_id,
                    "method": operation_name,
                    "caller_count": caller_count,
                    "global_count": global_count,
                    "exceeded_scope": result.exceeded_scope.value,
                }
            },
        )
        return result
