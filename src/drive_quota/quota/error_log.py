"""Bounded log of quota-related Drive API errors."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from drive_quota.errors import DriveErrorCode


@dataclass(frozen=True)
class QuotaErrorRecord:
    """One classified quota failure."""

    error_code: DriveErrorCode
    message: str
    caller_id: str | None
    timestamp: datetime
    retry_after: float | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "caller_id": self.caller_id,
            "timestamp": self.timestamp.isoformat(),
            "retry_after": self.retry_after,
        }


class QuotaErrorLog:
    """
    Fixed-capacity FIFO of QuotaErrorRecords.

    Appending at capacity evicts the oldest record.
    """

    def __init__(self, capacity: int = 100) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._records: deque[QuotaErrorRecord] = deque(maxlen=capacity)
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self._records.maxlen or 0

    def append(self, record: QuotaErrorRecord) -> None:
        with self._lock:
            self._records.append(record)

    def recent(self, limit: int = 20) -> list[QuotaErrorRecord]:
        """Last `limit` records, oldest first."""
        if limit <= 0:
            return []
        with self._lock:
            records = list(self._records)
        return records[-limit:]

    def count_since(self, since: datetime, caller_id: str | None = None) -> int:
        """
        Count records at or after `since`.

        Args:
            since: Start of the period
            caller_id: Restrict to one caller (None counts every record)
        """
        with self._lock:
            return sum(
                1
                for record in self._records
                if record.timestamp >= since
                and (caller_id is None or record.caller_id == caller_id)
            )

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
