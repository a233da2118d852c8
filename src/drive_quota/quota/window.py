"""
Fixed-window request counters.

Each scope (a caller, or the global project scope) owns one
WindowCounter. Counters are created lazily, replaced once their window
has elapsed, and evicted by cleanup once idle past expiry.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable

GLOBAL_SCOPE_KEY = "global"
CALLER_KEY_PREFIX = "caller:"


def caller_scope_key(caller_id: str) -> str:
    """Store key for a caller's counter."""
    return f"{CALLER_KEY_PREFIX}{caller_id}"


@dataclass
class WindowCounter:
    """Usage accumulated by one scope within its current window."""

    scope_key: str
    """Caller key or the global key."""

    count: int
    """Requests counted in the current window."""

    window_started_at: float
    """Clock time the window opened."""

    window_seconds: float
    """Window duration."""

    @property
    def resets_at(self) -> float:
        return self.window_started_at + self.window_seconds

    def is_expired(self, now: float) -> bool:
        """A window covers [start, start + duration)."""
        return now >= self.resets_at

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope_key": self.scope_key,
            "count": self.count,
            "window_started_at": datetime.fromtimestamp(
                self.window_started_at, tz=timezone.utc
            ).isoformat(),
            "resets_at": datetime.fromtimestamp(
                self.resets_at, tz=timezone.utc
            ).isoformat(),
        }


class WindowStore:
    """
    Lock-guarded map of scope key -> WindowCounter.

    All reads and writes go through the store lock, so concurrent
    increments never lose updates and cleanup never evicts a window
    that is being counted into.
    """

    def __init__(
        self,
        window_seconds: float,
        clock: Callable[[], float] = time.time,
    ) -> None:
        """
        Initialize the window store.

        Args:
            window_seconds: Duration of every window
            clock: Time source in seconds (injectable for tests)
        """
        self._window_seconds = window_seconds
        self._clock = clock
        self._counters: dict[str, WindowCounter] = {}
        self._lock = threading.RLock()

    @property
    def window_seconds(self) -> float:
        return self._window_seconds

    def now(self) -> float:
        return self._clock()

    def _fresh(self, key: str, now: float) -> WindowCounter:
        counter = WindowCounter(
            scope_key=key,
            count=0,
            window_started_at=now,
            window_seconds=self._window_seconds,
        )
        self._counters[key] = counter
        return counter

    def _get_or_create(self, key: str, now: float) -> WindowCounter:
        counter = self._counters.get(key)
        if counter is None or counter.is_expired(now):
            counter = self._fresh(key, now)
        return counter

    def increment(self, *keys: str) -> tuple[int, ...]:
        """
        Count one request against each key in a single critical section.

        Expired windows are replaced with a fresh window opening now
        before the request is counted.

        Returns:
            Updated counts, in the order the keys were given
        """
        with self._lock:
            now = self._clock()
            counts = []
            for key in keys:
                counter = self._get_or_create(key, now)
                counter.count += 1
                counts.append(counter.count)
            return tuple(counts)

    def snapshot(self, key: str) -> WindowCounter | None:
        """Copy of the live counter for a key, or None if absent/expired."""
        with self._lock:
            counter = self._counters.get(key)
            if counter is None or counter.is_expired(self._clock()):
                return None
            return replace(counter)

    def remove(self, key: str) -> bool:
        with self._lock:
            return self._counters.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._counters.clear()

    def evict_expired(self) -> list[str]:
        """
        Remove every counter whose window has elapsed.

        Returns:
            Keys that were removed
        """
        with self._lock:
            now = self._clock()
            expired = [
                key for key, counter in self._counters.items() if counter.is_expired(now)
            ]
            for key in expired:
                del self._counters[key]
            return expired

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._counters)

    def __len__(self) -> int:
        with self._lock:
            return len(self._counters)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._counters
