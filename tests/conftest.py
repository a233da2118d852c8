"""Pytest configuration and fixtures."""

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from drive_quota.quota.monitor import QuotaMonitor
from drive_quota.quota.tracker import QuotaConfig


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> ManualClock:
    """Deterministic clock for window expiry."""
    return ManualClock()


@pytest.fixture
def monitor(clock: ManualClock) -> QuotaMonitor:
    """Quota monitor with Drive's production limits and a manual clock."""
    return QuotaMonitor(config=QuotaConfig(), clock=clock)


@pytest.fixture
def drive_error() -> Callable[..., httpx.HTTPStatusError]:
    """Factory for Google Drive API errors as raised by httpx."""

    def _make(
        status_code: int,
        reason: str | None = None,
        message: str | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.HTTPStatusError:
        request = httpx.Request("GET", "https://www.googleapis.com/drive/v3/files")
        errors: list[dict[str, Any]] = []
        if reason:
            errors.append(
                {
                    "reason": reason,
                    "domain": "usageLimits",
                    "message": message or f"Error with reason: {reason}",
                }
            )
        body = {
            "error": {
                "code": status_code,
                "message": message or f"Error {status_code}",
                "errors": errors,
            }
        }
        response = httpx.Response(
            status_code, json=body, headers=headers, request=request
        )
        return httpx.HTTPStatusError(
            f"HTTP {status_code}", request=request, response=response
        )

    return _make
