"""
Drive API error classification.

Turns raw errors raised while talking to Google Drive into a
ClassifiedError with a stable error code, so callers (and the quota
monitor) can tell quota failures apart from everything else.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from drive_quota.quota.tracker import QuotaScope, QuotaUsageResult


class DriveErrorCode(str, Enum):
    """Stable error codes for Drive operations."""

    # Permission errors (403)
    PERMISSION_DENIED = "PERMISSION_DENIED"
    INSUFFICIENT_SCOPES = "INSUFFICIENT_SCOPES"

    # Authentication errors (401)
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_REVOKED = "TOKEN_REVOKED"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # File / request errors (4xx)
    FILE_NOT_FOUND = "FILE_NOT_FOUND"
    INVALID_REQUEST = "INVALID_REQUEST"

    # Rate limiting and quota errors
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    USER_RATE_LIMIT_EXCEEDED = "USER_RATE_LIMIT_EXCEEDED"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    STORAGE_QUOTA_EXCEEDED = "STORAGE_QUOTA_EXCEEDED"

    # Server errors (5xx)
    SERVICE_UNAVAILABLE = "SERVICE_UNAVAILABLE"
    DRIVE_API_ERROR = "DRIVE_API_ERROR"
    TIMEOUT = "TIMEOUT"
    BACKEND_ERROR = "BACKEND_ERROR"


QUOTA_ERROR_CODES: frozenset[DriveErrorCode] = frozenset(
    {
        DriveErrorCode.RATE_LIMIT_EXCEEDED,
        DriveErrorCode.USER_RATE_LIMIT_EXCEEDED,
        DriveErrorCode.QUOTA_EXCEEDED,
        DriveErrorCode.STORAGE_QUOTA_EXCEEDED,
    }
)


@dataclass
class ClassifiedError:
    """Structured view of a Drive API failure."""

    error_code: DriveErrorCode
    """Stable error code."""

    message: str
    """Human-readable message."""

    status_code: int = 500
    """HTTP status code (500 when the error did not come from HTTP)."""

    retryable: bool = False
    """Whether retrying later may succeed."""

    retry_after: float | None = None
    """Seconds to wait before retrying, when known."""

    reason: str | None = None
    """Google error reason (e.g. 'dailyLimitExceeded')."""

    domain: str | None = None
    """Google error domain."""

    @property
    def is_quota_error(self) -> bool:
        return self.error_code in QUOTA_ERROR_CODES

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_code": self.error_code.value,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
            "retry_after": self.retry_after,
            "reason": self.reason,
            "domain": self.domain,
        }


class QuotaExceededError(Exception):
    """Raised when a request is denied before reaching the Drive API."""

    def __init__(
        self,
        caller_id: str,
        scope: QuotaScope,
        usage: QuotaUsageResult | None = None,
    ) -> None:
        self.caller_id = caller_id
        self.scope = scope
        self.usage = usage
        if scope.value == "global":
            message = (
                f"Drive API project quota exceeded (caller {caller_id}). "
                "Please try again later."
            )
        else:
            message = (
                f"Drive API quota exceeded for caller {caller_id}. "
                "Please try again later."
            )
        super().__init__(message)


def _text(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _extract_google_error(response: httpx.Response) -> dict[str, str | None]:
    """Pull reason/domain/message out of a Google API error body."""
    try:
        data = response.json()
    except ValueError:
        return {"reason": None, "domain": None, "message": response.text or None}

    error_obj = data.get("error") if isinstance(data, dict) else None
    if not isinstance(error_obj, dict):
        return {"reason": None, "domain": None, "message": None}

    errors = error_obj.get("errors")
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        first = errors[0]
        return {
            "reason": _text(first.get("reason")),
            "domain": _text(first.get("domain")),
            "message": _text(error_obj.get("message")) or _text(first.get("message")),
        }

    return {
        "reason": _text(error_obj.get("reason")),
        "domain": _text(error_obj.get("domain")),
        "message": _text(error_obj.get("message")),
    }


def _parse_retry_after(response: httpx.Response, default: float = 60.0) -> float:
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return float(retry_after)
        except ValueError:
            pass
    return default


def _classify_http_error(error: httpx.HTTPStatusError) -> ClassifiedError:
    response = error.response
    status = response.status_code
    details = _extract_google_error(response)
    reason = (details["reason"] or "").lower()
    message = details["message"] or ""
    common = {"reason": details["reason"], "domain": details["domain"]}

    if status == 401:
        if "invalid" in message.lower() or "invalid" in reason:
            return ClassifiedError(
                DriveErrorCode.INVALID_TOKEN,
                "Invalid authentication credentials",
                status_code=401,
                **common,
            )
        if "revoked" in reason:
            return ClassifiedError(
                DriveErrorCode.TOKEN_REVOKED,
                "Authentication token has been revoked",
                status_code=401,
                **common,
            )
        return ClassifiedError(
            DriveErrorCode.TOKEN_EXPIRED,
            "Authentication token has expired",
            status_code=401,
            retryable=True,
            **common,
        )

    if status == 403:
        if "ratelimit" in reason:
            return ClassifiedError(
                DriveErrorCode.USER_RATE_LIMIT_EXCEEDED,
                "User rate limit exceeded. Please try again later.",
                status_code=403,
                retryable=True,
                retry_after=60.0,
                **common,
            )
        # storageQuotaExceeded also contains "quotaexceeded"
        if "storagequota" in reason:
            return ClassifiedError(
                DriveErrorCode.STORAGE_QUOTA_EXCEEDED,
                "Storage quota exceeded",
                status_code=403,
                **common,
            )
        if "dailylimitexceeded" in reason or "quotaexceeded" in reason:
            return ClassifiedError(
                DriveErrorCode.QUOTA_EXCEEDED,
                "Daily API quota exceeded",
                status_code=403,
                **common,
            )
        if "scope" in reason:
            return ClassifiedError(
                DriveErrorCode.INSUFFICIENT_SCOPES,
                "Insufficient OAuth scopes for this operation",
                status_code=403,
                **common,
            )
        return ClassifiedError(
            DriveErrorCode.PERMISSION_DENIED,
            message or "Access denied",
            status_code=403,
            **common,
        )

    if status == 404:
        return ClassifiedError(
            DriveErrorCode.FILE_NOT_FOUND,
            "File not found in Google Drive",
            status_code=404,
            **common,
        )

    if status == 429:
        return ClassifiedError(
            DriveErrorCode.RATE_LIMIT_EXCEEDED,
            "Rate limit exceeded. Please try again later.",
            status_code=429,
            retryable=True,
            retry_after=_parse_retry_after(response),
            **common,
        )

    if status >= 500:
        return ClassifiedError(
            DriveErrorCode.SERVICE_UNAVAILABLE
            if status == 503
            else DriveErrorCode.DRIVE_API_ERROR,
            "Google Drive service temporarily unavailable",
            status_code=status,
            retryable=status in (500, 502, 503, 504),
            retry_after=30.0,
            **common,
        )

    return ClassifiedError(
        DriveErrorCode.INVALID_REQUEST,
        message or "Invalid request to Google Drive API",
        status_code=status,
        **common,
    )


def classify_drive_error(error: BaseException) -> ClassifiedError:
    """
    Classify a raw Drive API error.

    Args:
        error: Exception raised by the Drive client

    Returns:
        ClassifiedError with a stable error code
    """
    if isinstance(error, httpx.HTTPStatusError):
        return _classify_http_error(error)

    if isinstance(error, (httpx.TimeoutException, TimeoutError)) or (
        "timeout" in str(error).lower() or "ETIMEDOUT" in str(error)
    ):
        return ClassifiedError(
            DriveErrorCode.TIMEOUT,
            "Request to Google Drive timed out",
            status_code=504,
            retryable=True,
            retry_after=30.0,
        )

    return ClassifiedError(
        DriveErrorCode.BACKEND_ERROR,
        str(error) or "An unexpected error occurred",
    )
