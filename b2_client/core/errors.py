"""
Error classification.

Turns raw HTTP responses and transport failures into the B2Error hierarchy,
and answers the questions the retry and refresh logic ask about a failure.
"""

from collections.abc import Mapping
from typing import Any

import httpx

from b2_client.constants import DEFAULT_RATE_LIMIT_DELAY, HEADER_RETRY_AFTER, B2ErrorCode
from b2_client.exceptions import (
    AuthenticationError,
    AuthorizationError,
    B2Error,
    ClientError,
    ErrorKind,
    HttpError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    ResponseSnapshot,
    ServerError,
    ValidationError,
    policy_allows_retry,
)

_AUTH_EXPIRED_CODES = frozenset({B2ErrorCode.EXPIRED_AUTH_TOKEN, B2ErrorCode.BAD_AUTH_TOKEN})


def classify_status(status: int | None) -> ErrorKind:
    if status is None:
        return ErrorKind.UNKNOWN_ERROR
    if status == 401:
        return ErrorKind.AUTHENTICATION_ERROR
    if status == 403:
        return ErrorKind.AUTHORIZATION_ERROR
    if status == 404:
        return ErrorKind.NOT_FOUND_ERROR
    if status == 408:
        return ErrorKind.TIMEOUT_ERROR
    if status == 429:
        return ErrorKind.RATE_LIMIT_ERROR
    if 400 <= status < 500:
        return ErrorKind.CLIENT_ERROR
    if 500 <= status < 600:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.UNKNOWN_ERROR


def classify(error: BaseException) -> ErrorKind:
    """Map any failure onto the closed error taxonomy."""
    if isinstance(error, B2Error):
        return error.kind
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return ErrorKind.TIMEOUT_ERROR
    if isinstance(error, httpx.TransportError):
        return ErrorKind.NETWORK_ERROR
    return ErrorKind.UNKNOWN_ERROR


def is_retryable(error: BaseException) -> bool:
    """Evaluate the default retry policy on a failure."""
    if isinstance(error, ValidationError):
        return False
    if isinstance(error, B2Error):
        return policy_allows_retry(
            status=error.status, code=error.code, is_network_error=error.is_network_error
        )
    return isinstance(error, (httpx.TransportError, TimeoutError))


def parse_error_payload(
    data: Any, *, status: int, status_text: str = ""
) -> tuple[str | None, str]:
    """
    Extract ``(code, message)`` from a service error body.

    Accepts ``code``/``message`` or ``error_code``/``error_message``/``error``.
    Falls back to the reason phrase, then to ``HTTP <status>``.
    """
    code = None
    message = None
    if isinstance(data, Mapping):
        code = data.get("code") or data.get("error_code")
        message = data.get("message") or data.get("error_message") or data.get("error")
    if not message:
        message = status_text or f"HTTP {status}"
    return (str(code) if code else None), str(message)


def _retry_after_seconds(headers: Mapping[str, str] | None) -> float | None:
    if not headers:
        return None
    value = headers.get(HEADER_RETRY_AFTER) or headers.get(HEADER_RETRY_AFTER.lower())
    if value is None:
        return None
    try:
        seconds = float(value)
    except ValueError:
        return None
    return seconds if seconds >= 0 else None


def create_http_error(
    *,
    status: int,
    status_text: str = "",
    headers: Mapping[str, str] | None = None,
    data: Any = None,
    method: str | None = None,
    url: str | None = None,
) -> HttpError:
    """Build the HttpError subclass matching ``status`` from a decoded error body."""
    code, message = parse_error_payload(data, status=status, status_text=status_text)
    snapshot = ResponseSnapshot(
        status=status,
        status_text=status_text,
        headers=dict(headers or {}),
        data=data,
    )
    kwargs: dict[str, Any] = {
        "status": status,
        "status_text": status_text,
        "code": code,
        "response": snapshot,
    }
    if method is not None:
        kwargs["method"] = method
    if url is not None:
        kwargs["url"] = url

    if status == 401:
        return AuthenticationError(message, **kwargs)
    if status == 403:
        return AuthorizationError(message, **kwargs)
    if status == 404:
        return NotFoundError(message, **kwargs)
    if status == 429:
        return RateLimitError(message, retry_after=_retry_after_seconds(headers), **kwargs)
    if 500 <= status < 600:
        return ServerError(message, **kwargs)
    return ClientError(message, **kwargs)


def create_network_error(
    cause: BaseException, *, method: str | None = None, url: str | None = None
) -> NetworkError:
    """Wrap a transport failure; the caller raises it ``from cause``."""
    message = str(cause) or type(cause).__name__
    if isinstance(cause, (httpx.TimeoutException, TimeoutError)):
        return create_timeout_error(method=method, url=url)
    return NetworkError(f"Network error: {message}", method=method, url=url)


def create_timeout_error(
    *, timeout: float | None = None, method: str | None = None, url: str | None = None
) -> RequestTimeoutError:
    if timeout is not None:
        message = f"Request timed out after {timeout:g}s"
    else:
        message = "Request timed out"
    return RequestTimeoutError(message, method=method, url=url)


def is_auth_expired(error: BaseException) -> bool:
    """True for 401s and for the expired/bad token service codes."""
    if not isinstance(error, B2Error):
        return False
    return error.status == 401 or error.code in _AUTH_EXPIRED_CODES


def is_rate_limited(error: BaseException) -> bool:
    if not isinstance(error, B2Error):
        return False
    return error.status == 429 or error.code == B2ErrorCode.TOO_MANY_REQUESTS


def rate_limit_delay(error: BaseException) -> float:
    """Seconds to wait before retrying a rate-limited call (Retry-After, else 60)."""
    if isinstance(error, RateLimitError) and error.retry_after is not None:
        return error.retry_after
    if isinstance(error, B2Error) and error.response is not None:
        seconds = _retry_after_seconds(error.response.headers)
        if seconds is not None:
            return seconds
    return DEFAULT_RATE_LIMIT_DELAY


def format_error(error: BaseException) -> str:
    if isinstance(error, B2Error):
        return error.describe()
    return f"{type(error).__name__}: {error}"
