"""
B2 client exception hierarchy.

All exceptions inherit from B2Error for easy catching. Every error carries the
same envelope: a classification kind, the HTTP status and service code when
known, retry metadata and an optional snapshot of the failing response.
"""

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Self

from b2_client.constants import RETRYABLE_ERROR_CODES, RETRYABLE_STATUS_CODES


class ErrorKind(StrEnum):
    """Closed classification of every failure the client can surface."""

    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    AUTHORIZATION_ERROR = "AUTHORIZATION_ERROR"
    NOT_FOUND_ERROR = "NOT_FOUND_ERROR"
    RATE_LIMIT_ERROR = "RATE_LIMIT_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"
    CLIENT_ERROR = "CLIENT_ERROR"
    SERVER_ERROR = "SERVER_ERROR"
    NETWORK_ERROR = "NETWORK_ERROR"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


@dataclass(frozen=True, kw_only=True)
class ResponseSnapshot:
    """
    What was received from the service when a request failed.

    Attributes:
        status: HTTP status code.
        status_text: HTTP reason phrase.
        headers: Response headers.
        data: Decoded response body.
    """

    status: int
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    data: Any = None


def policy_allows_retry(
    *, status: int | None = None, code: str | None = None, is_network_error: bool = False
) -> bool:
    """
    Default retry policy.

    Network failures, the transient status codes and the transient service
    codes are retried; any other 4xx is not; any other 5xx is.
    """
    if is_network_error:
        return True
    if status is not None and status in RETRYABLE_STATUS_CODES:
        return True
    if code is not None and code in RETRYABLE_ERROR_CODES:
        return True
    if status is not None and 500 <= status < 600:
        return True
    return False


class B2Error(Exception):
    """Base exception for all b2_client errors."""

    kind: ErrorKind = ErrorKind.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        *,
        kind: ErrorKind | None = None,
        status: int | None = None,
        status_text: str | None = None,
        code: str | None = None,
        response: ResponseSnapshot | None = None,
        is_retryable: bool | None = None,
        is_network_error: bool = False,
        is_http_error: bool = False,
        **context: Any,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.context = context
        if kind is not None:
            self.kind = kind
        self.status = status
        self.status_text = status_text
        self.code = code
        self.response = response
        self.is_network_error = is_network_error
        self.is_http_error = is_http_error
        if is_retryable is None:
            is_retryable = policy_allows_retry(
                status=status, code=code, is_network_error=is_network_error
            )
        self.is_retryable = is_retryable
        self.attempts = 0
        self.retry_exhausted = False

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message

    @property
    def cause(self) -> BaseException | None:
        """The underlying exception this error was raised from, if any."""
        return self.__cause__

    def rewrite(self, message: str) -> Self:
        """Replace the message in place, keeping status, code and cause."""
        self.message = message
        self.args = (message,)
        return self

    def to_dict(self) -> dict[str, Any]:
        """Deterministic serialisation for structured logs."""
        return {
            "name": type(self).__name__,
            "kind": str(self.kind),
            "message": self.message,
            "status": self.status,
            "status_text": self.status_text,
            "code": self.code,
            "is_retryable": self.is_retryable,
            "is_network_error": self.is_network_error,
            "is_http_error": self.is_http_error,
            "attempts": self.attempts,
            "retry_exhausted": self.retry_exhausted,
            "context": dict(self.context),
            "cause": repr(self.cause) if self.cause is not None else None,
        }

    def describe(self) -> str:
        """Human readable one-liner."""
        if self.is_network_error:
            return f"Network error: {self.message}"
        if self.status:
            status_info = f" {self.status_text}" if self.status_text else ""
            code_info = f" ({self.code})" if self.code else ""
            return f"HTTP {self.status}{status_info}{code_info}: {self.message}"
        return self.message


class ValidationError(B2Error):
    """Input rejected before any request was sent."""

    kind = ErrorKind.VALIDATION_ERROR

    def __init__(self, message: str, *, field: str | None = None) -> None:
        super().__init__(message, is_retryable=False, field=field)
        self.field = field


class NotAuthenticatedError(B2Error):
    """Operation requires a session but the client is not authorized."""

    kind = ErrorKind.AUTHENTICATION_ERROR

    def __init__(self, message: str = "Not authenticated. Call authorize() first.") -> None:
        super().__init__(message, is_retryable=False)


class MalformedAuthResponseError(B2Error):
    """Authorization succeeded on the wire but the payload lacks required fields."""

    def __init__(self, message: str, *, missing_field: str | None = None) -> None:
        super().__init__(message, is_retryable=False, missing_field=missing_field)
        self.missing_field = missing_field


class IntegrityError(B2Error):
    """Downloaded content does not match the SHA-1 announced by the service."""

    def __init__(self, message: str, *, expected: str, actual: str) -> None:
        super().__init__(message, is_retryable=False, expected=expected, actual=actual)
        self.expected = expected
        self.actual = actual


class HttpError(B2Error):
    """The service answered with a non-2xx status."""

    kind = ErrorKind.CLIENT_ERROR

    def __init__(
        self,
        message: str,
        *,
        status: int,
        status_text: str | None = None,
        code: str | None = None,
        response: ResponseSnapshot | None = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message,
            status=status,
            status_text=status_text,
            code=code,
            response=response,
            is_http_error=True,
            **context,
        )


class AuthenticationError(HttpError):
    """HTTP 401: bad or expired token, or bad credentials."""

    kind = ErrorKind.AUTHENTICATION_ERROR


class AuthorizationError(HttpError):
    """HTTP 403: the key lacks a required capability."""

    kind = ErrorKind.AUTHORIZATION_ERROR


class NotFoundError(HttpError):
    """HTTP 404."""

    kind = ErrorKind.NOT_FOUND_ERROR


class RateLimitError(HttpError):
    """HTTP 429."""

    kind = ErrorKind.RATE_LIMIT_ERROR

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        status: int = 429,
        retry_after: float | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, status=status, **kwargs)
        self.retry_after = retry_after


class ClientError(HttpError):
    """Any other 4xx."""

    def __init__(self, message: str, *, status: int, **kwargs: Any) -> None:
        super().__init__(message, status=status, **kwargs)
        if status == 408:
            self.kind = ErrorKind.TIMEOUT_ERROR


class ServerError(HttpError):
    """Server-side error (5xx)."""

    kind = ErrorKind.SERVER_ERROR


class NetworkError(B2Error):
    """Network-level error (connection refused, reset, DNS failure)."""

    kind = ErrorKind.NETWORK_ERROR

    def __init__(self, message: str, *, code: str | None = "network_error", **context: Any) -> None:
        super().__init__(message, code=code, is_network_error=True, **context)


class RequestTimeoutError(NetworkError):
    """The per-request deadline expired before the exchange completed."""

    kind = ErrorKind.TIMEOUT_ERROR

    def __init__(self, message: str = "Request timed out", **context: Any) -> None:
        super().__init__(message, code="timeout", **context)
