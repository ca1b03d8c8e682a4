import httpx
import pytest

from b2_client.core.errors import (
    classify,
    classify_status,
    create_http_error,
    create_network_error,
    create_timeout_error,
    format_error,
    is_auth_expired,
    is_rate_limited,
    is_retryable,
    parse_error_payload,
    rate_limit_delay,
)
from b2_client.exceptions import (
    AuthenticationError,
    AuthorizationError,
    ClientError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)


@pytest.mark.parametrize(
    ("status", "kind"),
    [
        (401, ErrorKind.AUTHENTICATION_ERROR),
        (403, ErrorKind.AUTHORIZATION_ERROR),
        (404, ErrorKind.NOT_FOUND_ERROR),
        (408, ErrorKind.TIMEOUT_ERROR),
        (429, ErrorKind.RATE_LIMIT_ERROR),
        (400, ErrorKind.CLIENT_ERROR),
        (409, ErrorKind.CLIENT_ERROR),
        (500, ErrorKind.SERVER_ERROR),
        (503, ErrorKind.SERVER_ERROR),
        (302, ErrorKind.UNKNOWN_ERROR),
        (None, ErrorKind.UNKNOWN_ERROR),
    ],
)
def test_classify_status(status: int | None, kind: ErrorKind) -> None:
    assert classify_status(status) == kind


@pytest.mark.parametrize(
    ("status", "error_type"),
    [
        (400, ClientError),
        (401, AuthenticationError),
        (403, AuthorizationError),
        (404, NotFoundError),
        (429, RateLimitError),
        (500, ServerError),
        (503, ServerError),
    ],
)
def test_create_http_error_picks_subclass(status: int, error_type: type) -> None:
    error = create_http_error(status=status, data={"code": "x", "message": "m"})

    assert isinstance(error, error_type)
    assert error.kind == classify_status(status)
    assert error.status == status


def test_create_http_error_keeps_code_message_and_snapshot() -> None:
    data = {"status": 400, "code": "bad_request", "message": "x"}

    error = create_http_error(
        status=400,
        status_text="Bad Request",
        headers={"content-type": "application/json"},
        data=data,
        method="POST",
        url="https://api/x",
    )

    assert error.code == "bad_request"
    assert error.message == "x"
    assert error.is_http_error is True
    assert error.is_retryable is False
    assert error.response is not None
    assert error.response.status == 400
    assert error.response.data == data
    assert error.context == {"method": "POST", "url": "https://api/x"}


def test_create_http_error_falls_back_to_reason_phrase() -> None:
    error = create_http_error(status=502, status_text="Bad Gateway", data="<html>oops</html>")

    assert error.message == "Bad Gateway"
    assert error.code is None


def test_parse_error_payload_alternate_field_names() -> None:
    code, message = parse_error_payload(
        {"error_code": "too_many_requests", "error_message": "slow down"}, status=429
    )

    assert code == "too_many_requests"
    assert message == "slow down"


def test_parse_error_payload_without_anything() -> None:
    assert parse_error_payload(None, status=418) == (None, "HTTP 418")


def test_rate_limit_error_reads_retry_after_header() -> None:
    error = create_http_error(status=429, headers={"retry-after": "7"}, data={})

    assert isinstance(error, RateLimitError)
    assert error.retry_after == 7.0
    assert rate_limit_delay(error) == 7.0


def test_rate_limit_delay_defaults_to_sixty_seconds() -> None:
    assert rate_limit_delay(RateLimitError()) == 60.0


def test_create_network_error_wraps_transport_error() -> None:
    cause = httpx.ConnectError("Connection refused")

    error = create_network_error(cause, method="GET", url="https://api/x")

    assert isinstance(error, NetworkError)
    assert error.kind == ErrorKind.NETWORK_ERROR
    assert error.is_network_error is True
    assert "Connection refused" in error.message


def test_create_network_error_from_timeout_is_timeout_error() -> None:
    error = create_network_error(httpx.ReadTimeout("read timed out"))

    assert isinstance(error, RequestTimeoutError)
    assert error.kind == ErrorKind.TIMEOUT_ERROR


def test_create_timeout_error_message_names_deadline() -> None:
    assert create_timeout_error(timeout=2.5).message == "Request timed out after 2.5s"


def test_classify_foreign_exceptions() -> None:
    assert classify(httpx.ReadTimeout("t")) == ErrorKind.TIMEOUT_ERROR
    assert classify(httpx.ConnectError("c")) == ErrorKind.NETWORK_ERROR
    assert classify(KeyError("k")) == ErrorKind.UNKNOWN_ERROR
    assert classify(ValidationError("v")) == ErrorKind.VALIDATION_ERROR


def test_is_retryable_follows_policy() -> None:
    assert is_retryable(ServerError("x", status=500)) is True
    assert is_retryable(ClientError("x", status=400, code="request_timeout")) is True
    assert is_retryable(ClientError("x", status=400, code="bad_request")) is False
    assert is_retryable(AuthenticationError("x", status=401)) is False
    assert is_retryable(ValidationError("x")) is False
    assert is_retryable(httpx.ConnectError("c")) is True
    assert is_retryable(KeyError("k")) is False


def test_is_auth_expired() -> None:
    expired = AuthenticationError("expired", status=401, code="expired_auth_token")
    bad_token = ClientError("bad", status=400, code="bad_auth_token")

    assert is_auth_expired(expired) is True
    assert is_auth_expired(bad_token) is True
    assert is_auth_expired(ServerError("x", status=500)) is False
    assert is_auth_expired(KeyError("k")) is False


def test_is_rate_limited() -> None:
    assert is_rate_limited(RateLimitError()) is True
    assert is_rate_limited(ClientError("x", status=400, code="too_many_requests")) is True
    assert is_rate_limited(ServerError("x", status=503)) is False


def test_format_error() -> None:
    assert format_error(NetworkError("reset")) == "Network error: reset"
    assert format_error(KeyError("k")) == "KeyError: 'k'"
