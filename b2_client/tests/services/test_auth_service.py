import asyncio
from unittest.mock import AsyncMock, Mock

import pytest

from b2_client.config import B2Config
from b2_client.exceptions import (
    AuthenticationError,
    MalformedAuthResponseError,
    NotAuthenticatedError,
    ServerError,
    ValidationError,
)
from b2_client.models.auth import Credentials
from b2_client.services.auth_service import AuthService, parse_authorize_response
from b2_client.tests.utils.factories import (
    ACCOUNT_ID,
    API_URL,
    APPLICATION_KEY,
    AUTH_TOKEN,
    DOWNLOAD_URL,
    KEY_ID,
    make_authorize_payload,
    make_response,
)

CREDENTIALS = Credentials(application_key_id=KEY_ID, application_key=APPLICATION_KEY)


@pytest.fixture
def mock_http() -> Mock:
    return Mock()


@pytest.fixture
def auth_service(mock_http: Mock) -> AuthService:
    return AuthService(mock_http, B2Config())


# Payload parsing tests


def test_parse_nested_payload() -> None:
    session = parse_authorize_response(make_authorize_payload(capabilities=["listBuckets"]))

    assert session.authorization_token == AUTH_TOKEN
    assert session.api_url == API_URL
    assert session.download_url == DOWNLOAD_URL
    assert session.account_id == ACCOUNT_ID
    assert session.recommended_part_size == 100_000_000
    assert session.absolute_minimum_part_size == 5_000_000
    assert session.capabilities == frozenset({"listBuckets"})
    assert session.has_capability("listBuckets")


def test_parse_flat_payload() -> None:
    session = parse_authorize_response(
        {
            "accountId": ACCOUNT_ID,
            "authorizationToken": AUTH_TOKEN,
            "apiUrl": API_URL,
            "downloadUrl": DOWNLOAD_URL,
            "recommendedPartSize": 100_000_000,
            "allowed": {"capabilities": ["readFiles"], "bucketId": "b1"},
        }
    )

    assert session.api_url == API_URL
    assert session.capabilities == frozenset({"readFiles"})
    assert session.allowed["bucketId"] == "b1"
    assert session.absolute_minimum_part_size is None


@pytest.mark.parametrize("missing", ["authorizationToken", "accountId"])
def test_parse_rejects_missing_root_fields(missing: str) -> None:
    payload = make_authorize_payload()
    del payload[missing]

    with pytest.raises(MalformedAuthResponseError) as exc_info:
        parse_authorize_response(payload)

    assert exc_info.value.missing_field == missing


def test_parse_rejects_missing_api_url() -> None:
    payload = make_authorize_payload()
    del payload["apiInfo"]["storageApi"]["apiUrl"]

    with pytest.raises(MalformedAuthResponseError, match="apiUrl"):
        parse_authorize_response(payload)


def test_parse_rejects_non_object() -> None:
    with pytest.raises(MalformedAuthResponseError):
        parse_authorize_response("<html>")  # type: ignore[arg-type]


# Authorization tests


@pytest.mark.asyncio
async def test_authorize_installs_session(auth_service: AuthService, mock_http: Mock) -> None:
    mock_http.request = AsyncMock(return_value=make_response(make_authorize_payload()))

    session = await auth_service.authorize(CREDENTIALS)

    assert auth_service.is_authenticated
    assert auth_service.session is session
    assert auth_service.authorization_token == AUTH_TOKEN
    assert auth_service.api_url == API_URL
    assert auth_service.router.api_base == API_URL
    assert auth_service.require_auth_headers() == {"Authorization": AUTH_TOKEN}
    mock_http.request.assert_awaited_once()


@pytest.mark.asyncio
async def test_authorize_rejects_blank_credentials(
    auth_service: AuthService, mock_http: Mock
) -> None:
    mock_http.request = AsyncMock()

    with pytest.raises(ValidationError):
        await auth_service.authorize(Credentials(application_key_id=" ", application_key="k"))

    mock_http.request.assert_not_awaited()


@pytest.mark.asyncio
async def test_authorize_401_rewrites_message_and_clears_session(
    auth_service: AuthService, mock_http: Mock
) -> None:
    mock_http.request = AsyncMock(
        side_effect=[
            make_response(make_authorize_payload()),
            AuthenticationError("bad key", status=401, code="unauthorized"),
        ]
    )
    await auth_service.authorize(CREDENTIALS)

    with pytest.raises(AuthenticationError) as exc_info:
        await auth_service.authorize(CREDENTIALS)

    assert exc_info.value.message == (
        "Authentication failed: Invalid application key ID or application key"
    )
    assert exc_info.value.code == "unauthorized"
    assert auth_service.session is None


@pytest.mark.asyncio
async def test_authorize_keeps_non_401_message(
    auth_service: AuthService, mock_http: Mock
) -> None:
    mock_http.request = AsyncMock(side_effect=ServerError("down", status=503))

    with pytest.raises(ServerError, match="down"):
        await auth_service.authorize(CREDENTIALS)


@pytest.mark.asyncio
async def test_authorize_malformed_payload_clears_session(
    auth_service: AuthService, mock_http: Mock
) -> None:
    mock_http.request = AsyncMock(return_value=make_response({"accountId": ACCOUNT_ID}))

    with pytest.raises(MalformedAuthResponseError):
        await auth_service.authorize(CREDENTIALS)

    assert not auth_service.is_authenticated


# Refresh tests


@pytest.mark.asyncio
async def test_refresh_replaces_session(auth_service: AuthService, mock_http: Mock) -> None:
    mock_http.request = AsyncMock(
        side_effect=[
            make_response(make_authorize_payload("token-1")),
            make_response(make_authorize_payload("token-2")),
        ]
    )
    first = await auth_service.authorize(CREDENTIALS)

    second = await auth_service.refresh(CREDENTIALS, stale=first)

    assert second is not first
    assert auth_service.authorization_token == "token-2"


@pytest.mark.asyncio
async def test_concurrent_refreshes_coalesce(auth_service: AuthService, mock_http: Mock) -> None:
    mock_http.request = AsyncMock(
        side_effect=[
            make_response(make_authorize_payload("token-1")),
            make_response(make_authorize_payload("token-2")),
        ]
    )
    stale = await auth_service.authorize(CREDENTIALS)

    results = await asyncio.gather(
        auth_service.refresh(CREDENTIALS, stale=stale),
        auth_service.refresh(CREDENTIALS, stale=stale),
        auth_service.refresh(CREDENTIALS, stale=stale),
    )

    assert mock_http.request.await_count == 2
    assert {s.authorization_token for s in results} == {"token-2"}


@pytest.mark.asyncio
async def test_old_session_readable_while_refresh_in_flight(
    auth_service: AuthService, mock_http: Mock
) -> None:
    in_flight = asyncio.Event()
    release = asyncio.Event()

    async def slow_authorize(*args: object, **kwargs: object) -> object:
        in_flight.set()
        await release.wait()
        return make_response(make_authorize_payload("token-2"))

    mock_http.request = AsyncMock(return_value=make_response(make_authorize_payload("token-1")))
    old = await auth_service.authorize(CREDENTIALS)
    mock_http.request = AsyncMock(side_effect=slow_authorize)

    refresh = asyncio.create_task(auth_service.refresh(CREDENTIALS, stale=old))
    await in_flight.wait()

    assert auth_service.require_session() is old
    assert auth_service.authorization_token == "token-1"

    release.set()
    new = await refresh

    assert auth_service.session is new
    assert auth_service.authorization_token == "token-2"


@pytest.mark.asyncio
async def test_failed_refresh_clears_session(auth_service: AuthService, mock_http: Mock) -> None:
    mock_http.request = AsyncMock(
        side_effect=[
            make_response(make_authorize_payload("token-1")),
            ServerError("down", status=503),
        ]
    )
    old = await auth_service.authorize(CREDENTIALS)

    with pytest.raises(ServerError):
        await auth_service.refresh(CREDENTIALS, stale=old)

    assert auth_service.session is None


# Session lifecycle tests


@pytest.mark.asyncio
async def test_clear_drops_session(auth_service: AuthService, mock_http: Mock) -> None:
    mock_http.request = AsyncMock(return_value=make_response(make_authorize_payload()))
    await auth_service.authorize(CREDENTIALS)

    await auth_service.clear()

    assert auth_service.session is None
    assert auth_service.account_id is None
    with pytest.raises(NotAuthenticatedError):
        auth_service.require_session()


@pytest.mark.asyncio
async def test_install_uses_saved_payload_without_request(
    auth_service: AuthService, mock_http: Mock
) -> None:
    mock_http.request = AsyncMock()

    session = await auth_service.install(make_authorize_payload("saved"))

    assert session.authorization_token == "saved"
    assert auth_service.download_url == DOWNLOAD_URL
    mock_http.request.assert_not_awaited()


def test_accessors_are_none_before_authorization(auth_service: AuthService) -> None:
    assert auth_service.is_authenticated is False
    assert auth_service.authorization_token is None
    assert auth_service.recommended_part_size is None
    assert auth_service.capabilities is None
