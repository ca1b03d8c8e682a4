"""
Authorization service for B2.

Owns the session obtained from ``b2_authorize_account`` and refreshes it on
demand.
"""

import asyncio
from collections.abc import Mapping
from typing import Any

import structlog

from b2_client.api.endpoints.auth import authorize_account
from b2_client.api.headers import bearer_auth_header
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.config import B2Config
from b2_client.exceptions import B2Error, MalformedAuthResponseError, NotAuthenticatedError
from b2_client.models.auth import Credentials, Session
from b2_client.validation import validate_credentials

logger = structlog.get_logger(__name__)

_REQUIRED_FIELDS = ("authorizationToken", "apiUrl", "downloadUrl", "accountId")

INVALID_CREDENTIALS_MESSAGE = (
    "Authentication failed: Invalid application key ID or application key"
)


def parse_authorize_response(payload: Mapping[str, Any]) -> Session:
    """
    Build a Session from an authorize payload.

    Accepts the flat shape (every field at the root) and the nested shape
    (``apiInfo.storageApi`` holding URLs, part sizes and ``allowed``).

    Raises:
        MalformedAuthResponseError: If a required field is missing.
    """
    if not isinstance(payload, Mapping):
        msg = "Authorization response is not a JSON object"
        raise MalformedAuthResponseError(msg)

    storage = (payload.get("apiInfo") or {}).get("storageApi") or {}

    def pick(name: str) -> Any:
        value = storage.get(name)
        return value if value is not None else payload.get(name)

    values = {name: pick(name) for name in _REQUIRED_FIELDS}
    for name, value in values.items():
        if not value:
            msg = f"Authorization response is missing {name}"
            raise MalformedAuthResponseError(msg, missing_field=name)

    allowed = pick("allowed") or {}
    return Session(
        authorization_token=values["authorizationToken"],
        api_url=values["apiUrl"],
        download_url=values["downloadUrl"],
        account_id=values["accountId"],
        recommended_part_size=pick("recommendedPartSize"),
        absolute_minimum_part_size=pick("absoluteMinimumPartSize"),
        capabilities=frozenset(allowed.get("capabilities") or ()),
        allowed=dict(allowed),
    )


class AuthService:
    """
    Holds the current Session.

    Concurrency:
    - Readers take a single attribute read of an immutable Session, so they see
      either the old or the new session, never a mix.
    - Writers (authorize, refresh, clear, install) are serialized by a lock.
    - Concurrent refreshes of the same stale session coalesce into one
      authorization round trip.
    """

    def __init__(self, http_client: AsyncHttpClient, config: B2Config) -> None:
        """
        Args:
            http_client: HTTP client for API requests.
            config: Client configuration.
        """
        self._http = http_client
        self._session: Session | None = None
        self._lock = asyncio.Lock()
        self.router = EndpointRouter(lambda: self._session, default_api_url=config.api_url)

    @property
    def session(self) -> Session | None:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def authorization_token(self) -> str | None:
        session = self._session
        return session.authorization_token if session else None

    @property
    def api_url(self) -> str | None:
        session = self._session
        return session.api_url if session else None

    @property
    def download_url(self) -> str | None:
        session = self._session
        return session.download_url if session else None

    @property
    def account_id(self) -> str | None:
        session = self._session
        return session.account_id if session else None

    @property
    def recommended_part_size(self) -> int | None:
        session = self._session
        return session.recommended_part_size if session else None

    @property
    def absolute_minimum_part_size(self) -> int | None:
        session = self._session
        return session.absolute_minimum_part_size if session else None

    @property
    def capabilities(self) -> frozenset[str] | None:
        session = self._session
        return session.capabilities if session else None

    def require_session(self) -> Session:
        session = self._session
        if session is None:
            raise NotAuthenticatedError()
        return session

    def require_auth_headers(self) -> dict[str, str]:
        return bearer_auth_header(self.require_session().authorization_token)

    async def authorize(self, credentials: Credentials) -> Session:
        """
        Authorize the account and install a fresh session.

        On failure any previous session is cleared.

        Raises:
            ValidationError: If either credential is blank.
            AuthenticationError: If the service rejects the key.
            MalformedAuthResponseError: If the answer lacks required fields.
        """
        validate_credentials(credentials.application_key_id, credentials.application_key)
        async with self._lock:
            return await self._authorize_locked(credentials)

    async def refresh(self, credentials: Credentials, *, stale: Session | None = None) -> Session:
        """
        Replace the session with a newly authorized one.

        Args:
            credentials: Key pair to re-authorize with.
            stale: The session the caller saw fail. If another task already
                replaced it, that newer session is returned without a round trip.
        """
        validate_credentials(credentials.application_key_id, credentials.application_key)
        async with self._lock:
            if stale is not None and self._session is not None and self._session is not stale:
                logger.debug("Session already refreshed by another task")
                return self._session
            # Old session stays readable until the new one replaces it
            logger.info("Refreshing authorization")
            return await self._authorize_locked(credentials)

    async def clear(self) -> None:
        async with self._lock:
            self._session = None
        logger.debug("Session cleared")

    async def install(self, payload: Mapping[str, Any]) -> Session:
        """Install a session from a previously saved authorize payload."""
        session = parse_authorize_response(payload)
        async with self._lock:
            self._session = session
        logger.info("Session installed", account_id=session.account_id)
        return session

    async def _authorize_locked(self, credentials: Credentials) -> Session:
        try:
            response = await authorize_account(
                self._http,
                self.router,
                credentials.application_key_id,
                credentials.application_key,
            )
            session = parse_authorize_response(response.data)
        except B2Error as e:
            self._session = None
            if e.status == 401:
                e.rewrite(INVALID_CREDENTIALS_MESSAGE)
            logger.warning("Authorization failed", error=e.describe())
            raise
        except Exception:
            self._session = None
            raise

        self._session = session
        logger.info(
            "Authorization successful",
            account_id=session.account_id,
            api_url=session.api_url,
        )
        return session
