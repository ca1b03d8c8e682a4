"""
URL construction for every B2 operation.
"""

from collections.abc import Callable, Mapping
from typing import Any
from urllib.parse import urlencode

from b2_client.api.headers import percent_encode, percent_encode_segment
from b2_client.constants import (
    AUTHORIZE_ACCOUNT,
    DEFAULT_API_URL,
    DOWNLOAD_FILE_BY_ID,
    DOWNLOAD_FILE_BY_NAME,
)
from b2_client.exceptions import NotAuthenticatedError
from b2_client.models.auth import Session


def _join(base: str, path: str, query: Mapping[str, Any] | None) -> str:
    url = base.rstrip("/") + "/" + path.lstrip("/")
    if query:
        pairs = [(k, _query_value(v)) for k, v in query.items() if v is not None]
        if pairs:
            url = f"{url}?{urlencode(pairs)}"
    return url


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class EndpointRouter:
    """
    Derives concrete URLs from the current session.

    Args:
        session_provider: Returns the current Session, or None before authorization.
        default_api_url: Base used when no session is installed.
    """

    def __init__(
        self,
        session_provider: Callable[[], Session | None],
        *,
        default_api_url: str = DEFAULT_API_URL,
    ) -> None:
        self._session_provider = session_provider
        self._default_api_url = default_api_url

    @property
    def api_base(self) -> str:
        session = self._session_provider()
        return session.api_url if session is not None else self._default_api_url

    @property
    def download_base(self) -> str:
        session = self._session_provider()
        if session is None:
            raise NotAuthenticatedError()
        return session.download_url

    def authorize_url(self) -> str:
        # Always against the default host: the session is what we are fetching
        return _join(self._default_api_url, AUTHORIZE_ACCOUNT, None)

    def api_url(self, endpoint: str, query: Mapping[str, Any] | None = None) -> str:
        return _join(self.api_base, endpoint, query)

    def download_url(self, path: str, query: Mapping[str, Any] | None = None) -> str:
        return _join(self.download_base, path, query)

    def download_by_name_url(self, bucket_name: str, file_name: str) -> str:
        """``{download}/file/{bucket}/{name}`` with both parts percent-encoded."""
        path = (
            f"{DOWNLOAD_FILE_BY_NAME}/{percent_encode_segment(bucket_name)}/"
            f"{percent_encode(file_name)}"
        )
        return _join(self.download_base, path, None)

    def download_by_id_url(self, file_id: str) -> str:
        return self.download_url(DOWNLOAD_FILE_BY_ID, {"fileId": file_id})
