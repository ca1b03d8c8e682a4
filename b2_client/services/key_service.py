"""
Application key management.
"""

from collections.abc import Iterable

import structlog

from b2_client.api.endpoints import keys
from b2_client.api.http_client import AsyncHttpClient
from b2_client.constants import B2ErrorCode
from b2_client.exceptions import B2Error, ValidationError
from b2_client.models.request import Response
from b2_client.services.auth_service import AuthService
from b2_client.validation import (
    require_string,
    validate_capabilities,
    validate_count,
    validate_key_duration,
    validate_key_name,
)

logger = structlog.get_logger(__name__)


class KeyService:
    """Create, list and delete application keys."""

    def __init__(self, http_client: AsyncHttpClient, auth_service: AuthService) -> None:
        self._http = http_client
        self._auth = auth_service

    async def create(
        self,
        key_name: str,
        capabilities: Iterable[str],
        *,
        valid_duration_in_seconds: int | None = None,
        bucket_id: str | None = None,
        name_prefix: str | None = None,
    ) -> Response:
        """
        Create an application key.

        The response holds the new secret; it is only returned once.

        Raises:
            ValidationError: Bad name, empty/unknown/duplicate capabilities,
                a duration outside 1s..1000 days, or a name prefix without a
                bucket restriction.
        """
        validate_key_name(key_name)
        granted = validate_capabilities(capabilities)
        validate_key_duration(valid_duration_in_seconds)
        if bucket_id is not None:
            require_string(bucket_id, "bucket_id")
        if name_prefix is not None and bucket_id is None:
            msg = "name_prefix requires bucket_id"
            raise ValidationError(msg, field="name_prefix")
        session = self._auth.require_session()

        response = await keys.create_key(
            self._http,
            self._auth.router,
            session.authorization_token,
            account_id=session.account_id,
            key_name=key_name,
            capabilities=granted,
            valid_duration_in_seconds=valid_duration_in_seconds,
            bucket_id=bucket_id,
            name_prefix=name_prefix,
        )
        logger.info("Application key created", key_name=key_name, capabilities=granted)
        return response

    async def delete(self, application_key_id: str) -> Response:
        require_string(application_key_id, "application_key_id")
        session = self._auth.require_session()
        try:
            response = await keys.delete_key(
                self._http,
                self._auth.router,
                session.authorization_token,
                application_key_id=application_key_id,
            )
        except B2Error as e:
            if e.status == 400 and e.code in (B2ErrorCode.NOT_ALLOWED, B2ErrorCode.BAD_REQUEST):
                e.rewrite(f"Invalid application key ID: {application_key_id}")
            raise
        logger.info("Application key deleted", application_key_id=application_key_id)
        return response

    async def list(
        self,
        *,
        max_key_count: int | None = None,
        start_application_key_id: str | None = None,
    ) -> Response:
        validate_count(max_key_count, "max_key_count")
        session = self._auth.require_session()
        return await keys.list_keys(
            self._http,
            self._auth.router,
            session.authorization_token,
            account_id=session.account_id,
            max_key_count=max_key_count,
            start_application_key_id=start_application_key_id,
        )
