"""
Bucket lifecycle operations.
"""

from typing import Any

import structlog

from b2_client.api.endpoints import buckets
from b2_client.api.http_client import AsyncHttpClient
from b2_client.constants import B2ErrorCode
from b2_client.exceptions import B2Error, ValidationError
from b2_client.models.large_file import UploadTarget
from b2_client.models.request import Response
from b2_client.services.auth_service import AuthService
from b2_client.validation import (
    require_string,
    validate_bucket_name,
    validate_bucket_type,
)

logger = structlog.get_logger(__name__)


class BucketService:
    """Create, list, update and delete buckets."""

    def __init__(self, http_client: AsyncHttpClient, auth_service: AuthService) -> None:
        self._http = http_client
        self._auth = auth_service

    async def create(
        self,
        bucket_name: str,
        bucket_type: str,
        *,
        bucket_info: dict[str, Any] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
    ) -> Response:
        validate_bucket_name(bucket_name)
        kind = validate_bucket_type(bucket_type)
        session = self._auth.require_session()
        try:
            response = await buckets.create_bucket(
                self._http,
                self._auth.router,
                session.authorization_token,
                account_id=session.account_id,
                bucket_name=bucket_name,
                bucket_type=kind,
                bucket_info=bucket_info,
                cors_rules=cors_rules,
                lifecycle_rules=lifecycle_rules,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.DUPLICATE_BUCKET_NAME:
                e.rewrite(f"Bucket name '{bucket_name}' already exists")
            elif e.code == B2ErrorCode.INVALID_BUCKET_NAME:
                e.rewrite(f"Invalid bucket name: {bucket_name}")
            raise
        logger.info("Bucket created", bucket_name=bucket_name, bucket_type=kind)
        return response

    async def delete(self, bucket_id: str) -> Response:
        require_string(bucket_id, "bucket_id")
        session = self._auth.require_session()
        try:
            response = await buckets.delete_bucket(
                self._http,
                self._auth.router,
                session.authorization_token,
                account_id=session.account_id,
                bucket_id=bucket_id,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.BUCKET_NOT_EMPTY:
                e.rewrite(f"Bucket {bucket_id} is not empty")
            elif e.code == B2ErrorCode.INVALID_BUCKET_ID:
                e.rewrite(f"Invalid bucket ID: {bucket_id}")
            raise
        logger.info("Bucket deleted", bucket_id=bucket_id)
        return response

    async def list(
        self,
        *,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
        bucket_types: list[str] | None = None,
    ) -> Response:
        session = self._auth.require_session()
        return await buckets.list_buckets(
            self._http,
            self._auth.router,
            session.authorization_token,
            account_id=session.account_id,
            bucket_id=bucket_id,
            bucket_name=bucket_name,
            bucket_types=bucket_types,
        )

    async def get(
        self, *, bucket_name: str | None = None, bucket_id: str | None = None
    ) -> Response:
        """
        Look a bucket up by exactly one of name or id.

        Returns the ``b2_list_buckets`` response narrowed to that bucket.
        """
        if (bucket_name is None) == (bucket_id is None):
            msg = "Exactly one of bucket_name or bucket_id is required"
            raise ValidationError(msg, field="bucket_name")
        if bucket_name is not None:
            validate_bucket_name(bucket_name)
        else:
            require_string(bucket_id, "bucket_id")
        return await self.list(bucket_id=bucket_id, bucket_name=bucket_name)

    async def update(
        self,
        bucket_id: str,
        bucket_type: str,
        *,
        bucket_info: dict[str, Any] | None = None,
        if_revision_is: int | None = None,
    ) -> Response:
        require_string(bucket_id, "bucket_id")
        kind = validate_bucket_type(bucket_type)
        session = self._auth.require_session()
        try:
            return await buckets.update_bucket(
                self._http,
                self._auth.router,
                session.authorization_token,
                account_id=session.account_id,
                bucket_id=bucket_id,
                bucket_type=kind,
                bucket_info=bucket_info,
                if_revision_is=if_revision_is,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.INVALID_BUCKET_ID:
                e.rewrite(f"Invalid bucket ID: {bucket_id}")
            raise

    async def get_upload_url(self, bucket_id: str) -> Response:
        require_string(bucket_id, "bucket_id")
        session = self._auth.require_session()
        try:
            return await buckets.get_upload_url(
                self._http, self._auth.router, session.authorization_token, bucket_id=bucket_id
            )
        except B2Error as e:
            if e.code == B2ErrorCode.INVALID_BUCKET_ID:
                e.rewrite(f"Invalid bucket ID: {bucket_id}")
            raise


def upload_target(response: Response) -> UploadTarget:
    """Read an upload URL and its token out of a get-upload-url response."""
    data = response.json()
    return UploadTarget(
        upload_url=data["uploadUrl"],
        authorization_token=data["authorizationToken"],
        bucket_id=data.get("bucketId"),
        file_id=data.get("fileId"),
    )
