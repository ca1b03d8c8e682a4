"""Bucket endpoints."""

from typing import Any

from b2_client.api.endpoints.base import post_json
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.constants import (
    CREATE_BUCKET,
    DELETE_BUCKET,
    GET_UPLOAD_URL,
    LIST_BUCKETS,
    UPDATE_BUCKET,
)
from b2_client.models.request import Response


async def create_bucket(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    account_id: str,
    bucket_name: str,
    bucket_type: str,
    bucket_info: dict[str, Any] | None = None,
    cors_rules: list[dict[str, Any]] | None = None,
    lifecycle_rules: list[dict[str, Any]] | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(CREATE_BUCKET),
        token,
        {
            "accountId": account_id,
            "bucketName": bucket_name,
            "bucketType": bucket_type,
            "bucketInfo": bucket_info,
            "corsRules": cors_rules,
            "lifecycleRules": lifecycle_rules,
        },
    )


async def delete_bucket(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, account_id: str, bucket_id: str
) -> Response:
    return await post_json(
        http,
        router.api_url(DELETE_BUCKET),
        token,
        {"accountId": account_id, "bucketId": bucket_id},
    )


async def list_buckets(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    account_id: str,
    bucket_id: str | None = None,
    bucket_name: str | None = None,
    bucket_types: list[str] | None = None,
) -> Response:
    """List buckets, optionally narrowed to one id or one name."""
    return await post_json(
        http,
        router.api_url(LIST_BUCKETS),
        token,
        {
            "accountId": account_id,
            "bucketId": bucket_id,
            "bucketName": bucket_name,
            "bucketTypes": bucket_types,
        },
    )


async def update_bucket(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    account_id: str,
    bucket_id: str,
    bucket_type: str | None = None,
    bucket_info: dict[str, Any] | None = None,
    if_revision_is: int | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(UPDATE_BUCKET),
        token,
        {
            "accountId": account_id,
            "bucketId": bucket_id,
            "bucketType": bucket_type,
            "bucketInfo": bucket_info,
            "ifRevisionIs": if_revision_is,
        },
    )


async def get_upload_url(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, bucket_id: str
) -> Response:
    """Response carries bucketId, uploadUrl and authorizationToken."""
    return await post_json(http, router.api_url(GET_UPLOAD_URL), token, {"bucketId": bucket_id})
