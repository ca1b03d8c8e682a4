"""Application key endpoints."""

from b2_client.api.endpoints.base import post_json
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.constants import CREATE_KEY, DELETE_KEY, LIST_KEYS
from b2_client.models.request import Response


async def create_key(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    account_id: str,
    key_name: str,
    capabilities: list[str],
    valid_duration_in_seconds: int | None = None,
    bucket_id: str | None = None,
    name_prefix: str | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(CREATE_KEY),
        token,
        {
            "accountId": account_id,
            "keyName": key_name,
            "capabilities": capabilities,
            "validDurationInSeconds": valid_duration_in_seconds,
            "bucketId": bucket_id,
            "namePrefix": name_prefix,
        },
    )


async def delete_key(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, application_key_id: str
) -> Response:
    return await post_json(
        http, router.api_url(DELETE_KEY), token, {"applicationKeyId": application_key_id}
    )


async def list_keys(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    account_id: str,
    max_key_count: int | None = None,
    start_application_key_id: str | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(LIST_KEYS),
        token,
        {
            "accountId": account_id,
            "maxKeyCount": max_key_count,
            "startApplicationKeyId": start_application_key_id,
        },
    )
