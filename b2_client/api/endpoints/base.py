"""Shared request helper for JSON control-plane endpoints."""

from typing import Any

from b2_client.api.headers import json_headers
from b2_client.api.http_client import AsyncHttpClient
from b2_client.models.request import JsonBody, RequestSpec, Response


def compact(payload: dict[str, Any]) -> dict[str, Any]:
    """Drop unset optional fields."""
    return {k: v for k, v in payload.items() if v is not None}


async def post_json(
    http: AsyncHttpClient,
    url: str,
    token: str,
    payload: dict[str, Any],
    *,
    timeout: float | None = None,
) -> Response:
    return await http.request(
        RequestSpec(
            method="POST",
            url=url,
            headers=json_headers(token),
            body=JsonBody(compact(payload)),
            timeout=timeout,
        )
    )
