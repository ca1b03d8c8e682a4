"""Large-file endpoints: start, part upload, finish, cancel and recovery listings."""

from b2_client.api.endpoints.base import post_json
from b2_client.api.headers import part_upload_headers
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.constants import (
    CANCEL_LARGE_FILE,
    CONTENT_TYPE_OCTET_STREAM,
    FINISH_LARGE_FILE,
    GET_UPLOAD_PART_URL,
    LIST_PARTS,
    LIST_UNFINISHED_LARGE_FILES,
    START_LARGE_FILE,
)
from b2_client.core.progress import ObserverLike
from b2_client.models.large_file import UploadTarget
from b2_client.models.request import Body, RequestSpec, Response


async def start_large_file(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    bucket_id: str,
    file_name: str,
    content_type: str | None = None,
    file_info: dict[str, str] | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(START_LARGE_FILE),
        token,
        {
            "bucketId": bucket_id,
            "fileName": file_name,
            "contentType": content_type or CONTENT_TYPE_OCTET_STREAM,
            "fileInfo": file_info or None,
        },
    )


async def get_upload_part_url(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, file_id: str
) -> Response:
    """Response carries fileId, uploadUrl and a part-scoped authorizationToken."""
    return await post_json(http, router.api_url(GET_UPLOAD_PART_URL), token, {"fileId": file_id})


async def upload_part(
    http: AsyncHttpClient,
    target: UploadTarget,
    *,
    part_number: int,
    body: Body,
    content_sha1: str,
    content_length: int,
    timeout: float | None = None,
    on_upload_progress: ObserverLike | None = None,
) -> Response:
    headers = part_upload_headers(
        token=target.authorization_token,
        part_number=part_number,
        content_sha1=content_sha1,
        content_length=content_length,
    )
    return await http.request(
        RequestSpec(
            method="POST",
            url=target.upload_url,
            headers=headers,
            body=body,
            timeout=timeout,
            on_upload_progress=on_upload_progress,
        )
    )


async def finish_large_file(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    file_id: str,
    part_sha1_array: list[str],
) -> Response:
    return await post_json(
        http,
        router.api_url(FINISH_LARGE_FILE),
        token,
        {"fileId": file_id, "partSha1Array": part_sha1_array},
    )


async def cancel_large_file(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, file_id: str
) -> Response:
    return await post_json(http, router.api_url(CANCEL_LARGE_FILE), token, {"fileId": file_id})


async def list_parts(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    file_id: str,
    start_part_number: int | None = None,
    max_part_count: int | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(LIST_PARTS),
        token,
        {
            "fileId": file_id,
            "startPartNumber": start_part_number,
            "maxPartCount": max_part_count,
        },
    )


async def list_unfinished_large_files(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    bucket_id: str,
    name_prefix: str | None = None,
    start_file_id: str | None = None,
    max_file_count: int | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(LIST_UNFINISHED_LARGE_FILES),
        token,
        {
            "bucketId": bucket_id,
            "namePrefix": name_prefix,
            "startFileId": start_file_id,
            "maxFileCount": max_file_count,
        },
    )
