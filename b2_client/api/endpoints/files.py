"""File endpoints: whole-file upload, download, listing and metadata."""

from b2_client.api.endpoints.base import post_json
from b2_client.api.headers import download_headers, whole_file_upload_headers
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.constants import (
    DELETE_FILE_VERSION,
    GET_DOWNLOAD_AUTHORIZATION,
    GET_FILE_INFO,
    HIDE_FILE,
    LIST_FILE_NAMES,
    LIST_FILE_VERSIONS,
)
from b2_client.core.progress import ObserverLike
from b2_client.models.large_file import UploadTarget
from b2_client.models.request import Body, RequestSpec, Response, ResponseType


async def upload_file(
    http: AsyncHttpClient,
    target: UploadTarget,
    *,
    file_name: str,
    body: Body,
    content_sha1: str,
    content_length: int,
    content_type: str | None = None,
    info: dict[str, str] | None = None,
    timeout: float | None = None,
    on_upload_progress: ObserverLike | None = None,
) -> Response:
    """
    POST content to an upload URL obtained from ``get_upload_url``.

    Authenticated with the upload token, not the account token.
    """
    headers = whole_file_upload_headers(
        token=target.authorization_token,
        file_name=file_name,
        content_sha1=content_sha1,
        content_length=content_length,
        content_type=content_type,
        info=info,
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


async def download_file_by_name(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str | None,
    *,
    bucket_name: str,
    file_name: str,
    response_type: ResponseType = ResponseType.BYTES,
    byte_range: tuple[int, int | None] | None = None,
    timeout: float | None = None,
    on_download_progress: ObserverLike | None = None,
) -> Response:
    return await http.request(
        RequestSpec(
            method="GET",
            url=router.download_by_name_url(bucket_name, file_name),
            headers=download_headers(token, byte_range=byte_range),
            response_type=response_type,
            timeout=timeout,
            on_download_progress=on_download_progress,
        )
    )


async def download_file_by_id(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str | None,
    *,
    file_id: str,
    response_type: ResponseType = ResponseType.BYTES,
    byte_range: tuple[int, int | None] | None = None,
    timeout: float | None = None,
    on_download_progress: ObserverLike | None = None,
) -> Response:
    return await http.request(
        RequestSpec(
            method="GET",
            url=router.download_by_id_url(file_id),
            headers=download_headers(token, byte_range=byte_range),
            response_type=response_type,
            timeout=timeout,
            on_download_progress=on_download_progress,
        )
    )


async def list_file_names(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    bucket_id: str,
    start_file_name: str | None = None,
    max_file_count: int | None = None,
    prefix: str | None = None,
    delimiter: str | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(LIST_FILE_NAMES),
        token,
        {
            "bucketId": bucket_id,
            "startFileName": start_file_name,
            "maxFileCount": max_file_count,
            "prefix": prefix,
            "delimiter": delimiter,
        },
    )


async def list_file_versions(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    bucket_id: str,
    start_file_name: str | None = None,
    start_file_id: str | None = None,
    max_file_count: int | None = None,
    prefix: str | None = None,
    delimiter: str | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(LIST_FILE_VERSIONS),
        token,
        {
            "bucketId": bucket_id,
            "startFileName": start_file_name,
            "startFileId": start_file_id,
            "maxFileCount": max_file_count,
            "prefix": prefix,
            "delimiter": delimiter,
        },
    )


async def get_file_info(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, file_id: str
) -> Response:
    return await post_json(http, router.api_url(GET_FILE_INFO), token, {"fileId": file_id})


async def delete_file_version(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, file_id: str, file_name: str
) -> Response:
    return await post_json(
        http,
        router.api_url(DELETE_FILE_VERSION),
        token,
        {"fileId": file_id, "fileName": file_name},
    )


async def hide_file(
    http: AsyncHttpClient, router: EndpointRouter, token: str, *, bucket_id: str, file_name: str
) -> Response:
    return await post_json(
        http,
        router.api_url(HIDE_FILE),
        token,
        {"bucketId": bucket_id, "fileName": file_name},
    )


async def get_download_authorization(
    http: AsyncHttpClient,
    router: EndpointRouter,
    token: str,
    *,
    bucket_id: str,
    file_name_prefix: str,
    valid_duration_in_seconds: int,
    b2_content_disposition: str | None = None,
) -> Response:
    return await post_json(
        http,
        router.api_url(GET_DOWNLOAD_AUTHORIZATION),
        token,
        {
            "bucketId": bucket_id,
            "fileNamePrefix": file_name_prefix,
            "validDurationInSeconds": valid_duration_in_seconds,
            "b2ContentDisposition": b2_content_disposition,
        },
    )
