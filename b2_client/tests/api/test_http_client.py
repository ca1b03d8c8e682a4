"""Tests for AsyncHttpClient."""

import asyncio
import json
from collections.abc import AsyncIterator

import httpx
import pytest

from b2_client.api.http_client import AsyncHttpClient, ResponseStream, sanitize_for_log
from b2_client.config import B2Config
from b2_client.exceptions import (
    AuthenticationError,
    ClientError,
    ErrorKind,
    NetworkError,
    NotFoundError,
    RequestTimeoutError,
    ServerError,
)
from b2_client.models.progress import ProgressEvent
from b2_client.models.request import (
    Blob,
    BytesBody,
    JsonBody,
    RequestSpec,
    ResponseType,
    StreamBody,
    TextBody,
)
from b2_client.tests.utils.mock_transport import MockTransport, error_body

URL = "https://api001.backblazeb2.com/b2api/v2/b2_list_buckets"


class SlowTransport(httpx.AsyncBaseTransport):
    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        await asyncio.sleep(10)
        return httpx.Response(200)


class ChunkRecordingTransport(httpx.AsyncBaseTransport):
    """Keeps the request stream and the chunks it yielded."""

    def __init__(self) -> None:
        self.request: httpx.Request | None = None
        self.chunks: list[bytes] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.request = request
        self.chunks = [chunk async for chunk in request.stream]
        return httpx.Response(200, json={})


async def byte_stream(*chunks: bytes) -> AsyncIterator[bytes]:
    for chunk in chunks:
        yield chunk


# Lifecycle tests


@pytest.mark.asyncio
async def test_request_before_open_raises(config: B2Config) -> None:
    client = AsyncHttpClient(config)

    with pytest.raises(RuntimeError, match="not initialized"):
        await client.request(RequestSpec(method="GET", url=URL))


@pytest.mark.asyncio
async def test_close_is_idempotent(config: B2Config, mock_transport: MockTransport) -> None:
    client = AsyncHttpClient(config, transport=mock_transport)
    await client._ensure_client()

    await client.close()
    await client.close()

    assert client._client is None


def test_get_request_cannot_carry_body() -> None:
    with pytest.raises(ValueError, match="GET"):
        RequestSpec(method="GET", url=URL, body=TextBody("x"))


# Request building tests


@pytest.mark.asyncio
async def test_json_body_is_serialized_with_content_type(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={"buckets": []})

    response = await http_client.request(
        RequestSpec(
            method="POST",
            url=URL,
            headers={"Authorization": "tok"},
            body=JsonBody({"accountId": "acc"}),
        )
    )

    request = mock_transport.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json"
    assert request.headers["authorization"] == "tok"
    assert request.headers["user-agent"].startswith("b2-client-python/")
    assert json.loads(mock_transport.bodies[0]) == {"accountId": "acc"}
    assert response.status == 200
    assert response.json() == {"buckets": []}
    assert response.config.method == "POST"


@pytest.mark.asyncio
async def test_config_headers_are_sent_and_request_headers_win(
    mock_transport: MockTransport,
) -> None:
    config = B2Config(headers={"X-Trace": "default", "X-Bz-Test-Mode": "fail_some_uploads"})
    mock_transport.add_response(json_data={})

    async with AsyncHttpClient(config, transport=mock_transport) as client:
        await client.request(RequestSpec(method="GET", url=URL, headers={"X-Trace": "mine"}))

    request = mock_transport.requests[0]
    assert request.headers["x-trace"] == "mine"
    assert request.headers["x-bz-test-mode"] == "fail_some_uploads"


@pytest.mark.asyncio
async def test_none_query_params_are_dropped(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={})

    await http_client.request(
        RequestSpec(method="GET", url=URL, params={"fileId": "f1", "skip": None})
    )

    assert mock_transport.requests[0].url.params == httpx.QueryParams({"fileId": "f1"})


@pytest.mark.asyncio
async def test_text_body_is_sent_as_utf8(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={})

    await http_client.request(RequestSpec(method="POST", url=URL, body=TextBody("héllo")))

    assert mock_transport.bodies[0] == "héllo".encode()


@pytest.mark.asyncio
async def test_blob_body_sets_its_content_type(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={})

    await http_client.request(
        RequestSpec(method="POST", url=URL, body=Blob(b"<p/>", content_type="text/html"))
    )

    assert mock_transport.requests[0].headers["content-type"] == "text/html"
    assert mock_transport.bodies[0] == b"<p/>"


@pytest.mark.asyncio
async def test_stream_body_with_length_sets_content_length(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={})

    await http_client.request(
        RequestSpec(
            method="POST",
            url=URL,
            body=StreamBody(byte_stream(b"abc", b"def"), length=6),
        )
    )

    assert mock_transport.requests[0].headers["content-length"] == "6"
    assert mock_transport.bodies[0] == b"abcdef"


@pytest.mark.asyncio
async def test_upload_progress_reaches_completion(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={})
    events: list[ProgressEvent] = []
    data = b"x" * (200 * 1024)

    await http_client.request(
        RequestSpec(method="POST", url=URL, body=BytesBody(data), on_upload_progress=events.append)
    )

    assert mock_transport.requests[0].headers["content-length"] == str(len(data))
    assert mock_transport.bodies[0] == data
    assert [e.loaded for e in events] == [65536, 131072, 196608, 204800]
    assert events[-1].fraction == 1.0
    assert all(e.total == len(data) for e in events)


@pytest.mark.asyncio
async def test_large_bytes_body_is_streamed_in_chunks(config: B2Config) -> None:
    transport = ChunkRecordingTransport()
    data = b"x" * (10 * 1024 * 1024 + 1)

    async with AsyncHttpClient(config, transport=transport) as client:
        await client.request(RequestSpec(method="POST", url=URL, body=BytesBody(data)))

    request = transport.request
    assert request is not None
    assert request.headers["content-length"] == str(len(data))
    assert "transfer-encoding" not in request.headers
    assert not isinstance(request.stream, httpx.ByteStream)
    assert len(transport.chunks) == 161
    assert {len(chunk) for chunk in transport.chunks[:-1]} == {65536}
    assert transport.chunks[-1] == b"x"
    assert b"".join(transport.chunks) == data


@pytest.mark.asyncio
async def test_small_bytes_body_is_sent_whole(config: B2Config) -> None:
    transport = ChunkRecordingTransport()

    async with AsyncHttpClient(config, transport=transport) as client:
        await client.request(RequestSpec(method="POST", url=URL, body=BytesBody(b"payload")))

    request = transport.request
    assert request is not None
    assert isinstance(request.stream, httpx.ByteStream)
    assert transport.chunks == [b"payload"]


# Response decoding tests


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("response_type", "expected"),
    [
        (ResponseType.TEXT, "plain text"),
        (ResponseType.BYTES, b"plain text"),
        (ResponseType.BLOB, Blob(b"plain text", "text/plain")),
        (ResponseType.AUTO, "plain text"),
    ],
)
async def test_response_types(
    http_client: AsyncHttpClient,
    mock_transport: MockTransport,
    response_type: ResponseType,
    expected: object,
) -> None:
    mock_transport.add_response(content=b"plain text", headers={"Content-Type": "text/plain"})

    response = await http_client.request(
        RequestSpec(method="GET", url=URL, response_type=response_type)
    )

    assert response.data == expected


@pytest.mark.asyncio
async def test_auto_decodes_json(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(json_data={"a": 1})

    response = await http_client.request(
        RequestSpec(method="GET", url=URL, response_type=ResponseType.AUTO)
    )

    assert response.data == {"a": 1}


@pytest.mark.asyncio
async def test_json_mode_falls_back_to_text_on_invalid_json(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(content=b"not json")

    response = await http_client.request(RequestSpec(method="GET", url=URL))

    assert response.data == "not json"
    with pytest.raises(TypeError):
        response.json()


@pytest.mark.asyncio
async def test_empty_json_body_is_none(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(content=b"")

    response = await http_client.request(RequestSpec(method="GET", url=URL))

    assert response.data is None


@pytest.mark.asyncio
async def test_stream_mode_hands_over_open_response(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(content=b"0123456789")

    response = await http_client.request(
        RequestSpec(method="GET", url=URL, response_type=ResponseType.STREAM)
    )

    stream = response.data
    assert isinstance(stream, ResponseStream)
    async with stream:
        assert await stream.read() == b"0123456789"
        with pytest.raises(RuntimeError, match="consumed"):
            stream.__aiter__()
    assert stream.is_closed


@pytest.mark.asyncio
async def test_download_progress_uses_content_length(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(content=b"z" * 1000)
    events: list[ProgressEvent] = []

    await http_client.request(
        RequestSpec(
            method="GET",
            url=URL,
            response_type=ResponseType.BYTES,
            on_download_progress=events.append,
        )
    )

    assert events[-1].loaded == 1000
    assert events[-1].total == 1000
    assert events[-1].fraction == 1.0


# Error tests


@pytest.mark.asyncio
async def test_400_raises_client_error_with_code(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(400, json_data=error_body(400, "bad_request", "x"))

    with pytest.raises(ClientError) as exc_info:
        await http_client.request(RequestSpec(method="POST", url=URL, body=JsonBody({})))

    error = exc_info.value
    assert error.kind == ErrorKind.CLIENT_ERROR
    assert error.code == "bad_request"
    assert error.message == "x"
    assert error.status_text == "Bad Request"
    assert error.is_retryable is False
    assert error.response is not None
    assert error.response.data["code"] == "bad_request"


@pytest.mark.asyncio
async def test_401_raises_authentication_error(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(401, json_data=error_body(401, "expired_auth_token", "expired"))

    with pytest.raises(AuthenticationError) as exc_info:
        await http_client.request(RequestSpec(method="GET", url=URL))

    assert exc_info.value.code == "expired_auth_token"


@pytest.mark.asyncio
async def test_503_raises_retryable_server_error(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(503, json_data=error_body(503, "service_unavailable", "busy"))

    with pytest.raises(ServerError) as exc_info:
        await http_client.request(RequestSpec(method="GET", url=URL))

    assert exc_info.value.is_retryable is True


@pytest.mark.asyncio
async def test_error_body_is_parsed_in_bytes_mode(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(404, json_data=error_body(404, "not_found", "File not present"))

    with pytest.raises(NotFoundError) as exc_info:
        await http_client.request(
            RequestSpec(method="GET", url=URL, response_type=ResponseType.BYTES)
        )

    assert exc_info.value.code == "not_found"
    assert exc_info.value.message == "File not present"


@pytest.mark.asyncio
async def test_connect_error_becomes_network_error(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    cause = httpx.ConnectError("Connection refused")
    mock_transport.add_response(error=cause)

    with pytest.raises(NetworkError) as exc_info:
        await http_client.request(RequestSpec(method="GET", url=URL))

    assert exc_info.value.is_network_error is True
    assert exc_info.value.is_retryable is True
    assert exc_info.value.cause is cause


@pytest.mark.asyncio
async def test_transport_timeout_becomes_timeout_error(
    http_client: AsyncHttpClient, mock_transport: MockTransport
) -> None:
    mock_transport.add_response(error=httpx.ReadTimeout("read timed out"))

    with pytest.raises(RequestTimeoutError) as exc_info:
        await http_client.request(RequestSpec(method="GET", url=URL))

    assert exc_info.value.kind == ErrorKind.TIMEOUT_ERROR


@pytest.mark.asyncio
async def test_deadline_expiry_becomes_timeout_error(config: B2Config) -> None:
    async with AsyncHttpClient(config, transport=SlowTransport()) as client:
        with pytest.raises(RequestTimeoutError, match="0.05s"):
            await client.request(RequestSpec(method="GET", url=URL, timeout=0.05))


# Metrics tests


@pytest.mark.asyncio
async def test_metrics_disabled_by_default(http_client: AsyncHttpClient) -> None:
    assert http_client.metrics is None


@pytest.mark.asyncio
async def test_metrics_count_requests_and_errors(mock_transport: MockTransport) -> None:
    mock_transport.add_response(json_data={})
    mock_transport.add_response(500, json_data=error_body(500, "internal_error", "boom"))

    async with AsyncHttpClient(B2Config(enable_metrics=True), transport=mock_transport) as client:
        await client.request(RequestSpec(method="GET", url=URL))
        with pytest.raises(ServerError):
            await client.request(RequestSpec(method="GET", url=URL))

        snapshot = client.metrics
        assert snapshot is not None
        assert snapshot.request_count == 2
        assert snapshot.error_count == 1

        client.reset_metrics()
        assert client.metrics.request_count == 0


# Log sanitizing tests


def test_sanitize_for_log_redacts_nested_secrets() -> None:
    data = {
        "accountId": "acc",
        "authorizationToken": "secret",
        "apiInfo": {"storageApi": {"applicationKey": "k", "apiUrl": "u"}},
        "keys": [{"applicationKeyId": "id", "keyName": "n"}, "plain"],
    }

    assert sanitize_for_log(data) == {
        "accountId": "acc",
        "authorizationToken": "***",
        "apiInfo": {"storageApi": {"applicationKey": "***", "apiUrl": "u"}},
        "keys": [{"applicationKeyId": "***", "keyName": "n"}, "plain"],
    }
