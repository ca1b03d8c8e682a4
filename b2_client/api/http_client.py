"""
Async HTTP transport for the B2 API.

Performs single HTTP exchanges: builds the request from a RequestSpec, enforces
the per-request deadline, streams bodies in and out with optional progress
accounting, and returns either a decoded Response or a classified B2Error.
Retrying and token refresh live above this layer.
"""

import asyncio
import json
import time
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any, Self
from urllib.parse import urlencode

import httpx
import structlog

from b2_client.config import B2Config
from b2_client.constants import (
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_OCTET_STREAM,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_TYPE,
    STREAM_CHUNK_SIZE,
    STREAMING_THRESHOLD,
)
from b2_client.core.errors import create_http_error, create_network_error, create_timeout_error
from b2_client.core.metrics import MetricsSnapshot, RequestMetrics
from b2_client.core.progress import (
    ProgressTracker,
    body_size,
    content_length,
    iter_chunks,
    track,
)
from b2_client.models.request import (
    Blob,
    BytesBody,
    FormBody,
    JsonBody,
    RequestInfo,
    RequestSpec,
    Response,
    ResponseType,
    StreamBody,
    TextBody,
)

logger = structlog.get_logger(__name__)

SENSITIVE_KEYS = frozenset(
    {
        "authorizationToken",
        "applicationKey",
        "applicationKeyId",
        "Authorization",
        "authorization",
        "uploadAuthToken",
    }
)


def sanitize_for_log(data: dict[str, Any]) -> dict[str, Any]:
    """
    Remove sensitive fields from a dict before logging.

    Recursively sanitizes nested dictionaries and lists.

    Args:
        data: Dictionary that may contain sensitive values.

    Returns:
        Copy with sensitive values replaced by "***".
    """
    result = {}
    for key, value in data.items():
        if key in SENSITIVE_KEYS:
            result[key] = "***"
        elif isinstance(value, dict):
            result[key] = sanitize_for_log(value)
        elif isinstance(value, list):
            result[key] = [
                sanitize_for_log(item) if isinstance(item, dict) else item for item in value
            ]
        else:
            result[key] = value
    return result


class ResponseStream:
    """
    Undecoded response body handed out in ``ResponseType.STREAM`` mode.

    Owns the underlying HTTP response: iterate it once, then close it (or use
    ``async with``). Closing is idempotent.
    """

    def __init__(
        self,
        response: httpx.Response,
        chunks: AsyncIterator[bytes],
        *,
        method: str | None = None,
        url: str | None = None,
    ) -> None:
        self._response = response
        self._chunks = chunks
        self._method = method
        self._url = url
        self._consumed = False

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def __aiter__(self) -> AsyncIterator[bytes]:
        if self._consumed:
            msg = "Response stream already consumed"
            raise RuntimeError(msg)
        self._consumed = True
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[bytes]:
        try:
            async for chunk in self._chunks:
                yield chunk
        except httpx.TransportError as e:
            raise create_network_error(e, method=self._method, url=self._url) from e
        finally:
            await self.aclose()

    async def read(self) -> bytes:
        """Drain the stream into memory."""
        return b"".join([chunk async for chunk in self])

    @property
    def is_closed(self) -> bool:
        return self._response.is_closed

    async def aclose(self) -> None:
        await self._response.aclose()


def _decode(raw: bytes, mode: ResponseType, response: httpx.Response) -> Any:
    content_type = response.headers.get(HEADER_CONTENT_TYPE, "")
    if mode is ResponseType.AUTO:
        if CONTENT_TYPE_JSON in content_type:
            mode = ResponseType.JSON
        elif content_type.startswith("text/"):
            mode = ResponseType.TEXT
        else:
            mode = ResponseType.BYTES

    if mode is ResponseType.BYTES:
        return raw
    if mode is ResponseType.BLOB:
        return Blob(raw, content_type or CONTENT_TYPE_OCTET_STREAM)
    text = raw.decode(response.encoding or "utf-8", errors="replace")
    if mode is ResponseType.JSON:
        if not raw:
            return None
        try:
            return json.loads(text)
        except ValueError:
            return text
    return text


class AsyncHttpClient:
    """Async HTTP transport for the B2 API."""

    def __init__(
        self,
        config: B2Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            config: Client configuration.
            transport: Optional transport for testing (mock transport).
        """
        self._config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()
        self._metrics = RequestMetrics() if config.enable_metrics else None

    async def __aenter__(self) -> Self:
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        async with self._client_lock:
            if self._client is None:
                self._client = httpx.AsyncClient(
                    base_url=self._config.api_url,
                    timeout=self._config.timeout,
                    transport=self._transport,
                    headers={"User-Agent": self._config.user_agent, **self._config.headers},
                )
        return self._client

    async def close(self) -> None:
        async with self._client_lock:
            if self._client is None:
                logger.debug("Client not open.")
                return
            await self._client.aclose()
            self._client = None

    @property
    def metrics(self) -> MetricsSnapshot | None:
        """Request counters, or None when metrics are disabled."""
        return self._metrics.snapshot() if self._metrics is not None else None

    def reset_metrics(self) -> None:
        if self._metrics is not None:
            self._metrics.reset()

    async def request(self, spec: RequestSpec) -> Response:
        """
        Perform one HTTP exchange.

        Args:
            spec: What to send and how to decode the answer.

        Returns:
            Response whose ``data`` matches ``spec.response_type``. In stream
            mode ``data`` is a ResponseStream the caller must close.

        Raises:
            HttpError: Non-2xx answer (subclass chosen by status).
            RequestTimeoutError: The deadline expired.
            NetworkError: Connection-level failure.
        """
        if self._client is None:
            msg = "HTTP client not initialized. Use 'async with' first."
            raise RuntimeError(msg)

        timeout = spec.timeout if spec.timeout is not None else self._config.timeout
        request = self._build_request(self._client, spec, timeout)
        method = request.method
        url = str(request.url)

        started = time.monotonic()
        status: int | None = None
        failed = True
        try:
            async with asyncio.timeout(timeout):
                response = await self._client.send(request, stream=True)
                status = response.status_code
                result = await self._handle_response(response, spec, method, url)
            failed = False
            return result
        except TimeoutError as e:
            raise create_timeout_error(timeout=timeout, method=method, url=url) from e
        except httpx.TransportError as e:
            raise create_network_error(e, method=method, url=url) from e
        finally:
            duration = time.monotonic() - started
            if self._metrics is not None:
                self._metrics.record(
                    method=method, url=url, duration=duration, status=status, failed=failed
                )
            logger.debug(
                "Request completed",
                method=method,
                url=url,
                status=status,
                duration=round(duration, 3),
                failed=failed,
            )

    def _build_request(
        self, client: httpx.AsyncClient, spec: RequestSpec, timeout: float
    ) -> httpx.Request:
        headers = httpx.Headers(dict(spec.headers))
        content: bytes | AsyncIterable[bytes] | None = None

        match spec.body:
            case None:
                pass
            case TextBody(text=text):
                content = text.encode("utf-8")
            case BytesBody(data=data):
                content = data
            case Blob(data=data, content_type=blob_type):
                content = data
                headers.setdefault(HEADER_CONTENT_TYPE, blob_type)
            case JsonBody(value=value):
                content = json.dumps(value).encode("utf-8")
                headers.setdefault(HEADER_CONTENT_TYPE, CONTENT_TYPE_JSON)
            case FormBody(fields=fields):
                content = urlencode(fields).encode("utf-8")
                headers.setdefault(HEADER_CONTENT_TYPE, "application/x-www-form-urlencoded")
            case StreamBody(stream=stream, length=length):
                content = stream
                if length is not None:
                    headers.setdefault(HEADER_CONTENT_LENGTH, str(length))

        if isinstance(content, bytes) and (
            len(content) > STREAMING_THRESHOLD or spec.on_upload_progress is not None
        ):
            headers.setdefault(HEADER_CONTENT_LENGTH, str(len(content)))
            content = iter_chunks(content, STREAM_CHUNK_SIZE)

        if spec.on_upload_progress is not None and content is not None:
            tracker = ProgressTracker(spec.on_upload_progress, body_size(spec.body))
            content = track(content, tracker)

        if spec.body is not None and not isinstance(spec.body, (JsonBody, FormBody)):
            logger.debug("Sending body", method=spec.method, size=body_size(spec.body))
        elif isinstance(spec.body, JsonBody) and isinstance(spec.body.value, dict):
            body = sanitize_for_log(spec.body.value)
            logger.debug("Sending JSON", method=spec.method, body=body)

        params = (
            {k: v for k, v in spec.params.items() if v is not None} if spec.params else None
        )
        return client.build_request(
            spec.method.upper(),
            spec.url,
            headers=headers,
            params=params,
            content=content,
            timeout=timeout,
        )

    async def _handle_response(
        self, response: httpx.Response, spec: RequestSpec, method: str, url: str
    ) -> Response:
        handed_off = False
        try:
            if not response.is_success:
                mode = spec.response_type
                if mode in (ResponseType.STREAM, ResponseType.BYTES, ResponseType.BLOB):
                    mode = ResponseType.AUTO
                error_data = _decode(await response.aread(), mode, response)
                logger.debug(
                    "Request failed",
                    method=method,
                    url=url,
                    status=response.status_code,
                    body=sanitize_for_log(error_data) if isinstance(error_data, dict) else None,
                )
                raise create_http_error(
                    status=response.status_code,
                    status_text=response.reason_phrase,
                    headers=response.headers,
                    data=error_data,
                    method=method,
                    url=url,
                )

            chunks: AsyncIterator[bytes] = response.aiter_bytes()
            if spec.on_download_progress is not None:
                total = content_length(response.headers.get(HEADER_CONTENT_LENGTH))
                chunks = track(chunks, ProgressTracker(spec.on_download_progress, total))

            if spec.response_type is ResponseType.STREAM:
                data: Any = ResponseStream(response, chunks, method=method, url=url)
                handed_off = True
            else:
                raw = b"".join([c async for c in chunks])
                data = _decode(raw, spec.response_type, response)

            return Response(
                status=response.status_code,
                status_text=response.reason_phrase,
                headers=response.headers,
                data=data,
                config=RequestInfo(method=method, url=url),
            )
        finally:
            if not handed_off:
                await response.aclose()
