"""
Request and response models for the transport layer.

Request bodies are a closed set of variants built at the call site; plain
Python values are mapped onto them by ``to_body``.
"""

from collections.abc import AsyncIterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

import httpx

if TYPE_CHECKING:
    from b2_client.core.progress import ObserverLike


class ResponseType(StrEnum):
    """How the response body is decoded."""

    STREAM = "stream"
    BYTES = "bytes"
    TEXT = "text"
    JSON = "json"
    BLOB = "blob"
    AUTO = "auto"


@dataclass(frozen=True)
class TextBody:
    text: str


@dataclass(frozen=True)
class BytesBody:
    data: bytes


@dataclass(frozen=True)
class JsonBody:
    value: Any


@dataclass(frozen=True)
class StreamBody:
    """A one-shot byte stream. ``length`` is sent as Content-Length when known."""

    stream: AsyncIterable[bytes]
    length: int | None = None


@dataclass(frozen=True)
class FormBody:
    fields: Mapping[str, str] | Sequence[tuple[str, str]]


@dataclass(frozen=True)
class Blob:
    """Bytes tagged with their media type."""

    data: bytes
    content_type: str = "application/octet-stream"

    @property
    def size(self) -> int:
        return len(self.data)


Body = TextBody | BytesBody | JsonBody | StreamBody | FormBody | Blob

_BODY_TYPES = (TextBody, BytesBody, JsonBody, StreamBody, FormBody, Blob)


def to_body(value: Any) -> Body | None:
    """
    Map a plain value onto a body variant.

    str becomes text, bytes-like becomes bytes, async iterables become a
    stream, anything else is sent as JSON.
    """
    if value is None or isinstance(value, _BODY_TYPES):
        return value
    if isinstance(value, str):
        return TextBody(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return BytesBody(bytes(value))
    if isinstance(value, AsyncIterable):
        return StreamBody(value)
    return JsonBody(value)


@dataclass(frozen=True, kw_only=True)
class RequestSpec:
    """
    One HTTP exchange, immutable once dispatched.

    Attributes:
        method: HTTP method.
        url: Absolute URL, or a path joined onto the client's base URL.
        headers: Per-request headers; they win over default headers.
        params: Query parameters; None values are dropped.
        body: Request body variant.
        response_type: Decoding mode for the response body.
        timeout: Deadline in seconds for the whole exchange.
        on_upload_progress: Observer fed while the body is sent.
        on_download_progress: Observer fed while the response is read.
    """

    method: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, Any] | None = None
    body: Body | None = None
    response_type: ResponseType = ResponseType.JSON
    timeout: float | None = None
    on_upload_progress: "ObserverLike | None" = None
    on_download_progress: "ObserverLike | None" = None

    def __post_init__(self) -> None:
        if self.method.upper() in ("GET", "HEAD") and self.body is not None:
            msg = f"{self.method.upper()} requests cannot carry a body"
            raise ValueError(msg)


@dataclass(frozen=True, kw_only=True)
class RequestInfo:
    method: str
    url: str


@dataclass(frozen=True, kw_only=True)
class Response:
    """
    Decoded result of a successful exchange.

    Attributes:
        status: HTTP status code.
        status_text: Reason phrase.
        headers: Case-insensitive response headers.
        data: Body decoded according to the requested mode.
        config: Originating method and URL.
    """

    status: int
    status_text: str
    headers: httpx.Headers
    data: Any
    config: RequestInfo

    def json(self) -> dict[str, Any]:
        """Body as a dict, for control-plane calls."""
        if isinstance(self.data, dict):
            return self.data
        msg = f"Response body is not a JSON object: {type(self.data).__name__}"
        raise TypeError(msg)
