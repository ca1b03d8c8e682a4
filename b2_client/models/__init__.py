"""Domain models for the B2 client."""

from b2_client.models.auth import Credentials, Session
from b2_client.models.large_file import (
    LargeFileHandle,
    LargeFileState,
    UploadedPart,
    UploadTarget,
)
from b2_client.models.progress import ProgressEvent
from b2_client.models.request import (
    Blob,
    Body,
    BytesBody,
    FormBody,
    JsonBody,
    RequestInfo,
    RequestSpec,
    Response,
    ResponseType,
    StreamBody,
    TextBody,
    to_body,
)

__all__ = [
    "Blob",
    "Body",
    "BytesBody",
    "Credentials",
    "FormBody",
    "JsonBody",
    "LargeFileHandle",
    "LargeFileState",
    "ProgressEvent",
    "RequestInfo",
    "RequestSpec",
    "Response",
    "ResponseType",
    "Session",
    "StreamBody",
    "TextBody",
    "UploadTarget",
    "UploadedPart",
    "to_body",
]
