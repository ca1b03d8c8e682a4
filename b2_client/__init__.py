"""
Backblaze B2 Python Client.

A modern, async Python client for the B2 Native API with retries, progress
reporting and large-file uploads.

Example:
    ```python
    from b2_client import B2Client

    async with B2Client() as client:
        await client.authorize("key-id", "application-key")

        buckets = await client.list_buckets()
        for bucket in buckets.json()["buckets"]:
            print(bucket["bucketName"])

        response = await client.download_file_by_name("my-bucket", "notes.txt")
        print(response.data)
    ```
"""

from b2_client.client import B2Client
from b2_client.config import B2Config
from b2_client.constants import B2ErrorCode, BucketType, Capability
from b2_client.exceptions import (
    AuthenticationError,
    AuthorizationError,
    B2Error,
    ClientError,
    ErrorKind,
    HttpError,
    IntegrityError,
    MalformedAuthResponseError,
    NetworkError,
    NotAuthenticatedError,
    NotFoundError,
    RateLimitError,
    RequestTimeoutError,
    ServerError,
    ValidationError,
)
from b2_client.models.auth import Credentials, Session
from b2_client.models.large_file import LargeFileHandle, LargeFileState
from b2_client.models.progress import ProgressEvent
from b2_client.models.request import Blob, Response, ResponseType

__version__ = "0.1.0"

__all__ = [
    # Main client
    "B2Client",
    "B2Config",
    # Models
    "Blob",
    "Credentials",
    "LargeFileHandle",
    "LargeFileState",
    "ProgressEvent",
    "Response",
    "ResponseType",
    "Session",
    # Vocabularies
    "B2ErrorCode",
    "BucketType",
    "Capability",
    # Exceptions
    "B2Error",
    "ErrorKind",
    "ValidationError",
    "NotAuthenticatedError",
    "MalformedAuthResponseError",
    "IntegrityError",
    "HttpError",
    "AuthenticationError",
    "AuthorizationError",
    "NotFoundError",
    "RateLimitError",
    "ClientError",
    "ServerError",
    "NetworkError",
    "RequestTimeoutError",
]
