"""
File operations: whole-file upload, download, listing and metadata.
"""

import structlog

from b2_client.api.endpoints import files
from b2_client.api.http_client import AsyncHttpClient
from b2_client.config import B2Config
from b2_client.constants import (
    HEADER_CONTENT_SHA1,
    MAX_DOWNLOAD_AUTHORIZATION_SECONDS,
    B2ErrorCode,
)
from b2_client.core.progress import ObserverLike, ThrottledObserver
from b2_client.crypto.sha1 import ContentHasher
from b2_client.exceptions import B2Error, IntegrityError, ValidationError
from b2_client.models.large_file import UploadTarget
from b2_client.models.request import (
    Blob,
    Body,
    BytesBody,
    Response,
    ResponseType,
    StreamBody,
    TextBody,
    to_body,
)
from b2_client.services.auth_service import AuthService
from b2_client.validation import (
    require_string,
    validate_content_type,
    validate_count,
    validate_download_authorization_duration,
    validate_file_info,
    validate_file_name,
    validate_sha1,
)

logger = structlog.get_logger(__name__)


def prepare_upload_body(
    data: object,
    hasher: ContentHasher,
    *,
    content_sha1: str | None = None,
    content_length: int | None = None,
) -> tuple[Body, str, int]:
    """
    Turn upload data into a body plus its SHA-1 and length.

    In-memory data is hashed when no SHA-1 is given. Streams cannot be
    hashed without consuming them, so they need both values up front.

    Raises:
        ValidationError: On missing data or an incomplete stream description.
    """
    if data is None:
        msg = "data is required"
        raise ValidationError(msg, field="data")
    body = to_body(data)
    match body:
        case TextBody(text=text):
            raw = text.encode("utf-8")
        case BytesBody(data=raw) | Blob(data=raw):
            pass
        case StreamBody(length=length):
            length = length if length is not None else content_length
            if content_sha1 is None or length is None:
                msg = "Streamed uploads need content_sha1 and content_length"
                raise ValidationError(msg, field="data")
            validate_sha1(content_sha1)
            return StreamBody(body.stream, length), content_sha1, length
        case _:
            msg = "data must be bytes, str, Blob or an async byte stream"
            raise ValidationError(msg, field="data")

    if content_sha1 is None:
        content_sha1 = hasher.hash(raw)
    else:
        validate_sha1(content_sha1)
    return body, content_sha1, len(raw)


def announced_sha1(response: Response) -> str | None:
    """SHA-1 the service reports for a download, when it is a real digest."""
    value = response.headers.get(HEADER_CONTENT_SHA1)
    if not value or value == "none":
        return None
    if value.startswith("unverified:"):
        value = value.removeprefix("unverified:")
    return value.lower()


class FileService:
    """Upload, download and inspect files."""

    def __init__(
        self,
        http_client: AsyncHttpClient,
        auth_service: AuthService,
        hasher: ContentHasher,
        config: B2Config,
    ) -> None:
        self._http = http_client
        self._auth = auth_service
        self._hasher = hasher
        self._config = config

    def _throttled(self, observer: ObserverLike | None) -> ThrottledObserver | None:
        if observer is None:
            return None
        return ThrottledObserver(observer, self._config.progress_throttle)

    async def upload_file(
        self,
        *,
        upload_url: str,
        upload_auth_token: str,
        file_name: str,
        data: object,
        content_type: str | None = None,
        content_sha1: str | None = None,
        content_length: int | None = None,
        info: dict[str, str] | None = None,
        on_upload_progress: ObserverLike | None = None,
    ) -> Response:
        """
        Upload a file in one request.

        Args:
            upload_url: URL from ``get_upload_url``.
            upload_auth_token: Token from ``get_upload_url``.
            file_name: Target file name.
            data: bytes, str (sent as UTF-8), Blob or an async byte stream.
            content_type: Media type; application/octet-stream by default.
            content_sha1: SHA-1 of the content; computed when omitted.
            content_length: Required for streams without a declared length.
            info: Up to 10 metadata entries.
            on_upload_progress: Observer fed as the body is sent (throttled).
        """
        require_string(upload_url, "upload_url")
        require_string(upload_auth_token, "upload_auth_token")
        validate_file_name(file_name)
        if content_type is not None:
            validate_content_type(content_type)
        metadata = validate_file_info(info)
        body, sha1, length = prepare_upload_body(
            data, self._hasher, content_sha1=content_sha1, content_length=content_length
        )

        target = UploadTarget(upload_url=upload_url, authorization_token=upload_auth_token)
        try:
            response = await files.upload_file(
                self._http,
                target,
                file_name=file_name,
                body=body,
                content_sha1=sha1,
                content_length=length,
                content_type=content_type,
                info=metadata,
                timeout=self._config.upload_timeout,
                on_upload_progress=self._throttled(on_upload_progress),
            )
        except B2Error as e:
            if e.status == 400 and e.code == B2ErrorCode.FILE_NOT_PRESENT:
                e.rewrite(f"File upload failed: {e.message}")
            raise
        logger.debug("File uploaded", file_name=file_name, size=length)
        return response

    async def download_by_name(
        self,
        bucket_name: str,
        file_name: str,
        *,
        response_type: ResponseType = ResponseType.BYTES,
        byte_range: tuple[int, int | None] | None = None,
        authorization: str | None = None,
        verify_sha1: bool = False,
        on_download_progress: ObserverLike | None = None,
    ) -> Response:
        require_string(bucket_name, "bucket_name")
        validate_file_name(file_name)
        token = authorization or self._auth.require_session().authorization_token
        try:
            response = await files.download_file_by_name(
                self._http,
                self._auth.router,
                token,
                bucket_name=bucket_name,
                file_name=file_name,
                response_type=ResponseType(response_type),
                byte_range=byte_range,
                timeout=self._config.download_timeout,
                on_download_progress=self._throttled(on_download_progress),
            )
        except B2Error as e:
            if e.status == 404:
                e.rewrite(f"File not found: {file_name} in bucket {bucket_name}")
            elif e.status == 401 and authorization is not None:
                e.rewrite(f"Unauthorized access to file: {file_name}")
            raise
        if verify_sha1 and byte_range is None:
            self._verify(response)
        return response

    async def download_by_id(
        self,
        file_id: str,
        *,
        response_type: ResponseType = ResponseType.BYTES,
        byte_range: tuple[int, int | None] | None = None,
        authorization: str | None = None,
        verify_sha1: bool = False,
        on_download_progress: ObserverLike | None = None,
    ) -> Response:
        require_string(file_id, "file_id")
        token = authorization or self._auth.require_session().authorization_token
        try:
            response = await files.download_file_by_id(
                self._http,
                self._auth.router,
                token,
                file_id=file_id,
                response_type=ResponseType(response_type),
                byte_range=byte_range,
                timeout=self._config.download_timeout,
                on_download_progress=self._throttled(on_download_progress),
            )
        except B2Error as e:
            if e.status == 404:
                e.rewrite(f"File not found: {file_id}")
            raise
        if verify_sha1 and byte_range is None:
            self._verify(response)
        return response

    def _verify(self, response: Response) -> None:
        expected = announced_sha1(response)
        data = response.data
        if isinstance(data, Blob):
            data = data.data
        if expected is None or not isinstance(data, (bytes, str)):
            return
        actual = self._hasher.hash(data)
        if actual != expected:
            msg = "Downloaded content does not match its SHA-1"
            raise IntegrityError(msg, expected=expected, actual=actual)

    async def list_names(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> Response:
        require_string(bucket_id, "bucket_id")
        validate_count(max_file_count, "max_file_count")
        session = self._auth.require_session()
        try:
            return await files.list_file_names(
                self._http,
                self._auth.router,
                session.authorization_token,
                bucket_id=bucket_id,
                start_file_name=start_file_name,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.INVALID_BUCKET_ID:
                e.rewrite(f"Invalid bucket ID: {bucket_id}")
            raise

    async def list_versions(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> Response:
        require_string(bucket_id, "bucket_id")
        validate_count(max_file_count, "max_file_count")
        if start_file_id is not None and start_file_name is None:
            msg = "start_file_id requires start_file_name"
            raise ValidationError(msg, field="start_file_id")
        session = self._auth.require_session()
        try:
            return await files.list_file_versions(
                self._http,
                self._auth.router,
                session.authorization_token,
                bucket_id=bucket_id,
                start_file_name=start_file_name,
                start_file_id=start_file_id,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.INVALID_BUCKET_ID:
                e.rewrite(f"Invalid bucket ID: {bucket_id}")
            raise

    async def get_info(self, file_id: str) -> Response:
        require_string(file_id, "file_id")
        session = self._auth.require_session()
        try:
            return await files.get_file_info(
                self._http, self._auth.router, session.authorization_token, file_id=file_id
            )
        except B2Error as e:
            if e.code == B2ErrorCode.FILE_NOT_PRESENT:
                e.rewrite(f"File not found: {file_id}")
            raise

    async def delete_version(self, file_id: str, file_name: str) -> Response:
        require_string(file_id, "file_id")
        validate_file_name(file_name)
        session = self._auth.require_session()
        try:
            response = await files.delete_file_version(
                self._http,
                self._auth.router,
                session.authorization_token,
                file_id=file_id,
                file_name=file_name,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.FILE_NOT_PRESENT:
                e.rewrite(f"File not found: {file_id}")
            raise
        logger.info("File version deleted", file_id=file_id)
        return response

    async def hide(self, bucket_id: str, file_name: str) -> Response:
        require_string(bucket_id, "bucket_id")
        validate_file_name(file_name)
        session = self._auth.require_session()
        try:
            return await files.hide_file(
                self._http,
                self._auth.router,
                session.authorization_token,
                bucket_id=bucket_id,
                file_name=file_name,
            )
        except B2Error as e:
            if e.code == B2ErrorCode.FILE_NOT_PRESENT:
                e.rewrite(f"File not found: {file_name}")
            raise

    async def get_download_authorization(
        self,
        bucket_id: str,
        file_name_prefix: str,
        *,
        valid_duration_in_seconds: int = MAX_DOWNLOAD_AUTHORIZATION_SECONDS,
        b2_content_disposition: str | None = None,
    ) -> Response:
        """Token granting read access to files under a prefix."""
        require_string(bucket_id, "bucket_id")
        require_string(file_name_prefix, "file_name_prefix", allow_empty=True)
        validate_download_authorization_duration(valid_duration_in_seconds)
        if b2_content_disposition is not None:
            require_string(b2_content_disposition, "b2_content_disposition")
        session = self._auth.require_session()
        return await files.get_download_authorization(
            self._http,
            self._auth.router,
            session.authorization_token,
            bucket_id=bucket_id,
            file_name_prefix=file_name_prefix,
            valid_duration_in_seconds=valid_duration_in_seconds,
            b2_content_disposition=b2_content_disposition,
        )
