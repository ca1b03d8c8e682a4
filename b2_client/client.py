"""
B2 client facade.

This is the main entry point for users of the library. It composes the
transport, hashing and services, runs every remote call through the retry
executor and re-authorizes once when a session token expires.
"""

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable, Iterable, Mapping, Sequence
from typing import Any, Self, TypeVar

import httpx
import structlog

from b2_client.api.http_client import AsyncHttpClient
from b2_client.config import B2Config
from b2_client.core.errors import is_auth_expired
from b2_client.core.metrics import MetricsSnapshot
from b2_client.core.progress import ObserverLike
from b2_client.core.retry import RetryExecutor, RetryObserver, RetryPolicy
from b2_client.crypto.protocol import HashBackend
from b2_client.crypto.sha1 import ContentHasher
from b2_client.exceptions import B2Error
from b2_client.models.auth import Credentials, Session
from b2_client.models.large_file import LargeFileHandle, LargeFileState
from b2_client.models.request import Response, ResponseType, StreamBody, to_body
from b2_client.services.auth_service import AuthService
from b2_client.services.bucket_service import BucketService
from b2_client.services.file_service import FileService
from b2_client.services.key_service import KeyService
from b2_client.services.large_file_service import LargeFileService

logger = structlog.get_logger(__name__)

T = TypeVar("T")


def _is_stream(data: object) -> bool:
    return isinstance(data, StreamBody) or (
        not isinstance(data, (str, bytes, bytearray, memoryview))
        and isinstance(to_body(data), StreamBody)
    )


class B2Client:
    """
    Async client for Backblaze B2.

    Example:
        ```python
        async with B2Client() as client:
            await client.authorize("key-id", "application-key")

            upload = await client.get_upload_url(bucket_id)
            await client.upload_file(
                upload_url=upload.json()["uploadUrl"],
                upload_auth_token=upload.json()["authorizationToken"],
                file_name="reports/2024.csv",
                data=b"...",
            )
        ```

    Args:
        config: Client configuration. Uses defaults if not provided.
        transport: Optional httpx transport for testing (mock transport).
        hash_backend: SHA-1 provider. Uses hashlib if not provided.
        retry_sleep: Awaitable sleep used between retries (tests inject one).
        on_retry: Observer called as ``(error, attempt, delay)`` before each
            retry sleep.
    """

    def __init__(
        self,
        config: B2Config | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        hash_backend: HashBackend | None = None,
        retry_sleep: Callable[[float], Awaitable[None]] | None = None,
        on_retry: RetryObserver | None = None,
    ) -> None:
        self._config = config or B2Config()
        self._transport = transport
        self._hasher = ContentHasher(hash_backend)
        self._retry = RetryExecutor(
            RetryPolicy.from_config(self._config),
            on_retry=on_retry,
            sleep=retry_sleep or asyncio.sleep,
        )
        self._credentials: Credentials | None = None

        self._http: AsyncHttpClient | None = None
        self._auth_service: AuthService | None = None
        self._bucket_service: BucketService | None = None
        self._file_service: FileService | None = None
        self._large_file_service: LargeFileService | None = None
        self._key_service: KeyService | None = None

        self._initialized = False
        self._init_lock = asyncio.Lock()

    async def __aenter__(self) -> Self:
        await self._ensure_initialized()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: BaseException | None, exc_tb: object
    ) -> None:
        await self.close()

    async def _ensure_initialized(self) -> None:
        async with self._init_lock:
            if self._initialized:
                return

            self._http = AsyncHttpClient(self._config, transport=self._transport)
            await self._http.__aenter__()

            self._auth_service = AuthService(self._http, self._config)
            self._bucket_service = BucketService(self._http, self._auth_service)
            self._file_service = FileService(
                self._http, self._auth_service, self._hasher, self._config
            )
            self._large_file_service = LargeFileService(
                self._http, self._auth_service, self._hasher, self._config
            )
            self._key_service = KeyService(self._http, self._auth_service)

            self._initialized = True
            logger.debug("Client initialized")

    async def close(self) -> None:
        """Close the client and release resources."""
        async with self._init_lock:
            if self._http:
                await self._http.__aexit__(None, None, None)
                self._http = None

            self._auth_service = None
            self._bucket_service = None
            self._file_service = None
            self._large_file_service = None
            self._key_service = None
            self._credentials = None
            self._initialized = False
            logger.debug("Client closed")

    async def _call(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        refreshable: bool = True,
        retries: int | None = None,
    ) -> T:
        """
        Run one remote operation under the retry policy.

        When the session token has expired and auto refresh is on, the stored
        credentials are used to re-authorize (coalesced across tasks) and the
        operation is run once more.
        """
        auth = self._auth()
        stale = auth.session
        try:
            return await self._retry.execute(operation, retries=retries)
        except B2Error as e:
            credentials = self._credentials
            if (
                not refreshable
                or not self._config.auto_refresh
                or credentials is None
                or not is_auth_expired(e)
            ):
                raise
            logger.warning("Authorization expired, refreshing", code=e.code)
            await auth.refresh(credentials, stale=stale)
        return await self._retry.execute(operation, retries=retries)

    def _auth(self) -> AuthService:
        if self._auth_service is None:
            raise RuntimeError("Client not initialized")
        return self._auth_service

    def _files(self) -> FileService:
        if self._file_service is None:
            raise RuntimeError("Client not initialized")
        return self._file_service

    def _large_files(self) -> LargeFileService:
        if self._large_file_service is None:
            raise RuntimeError("Client not initialized")
        return self._large_file_service

    async def authorize(self, application_key_id: str, application_key: str) -> Session:
        """
        Authorize with an application key and remember it for refreshes.

        Args:
            application_key_id: Key id (or account id for the master key).
            application_key: Key secret.

        Returns:
            The new Session.

        Raises:
            ValidationError: If either value is blank.
            AuthenticationError: If the key is rejected.
        """
        await self._ensure_initialized()
        auth = self._auth()
        credentials = Credentials(
            application_key_id=application_key_id, application_key=application_key
        )
        try:
            session = await self._call(lambda: auth.authorize(credentials), refreshable=False)
        except B2Error:
            self._credentials = None
            raise
        self._credentials = credentials
        return session

    async def refresh_auth(self) -> Session:
        """Re-authorize with the stored credentials."""
        await self._ensure_initialized()
        if self._credentials is None:
            msg = "No stored credentials. Call authorize() first."
            raise RuntimeError(msg)
        credentials = self._credentials
        auth = self._auth()
        return await self._call(lambda: auth.refresh(credentials), refreshable=False)

    async def clear_auth(self) -> None:
        """Drop the session and the stored credentials."""
        self._credentials = None
        if self._auth_service:
            await self._auth_service.clear()

    async def install_session(self, payload: Mapping[str, Any]) -> Session:
        """
        Install a saved authorize payload without a round trip.

        No credentials are stored, so an expired installed session is not
        refreshed automatically.
        """
        await self._ensure_initialized()
        return await self._auth().install(payload)

    @property
    def is_authenticated(self) -> bool:
        return self._auth_service is not None and self._auth_service.is_authenticated

    @property
    def session(self) -> Session | None:
        return self._auth_service.session if self._auth_service else None

    @property
    def authorization_token(self) -> str | None:
        return self._auth_service.authorization_token if self._auth_service else None

    @property
    def api_url(self) -> str | None:
        return self._auth_service.api_url if self._auth_service else None

    @property
    def download_url(self) -> str | None:
        return self._auth_service.download_url if self._auth_service else None

    @property
    def account_id(self) -> str | None:
        return self._auth_service.account_id if self._auth_service else None

    @property
    def recommended_part_size(self) -> int | None:
        return self._auth_service.recommended_part_size if self._auth_service else None

    @property
    def absolute_minimum_part_size(self) -> int | None:
        return self._auth_service.absolute_minimum_part_size if self._auth_service else None

    @property
    def capabilities(self) -> frozenset[str] | None:
        return self._auth_service.capabilities if self._auth_service else None

    async def create_bucket(
        self,
        bucket_name: str,
        bucket_type: str,
        *,
        bucket_info: dict[str, Any] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
    ) -> Response:
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(
            lambda: buckets.create(
                bucket_name,
                bucket_type,
                bucket_info=bucket_info,
                cors_rules=cors_rules,
                lifecycle_rules=lifecycle_rules,
            )
        )

    async def delete_bucket(self, bucket_id: str) -> Response:
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(lambda: buckets.delete(bucket_id))

    async def list_buckets(
        self,
        *,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
        bucket_types: list[str] | None = None,
    ) -> Response:
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(
            lambda: buckets.list(
                bucket_id=bucket_id, bucket_name=bucket_name, bucket_types=bucket_types
            )
        )

    async def get_bucket(
        self, *, bucket_name: str | None = None, bucket_id: str | None = None
    ) -> Response:
        """Look up a single bucket by name or id."""
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(lambda: buckets.get(bucket_name=bucket_name, bucket_id=bucket_id))

    async def update_bucket(
        self,
        bucket_id: str,
        bucket_type: str,
        *,
        bucket_info: dict[str, Any] | None = None,
        if_revision_is: int | None = None,
    ) -> Response:
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(
            lambda: buckets.update(
                bucket_id, bucket_type, bucket_info=bucket_info, if_revision_is=if_revision_is
            )
        )

    async def get_upload_url(self, bucket_id: str) -> Response:
        """Fetch an upload URL and its upload-scoped token for a bucket."""
        await self._ensure_initialized()
        buckets = self._buckets()
        return await self._call(lambda: buckets.get_upload_url(bucket_id))

    def _buckets(self) -> BucketService:
        if self._bucket_service is None:
            raise RuntimeError("Client not initialized")
        return self._bucket_service

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
        Upload a whole file to a URL from ``get_upload_url``.

        Upload tokens are not refreshed by this client; an expired upload
        token surfaces as an error and a new upload URL must be fetched.
        Streamed data is sent once, without retries.
        """
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.upload_file(
                upload_url=upload_url,
                upload_auth_token=upload_auth_token,
                file_name=file_name,
                data=data,
                content_type=content_type,
                content_sha1=content_sha1,
                content_length=content_length,
                info=info,
                on_upload_progress=on_upload_progress,
            ),
            refreshable=False,
            retries=0 if _is_stream(data) else None,
        )

    async def download_file_by_name(
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
        """
        Download a file by bucket and name.

        Args:
            bucket_name: Bucket holding the file.
            file_name: File name (percent-encoded on the wire).
            response_type: Decoding of the body; STREAM hands back a
                ResponseStream the caller must close.
            byte_range: Inclusive ``(start, end)``; ``end`` None reads to EOF.
            authorization: Download-authorization token instead of the
                session token.
            verify_sha1: Check the body against ``X-Bz-Content-Sha1``.
            on_download_progress: Observer fed as the body arrives.
        """
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.download_by_name(
                bucket_name,
                file_name,
                response_type=response_type,
                byte_range=byte_range,
                authorization=authorization,
                verify_sha1=verify_sha1,
                on_download_progress=on_download_progress,
            ),
            refreshable=authorization is None,
        )

    async def download_file_by_id(
        self,
        file_id: str,
        *,
        response_type: ResponseType = ResponseType.BYTES,
        byte_range: tuple[int, int | None] | None = None,
        authorization: str | None = None,
        verify_sha1: bool = False,
        on_download_progress: ObserverLike | None = None,
    ) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.download_by_id(
                file_id,
                response_type=response_type,
                byte_range=byte_range,
                authorization=authorization,
                verify_sha1=verify_sha1,
                on_download_progress=on_download_progress,
            ),
            refreshable=authorization is None,
        )

    async def list_file_names(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.list_names(
                bucket_id,
                start_file_name=start_file_name,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
            )
        )

    async def iter_file_names(
        self,
        bucket_id: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        page_size: int | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """
        Yield every file entry in a bucket, following ``nextFileName``.

        Example:
            ```python
            async for entry in client.iter_file_names(bucket_id, prefix="logs/"):
                print(entry["fileName"])
            ```
        """
        start: str | None = None
        while True:
            response = await self.list_file_names(
                bucket_id,
                start_file_name=start,
                max_file_count=page_size,
                prefix=prefix,
                delimiter=delimiter,
            )
            page = response.json()
            for entry in page.get("files", []):
                yield entry
            start = page.get("nextFileName")
            if not start:
                return

    async def list_file_versions(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
    ) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.list_versions(
                bucket_id,
                start_file_name=start_file_name,
                start_file_id=start_file_id,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
            )
        )

    async def get_file_info(self, file_id: str) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(lambda: files.get_info(file_id))

    async def delete_file_version(self, file_id: str, file_name: str) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(lambda: files.delete_version(file_id, file_name))

    async def hide_file(self, bucket_id: str, file_name: str) -> Response:
        await self._ensure_initialized()
        files = self._files()
        return await self._call(lambda: files.hide(bucket_id, file_name))

    async def get_download_authorization(
        self,
        bucket_id: str,
        file_name_prefix: str,
        *,
        valid_duration_in_seconds: int = 604_800,
        b2_content_disposition: str | None = None,
    ) -> Response:
        """Token granting read access to files under ``file_name_prefix``."""
        await self._ensure_initialized()
        files = self._files()
        return await self._call(
            lambda: files.get_download_authorization(
                bucket_id,
                file_name_prefix,
                valid_duration_in_seconds=valid_duration_in_seconds,
                b2_content_disposition=b2_content_disposition,
            )
        )

    async def start_large_file(
        self,
        bucket_id: str,
        file_name: str,
        *,
        content_type: str | None = None,
        file_info: dict[str, str] | None = None,
    ) -> Response:
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(
            lambda: large.start(
                bucket_id, file_name, content_type=content_type, file_info=file_info
            )
        )

    async def get_upload_part_url(self, file_id: str) -> Response:
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(lambda: large.get_part_endpoint(file_id))

    async def upload_part(
        self,
        *,
        upload_url: str,
        upload_auth_token: str,
        part_number: int,
        data: object,
        content_sha1: str | None = None,
        content_length: int | None = None,
        file_id: str | None = None,
        on_upload_progress: ObserverLike | None = None,
    ) -> Response:
        """Upload one part to a URL from ``get_upload_part_url``."""
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(
            lambda: large.upload_part(
                upload_url=upload_url,
                upload_auth_token=upload_auth_token,
                part_number=part_number,
                data=data,
                content_sha1=content_sha1,
                content_length=content_length,
                file_id=file_id,
                on_upload_progress=on_upload_progress,
            ),
            refreshable=False,
            retries=0 if _is_stream(data) else None,
        )

    async def upload_parts(
        self,
        file_id: str,
        parts: Sequence[bytes],
        *,
        concurrency: int | None = None,
        on_upload_progress: ObserverLike | None = None,
    ) -> list[Response]:
        """
        Upload in-memory parts 1..N concurrently.

        Each part fetches its own upload URL; both calls go through the retry
        policy.
        """
        await self._ensure_initialized()
        large = self._large_files()
        return await large.upload_parts(
            file_id,
            parts,
            concurrency=concurrency,
            run=self._run_part_call,
            on_upload_progress=on_upload_progress,
        )

    async def _run_part_call(self, operation: Callable[[], Awaitable[T]]) -> T:
        return await self._call(operation, refreshable=False)

    async def finish_large_file(
        self, file_id: str, part_sha1_array: Sequence[str] | None = None
    ) -> Response:
        """
        Assemble a large file.

        ``part_sha1_array`` defaults to the SHA-1s of the parts this client
        uploaded for ``file_id``.
        """
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(lambda: large.finish(file_id, part_sha1_array))

    async def cancel_large_file(self, file_id: str) -> Response | None:
        """Cancel a large file. Safe to call more than once."""
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(lambda: large.cancel(file_id))

    async def list_parts(
        self,
        file_id: str,
        *,
        start_part_number: int | None = None,
        max_part_count: int | None = None,
    ) -> Response:
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(
            lambda: large.list_parts(
                file_id, start_part_number=start_part_number, max_part_count=max_part_count
            )
        )

    async def list_unfinished_large_files(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
    ) -> Response:
        await self._ensure_initialized()
        large = self._large_files()
        return await self._call(
            lambda: large.list_unfinished(
                bucket_id,
                name_prefix=name_prefix,
                start_file_id=start_file_id,
                max_file_count=max_file_count,
            )
        )

    def large_file_handle(self, file_id: str) -> LargeFileHandle | None:
        """
        Parts tracked for an open large file started by this client.

        Handles are released once the file is finished or cancelled; use
        ``large_file_state`` to read the outcome.
        """
        return self._large_file_service.handle(file_id) if self._large_file_service else None

    def large_file_state(self, file_id: str) -> LargeFileState:
        if self._large_file_service is None:
            return LargeFileState.UNSTARTED
        return self._large_file_service.state(file_id)

    async def create_key(
        self,
        key_name: str,
        capabilities: Iterable[str],
        *,
        valid_duration_in_seconds: int | None = None,
        bucket_id: str | None = None,
        name_prefix: str | None = None,
    ) -> Response:
        await self._ensure_initialized()
        keys = self._keys()
        granted = list(capabilities)
        return await self._call(
            lambda: keys.create(
                key_name,
                granted,
                valid_duration_in_seconds=valid_duration_in_seconds,
                bucket_id=bucket_id,
                name_prefix=name_prefix,
            )
        )

    async def delete_key(self, application_key_id: str) -> Response:
        await self._ensure_initialized()
        keys = self._keys()
        return await self._call(lambda: keys.delete(application_key_id))

    async def list_keys(
        self,
        *,
        max_key_count: int | None = None,
        start_application_key_id: str | None = None,
    ) -> Response:
        await self._ensure_initialized()
        keys = self._keys()
        return await self._call(
            lambda: keys.list(
                max_key_count=max_key_count, start_application_key_id=start_application_key_id
            )
        )

    def _keys(self) -> KeyService:
        if self._key_service is None:
            raise RuntimeError("Client not initialized")
        return self._key_service

    @property
    def metrics(self) -> MetricsSnapshot | None:
        """Request counters, or None unless ``enable_metrics`` is set."""
        return self._http.metrics if self._http else None

    def reset_metrics(self) -> None:
        if self._http:
            self._http.reset_metrics()
