"""
Large-file orchestration.

Drives the start -> part uploads -> finish (or cancel) sequence and tracks,
for every file it started, which parts have been uploaded and their SHA-1s.
"""

import asyncio
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

import structlog

from b2_client.api.endpoints import large_files
from b2_client.api.http_client import AsyncHttpClient
from b2_client.config import B2Config
from b2_client.constants import MAX_CLOSED_LARGE_FILES, B2ErrorCode
from b2_client.core.progress import ObserverLike, ThrottledObserver, body_size
from b2_client.crypto.sha1 import ContentHasher
from b2_client.exceptions import B2Error, ValidationError
from b2_client.models.large_file import (
    LargeFileHandle,
    LargeFileState,
    UploadedPart,
    UploadTarget,
)
from b2_client.models.request import Response, StreamBody, to_body
from b2_client.services.auth_service import AuthService
from b2_client.services.bucket_service import upload_target
from b2_client.services.file_service import prepare_upload_body
from b2_client.validation import (
    require_string,
    validate_content_type,
    validate_count,
    validate_file_info,
    validate_file_name,
    validate_part_number,
    validate_part_size,
    validate_sha1_list,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Wraps one remote call (retry/refresh policy supplied by the caller)
CallRunner = Callable[[Callable[[], Awaitable[T]]], Awaitable[T]]


async def _run_once(operation: Callable[[], Awaitable[T]]) -> T:
    return await operation()


class LargeFileService:
    """
    State machine for large-file uploads.

    States: UNSTARTED -> IN_PROGRESS -> FINISHED | CANCELLED.

    Part uploads are not serialized; callers choose the concurrency, or use
    ``upload_parts`` for a bounded fan-out.
    """

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
        self._handles: dict[str, LargeFileHandle] = {}
        # Terminal states only, oldest first; part maps are dropped on close
        self._closed: OrderedDict[str, LargeFileState] = OrderedDict()

    def handle(self, file_id: str) -> LargeFileHandle | None:
        """Tracked state for an open file started by this client, if any."""
        return self._handles.get(file_id)

    def state(self, file_id: str) -> LargeFileState:
        handle = self._handles.get(file_id)
        if handle is not None:
            return handle.state
        return self._closed.get(file_id, LargeFileState.UNSTARTED)

    def _require_open(self, file_id: str) -> LargeFileHandle | None:
        state = self.state(file_id)
        if state.is_terminal:
            msg = f"Large file {file_id} is already {state}"
            raise ValidationError(msg, field="file_id")
        return self._handles.get(file_id)

    def _close(self, file_id: str, state: LargeFileState) -> None:
        handle = self._handles.pop(file_id, None)
        if handle is not None:
            handle.state = state
        self._closed[file_id] = state
        self._closed.move_to_end(file_id)
        if len(self._closed) > MAX_CLOSED_LARGE_FILES:
            self._closed.popitem(last=False)

    async def start(
        self,
        bucket_id: str,
        file_name: str,
        *,
        content_type: str | None = None,
        file_info: dict[str, str] | None = None,
    ) -> Response:
        """Begin a large file; the response carries its ``fileId``."""
        require_string(bucket_id, "bucket_id")
        validate_file_name(file_name)
        if content_type is not None:
            validate_content_type(content_type)
        info = validate_file_info(file_info)
        session = self._auth.require_session()

        response = await large_files.start_large_file(
            self._http,
            self._auth.router,
            session.authorization_token,
            bucket_id=bucket_id,
            file_name=file_name,
            content_type=content_type,
            file_info=info,
        )
        file_id = response.json()["fileId"]
        self._handles[file_id] = LargeFileHandle(
            file_id=file_id, file_name=file_name, bucket_id=bucket_id
        )
        logger.info("Large file started", file_id=file_id, file_name=file_name)
        return response

    async def get_part_endpoint(self, file_id: str) -> Response:
        """Fetch a part upload URL and its part-scoped token."""
        require_string(file_id, "file_id")
        self._require_open(file_id)
        session = self._auth.require_session()
        try:
            return await large_files.get_upload_part_url(
                self._http, self._auth.router, session.authorization_token, file_id=file_id
            )
        except B2Error as e:
            if e.code == B2ErrorCode.FILE_NOT_PRESENT:
                e.rewrite(f"Large file not found: {file_id}")
            raise

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
        """
        Upload one part.

        Bounds are checked before anything is sent. The SHA-1 is computed when
        not supplied, and the part is recorded on the tracked handle (matched
        by ``file_id`` or by the ``fileId`` the service echoes back).

        Raises:
            ValidationError: Part number outside 1..10000, part larger than
                5 GiB, or the handle is already finished/cancelled.
            B2Error: Upload failure, with ``part_number`` in its context.
        """
        require_string(upload_url, "upload_url")
        require_string(upload_auth_token, "upload_auth_token")
        validate_part_number(part_number)
        if file_id is not None:
            self._require_open(file_id)
        if content_length is not None:
            validate_part_size(content_length)
        in_memory = to_body(data)
        if in_memory is not None and not isinstance(in_memory, StreamBody):
            validate_part_size(body_size(in_memory))
        body, sha1, length = prepare_upload_body(
            in_memory, self._hasher, content_sha1=content_sha1, content_length=content_length
        )
        validate_part_size(length)

        target = UploadTarget(
            upload_url=upload_url, authorization_token=upload_auth_token, file_id=file_id
        )
        observer = (
            ThrottledObserver(on_upload_progress, self._config.progress_throttle)
            if on_upload_progress is not None
            else None
        )
        try:
            response = await large_files.upload_part(
                self._http,
                target,
                part_number=part_number,
                body=body,
                content_sha1=sha1,
                content_length=length,
                timeout=self._config.upload_timeout,
                on_upload_progress=observer,
            )
        except B2Error as e:
            e.context["part_number"] = part_number
            raise

        data_out = response.data if isinstance(response.data, dict) else {}
        tracked_id = file_id or data_out.get("fileId")
        handle = self._handles.get(tracked_id) if tracked_id else None
        if handle is not None:
            handle.parts[part_number] = UploadedPart(
                part_number=part_number, content_sha1=sha1, content_length=length
            )
        logger.debug("Part uploaded", file_id=tracked_id, part_number=part_number, size=length)
        return response

    async def upload_parts(
        self,
        file_id: str,
        parts: Sequence[bytes],
        *,
        concurrency: int | None = None,
        run: CallRunner = _run_once,
        on_upload_progress: ObserverLike | None = None,
    ) -> list[Response]:
        """
        Upload in-memory ``parts`` as parts 1..N with bounded concurrency.

        Each task fetches its own part URL. ``run`` wraps every remote call,
        which is how the client applies its retry policy, so parts must be
        bytes that can be sent again. Streams go through ``upload_part``.

        Returns:
            Part responses ordered by part number.
        """
        require_string(file_id, "file_id")
        self._require_open(file_id)
        if not 1 <= len(parts) <= 10_000:
            msg = "parts must contain between 1 and 10000 entries"
            raise ValidationError(msg, field="parts")
        for number, data in enumerate(parts, start=1):
            if not isinstance(data, (bytes, bytearray, memoryview)):
                msg = f"Part {number} must be bytes, upload streams with upload_part"
                raise ValidationError(msg, field="parts")
            validate_part_size(memoryview(data).nbytes)
        limit = concurrency or self._config.max_concurrent_parts
        if limit <= 0:
            msg = "concurrency must be positive"
            raise ValidationError(msg, field="concurrency")
        semaphore = asyncio.Semaphore(limit)

        async def upload(part_number: int, data: object) -> Response:
            async with semaphore:
                endpoint = await run(lambda: self.get_part_endpoint(file_id))
                target = upload_target(endpoint)
                return await run(
                    lambda: self.upload_part(
                        upload_url=target.upload_url,
                        upload_auth_token=target.authorization_token,
                        part_number=part_number,
                        data=data,
                        file_id=file_id,
                        on_upload_progress=on_upload_progress,
                    )
                )

        tasks = [
            asyncio.create_task(upload(number, data))
            for number, data in enumerate(parts, start=1)
        ]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def finish(self, file_id: str, part_sha1_array: Sequence[str] | None = None) -> Response:
        """
        Assemble the uploaded parts.

        Args:
            file_id: Large file to finish.
            part_sha1_array: SHA-1s ordered by part number. Defaults to the
                SHA-1s recorded on the tracked handle.

        On failure the handle stays IN_PROGRESS until cancelled.
        """
        require_string(file_id, "file_id")
        handle = self._require_open(file_id)
        if part_sha1_array is None:
            if handle is None:
                msg = "part_sha1_array is required for files not started by this client"
                raise ValidationError(msg, field="part_sha1_array")
            part_sha1_array = handle.part_sha1s
        sha1s = validate_sha1_list(list(part_sha1_array))
        session = self._auth.require_session()

        response = await large_files.finish_large_file(
            self._http,
            self._auth.router,
            session.authorization_token,
            file_id=file_id,
            part_sha1_array=sha1s,
        )
        self._close(file_id, LargeFileState.FINISHED)
        logger.info("Large file finished", file_id=file_id, parts=len(sha1s))
        return response

    async def cancel(self, file_id: str) -> Response | None:
        """
        Cancel a large file and discard its parts.

        Idempotent: cancelling a finished or cancelled file does nothing and
        returns None. A service answer that the file is already gone still
        ends in CANCELLED. Either way the part map is released.
        """
        require_string(file_id, "file_id")
        if self.state(file_id).is_terminal:
            logger.debug("Cancel skipped, file already closed", file_id=file_id)
            return None
        session = self._auth.require_session()

        try:
            response = await large_files.cancel_large_file(
                self._http, self._auth.router, session.authorization_token, file_id=file_id
            )
        except B2Error as e:
            if e.status == 404 or e.code == B2ErrorCode.FILE_NOT_PRESENT:
                self._close(file_id, LargeFileState.CANCELLED)
                logger.info("Large file already gone on cancel", file_id=file_id)
                return None
            raise
        self._close(file_id, LargeFileState.CANCELLED)
        logger.info("Large file cancelled", file_id=file_id)
        return response

    async def list_parts(
        self,
        file_id: str,
        *,
        start_part_number: int | None = None,
        max_part_count: int | None = None,
    ) -> Response:
        require_string(file_id, "file_id")
        if start_part_number is not None:
            validate_part_number(start_part_number)
        validate_count(max_part_count, "max_part_count")
        session = self._auth.require_session()
        return await large_files.list_parts(
            self._http,
            self._auth.router,
            session.authorization_token,
            file_id=file_id,
            start_part_number=start_part_number,
            max_part_count=max_part_count,
        )

    async def list_unfinished(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
    ) -> Response:
        require_string(bucket_id, "bucket_id")
        validate_count(max_file_count, "max_file_count")
        session = self._auth.require_session()
        return await large_files.list_unfinished_large_files(
            self._http,
            self._auth.router,
            session.authorization_token,
            bucket_id=bucket_id,
            name_prefix=name_prefix,
            start_file_id=start_file_id,
            max_file_count=max_file_count,
        )
