"""
Large-file upload models.
"""

from dataclasses import dataclass, field
from enum import StrEnum


class LargeFileState(StrEnum):
    """Lifecycle of a large-file upload."""

    UNSTARTED = "unstarted"
    IN_PROGRESS = "in_progress"
    FINISHED = "finished"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (LargeFileState.FINISHED, LargeFileState.CANCELLED)


@dataclass(frozen=True, kw_only=True)
class UploadTarget:
    """
    Upload URL plus the token scoped to it.

    Attributes:
        upload_url: URL to POST content to.
        authorization_token: Token valid only for ``upload_url``.
        bucket_id: Bucket for whole-file targets.
        file_id: Large file for part targets.
    """

    upload_url: str
    authorization_token: str = field(repr=False)
    bucket_id: str | None = None
    file_id: str | None = None


@dataclass(frozen=True, kw_only=True)
class UploadedPart:
    """
    Attributes:
        part_number: 1-based index.
        content_sha1: SHA-1 of the part content.
        content_length: Size in bytes.
    """

    part_number: int
    content_sha1: str
    content_length: int


@dataclass(kw_only=True)
class LargeFileHandle:
    """
    Client-side view of a large file being assembled.

    Attributes:
        file_id: Service identifier of the unfinished file.
        file_name: Name it will be finished under.
        bucket_id: Bucket holding the upload.
        state: Current lifecycle state.
        parts: Completed parts keyed by part number.
    """

    file_id: str
    file_name: str
    bucket_id: str
    state: LargeFileState = LargeFileState.IN_PROGRESS
    parts: dict[int, UploadedPart] = field(default_factory=dict)

    @property
    def part_sha1s(self) -> list[str]:
        """SHA-1s ordered by part number."""
        return [self.parts[n].content_sha1 for n in sorted(self.parts)]
