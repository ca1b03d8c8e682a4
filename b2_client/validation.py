"""
Input checks performed before any request leaves the client.

Every check raises ValidationError naming the offending field.
"""

import re
from collections.abc import Iterable, Mapping
from typing import Any

from b2_client.constants import (
    FILE_INFO_HEADER_PREFIX,
    MAX_DOWNLOAD_AUTHORIZATION_SECONDS,
    MAX_FILE_INFO_ENTRIES,
    MAX_KEY_DURATION_SECONDS,
    MAX_LIST_COUNT,
    MAX_PART_NUMBER,
    MAX_PART_SIZE,
    MIN_PART_NUMBER,
    BucketType,
    Capability,
)
from b2_client.exceptions import ValidationError

_BUCKET_NAME_RE = re.compile(r"^[a-z0-9][a-z0-9-]*[a-z0-9]$")
_FILE_NAME_FORBIDDEN_RE = re.compile(r"[\x00-\x1f\x7f]")
_SHA1_RE = re.compile(r"^[0-9a-fA-F]{40}$")
_KEY_NAME_RE = re.compile(r"^[A-Za-z0-9._-]{1,100}$")
_INFO_KEY_RE = re.compile(r"^[A-Za-z0-9_-]+$")
_CONTENT_TYPE_RE = re.compile(
    r"^[a-zA-Z0-9][a-zA-Z0-9!#$&\-^_.+]*/[a-zA-Z0-9][a-zA-Z0-9!#$&\-^_.+]*(\s*;.*)?$"
)


def require_string(value: Any, name: str, *, allow_empty: bool = False) -> str:
    """Require a string, non-blank unless ``allow_empty``."""
    if not isinstance(value, str):
        msg = f"{name} is required and must be a string"
        raise ValidationError(msg, field=name)
    if not allow_empty and not value.strip():
        msg = f"{name} cannot be empty"
        raise ValidationError(msg, field=name)
    return value


def validate_credentials(key_id: Any, key: Any) -> None:
    require_string(key_id, "application_key_id")
    require_string(key, "application_key")


def validate_bucket_name(name: Any) -> None:
    """
    Bucket names are 6-50 characters of lowercase letters, digits and
    hyphens, start and end alphanumeric, and never contain ``--``.
    """
    require_string(name, "bucket_name")
    if not 6 <= len(name) <= 50:
        msg = "Bucket name must be between 6 and 50 characters"
        raise ValidationError(msg, field="bucket_name")
    if not _BUCKET_NAME_RE.match(name):
        msg = (
            "Bucket name may only contain lowercase letters, digits and hyphens, "
            "and cannot start or end with a hyphen"
        )
        raise ValidationError(msg, field="bucket_name")
    if "--" in name:
        msg = "Bucket name cannot contain consecutive hyphens"
        raise ValidationError(msg, field="bucket_name")


def validate_bucket_type(bucket_type: Any) -> BucketType:
    try:
        return BucketType(bucket_type)
    except ValueError:
        allowed = ", ".join(t.value for t in BucketType)
        msg = f"Bucket type must be one of: {allowed}"
        raise ValidationError(msg, field="bucket_type") from None


def validate_file_name(name: Any) -> None:
    if not isinstance(name, str):
        msg = "file_name is required and must be a string"
        raise ValidationError(msg, field="file_name")
    if not name:
        msg = "File name cannot be empty"
        raise ValidationError(msg, field="file_name")
    if len(name) > 1024:
        msg = "File name cannot exceed 1024 characters"
        raise ValidationError(msg, field="file_name")
    if _FILE_NAME_FORBIDDEN_RE.search(name):
        msg = "File name contains invalid control characters"
        raise ValidationError(msg, field="file_name")
    if name.startswith("/"):
        msg = "File name cannot start with a forward slash"
        raise ValidationError(msg, field="file_name")


def validate_sha1(value: Any, name: str = "content_sha1") -> None:
    if not isinstance(value, str) or not _SHA1_RE.match(value):
        msg = f"{name} must be a 40 character hexadecimal SHA-1"
        raise ValidationError(msg, field=name)


def validate_content_type(value: Any) -> None:
    require_string(value, "content_type")
    if not _CONTENT_TYPE_RE.match(value):
        msg = "content_type format is invalid"
        raise ValidationError(msg, field="content_type")


def validate_part_number(part_number: Any) -> None:
    if (
        not isinstance(part_number, int)
        or isinstance(part_number, bool)
        or not MIN_PART_NUMBER <= part_number <= MAX_PART_NUMBER
    ):
        msg = f"part_number must be an integer between {MIN_PART_NUMBER} and {MAX_PART_NUMBER}"
        raise ValidationError(msg, field="part_number")


def validate_part_size(size: int) -> None:
    if size > MAX_PART_SIZE:
        msg = f"Part size {size} exceeds the maximum of {MAX_PART_SIZE} bytes"
        raise ValidationError(msg, field="data")


def validate_sha1_list(values: Any) -> list[str]:
    """Validate the ordered part SHA-1 list sent to finish a large file."""
    if not isinstance(values, (list, tuple)):
        msg = "part_sha1_array must be a list"
        raise ValidationError(msg, field="part_sha1_array")
    if not 1 <= len(values) <= MAX_PART_NUMBER:
        msg = f"part_sha1_array must contain between 1 and {MAX_PART_NUMBER} entries"
        raise ValidationError(msg, field="part_sha1_array")
    for index, value in enumerate(values):
        validate_sha1(value, f"part_sha1_array[{index}]")
    return list(values)


def validate_key_name(name: Any) -> None:
    if not isinstance(name, str) or not _KEY_NAME_RE.match(name):
        msg = "key_name must be 1-100 characters of letters, digits, '.', '_' or '-'"
        raise ValidationError(msg, field="key_name")


def validate_capabilities(capabilities: Any) -> list[str]:
    if isinstance(capabilities, str) or not isinstance(capabilities, Iterable):
        msg = "capabilities must be a list"
        raise ValidationError(msg, field="capabilities")
    values = list(capabilities)
    if not values:
        msg = "capabilities cannot be empty"
        raise ValidationError(msg, field="capabilities")
    allowed = {c.value for c in Capability}
    invalid = [str(c) for c in values if c not in allowed]
    if invalid:
        msg = f"Invalid key capabilities: {', '.join(invalid)}"
        raise ValidationError(msg, field="capabilities")
    if len(set(values)) != len(values):
        msg = "capabilities cannot contain duplicates"
        raise ValidationError(msg, field="capabilities")
    return [str(c) for c in values]


def validate_count(value: Any, name: str) -> None:
    if value is None:
        return
    if not isinstance(value, int) or isinstance(value, bool) or not 1 <= value <= MAX_LIST_COUNT:
        msg = f"{name} must be a number between 1 and {MAX_LIST_COUNT}"
        raise ValidationError(msg, field=name)


def validate_key_duration(seconds: Any) -> None:
    if seconds is None:
        return
    if (
        not isinstance(seconds, int)
        or isinstance(seconds, bool)
        or not 0 < seconds <= MAX_KEY_DURATION_SECONDS
    ):
        msg = f"valid_duration_in_seconds must be between 1 and {MAX_KEY_DURATION_SECONDS}"
        raise ValidationError(msg, field="valid_duration_in_seconds")


def validate_download_authorization_duration(seconds: Any) -> None:
    if (
        not isinstance(seconds, int)
        or isinstance(seconds, bool)
        or not 1 <= seconds <= MAX_DOWNLOAD_AUTHORIZATION_SECONDS
    ):
        msg = (
            "valid_duration_in_seconds must be between 1 and "
            f"{MAX_DOWNLOAD_AUTHORIZATION_SECONDS}"
        )
        raise ValidationError(msg, field="valid_duration_in_seconds")


def validate_file_info(info: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Check user metadata destined for ``X-Bz-Info-*`` headers.

    Returns:
        The metadata with values converted to strings.
    """
    if info is None:
        return {}
    if not isinstance(info, Mapping):
        msg = "info must be a mapping"
        raise ValidationError(msg, field="info")
    if len(info) > MAX_FILE_INFO_ENTRIES:
        msg = f"info cannot have more than {MAX_FILE_INFO_ENTRIES} entries"
        raise ValidationError(msg, field="info")
    result = {}
    for key, value in info.items():
        if not isinstance(key, str) or not _INFO_KEY_RE.match(key):
            msg = f"Invalid {FILE_INFO_HEADER_PREFIX} key: {key!r}"
            raise ValidationError(msg, field="info")
        result[key] = str(value)
    return result
