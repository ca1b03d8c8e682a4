"""
Header sets for each kind of B2 request.

Callers never add headers by name; every request kind has one builder here
that returns exactly the headers the service expects.
"""

import base64
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote, unquote_plus

from b2_client.constants import (
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_OCTET_STREAM,
    FILE_INFO_HEADER_PREFIX,
    HEADER_AUTHORIZATION,
    HEADER_CONTENT_LENGTH,
    HEADER_CONTENT_SHA1,
    HEADER_CONTENT_TYPE,
    HEADER_FILE_NAME,
    HEADER_PART_NUMBER,
    HEADER_RANGE,
)
from b2_client.validation import validate_file_info, validate_part_number, validate_sha1

# Characters B2 leaves unescaped in file names and info values
_SAFE_CHARS = "-_.!~*'()/"


def percent_encode(value: str) -> str:
    """Percent-encode a file name or header value (UTF-8, '/' kept)."""
    return quote(value, safe=_SAFE_CHARS)


def percent_encode_segment(value: str) -> str:
    """Percent-encode a single URL path segment ('/' escaped)."""
    return quote(value, safe=_SAFE_CHARS.replace("/", ""))


def percent_decode(value: str) -> str:
    """Inverse of ``percent_encode``; '+' is read as a space."""
    return unquote_plus(value)


def basic_auth_header(key_id: str, key: str) -> dict[str, str]:
    """``Basic base64(id:secret)``, only ever sent to the authorize endpoint."""
    token = base64.b64encode(f"{key_id}:{key}".encode()).decode("ascii")
    return {HEADER_AUTHORIZATION: f"Basic {token}"}


def bearer_auth_header(token: str) -> dict[str, str]:
    # B2 takes the token verbatim, without a "Bearer " prefix
    return {HEADER_AUTHORIZATION: token}


def json_headers(token: str | None = None) -> dict[str, str]:
    headers = {HEADER_CONTENT_TYPE: CONTENT_TYPE_JSON}
    if token:
        headers.update(bearer_auth_header(token))
    return headers


def whole_file_upload_headers(
    *,
    token: str,
    file_name: str,
    content_sha1: str,
    content_length: int,
    content_type: str | None = None,
    info: Mapping[str, Any] | None = None,
) -> dict[str, str]:
    """
    Headers for ``b2_upload_file``.

    Args:
        token: Upload authorization token from ``get_upload_url``.
        file_name: Target file name, percent-encoded here.
        content_sha1: SHA-1 of the body.
        content_length: Body size in bytes.
        content_type: Media type; defaults to application/octet-stream.
        info: Up to 10 metadata entries sent as ``X-Bz-Info-<key>``.

    Raises:
        ValidationError: On invalid metadata keys, too many entries or a bad SHA-1.
    """
    validate_sha1(content_sha1)
    metadata = validate_file_info(info)
    headers = {
        **bearer_auth_header(token),
        HEADER_FILE_NAME: percent_encode(file_name),
        HEADER_CONTENT_TYPE: content_type or CONTENT_TYPE_OCTET_STREAM,
        HEADER_CONTENT_SHA1: content_sha1,
        HEADER_CONTENT_LENGTH: str(content_length),
    }
    for key, value in metadata.items():
        headers[f"{FILE_INFO_HEADER_PREFIX}{key}"] = percent_encode(value)
    return headers


def part_upload_headers(
    *, token: str, part_number: int, content_sha1: str, content_length: int
) -> dict[str, str]:
    """Headers for ``b2_upload_part``."""
    validate_part_number(part_number)
    validate_sha1(content_sha1)
    return {
        **bearer_auth_header(token),
        HEADER_PART_NUMBER: str(part_number),
        HEADER_CONTENT_SHA1: content_sha1,
        HEADER_CONTENT_LENGTH: str(content_length),
    }


def download_headers(
    token: str | None, *, byte_range: tuple[int, int | None] | None = None
) -> dict[str, str]:
    """
    Headers for an authenticated download.

    Args:
        token: Account or download authorization token; None for public buckets.
        byte_range: Inclusive ``(start, end)``; ``end`` None reads to EOF.
    """
    headers = bearer_auth_header(token) if token else {}
    if byte_range is not None:
        start, end = byte_range
        headers[HEADER_RANGE] = f"bytes={start}-{'' if end is None else end}"
    return headers


def extract_file_info(headers: Mapping[str, str]) -> dict[str, str]:
    """Collect ``X-Bz-Info-*`` response headers into ``{name: decoded value}``."""
    prefix = FILE_INFO_HEADER_PREFIX.lower()
    info = {}
    for name, value in headers.items():
        if name.lower().startswith(prefix):
            info[name[len(prefix) :]] = percent_decode(value)
    return info
