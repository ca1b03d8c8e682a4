import base64

import httpx
import pytest

from b2_client.api.headers import (
    basic_auth_header,
    bearer_auth_header,
    download_headers,
    extract_file_info,
    json_headers,
    part_upload_headers,
    percent_decode,
    percent_encode,
    percent_encode_segment,
    whole_file_upload_headers,
)
from b2_client.exceptions import ValidationError

SHA1 = "aaf4c61ddcc5e8a2dabede0f3b482cd9aea9434d"


@pytest.mark.parametrize(
    ("raw", "encoded"),
    [
        ("photos/cat.jpg", "photos/cat.jpg"),
        ("my file.txt", "my%20file.txt"),
        ("été", "%C3%A9t%C3%A9"),
        ("a+b&c=d", "a%2Bb%26c%3Dd"),
        ("~user/(1)!*'", "~user/(1)!*'"),
    ],
)
def test_percent_encode(raw: str, encoded: str) -> None:
    assert percent_encode(raw) == encoded
    assert percent_decode(encoded) == raw


def test_percent_encode_segment_escapes_slash() -> None:
    assert percent_encode_segment("a/b") == "a%2Fb"


def test_percent_decode_reads_plus_as_space() -> None:
    assert percent_decode("hello+world") == "hello world"


def test_basic_auth_header() -> None:
    header = basic_auth_header("key-id", "secret")

    encoded = header["Authorization"].removeprefix("Basic ")
    assert base64.b64decode(encoded) == b"key-id:secret"


def test_bearer_header_is_raw_token() -> None:
    assert bearer_auth_header("tok") == {"Authorization": "tok"}


def test_json_headers() -> None:
    assert json_headers() == {"Content-Type": "application/json"}
    assert json_headers("tok") == {"Content-Type": "application/json", "Authorization": "tok"}


def test_whole_file_upload_headers_are_exact() -> None:
    headers = whole_file_upload_headers(
        token="upload-token",
        file_name="docs/résumé 2024.pdf",
        content_sha1=SHA1,
        content_length=5,
        content_type="application/pdf",
        info={"author": "Ada Lovelace", "src_last_modified_millis": 1700000000000},
    )

    assert headers == {
        "Authorization": "upload-token",
        "X-Bz-File-Name": "docs/r%C3%A9sum%C3%A9%202024.pdf",
        "Content-Type": "application/pdf",
        "X-Bz-Content-Sha1": SHA1,
        "Content-Length": "5",
        "X-Bz-Info-author": "Ada%20Lovelace",
        "X-Bz-Info-src_last_modified_millis": "1700000000000",
    }


def test_whole_file_upload_headers_default_content_type() -> None:
    headers = whole_file_upload_headers(
        token="t", file_name="a", content_sha1=SHA1, content_length=0
    )

    assert headers["Content-Type"] == "application/octet-stream"
    assert len(headers) == 5


def test_whole_file_upload_headers_reject_eleven_info_entries() -> None:
    with pytest.raises(ValidationError):
        whole_file_upload_headers(
            token="t",
            file_name="a",
            content_sha1=SHA1,
            content_length=0,
            info={f"k{i}": "v" for i in range(11)},
        )


def test_whole_file_upload_headers_reject_bad_sha1() -> None:
    with pytest.raises(ValidationError):
        whole_file_upload_headers(token="t", file_name="a", content_sha1="xyz", content_length=0)


def test_part_upload_headers() -> None:
    headers = part_upload_headers(
        token="part-token", part_number=3, content_sha1=SHA1, content_length=1024
    )

    assert headers == {
        "Authorization": "part-token",
        "X-Bz-Part-Number": "3",
        "X-Bz-Content-Sha1": SHA1,
        "Content-Length": "1024",
    }


def test_part_upload_headers_reject_out_of_range_part() -> None:
    with pytest.raises(ValidationError):
        part_upload_headers(token="t", part_number=0, content_sha1=SHA1, content_length=1)


def test_download_headers_with_range() -> None:
    assert download_headers("tok", byte_range=(0, 99)) == {
        "Authorization": "tok",
        "Range": "bytes=0-99",
    }
    assert download_headers(None, byte_range=(100, None)) == {"Range": "bytes=100-"}


def test_extract_file_info_decodes_values() -> None:
    headers = httpx.Headers(
        {
            "Content-Type": "text/plain",
            "X-Bz-Info-Author": "Ada%20Lovelace",
            "x-bz-info-note": "caf%C3%A9",
        }
    )

    assert extract_file_info(headers) == {"author": "Ada Lovelace", "note": "café"}
