"""
B2 API constants: endpoint paths, vocabularies, error codes and header names.
"""

from enum import StrEnum

DEFAULT_API_URL = "https://api.backblazeb2.com"

AUTHORIZE_ACCOUNT = "/b2api/v4/b2_authorize_account"

CREATE_BUCKET = "/b2api/v2/b2_create_bucket"
DELETE_BUCKET = "/b2api/v2/b2_delete_bucket"
LIST_BUCKETS = "/b2api/v2/b2_list_buckets"
UPDATE_BUCKET = "/b2api/v2/b2_update_bucket"
GET_UPLOAD_URL = "/b2api/v2/b2_get_upload_url"

DOWNLOAD_FILE_BY_ID = "/b2api/v2/b2_download_file_by_id"
DOWNLOAD_FILE_BY_NAME = "/file"
LIST_FILE_NAMES = "/b2api/v2/b2_list_file_names"
LIST_FILE_VERSIONS = "/b2api/v2/b2_list_file_versions"
GET_FILE_INFO = "/b2api/v2/b2_get_file_info"
DELETE_FILE_VERSION = "/b2api/v2/b2_delete_file_version"
HIDE_FILE = "/b2api/v2/b2_hide_file"
GET_DOWNLOAD_AUTHORIZATION = "/b2api/v2/b2_get_download_authorization"

START_LARGE_FILE = "/b2api/v2/b2_start_large_file"
GET_UPLOAD_PART_URL = "/b2api/v2/b2_get_upload_part_url"
FINISH_LARGE_FILE = "/b2api/v2/b2_finish_large_file"
CANCEL_LARGE_FILE = "/b2api/v2/b2_cancel_large_file"
LIST_PARTS = "/b2api/v2/b2_list_parts"
LIST_UNFINISHED_LARGE_FILES = "/b2api/v2/b2_list_unfinished_large_files"

CREATE_KEY = "/b2api/v2/b2_create_key"
DELETE_KEY = "/b2api/v2/b2_delete_key"
LIST_KEYS = "/b2api/v2/b2_list_keys"


class BucketType(StrEnum):
    """Bucket visibility accepted by the service."""

    ALL_PUBLIC = "allPublic"
    ALL_PRIVATE = "allPrivate"


class Capability(StrEnum):
    """Application key capability tokens."""

    LIST_KEYS = "listKeys"
    WRITE_KEYS = "writeKeys"
    DELETE_KEYS = "deleteKeys"
    LIST_BUCKETS = "listBuckets"
    WRITE_BUCKETS = "writeBuckets"
    DELETE_BUCKETS = "deleteBuckets"
    LIST_ALL_BUCKET_NAMES = "listAllBucketNames"
    LIST_FILES = "listFiles"
    READ_FILES = "readFiles"
    SHARE_FILES = "shareFiles"
    WRITE_FILES = "writeFiles"
    DELETE_FILES = "deleteFiles"


class B2ErrorCode(StrEnum):
    """Service error codes carried in the ``code`` field of error payloads."""

    BAD_REQUEST = "bad_request"
    BAD_AUTH_TOKEN = "bad_auth_token"
    EXPIRED_AUTH_TOKEN = "expired_auth_token"
    UNSUPPORTED_OPERATION = "unsupported_operation"
    INVALID_BUCKET_ID = "invalid_bucket_id"
    INVALID_BUCKET_NAME = "invalid_bucket_name"
    BUCKET_NOT_EMPTY = "bucket_not_empty"
    DUPLICATE_BUCKET_NAME = "duplicate_bucket_name"
    FILE_NOT_PRESENT = "file_not_present"
    NOT_ALLOWED = "not_allowed"
    REQUEST_TIMEOUT = "request_timeout"
    TOO_MANY_REQUESTS = "too_many_requests"


RETRYABLE_ERROR_CODES = frozenset({B2ErrorCode.REQUEST_TIMEOUT, B2ErrorCode.TOO_MANY_REQUESTS})
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})

CONTENT_TYPE_JSON = "application/json"
CONTENT_TYPE_OCTET_STREAM = "application/octet-stream"

HEADER_AUTHORIZATION = "Authorization"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_CONTENT_LENGTH = "Content-Length"
HEADER_CONTENT_SHA1 = "X-Bz-Content-Sha1"
HEADER_FILE_NAME = "X-Bz-File-Name"
HEADER_PART_NUMBER = "X-Bz-Part-Number"
HEADER_RANGE = "Range"
HEADER_RETRY_AFTER = "Retry-After"
FILE_INFO_HEADER_PREFIX = "X-Bz-Info-"

MAX_FILE_INFO_ENTRIES = 10

MIN_PART_NUMBER = 1
MAX_PART_NUMBER = 10_000
MAX_PART_SIZE = 5 * 1024 * 1024 * 1024

MAX_LIST_COUNT = 10_000
MAX_CLOSED_LARGE_FILES = 1000
MAX_KEY_DURATION_SECONDS = 1000 * 24 * 60 * 60
MAX_DOWNLOAD_AUTHORIZATION_SECONDS = 604_800

STREAMING_THRESHOLD = 10 * 1024 * 1024
STREAM_CHUNK_SIZE = 64 * 1024
SLOW_REQUEST_THRESHOLD = 5.0
SLOW_REQUEST_HISTORY = 10
DEFAULT_RATE_LIMIT_DELAY = 60.0
