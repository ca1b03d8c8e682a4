"""
Business logic services for the B2 client.
"""

from b2_client.services.auth_service import AuthService
from b2_client.services.bucket_service import BucketService
from b2_client.services.file_service import FileService
from b2_client.services.key_service import KeyService
from b2_client.services.large_file_service import LargeFileService

__all__ = [
    "AuthService",
    "BucketService",
    "FileService",
    "KeyService",
    "LargeFileService",
]
