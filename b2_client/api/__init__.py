"""
B2 API client layer.

Provides the async HTTP transport, URL routing and header assembly.
"""

from b2_client.api.http_client import AsyncHttpClient, ResponseStream, sanitize_for_log
from b2_client.api.router import EndpointRouter

__all__ = ["AsyncHttpClient", "EndpointRouter", "ResponseStream", "sanitize_for_log"]
