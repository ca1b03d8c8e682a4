import pytest_asyncio

from b2_client.api.http_client import AsyncHttpClient
from b2_client.config import B2Config
from b2_client.services.auth_service import AuthService
from b2_client.tests.utils.factories import make_authorize_payload


@pytest_asyncio.fixture
async def authed(http_client: AsyncHttpClient, config: B2Config) -> AuthService:
    """AuthService holding a session installed from a saved payload."""
    service = AuthService(http_client, config)
    await service.install(make_authorize_payload())
    return service
