from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from b2_client.api.http_client import AsyncHttpClient
from b2_client.config import B2Config
from b2_client.tests.utils.mock_transport import MockTransport


@pytest.fixture
def config() -> B2Config:
    return B2Config(retry_delay=0.01, max_retry_delay=0.1, progress_throttle=0.1)


@pytest.fixture
def mock_transport() -> MockTransport:
    return MockTransport()


@pytest_asyncio.fixture
async def http_client(
    config: B2Config, mock_transport: MockTransport
) -> AsyncIterator[AsyncHttpClient]:
    async with AsyncHttpClient(config, transport=mock_transport) as client:
        yield client
