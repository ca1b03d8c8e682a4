import os
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio

from b2_client import B2Client


def pytest_collection_modifyitems(config: pytest.Config, items: list) -> None:
    missing = not (
        os.getenv("B2_TEST_KEY_ID")
        and os.getenv("B2_TEST_KEY")
        and os.getenv("B2_TEST_BUCKET_NAME")
    )
    if not missing:
        return
    mark_expr = getattr(config.option, "markexpr", "")
    if "integration" in mark_expr:
        return
    skip = pytest.mark.skip(reason="B2_TEST_KEY_ID / B2_TEST_KEY / B2_TEST_BUCKET_NAME not set")
    for item in items:
        if item.get_closest_marker("integration"):
            item.add_marker(skip)


@pytest.fixture(scope="session")
def b2_credentials() -> tuple[str, str]:
    key_id = os.getenv("B2_TEST_KEY_ID")
    key = os.getenv("B2_TEST_KEY")
    if not key_id or not key:
        pytest.fail("B2_TEST_KEY_ID and B2_TEST_KEY must be set to run integration tests.")
    return key_id, key


@pytest.fixture(scope="session")
def bucket_name() -> str:
    name = os.getenv("B2_TEST_BUCKET_NAME")
    if not name:
        pytest.fail("B2_TEST_BUCKET_NAME must name a scratch bucket for integration tests.")
    return name


@pytest_asyncio.fixture
async def authorized_client(b2_credentials: tuple[str, str]) -> AsyncIterator[B2Client]:
    key_id, key = b2_credentials
    async with B2Client() as client:
        await client.authorize(key_id, key)
        yield client
