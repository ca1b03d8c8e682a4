from unittest.mock import AsyncMock, Mock

import pytest

from b2_client.api.router import EndpointRouter
from b2_client.models.request import JsonBody, RequestSpec
from b2_client.tests.utils.factories import make_session


@pytest.fixture
def mock_http() -> Mock:
    http = Mock()
    http.request = AsyncMock(return_value=Mock(name="response"))
    return http


@pytest.fixture
def router() -> EndpointRouter:
    session = make_session()
    return EndpointRouter(lambda: session)


def sent_spec(mock_http: Mock) -> RequestSpec:
    """The single RequestSpec handed to the transport."""
    mock_http.request.assert_called_once()
    return mock_http.request.call_args.args[0]


def sent_json(mock_http: Mock) -> object:
    body = sent_spec(mock_http).body
    assert isinstance(body, JsonBody)
    return body.value
