"""Account authorization endpoint."""

from b2_client.api.headers import basic_auth_header
from b2_client.api.http_client import AsyncHttpClient
from b2_client.api.router import EndpointRouter
from b2_client.models.request import RequestSpec, Response


async def authorize_account(
    http: AsyncHttpClient, router: EndpointRouter, key_id: str, key: str
) -> Response:
    """
    Exchange an application key for a session.

    Args:
        http: Configured async HTTP client.
        router: Endpoint router.
        key_id: Application key identifier.
        key: Application key secret.

    Returns:
        Response carrying authorizationToken, accountId and apiInfo.
    """
    return await http.request(
        RequestSpec(
            method="GET",
            url=router.authorize_url(),
            headers=basic_auth_header(key_id, key),
        )
    )
