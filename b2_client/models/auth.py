"""
Authentication-related domain models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


@dataclass(frozen=True, kw_only=True)
class Credentials:
    """
    Application key pair used to authorize an account.

    Attributes:
        application_key_id: Key identifier (account id for the master key).
        application_key: Key secret. Never shown in repr.
    """

    application_key_id: str
    application_key: str = field(repr=False)


@dataclass(frozen=True, kw_only=True)
class Session:
    """
    Everything returned by a successful authorization.

    Replaced wholesale on authorize/refresh, never mutated.

    Attributes:
        authorization_token: Token placed verbatim in the Authorization header.
        api_url: Base URL for control-plane calls.
        download_url: Base URL for downloads.
        account_id: Account identifier.
        recommended_part_size: Part size the service recommends for large files.
        absolute_minimum_part_size: Smallest allowed part (except the last one).
        capabilities: Capabilities granted to the key.
        allowed: Raw ``allowed`` block (bucket/prefix restrictions included).
        created_at: When the session was installed.
    """

    authorization_token: str = field(repr=False)
    api_url: str
    download_url: str
    account_id: str
    recommended_part_size: int | None = None
    absolute_minimum_part_size: int | None = None
    capabilities: frozenset[str] = frozenset()
    allowed: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)

    def has_capability(self, capability: str) -> bool:
        return capability in self.capabilities
