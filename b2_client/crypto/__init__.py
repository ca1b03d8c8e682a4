"""Content hashing."""

from b2_client.crypto.backends import CryptographyBackend, HashlibBackend
from b2_client.crypto.protocol import HashBackend, HashState
from b2_client.crypto.sha1 import ContentHasher, Sha1Stream

__all__ = [
    "ContentHasher",
    "CryptographyBackend",
    "HashBackend",
    "HashState",
    "HashlibBackend",
    "Sha1Stream",
]
