"""
SHA-1 backends.

HashlibBackend is the default. CryptographyBackend goes through the
``cryptography`` hazmat primitives, for builds where hashlib's SHA-1 is
restricted.
"""

import hashlib

from cryptography.hazmat.primitives import hashes

from b2_client.crypto.protocol import HashState


class HashlibBackend:
    name = "hashlib"

    def sha1(self) -> HashState:
        # Content addressing only
        return hashlib.sha1(usedforsecurity=False)


class _CryptographySha1:
    def __init__(self) -> None:
        self._hash = hashes.Hash(hashes.SHA1())
        self._digest: str | None = None

    def update(self, data: bytes) -> None:
        if self._digest is not None:
            msg = "Digest already finalized"
            raise ValueError(msg)
        self._hash.update(data)

    def hexdigest(self) -> str:
        if self._digest is None:
            self._digest = self._hash.finalize().hex()
        return self._digest


class CryptographyBackend:
    name = "cryptography"

    def sha1(self) -> HashState:
        return _CryptographySha1()
