"""
Hash backend protocol definition.

Lets the SHA-1 primitive be swapped (hashlib, cryptography) without changing
the rest of the codebase. The backend is chosen when the hasher is built.
"""

from typing import Protocol, runtime_checkable


@runtime_checkable
class HashState(Protocol):
    """Incremental digest state."""

    def update(self, data: bytes) -> None:
        """Feed more bytes."""
        ...

    def hexdigest(self) -> str:
        """Lowercase hex digest of everything fed so far."""
        ...


@runtime_checkable
class HashBackend(Protocol):
    """Factory for SHA-1 digest states."""

    name: str

    def sha1(self) -> HashState:
        """Return a fresh SHA-1 state."""
        ...
