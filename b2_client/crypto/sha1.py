"""
SHA-1 content hashing.

Used to produce the ``X-Bz-Content-Sha1`` header before upload and to verify
downloaded content.
"""

from collections.abc import AsyncIterable

from b2_client.crypto.backends import HashlibBackend
from b2_client.crypto.protocol import HashBackend, HashState

Hashable = bytes | bytearray | memoryview | str


def _as_bytes(data: Hashable) -> bytes:
    if isinstance(data, str):
        return data.encode("utf-8")
    return bytes(data)


class Sha1Stream:
    """Incremental hasher: ``update`` chunks, then ``digest`` once."""

    def __init__(self, state: HashState) -> None:
        self._state = state
        self._length = 0

    def update(self, chunk: Hashable) -> "Sha1Stream":
        data = _as_bytes(chunk)
        self._state.update(data)
        self._length += len(data)
        return self

    @property
    def length(self) -> int:
        """Bytes fed so far."""
        return self._length

    def digest(self) -> str:
        return self._state.hexdigest()


class ContentHasher:
    """
    SHA-1 over blobs and byte streams.

    Args:
        backend: Primitive provider. Defaults to hashlib.
    """

    def __init__(self, backend: HashBackend | None = None) -> None:
        self._backend = backend or HashlibBackend()

    @property
    def backend(self) -> HashBackend:
        return self._backend

    def hash(self, data: Hashable) -> str:
        """Return the 40-char lowercase hex SHA-1 of ``data``."""
        return self.stream().update(data).digest()

    def stream(self) -> Sha1Stream:
        return Sha1Stream(self._backend.sha1())

    async def hash_stream(self, chunks: AsyncIterable[Hashable]) -> str:
        stream = self.stream()
        async for chunk in chunks:
            stream.update(chunk)
        return stream.digest()

    def verify(self, data: Hashable, expected: str) -> bool:
        """Compare the SHA-1 of ``data`` with ``expected``, ignoring hex case."""
        actual = self.hash(data)
        return actual == expected.strip().lower()
