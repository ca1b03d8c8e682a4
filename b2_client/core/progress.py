"""
Progress accounting for uploads and downloads.

Bodies are wrapped in chunk iterators that feed a tracker; the tracker turns
accumulated byte counts into ProgressEvents for a caller-supplied observer.
"""

import time
from collections.abc import AsyncIterable, AsyncIterator, Callable, Sized
from typing import Protocol, runtime_checkable

from b2_client.constants import STREAM_CHUNK_SIZE
from b2_client.models.progress import ProgressEvent
from b2_client.models.request import (
    Blob,
    Body,
    BytesBody,
    FormBody,
    JsonBody,
    StreamBody,
    TextBody,
)


@runtime_checkable
class ProgressObserver(Protocol):
    """Receives progress events."""

    def on_progress(self, event: ProgressEvent) -> None: ...


ObserverLike = ProgressObserver | Callable[[ProgressEvent], None]


class _CallbackObserver:
    def __init__(self, callback: Callable[[ProgressEvent], None]) -> None:
        self._callback = callback

    def on_progress(self, event: ProgressEvent) -> None:
        self._callback(event)


def as_observer(observer: ObserverLike) -> ProgressObserver:
    """Accept either an observer object or a plain callable."""
    if isinstance(observer, ProgressObserver):
        return observer
    if callable(observer):
        return _CallbackObserver(observer)
    msg = f"Progress observer must be callable or define on_progress: {type(observer).__name__}"
    raise TypeError(msg)


class ThrottledObserver:
    """
    Forwards at most one event per interval.

    The first event and any event at completion are always forwarded.

    Args:
        observer: Observer to forward to.
        interval: Minimum seconds between forwarded events.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        observer: ObserverLike,
        interval: float = 0.1,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._observer = as_observer(observer)
        self._interval = interval
        self._clock = clock
        self._last: float | None = None

    def on_progress(self, event: ProgressEvent) -> None:
        now = self._clock()
        if self._last is None or event.fraction >= 1.0 or now - self._last >= self._interval:
            self._last = now
            self._observer.on_progress(event)


class ProgressTracker:
    """Accumulates transferred bytes against a fixed total."""

    def __init__(self, observer: ObserverLike, total: int = 0) -> None:
        self._observer = as_observer(observer)
        self._total = max(total, 0)
        self._loaded = 0

    @property
    def loaded(self) -> int:
        return self._loaded

    @property
    def total(self) -> int:
        return self._total

    def update(self, chunk: Sized | int) -> ProgressEvent:
        """Record a chunk (anything with a length) or a raw byte count."""
        size = chunk if isinstance(chunk, int) else len(chunk)
        self._loaded += size
        event = ProgressEvent.compute(self._loaded, self._total)
        self._observer.on_progress(event)
        return event


def body_size(body: Body | None) -> int:
    """Upload total for progress purposes; 0 when unknown."""
    match body:
        case TextBody(text=text):
            return len(text.encode("utf-8"))
        case BytesBody(data=data):
            return len(data)
        case Blob():
            return body.size
        case StreamBody(length=length):
            return length or 0
        case FormBody() | JsonBody() | None:
            return 0
    return 0


def content_length(value: str | None) -> int:
    """Parse a Content-Length header value, 0 when absent or malformed."""
    if not value:
        return 0
    try:
        return max(int(value), 0)
    except ValueError:
        return 0


async def iter_chunks(data: bytes, chunk_size: int = STREAM_CHUNK_SIZE) -> AsyncIterator[bytes]:
    """Yield ``data`` in fixed-size slices."""
    view = memoryview(data)
    for offset in range(0, len(view), chunk_size):
        yield bytes(view[offset : offset + chunk_size])


async def track(chunks: AsyncIterable[bytes], tracker: ProgressTracker) -> AsyncIterator[bytes]:
    """Pass chunks through, reporting each one to ``tracker``."""
    async for chunk in chunks:
        tracker.update(chunk)
        yield chunk
