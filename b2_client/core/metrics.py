"""
Per-request timing counters. Observability only.
"""

from collections import deque
from dataclasses import dataclass

import structlog

from b2_client.constants import SLOW_REQUEST_HISTORY, SLOW_REQUEST_THRESHOLD

logger = structlog.get_logger(__name__)


@dataclass(frozen=True, kw_only=True)
class SlowRequest:
    method: str
    url: str
    duration: float
    status: int | None


@dataclass(frozen=True, kw_only=True)
class MetricsSnapshot:
    """
    Attributes:
        request_count: Completed requests, successful or not.
        error_count: Requests that ended in an error.
        total_duration: Cumulative wall time in seconds.
        average_duration: Mean wall time in seconds.
        slow_requests: The most recent requests slower than the threshold.
    """

    request_count: int
    error_count: int
    total_duration: float
    average_duration: float
    slow_requests: tuple[SlowRequest, ...]


class RequestMetrics:
    def __init__(
        self,
        *,
        slow_threshold: float = SLOW_REQUEST_THRESHOLD,
        history: int = SLOW_REQUEST_HISTORY,
    ) -> None:
        self._slow_threshold = slow_threshold
        self._history = history
        self.reset()

    def reset(self) -> None:
        self._request_count = 0
        self._error_count = 0
        self._total_duration = 0.0
        self._slow: deque[SlowRequest] = deque(maxlen=self._history)

    def record(
        self, *, method: str, url: str, duration: float, status: int | None, failed: bool
    ) -> None:
        self._request_count += 1
        self._total_duration += duration
        if failed:
            self._error_count += 1
        if duration > self._slow_threshold:
            self._slow.append(SlowRequest(method=method, url=url, duration=duration, status=status))
            logger.warning("Slow request", method=method, url=url, duration=round(duration, 3))

    def snapshot(self) -> MetricsSnapshot:
        count = self._request_count
        return MetricsSnapshot(
            request_count=count,
            error_count=self._error_count,
            total_duration=self._total_duration,
            average_duration=self._total_duration / count if count else 0.0,
            slow_requests=tuple(self._slow),
        )
