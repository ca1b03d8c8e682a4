"""
Retry with capped exponential backoff and jitter.

Built on tenacity. Each ``execute`` call gets its own AsyncRetrying instance so
concurrent calls never share attempt state.
"""

import asyncio
import functools
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

import structlog
import tenacity

from b2_client.config import B2Config
from b2_client.core.errors import is_retryable
from b2_client.exceptions import B2Error

logger = structlog.get_logger(__name__)

T = TypeVar("T")
P = ParamSpec("P")

RetryObserver = Callable[[BaseException, int, float], None]
Predicate = Callable[[BaseException], bool]


@dataclass(frozen=True, kw_only=True)
class RetryPolicy:
    """
    Attributes:
        retries: Retries after the first try (total tries = retries + 1).
        base_delay: Delay before the first retry, in seconds.
        multiplier: Growth factor per attempt.
        max_delay: Upper bound for the un-jittered delay, in seconds.
        jitter: Relative spread; 0.25 means +/-25% uniform.
    """

    retries: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0
    max_delay: float = 30.0
    jitter: float = 0.25

    @classmethod
    def from_config(cls, config: B2Config) -> "RetryPolicy":
        return cls(
            retries=config.retries,
            base_delay=config.retry_delay,
            multiplier=config.retry_delay_multiplier,
            max_delay=config.max_retry_delay,
            jitter=config.retry_jitter,
        )


class RetryExecutor:
    """
    Runs an operation, retrying failures the policy accepts.

    Args:
        policy: Backoff parameters and retry budget.
        should_retry: Predicate deciding retryability. Defaults to the
            standard classifier policy.
        on_retry: Called before each backoff sleep with
            ``(error, attempt, delay_seconds)``.
        sleep: Awaitable sleep, injectable for tests.
        rand: Source of uniform floats in [0, 1), injectable for tests.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        should_retry: Predicate = is_retryable,
        on_retry: RetryObserver | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self._policy = policy or RetryPolicy()
        self._should_retry = should_retry
        self._on_retry = on_retry
        self._sleep = sleep
        self._rand = rand

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    def is_retryable(self, error: BaseException) -> bool:
        return self._should_retry(error)

    def compute_delay(self, attempt: int) -> float:
        """
        Backoff before retrying after the 0-based ``attempt`` failed.

        ``min(base * multiplier**attempt, max)`` spread uniformly by the
        jitter ratio, never negative.
        """
        policy = self._policy
        capped = min(policy.base_delay * policy.multiplier**attempt, policy.max_delay)
        spread = (self._rand() - 0.5) * 2 * policy.jitter * capped
        return max(0.0, capped + spread)

    def _wait(self, retry_state: tenacity.RetryCallState) -> float:
        return self.compute_delay(retry_state.attempt_number - 1)

    def _before_sleep(self, retry_state: tenacity.RetryCallState) -> None:
        error = retry_state.outcome.exception() if retry_state.outcome else None
        delay = retry_state.next_action.sleep if retry_state.next_action else 0.0
        logger.warning(
            "Retrying after failure",
            attempt=retry_state.attempt_number,
            delay=round(delay, 3),
            error=str(error),
        )
        if self._on_retry is not None and error is not None:
            self._on_retry(error, retry_state.attempt_number, delay)

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        retries: int | None = None,
    ) -> T:
        """
        Run ``operation`` under the retry policy.

        Args:
            operation: Zero-argument coroutine factory, called once per try.
            retries: Override of the retry budget for this call.

        Returns:
            The operation's result.

        Raises:
            B2Error: The terminal failure, annotated with ``attempts`` and
                ``retry_exhausted``. Other exceptions propagate unchanged.
        """
        budget = self._policy.retries if retries is None else retries
        max_attempts = budget + 1
        retrying = tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(max_attempts),
            wait=self._wait,
            retry=tenacity.retry_if_exception(self._should_retry),
            before_sleep=self._before_sleep,
            sleep=self._sleep,
            reraise=True,
        )

        attempt_number = 0
        try:
            async for attempt in retrying:
                attempt_number = attempt.retry_state.attempt_number
                with attempt:
                    result = await operation()
        except B2Error as error:
            error.attempts = attempt_number
            error.retry_exhausted = attempt_number >= max_attempts
            raise
        return result

    def wrap(self, fn: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        """Decorate a coroutine function so every call runs through ``execute``."""

        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await self.execute(lambda: fn(*args, **kwargs))

        return wrapper
