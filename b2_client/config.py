"""
B2 client configuration.
"""

from dataclasses import dataclass, field

from b2_client.constants import DEFAULT_API_URL


@dataclass(frozen=True, kw_only=True)
class B2Config:
    """
    Attributes:
        api_url: Base URL used before authorization (and for authorization itself).
        timeout: Request timeout for control-plane calls in seconds.
        upload_timeout: Timeout for whole-file and part uploads in seconds.
        download_timeout: Timeout for downloads in seconds.
        retries: Retry budget per call (total tries = retries + 1).
        retry_delay: Base backoff delay in seconds.
        retry_delay_multiplier: Exponential backoff multiplier.
        max_retry_delay: Upper bound for a single backoff delay in seconds.
        retry_jitter: Relative jitter applied to every delay (0.25 = +/-25%).
        headers: Extra headers sent with every request.
        user_agent: User-Agent header value.
        auto_refresh: Re-authorize and retry once when the token has expired.
        enable_metrics: Collect per-request timing counters.
        progress_throttle: Minimum interval between progress callbacks in seconds.
        max_concurrent_parts: Default concurrency for ``upload_parts``.
    """

    api_url: str = DEFAULT_API_URL
    timeout: float = 30.0
    upload_timeout: float = 300.0
    download_timeout: float = 300.0
    retries: int = 3
    retry_delay: float = 1.0
    retry_delay_multiplier: float = 2.0
    max_retry_delay: float = 30.0
    retry_jitter: float = 0.25
    headers: dict[str, str] = field(default_factory=dict)
    user_agent: str = "b2-client-python/0.1"
    auto_refresh: bool = True
    enable_metrics: bool = False
    progress_throttle: float = 0.1
    max_concurrent_parts: int = 4

    def __post_init__(self) -> None:
        if not self.api_url:
            msg = "api_url must not be empty"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = "timeout must be positive"
            raise ValueError(msg)
        if self.upload_timeout <= 0:
            msg = "upload_timeout must be positive"
            raise ValueError(msg)
        if self.download_timeout <= 0:
            msg = "download_timeout must be positive"
            raise ValueError(msg)
        if self.retries < 0:
            msg = "retries must be non-negative"
            raise ValueError(msg)
        if self.retry_delay < 0:
            msg = "retry_delay must be non-negative"
            raise ValueError(msg)
        if self.retry_delay_multiplier < 1:
            msg = "retry_delay_multiplier must be at least 1"
            raise ValueError(msg)
        if self.max_retry_delay < self.retry_delay:
            msg = "max_retry_delay must not be smaller than retry_delay"
            raise ValueError(msg)
        if not 0 <= self.retry_jitter <= 1:
            msg = "retry_jitter must be between 0 and 1"
            raise ValueError(msg)
        if self.progress_throttle < 0:
            msg = "progress_throttle must be non-negative"
            raise ValueError(msg)
        if self.max_concurrent_parts <= 0:
            msg = "max_concurrent_parts must be positive"
            raise ValueError(msg)
