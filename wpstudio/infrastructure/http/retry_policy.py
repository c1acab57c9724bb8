# File: wpstudio/infrastructure/http/retry_policy.py
# Purpose: Retry policy applied around outbound HTTP calls to external services
import asyncio
import random
from typing import Awaitable, Callable, Iterable, TypeVar

import httpx
import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = (408, 429, 500, 502, 503, 504)


class RetryPolicy:
    """
    Configurable retry policy.

    ``max_retries`` counts retries, so a call is attempted ``max_retries + 1``
    times. With the default ``exponential_base`` of 1.0 every retry waits the
    same ``initial_delay``; raise the base for exponential backoff.
    """

    def __init__(
        self,
        max_retries: int = 2,
        initial_delay: float = 0.1,
        max_delay: float = 10.0,
        exponential_base: float = 1.0,
        jitter: bool = False,
        retry_on_status: Iterable[int] = RETRYABLE_STATUS_CODES,
    ):
        """
        Initialize retry policy.

        Args:
            max_retries: Number of retries after the first attempt
            initial_delay: Delay before the first retry in seconds
            max_delay: Upper bound for any single delay in seconds
            exponential_base: Growth factor applied per retry
            jitter: Whether to add random jitter to delays
            retry_on_status: Upstream statuses worth retrying
        """
        self.max_retries = max(0, max_retries)
        self.initial_delay = max(0.0, initial_delay)
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter
        self.retry_on_status = frozenset(retry_on_status)

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay for a given attempt number.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay = min(
            self.initial_delay * (self.exponential_base ** attempt),
            self.max_delay
        )

        if self.jitter:
            delay = delay * (0.5 + random.random() * 0.5)

        return delay

    def should_retry(self, exception: Exception) -> bool:
        """
        Determine if an exception should trigger a retry.

        Transport failures (connect errors, timeouts, dropped connections)
        are always retried; upstream error statuses only when listed.
        """
        if isinstance(exception, httpx.TransportError):
            return True

        if isinstance(exception, httpx.HTTPStatusError):
            return exception.response.status_code in self.retry_on_status

        return False

    async def run(self, operation: Callable[[], Awaitable[T]], description: str = "") -> T:
        """
        Await ``operation`` until it succeeds or the attempts are used up.

        Only httpx errors are considered; anything else propagates at once.
        The last error is re-raised unchanged once retries are exhausted.

        Args:
            operation: Zero-argument coroutine factory performing one attempt
            description: Label used in retry logs (e.g. "GET /v1/models")

        Returns:
            Result of the first successful attempt
        """
        for attempt in range(self.max_attempts):
            try:
                return await operation()
            except httpx.HTTPError as e:
                if not self.should_retry(e):
                    raise

                if attempt >= self.max_attempts - 1:
                    if self.max_retries:
                        logger.warning(
                            "max_retries_exceeded",
                            operation=description,
                            max_attempts=self.max_attempts,
                            error=str(e),
                        )
                    raise

                delay = self.calculate_delay(attempt)
                logger.warning(
                    "retry_attempt",
                    operation=description,
                    attempt=attempt + 1,
                    max_attempts=self.max_attempts,
                    delay_seconds=round(delay, 3),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                await asyncio.sleep(delay)

        # max_attempts is always >= 1
        raise RuntimeError("retry loop exited without a result")
