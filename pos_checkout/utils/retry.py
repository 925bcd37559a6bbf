"""
Retry policy for outbound HTTP calls.

A RetryPolicy wraps a single async network call and re-runs it on transient
failures only: timeouts, transport errors and 5xx responses. Anything else
(4xx, bad payloads, programming errors) propagates on the first attempt.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

FIXED = "fixed"
LINEAR = "linear"


def is_transient(exc: BaseException) -> bool:
    """True for failures worth another attempt."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return isinstance(exc, (httpx.TimeoutException, httpx.TransportError))


@dataclass(frozen=True)
class RetryPolicy:
    """
    Args:
        max_retries: Additional attempts after the first one
        base_delay: Delay in seconds before the first retry
        backoff: "fixed" (same delay every time) or "linear" (delay x attempt number)
    """
    max_retries: int = 2
    base_delay: float = 1.0
    backoff: str = FIXED

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1

    def delay_for(self, attempt: int) -> float:
        """Delay before retrying after the given (1-based) failed attempt."""
        if self.backoff == LINEAR:
            return self.base_delay * attempt
        return self.base_delay

    async def run(
        self,
        call: Callable[[], Awaitable[T]],
        name: str = "call",
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
    ) -> T:
        """Run ``call`` until it succeeds, fails permanently, or attempts run out."""
        sleep = sleep or asyncio.sleep
        attempt = 1
        while True:
            try:
                return await call()
            except Exception as e:
                if not is_transient(e):
                    raise
                if attempt >= self.max_attempts:
                    logger.error(f"All {self.max_attempts} attempts failed for {name}: {e!r}")
                    raise
                delay = self.delay_for(attempt)
                logger.warning(
                    f"Retry {attempt}/{self.max_retries} for {name} after {delay}s: {e!r}"
                )
                await sleep(delay)
                attempt += 1

