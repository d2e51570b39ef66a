"""
Rate limiting, timeouts and transient-error retries for provider calls.

Every call that reaches the email provider (SendGrid) or the dispatch job
store goes through ``call_provider``. Job-level failure (a provider
rejecting a send) is not retried here; only transport problems are.
"""

import asyncio
import logging
import random
import time
from collections import deque
from typing import Any, Callable

from mentorhub.config import (
    get_email_rate_limit,
    get_provider_max_retries,
    get_provider_timeout,
)

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Sliding-window limiter for outbound calls.

    Runs on a single event loop: the check and the append happen without an
    await in between, so no lock is needed.
    """

    def __init__(self, max_calls: int, period_seconds: float = 1.0):
        self.max_calls = max_calls
        self.period_seconds = period_seconds
        self._calls: deque[float] = deque()

    async def acquire(self) -> None:
        """Wait until a call slot is free, then take it."""
        while True:
            now = time.monotonic()
            while self._calls and self._calls[0] <= now - self.period_seconds:
                self._calls.popleft()
            if len(self._calls) < self.max_calls:
                self._calls.append(now)
                return
            await asyncio.sleep(self._calls[0] + self.period_seconds - now)

    def reset(self) -> None:
        self._calls.clear()


_limiter: RateLimiter | None = None


def get_rate_limiter() -> RateLimiter:
    """Get or create the shared limiter from EMAIL_RATE_LIMIT_PER_SECOND."""
    global _limiter
    if _limiter is None:
        per_second = get_email_rate_limit()
        # Fractional rates become "1 call per N seconds"
        if per_second >= 1:
            _limiter = RateLimiter(int(per_second), 1.0)
        else:
            _limiter = RateLimiter(1, 1.0 / per_second)
    return _limiter


def get_retry_delay(attempt: int, include_jitter: bool = True) -> float:
    """
    Calculate retry delay using exponential backoff with cap.

    Args:
        attempt: Zero-based attempt number (0 = first retry)
        include_jitter: Add random jitter to prevent thundering herd

    Returns:
        Delay in seconds (0.5, 1, 2, 4, 8, 8...)
    """
    base_delay = min(0.5 * 2**attempt, 8.0)
    if include_jitter:
        return base_delay + random.uniform(0, base_delay * 0.1)
    return base_delay


def is_transient_error(exc: BaseException) -> bool:
    """Timeouts, socket errors and HTTP 429/5xx are worth retrying."""
    if isinstance(exc, (asyncio.TimeoutError, OSError)):
        return True
    status_code = getattr(exc, "status_code", None)
    if isinstance(status_code, int):
        return status_code == 429 or status_code >= 500
    # SQLAlchemy wraps driver connection errors for the dispatch job store
    return type(exc).__name__ in ("OperationalError", "InterfaceError")


async def call_provider(
    func: Callable[..., Any],
    *args,
    description: str = "provider call",
    max_retries: int | None = None,
    timeout: float | None = None,
    retry_timeouts: bool = True,
    **kwargs,
) -> Any:
    """
    Run a blocking provider call under the rate limit, a timeout and retries.

    The call runs in a worker thread so the event loop keeps serving other
    requests while SendGrid or the job store responds.

    A timed-out call may still have reached the provider. Pass
    ``retry_timeouts=False`` for calls that must not run twice, such as
    sending an email.

    Raises:
        The last error if every attempt failed, or the first non-transient one
    """
    retries = get_provider_max_retries() if max_retries is None else max_retries
    call_timeout = get_provider_timeout() if timeout is None else timeout
    limiter = get_rate_limiter()

    attempt = 0
    while True:
        await limiter.acquire()
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(func, *args, **kwargs), timeout=call_timeout
            )
        except Exception as e:
            if attempt >= retries or not is_transient_error(e):
                raise
            if not retry_timeouts and isinstance(e, (asyncio.TimeoutError, TimeoutError)):
                raise
            delay = get_retry_delay(attempt)
            logger.warning(
                f"{description} failed ({type(e).__name__}: {e}), "
                f"retrying in {delay:.1f}s (attempt {attempt + 1}/{retries})"
            )
            attempt += 1
            await asyncio.sleep(delay)
