from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from ..contracts import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_backoff(attempt: int, delay_ms: int) -> float:
    """Compute linear backoff in seconds after failed ``attempt`` (1-based)."""
    return delay_ms * attempt / 1000


async def with_retry(
    attempt_fn: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    retryable: Optional[Callable[[BaseException], bool]] = None,
    on_retry: Optional[Callable[[int, Exception], None]] = None,
) -> T:
    """Call ``attempt_fn`` until it succeeds or ``policy.max_attempts`` is spent.

    Every exception is retried unless ``retryable`` says otherwise. The error
    from the final attempt propagates unchanged.
    """
    attempt = 1
    while True:
        try:
            return await attempt_fn()
        except Exception as exc:
            if attempt >= policy.max_attempts:
                raise
            if retryable is not None and not retryable(exc):
                raise
            if on_retry is not None:
                on_retry(attempt, exc)
            delay = compute_backoff(attempt, policy.delay_ms)
            logger.debug(f"Attempt {attempt} failed ({exc}); retrying in {delay:.3f}s")
            await asyncio.sleep(delay)
            attempt += 1
