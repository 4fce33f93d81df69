from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from ..errors import ToolTimeoutError

T = TypeVar("T")


async def with_timeout(factory: Callable[[], Awaitable[T]], timeout_ms: int) -> T:
    """Await ``factory()`` but give up after ``timeout_ms``.

    The losing invocation is cancelled. Coroutines see ``CancelledError`` at
    their next suspension point; work already handed to a thread or a remote
    server keeps running unobserved.

    Raises:
        ToolTimeoutError: If the deadline passes first.
    """
    try:
        return await asyncio.wait_for(factory(), timeout=timeout_ms / 1000)
    except asyncio.TimeoutError as exc:
        if isinstance(exc, ToolTimeoutError):
            raise
        raise ToolTimeoutError(timeout_ms) from exc
