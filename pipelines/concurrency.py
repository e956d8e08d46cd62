"""Degrade-not-abort helpers for optional external calls.

Every optional network call in discovery, extraction and research goes
through `soft_fail`: the unit of work is dropped and logged, and the caller
gets a default value instead of an exception.
"""

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Iterable, List, Optional, TypeVar

T = TypeVar('T')
R = TypeVar('R')

logger = logging.getLogger(__name__)


async def soft_fail(
    awaitable: Awaitable[T],
    default: R,
    label: str = '',
    on_failure: Optional[Callable[[BaseException], None]] = None,
) -> Any:
    """Await `awaitable`; on any error (timeouts included) log and return `default`."""
    try:
        return await awaitable
    except asyncio.CancelledError:
        raise
    except Exception as e:
        logger.warning(f"Soft failure{f' in {label}' if label else ''}: {type(e).__name__}: {e}")
        if on_failure is not None:
            on_failure(e)
        return default


async def fan_out(
    items: Iterable[T],
    worker: Callable[[T], Awaitable[R]],
    concurrency: int = 5,
) -> List[R]:
    """Run `worker` over items with at most `concurrency` in flight.

    Results keep input order. Workers are expected to soft-fail themselves;
    an exception escaping a worker propagates.
    """
    items = list(items)
    if not items:
        return []

    semaphore = asyncio.Semaphore(max(1, concurrency))

    async def run(item: T) -> R:
        async with semaphore:
            return await worker(item)

    return list(await asyncio.gather(*(run(item) for item in items)))


class RateLimiter:
    """Enforce a minimum interval between successive acquisitions."""

    def __init__(self, min_interval: float = 0.5):
        self.min_interval = max(0.0, min_interval)
        self._last: Optional[float] = None
        self._lock = asyncio.Lock()

    async def wait(self) -> None:
        async with self._lock:
            if self._last is not None and self.min_interval > 0:
                elapsed = time.monotonic() - self._last
                if elapsed < self.min_interval:
                    sleep_time = self.min_interval - elapsed
                    logger.debug(f"Rate limiting: sleeping {sleep_time:.2f}s")
                    await asyncio.sleep(sleep_time)
            self._last = time.monotonic()
