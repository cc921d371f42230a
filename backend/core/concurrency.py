"""
core/concurrency.py
───────────────────
Two small async combinators used by the upstream clients and the engine:

  • with_retry   — re-run an awaitable factory with exponential backoff
  • bounded_map  — order-preserving map over a fixed-size worker pool
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger("placecast.retry")

T = TypeVar("T")
R = TypeVar("R")


# ═══════════════════════════════════════════════════════════════════════════
# Retry with exponential backoff
# ═══════════════════════════════════════════════════════════════════════════

class RetryPolicy(BaseModel):
    """How many times to retry, how long to wait, and which errors qualify."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    retries: int = Field(default=2, ge=0, description="Retries after the first attempt")
    backoff_s: float = Field(default=0.8, ge=0.0, description="Base delay; doubled per attempt")
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)

    def delay_for(self, attempt: int) -> float:
        """Delay before the retry that follows zero-based ``attempt``."""
        return self.backoff_s * (2 ** attempt)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    *,
    label: str = "operation",
    sleep: Optional[Callable[[float], Awaitable[None]]] = None,
) -> T:
    """
    Await ``operation()`` until it succeeds or ``policy.retries`` is spent.

    The last error is re-raised unchanged once the budget is exhausted.
    Errors outside ``policy.retry_on`` propagate immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except policy.retry_on as exc:
            if attempt >= policy.retries:
                raise
            delay = policy.delay_for(attempt)
            logger.warning(
                "%s failed (attempt %d/%d): %s, retrying in %.2fs",
                label,
                attempt + 1,
                policy.retries + 1,
                exc,
                delay,
            )
            await (sleep or asyncio.sleep)(delay)
            attempt += 1


# ═══════════════════════════════════════════════════════════════════════════
# Bounded-concurrency map
# ═══════════════════════════════════════════════════════════════════════════

async def bounded_map(
    items: Sequence[T],
    limit: int,
    worker: Callable[[T, int], Awaitable[R]],
) -> List[R]:
    """
    Run ``worker(item, index)`` for every item with at most ``limit`` in flight.

    ``result[i]`` always belongs to ``items[i]`` whatever the completion
    order. Per-item errors are not isolated: the first uncaught exception
    cancels the remaining workers and propagates.
    """
    pending = list(items)
    if not pending:
        return []

    results: List[R] = [None] * len(pending)  # type: ignore[list-item]
    next_index = 0

    async def run() -> None:
        nonlocal next_index
        while next_index < len(pending):
            i = next_index
            next_index += 1
            results[i] = await worker(pending[i], i)

    width = max(1, min(limit, len(pending)))
    tasks = [asyncio.ensure_future(run()) for _ in range(width)]
    try:
        await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise
    return results
