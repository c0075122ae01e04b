"""Bounded exponential-backoff retry for async operations.

No jitter: the delay before retry ``n`` is a pure function of ``n`` and
the policy.  The final failure is re-raised as-is, never wrapped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from indexwatch.models.config import RetryPolicy

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]


class BackoffRetrier:
    """Runs an async operation, retrying failures per a ``RetryPolicy``.

    Parameters
    ----------
    policy:
        Retry bounds and delay curve.  Defaults to ``RetryPolicy()``.
    retry_on:
        Exception types that trigger a retry.  Anything else propagates
        immediately.
    sleep:
        Awaitable sleep taking seconds.  Injected by tests.
    """

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        *,
        retry_on: tuple[type[BaseException], ...] = (Exception,),
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.policy = policy or RetryPolicy()
        self._retry_on = retry_on
        self._sleep = sleep

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        description: str = "operation",
    ) -> T:
        """Execute ``operation`` with retries and return its result.

        ``operation`` is a zero-argument factory so each attempt gets a
        fresh awaitable.  Idempotency is the caller's concern.
        """
        attempt = 0
        while True:
            try:
                return await operation()
            except self._retry_on as exc:
                if attempt >= self.policy.max_retries:
                    raise
                delay_ms = self.policy.delay_ms(attempt)
                logger.warning(
                    "%s failed, retrying in %dms (attempt %d/%d): %s",
                    description,
                    delay_ms,
                    attempt + 1,
                    self.policy.max_retries,
                    exc,
                )
                await self._sleep(delay_ms / 1000)
                attempt += 1


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    sleep: SleepFn = asyncio.sleep,
) -> T:
    """Functional shorthand for ``BackoffRetrier(policy).run(operation)``."""
    return await BackoffRetrier(policy, sleep=sleep).run(operation)
