"""Cancellable asyncio timers used by the ConnectionMachine.

Every timer owns at most one task.  ``start()`` always cancels the
previous task before arming a new one, so a timer can never run twice
concurrently.  A recurring timer awaits its callback before sleeping
again: ticks of the same timer never overlap.

A callback may cancel or restart its own timer.  In that case the running
task is not cancelled (that would abort the callback half-way); the loop
simply notices it has been superseded and exits once the callback returns.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Union

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[Awaitable[None], None]]
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


async def _invoke(callback: Callback) -> None:
    result = callback()
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        await result


class _TaskSlot:
    """Holds the single task of a timer and implements cancel-before-replace."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    def _owns(self, task: asyncio.Task[None] | None) -> bool:
        return task is not None and self._task is task

    def _arm(self, coro_factory: Callable[[], Awaitable[None]]) -> None:
        self.cancel()
        self._task = asyncio.get_running_loop().create_task(
            coro_factory(), name=self.name
        )

    def cancel(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        if task is asyncio.current_task():
            # Superseded from inside its own callback; the loop exits on return.
            return
        task.cancel()


class RecurringTimer(_TaskSlot):
    """Fire ``callback`` every ``interval`` seconds until cancelled."""

    def __init__(self, name: str, interval: float, callback: Callback) -> None:
        super().__init__(name)
        self.interval = interval
        self._callback = callback

    def start(self) -> None:
        self._arm(self._run)

    async def _run(self) -> None:
        me = asyncio.current_task()
        while self._owns(me):
            await asyncio.sleep(self.interval)
            if not self._owns(me):
                break
            await _invoke(self._callback)


class DelayedCall(_TaskSlot):
    """Fire ``callback`` once after ``delay`` seconds unless cancelled first."""

    def __init__(self, name: str, delay: float, callback: Callback) -> None:
        super().__init__(name)
        self.delay = delay
        self._callback = callback

    def start(self) -> None:
        self._arm(self._run)

    async def _run(self) -> None:
        me = asyncio.current_task()
        await asyncio.sleep(self.delay)
        if self._owns(me):
            self._task = None
            await _invoke(self._callback)


class ReconnectCountdown:
    """Visible "next attempt in N s" counter while offline.

    Decrements once per tick and wraps back to the full interval instead of
    going below 1: the real event is probe completion, not this counter
    reaching zero.
    """

    def __init__(
        self,
        interval_ms: int,
        *,
        tick_interval: float = 1.0,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self.full_seconds = math.ceil(interval_ms / 1000)
        self.seconds = 0
        self._on_tick = on_tick
        self._timer = RecurringTimer("reconnect-countdown", tick_interval, self._tick)

    @property
    def is_active(self) -> bool:
        return self._timer.is_active

    def start(self) -> None:
        self._timer.cancel()
        self.seconds = self.full_seconds
        self._notify()
        self._timer.start()

    def cancel(self) -> None:
        self._timer.cancel()
        self.seconds = 0

    def _tick(self) -> None:
        if self.seconds <= 1:
            self.seconds = self.full_seconds
        else:
            self.seconds -= 1
        self._notify()

    def _notify(self) -> None:
        if self._on_tick is not None:
            self._on_tick(self.seconds)


class ArrivalCountdown:
    """Seconds remaining until a predicted block arrival.

    Each tick recomputes ``floor(target - now)``; the value goes negative
    once the block is overdue.  When it drops below ``overdue_cutoff``
    the countdown stops itself and reads 0 until a fresh prediction is
    started.
    """

    def __init__(
        self,
        *,
        clock: Clock = utc_now,
        overdue_cutoff: int = -60,
        tick_interval: float = 1.0,
        on_tick: Callable[[int], None] | None = None,
    ) -> None:
        self.predicted: datetime | None = None
        self.seconds = 0
        self.overdue_cutoff = overdue_cutoff
        self._clock = clock
        self._on_tick = on_tick
        self._timer = RecurringTimer("arrival-countdown", tick_interval, self._update)

    @property
    def is_active(self) -> bool:
        return self._timer.is_active

    def start(self, predicted: datetime) -> None:
        self.cancel()
        self.predicted = predicted
        if self._update():
            self._timer.start()

    def cancel(self) -> None:
        self._timer.cancel()
        self.seconds = 0

    def remaining(self) -> int:
        if self.predicted is None:
            return 0
        return math.floor((self.predicted - self._clock()).total_seconds())

    def _update(self) -> bool:
        remaining = self.remaining()
        if remaining < self.overdue_cutoff:
            logger.debug("Block is very overdue (%ds), clearing countdown", remaining)
            self.cancel()
            self._notify()
            return False
        self.seconds = remaining
        self._notify()
        return True

    def _notify(self) -> None:
        if self._on_tick is not None:
            self._on_tick(self.seconds)
