"""Connection state machine — keeps a live view of the indexer head.

States: CONNECTING (initial) -> ONLINE <-> OFFLINE.

ONLINE
    A poll timer refreshes blocks and tip height every poll interval.
    Newly observed blocks restart the arrival countdown and are flagged
    for a short while.  Any fetch failure moves to OFFLINE.
OFFLINE
    The poll timer is stopped.  A reconnect probe runs every reconnect
    interval (each attempt counted before the call) next to a visible
    countdown.  There is no terminal state: probing continues until it
    succeeds or the machine is stopped.

Resource discipline: every timer is cancelled before it is re-armed, the
poll and reconnect timers are never active together, and at most one
poll/probe cycle is in flight at a time.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import timedelta
from typing import Any

from indexwatch.bridge.indexer_client import IndexerAPI, IndexerError
from indexwatch.core.differ import new_block_positions
from indexwatch.core.predictor import predict_next_arrival
from indexwatch.core.timers import (
    ArrivalCountdown,
    Clock,
    DelayedCall,
    ReconnectCountdown,
    RecurringTimer,
    utc_now,
)
from indexwatch.models.blocks import BlockSnapshot
from indexwatch.models.config import MonitorConfig
from indexwatch.models.connection import (
    VALID_TRANSITIONS,
    ConnectionState,
    PredictionContext,
    ReconnectContext,
)
from indexwatch.monitor.projection import MonitorView

logger = logging.getLogger(__name__)

OFFLINE_MESSAGE = "Backend connection lost. Attempting to reconnect..."


class InvalidTransitionError(RuntimeError):
    """Raised when a requested connection state transition is not valid."""


async def _cancel_pending(tasks: list[asyncio.Future[Any]]) -> None:
    """Cancel whatever is still running and reap every outcome."""
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


class ConnectionMachine:
    """Owns the connection state and every timer that depends on it.

    Parameters
    ----------
    client:
        Anything implementing ``IndexerAPI``; normally an ``IndexerClient``
        whose calls already carry the retry policy.
    config:
        Timing configuration.  Defaults to ``MonitorConfig()``.
    clock:
        Returns the current aware ``datetime``.  Injected by tests.
    on_change:
        Called with a fresh ``MonitorView`` after every mutation.
    """

    def __init__(
        self,
        client: IndexerAPI,
        config: MonitorConfig | None = None,
        *,
        clock: Clock = utc_now,
        on_change: Callable[[MonitorView], None] | None = None,
    ) -> None:
        self._client = client
        self.config = config or MonitorConfig()
        self._clock = clock
        self._on_change = on_change

        self._state = ConnectionState.CONNECTING
        self._snapshot = BlockSnapshot.empty()
        self._attempt_count = 0
        self._new_positions: frozenset[int] = frozenset()
        self._last_error: str | None = None
        self._loading = True
        self._in_flight = False
        self._started = False
        self._stopped = False

        cfg = self.config
        self._poll_timer = RecurringTimer("poll", cfg.poll_interval, self.poll_once)
        self._reconnect_timer = RecurringTimer(
            "reconnect-probe", cfg.reconnect_interval, self.reconnect_attempt
        )
        self._reconnect_countdown = ReconnectCountdown(
            cfg.reconnect_interval_ms,
            tick_interval=cfg.tick_interval_seconds,
            on_tick=self._on_countdown_tick,
        )
        self._arrival_countdown = ArrivalCountdown(
            clock=clock,
            overdue_cutoff=cfg.overdue_cutoff_seconds,
            tick_interval=cfg.tick_interval_seconds,
            on_tick=self._on_countdown_tick,
        )
        self._marker_clear = DelayedCall(
            "new-block-marker", cfg.new_block_marker_lifetime, self._clear_new_markers
        )

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def snapshot(self) -> BlockSnapshot:
        return self._snapshot

    @property
    def reconnect(self) -> ReconnectContext:
        return ReconnectContext(
            attempt_count=self._attempt_count,
            countdown_seconds=self._reconnect_countdown.seconds,
        )

    @property
    def prediction(self) -> PredictionContext:
        return PredictionContext(
            predicted_next_arrival=self._arrival_countdown.predicted,
            countdown_seconds=self._arrival_countdown.seconds,
        )

    @property
    def new_block_positions(self) -> frozenset[int]:
        return self._new_positions

    @property
    def last_error(self) -> str | None:
        return self._last_error

    @property
    def is_loading(self) -> bool:
        return self._loading

    @property
    def active_timers(self) -> frozenset[str]:
        """Names of the timers that currently hold a live task."""
        timers: dict[str, Any] = {
            "poll": self._poll_timer,
            "reconnect-probe": self._reconnect_timer,
            "reconnect-countdown": self._reconnect_countdown,
            "arrival-countdown": self._arrival_countdown,
            "new-block-marker": self._marker_clear,
        }
        return frozenset(name for name, timer in timers.items() if timer.is_active)

    def view(self) -> MonitorView:
        """Produce a frozen projection for the presentation layer."""
        prediction = self.prediction
        return MonitorView(
            blocks=self._snapshot.blocks,
            tip_height=self._snapshot.height,
            connection_state=self._state,
            is_loading=self._loading,
            last_error=self._last_error,
            reconnect_attempt_count=self._attempt_count,
            reconnect_countdown_seconds=self._reconnect_countdown.seconds,
            next_arrival_countdown_seconds=prediction.countdown_seconds,
            predicted_next_arrival=prediction.predicted_next_arrival,
            new_block_positions=self._new_positions,
            overdue_cutoff_seconds=self.config.overdue_cutoff_seconds,
            last_updated=self._clock(),
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Run the initial probe-then-fetch sequence.  Idempotent."""
        if self._started:
            return
        self._started = True
        logger.info("Connecting to indexer")
        await self._run_cycle("initial connect", self._probe_and_fetch)

    async def stop(self) -> None:
        """Cancel every timer.  Idempotent."""
        self._stopped = True
        self._poll_timer.cancel()
        self._reconnect_timer.cancel()
        self._reconnect_countdown.cancel()
        self._arrival_countdown.cancel()
        self._marker_clear.cancel()
        logger.debug("Connection machine stopped")

    async def __aenter__(self) -> ConnectionMachine:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Cycles (what the timers run)
    # ------------------------------------------------------------------

    async def poll_once(self) -> None:
        """One ONLINE refresh.  A no-op in any other state."""
        await self._run_cycle("poll", self._poll)

    async def reconnect_attempt(self) -> None:
        """One OFFLINE probe.  A no-op in any other state."""
        await self._run_cycle("reconnect", self._reconnect)

    async def request_manual_retry(self) -> None:
        """User-triggered retry.

        OFFLINE: the scheduled probe and countdown are cancelled and one
        probe runs immediately, counted like a scheduled one.
        Otherwise: the full probe-then-fetch sequence is re-run.
        Ignored while another cycle is in flight.
        """
        if self._in_flight:
            logger.info("Manual retry ignored: a cycle is already in flight")
            return
        logger.info("Manual retry requested (state=%s)", self._state.value)

        if self._state == ConnectionState.OFFLINE:
            self._reconnect_timer.cancel()
            self._reconnect_countdown.cancel()
            await self._run_cycle("manual reconnect", self._reconnect)
            if self._state == ConnectionState.OFFLINE and not self._reconnect_timer.is_active:
                self._arm(self._reconnect_timer)
            return

        self._poll_timer.cancel()
        await self._run_cycle("manual refresh", self._probe_and_fetch)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _run_cycle(self, name: str, body: Callable[[], Awaitable[None]]) -> None:
        if self._in_flight:
            logger.debug("%s skipped: a cycle is already in flight", name)
            return
        self._in_flight = True
        try:
            await body()
        finally:
            self._in_flight = False

    async def _probe_and_fetch(self) -> None:
        try:
            await self._client.fetch_health()
        except IndexerError as exc:
            logger.error("Connection test failed: %s", exc)
            self._enter_offline(exc)
            return
        await self._enter_online()

    async def _poll(self) -> None:
        if self._state != ConnectionState.ONLINE:
            return
        await self._refresh(always_predict=False)

    async def _reconnect(self) -> None:
        if self._state != ConnectionState.OFFLINE:
            return
        self._attempt_count += 1
        logger.info("Reconnection attempt %d", self._attempt_count)
        self._notify()
        try:
            await self._client.fetch_health()
        except IndexerError as exc:
            logger.warning("Reconnection attempt %d failed: %s", self._attempt_count, exc)
            self._arm(self._reconnect_countdown)
            self._notify()
            return
        logger.info("Reconnection successful, resuming data updates")
        await self._enter_online()

    async def _enter_online(self) -> None:
        self._transition(ConnectionState.ONLINE)
        self._attempt_count = 0
        self._last_error = None
        self._reconnect_timer.cancel()
        self._reconnect_countdown.cancel()
        self._notify()
        if await self._refresh(always_predict=True):
            self._arm(self._poll_timer)

    def _enter_offline(self, exc: BaseException) -> None:
        self._transition(ConnectionState.OFFLINE)
        logger.warning("Indexer unreachable, going offline: %s", exc)
        self._last_error = OFFLINE_MESSAGE
        self._loading = False
        self._poll_timer.cancel()
        self._reconnect_timer.cancel()
        self._arm(self._reconnect_countdown)
        self._arm(self._reconnect_timer)
        self._notify()

    async def _refresh(self, *, always_predict: bool) -> bool:
        """Fetch blocks and height; returns False if the machine went offline."""
        self._loading = True
        self._notify()
        fetches = [
            asyncio.ensure_future(self._client.fetch_blocks()),
            asyncio.ensure_future(self._client.fetch_tip_height()),
        ]
        try:
            blocks, height = await asyncio.gather(*fetches)
        except IndexerError as exc:
            await _cancel_pending(fetches)
            logger.error("Failed to fetch data: %s", exc)
            self._enter_offline(exc)
            return False
        except BaseException:
            await _cancel_pending(fetches)
            raise

        positions = new_block_positions(self._snapshot, blocks)
        self._snapshot = BlockSnapshot(
            blocks=tuple(blocks), height=height, fetched_at=self._clock()
        )
        self._loading = False
        self._last_error = None

        if positions or always_predict:
            self._restart_prediction()
        self._mark_new(positions)
        if positions:
            logger.info(
                "%d new block(s), tip height %s", len(positions), height
            )
        self._notify()
        return True

    def _restart_prediction(self) -> None:
        if self._stopped:
            return
        predicted = predict_next_arrival(
            self._snapshot.blocks,
            self._clock(),
            fallback_gap=timedelta(milliseconds=self.config.fallback_gap_ms),
        )
        logger.debug("Next block predicted at %s", predicted.isoformat())
        self._arrival_countdown.start(predicted)

    def _mark_new(self, positions: frozenset[int]) -> None:
        self._marker_clear.cancel()
        self._new_positions = positions
        if positions:
            self._arm(self._marker_clear)

    def _clear_new_markers(self) -> None:
        logger.debug("Clearing new block markers")
        self._new_positions = frozenset()
        self._notify()

    def _arm(self, timer: Any) -> None:
        if not self._stopped:
            timer.start()

    def _transition(self, target: ConnectionState) -> None:
        current = self._state
        if target not in VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(
                f"Cannot transition from {current.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in VALID_TRANSITIONS.get(current, set()))}"
            )
        if current != target:
            logger.info("Connection %s -> %s", current.value, target.value)
        self._state = target

    def _on_countdown_tick(self, _seconds: int) -> None:
        self._notify()

    def _notify(self) -> None:
        if self._on_change is not None:
            self._on_change(self.view())
