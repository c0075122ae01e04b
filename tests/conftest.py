"""Shared test fixtures for indexwatch."""

from __future__ import annotations

import asyncio
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import pytest

from indexwatch.bridge.indexer_client import ProtocolError, TransportError
from indexwatch.models.blocks import Balance, Block, Utxo
from indexwatch.models.config import MonitorConfig, RetryPolicy

T0 = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


class FrozenClock:
    """A clock that only moves when told to."""

    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeIndexer:
    """In-memory stand-in for ``IndexerClient``.

    ``health_script`` is consumed front to back (True = healthy); once it
    is empty, ``healthy`` decides.  ``fail_fetch`` makes block/height calls
    raise a ProtocolError.  ``health_gate``, when set, makes the health
    probe wait until the event is set.
    """

    def __init__(self, blocks: list[Block] | None = None) -> None:
        self.blocks: list[Block] = list(blocks or [])
        self.height: int | None = None
        self.healthy = True
        self.health_script: list[bool] = []
        self.fail_fetch = False
        self.health_gate: asyncio.Event | None = None
        self.calls: Counter[str] = Counter()

    async def fetch_health(self) -> Any:
        self.calls["health"] += 1
        if self.health_gate is not None:
            await self.health_gate.wait()
        ok = self.health_script.pop(0) if self.health_script else self.healthy
        if not ok:
            raise TransportError("ConnectError: connection refused")
        return {"status": "ok"}

    async def fetch_blocks(self) -> list[Block]:
        self.calls["blocks"] += 1
        if self.fail_fetch:
            raise ProtocolError("HTTP 503: indexer unavailable", status_code=503)
        return list(self.blocks)

    async def fetch_tip_height(self) -> int:
        self.calls["height"] += 1
        if self.fail_fetch:
            raise ProtocolError("HTTP 503: indexer unavailable", status_code=503)
        if self.height is not None:
            return self.height
        return self.blocks[0].height if self.blocks else 0

    async def fetch_balance(self, address: str) -> Balance:
        self.calls["balance"] += 1
        return Balance(available=Decimal("1.5"), incoming=Decimal(0), current=Decimal("1.5"))

    async def fetch_utxos(self, address: str) -> list[Utxo]:
        self.calls["utxo"] += 1
        return [Utxo(tx="ab" * 32, vout=0, value=Decimal("1.5"), type="p2pkh", script="76a9")]


def make_block(height: int, timestamp: Any = None, **fields: Any) -> Block:
    return Block(height=height, hash=f"{height:064x}", timestamp=timestamp, **fields)


def chain(tip: int, count: int, *, tip_time: datetime = T0, gap_seconds: int = 60) -> list[Block]:
    """``count`` blocks, newest first, ending at ``tip``, evenly spaced."""
    return [
        make_block(
            tip - i,
            (tip_time - timedelta(seconds=gap_seconds * i)).isoformat(),
        )
        for i in range(count)
    ]


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def block_factory() -> Callable[..., Block]:
    """Factory fixture: build a Block with a deterministic hash."""
    return make_block


@pytest.fixture
def make_chain() -> Callable[..., list[Block]]:
    """Factory fixture: evenly spaced blocks, newest first, tip at T0."""
    return chain


@pytest.fixture
def make_indexer() -> Callable[..., FakeIndexer]:
    """Factory fixture: a FakeIndexer serving the given blocks."""
    return FakeIndexer


@pytest.fixture
def indexer() -> FakeIndexer:
    """A healthy indexer serving three blocks 60s apart, tip at 100."""
    return FakeIndexer(chain(100, 3))


@pytest.fixture
def quiet_config() -> MonitorConfig:
    """Intervals long enough that no timer fires during a unit test."""
    return MonitorConfig(
        poll_interval_ms=60_000,
        reconnect_interval_ms=60_000,
        new_block_marker_ms=60_000,
        retry_policy=RetryPolicy(max_retries=0),
    )


@pytest.fixture
def fast_config() -> MonitorConfig:
    """Millisecond-scale intervals for timer-driven tests."""
    return MonitorConfig(
        poll_interval_ms=30,
        reconnect_interval_ms=30,
        new_block_marker_ms=40,
        tick_interval_seconds=0.01,
        retry_policy=RetryPolicy(max_retries=0),
    )


@pytest.fixture
def wait_until() -> Callable[..., Awaitable[None]]:
    """Poll a predicate on the running loop until true or fail after timeout."""

    async def _wait(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
        deadline = asyncio.get_running_loop().time() + timeout
        while not predicate():
            if asyncio.get_running_loop().time() > deadline:
                raise AssertionError("condition not reached before timeout")
            await asyncio.sleep(0.005)

    return _wait
