"""Block and address models — the data the indexer hands back.

A ``Block`` keeps its ``timestamp`` exactly as received.  Parsing happens
lazily through ``parse_instant`` so that one malformed value never stops
a whole page of blocks from loading.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field

RawTimestamp = Union[str, int, float, datetime, None]


class DataError(ValueError):
    """Raised when a payload value cannot be interpreted (e.g. a bad timestamp)."""


def parse_instant(value: Any) -> datetime:
    """Parse a raw block timestamp into an aware UTC ``datetime``.

    Accepts ``datetime`` objects (naive values are taken as UTC), ISO-8601
    strings (a trailing ``Z`` is accepted) and Unix epoch seconds as
    ``int``/``float``.

    Raises
    ------
    DataError
        If the value is missing or cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, bool) or value is None:
        raise DataError(f"Unparseable timestamp: {value!r}")
    elif isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as exc:
            raise DataError(f"Timestamp out of range: {value!r}") from exc
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as exc:
            raise DataError(f"Unparseable timestamp: {value!r}") from exc
    else:
        raise DataError(f"Unsupported timestamp type: {type(value).__name__}")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


class Block(BaseModel):
    """One block as reported by the indexer.  Immutable once observed."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    height: int
    hash: str | None = None
    timestamp: RawTimestamp = None
    tx_count: int | None = None
    utxo_created: int | None = None
    utxo_spent: int | None = None
    processing_time_ms: int | None = None

    @property
    def instant(self) -> datetime | None:
        """The parsed timestamp, or ``None`` when it is missing or malformed."""
        try:
            return parse_instant(self.timestamp)
        except DataError:
            return None


class BlockSnapshot(BaseModel):
    """The result of one successful poll: blocks (newest first) plus tip height."""

    model_config = ConfigDict(frozen=True)

    blocks: tuple[Block, ...] = ()
    height: int | None = None
    fetched_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @classmethod
    def empty(cls) -> BlockSnapshot:
        return cls()

    @property
    def heights(self) -> set[int]:
        return {b.height for b in self.blocks}


class Balance(BaseModel):
    """Address balance as reported by ``/balance``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    available: Decimal = Decimal(0)
    incoming: Decimal = Decimal(0)
    current: Decimal = Decimal(0)


class Utxo(BaseModel):
    """A single unspent output as reported by ``/utxo``."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    tx: str | None = None
    vout: int | None = None
    value: Decimal | None = None
    type: str | None = None
    script: str | None = None


class AddressReport(BaseModel):
    """Balance and UTXOs for one address, fetched together."""

    model_config = ConfigDict(frozen=True)

    address: str
    balance: Balance
    utxos: list[Utxo] = []

    @property
    def utxo_count(self) -> int:
        return len(self.utxos)
