"""indexwatch data models: all Pydantic v2, all frozen (immutable)."""

from indexwatch.models.blocks import (
    AddressReport,
    Balance,
    Block,
    BlockSnapshot,
    DataError,
    Utxo,
    parse_instant,
)
from indexwatch.models.config import MonitorConfig, RetryPolicy
from indexwatch.models.connection import (
    VALID_TRANSITIONS,
    ConnectionState,
    PredictionContext,
    ReconnectContext,
)

__all__ = [
    # blocks
    "Block",
    "BlockSnapshot",
    "DataError",
    "parse_instant",
    # address lookup
    "AddressReport",
    "Balance",
    "Utxo",
    # connection
    "ConnectionState",
    "VALID_TRANSITIONS",
    "ReconnectContext",
    "PredictionContext",
    # config
    "MonitorConfig",
    "RetryPolicy",
]
