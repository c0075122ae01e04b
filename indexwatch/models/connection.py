"""Connection state models — the states the monitor can be in and the
context that lives alongside each of them."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConnectionState(str, Enum):
    """Exactly one of these holds at any time."""

    CONNECTING = "connecting"
    ONLINE = "online"
    OFFLINE = "offline"


# Valid state transitions, enforced by ConnectionMachine.
# Self-transitions are re-entries (manual retry, repeated failed probes).
# Nothing ever returns to CONNECTING.
VALID_TRANSITIONS: dict[ConnectionState, set[ConnectionState]] = {
    ConnectionState.CONNECTING: {ConnectionState.ONLINE, ConnectionState.OFFLINE},
    ConnectionState.ONLINE: {ConnectionState.ONLINE, ConnectionState.OFFLINE},
    ConnectionState.OFFLINE: {ConnectionState.ONLINE, ConnectionState.OFFLINE},
}


class ReconnectContext(BaseModel):
    """Reconnect bookkeeping.  Only meaningful while OFFLINE."""

    model_config = ConfigDict(frozen=True)

    attempt_count: int = Field(default=0, ge=0)
    countdown_seconds: int = Field(default=0, ge=0)


class PredictionContext(BaseModel):
    """Next-block prediction.  ``countdown_seconds`` goes negative when overdue."""

    model_config = ConfigDict(frozen=True)

    predicted_next_arrival: datetime | None = None
    countdown_seconds: int = 0
