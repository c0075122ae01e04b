"""MonitorView — read-only projection of the ConnectionMachine.

The presentation layer never touches the machine's internals.  It gets a
frozen ``MonitorView`` after every mutation and renders that.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from indexwatch.models.blocks import Block
from indexwatch.models.connection import ConnectionState


class MonitorView(BaseModel):
    """A frozen, point-in-time view of the monitor.

    Computed fresh on every ``ConnectionMachine.view()`` call and never
    persisted.
    """

    model_config = ConfigDict(frozen=True)

    blocks: tuple[Block, ...] = ()
    tip_height: int | None = None
    connection_state: ConnectionState = ConnectionState.CONNECTING
    is_loading: bool = True
    last_error: str | None = None
    reconnect_attempt_count: int = 0
    reconnect_countdown_seconds: int = 0
    next_arrival_countdown_seconds: int = 0
    predicted_next_arrival: datetime | None = None
    new_block_positions: frozenset[int] = frozenset()
    overdue_cutoff_seconds: int = -60
    last_updated: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )

    @property
    def is_online(self) -> bool:
        return self.connection_state == ConnectionState.ONLINE

    @property
    def is_overdue(self) -> bool:
        """Whether the predicted block is late enough to display as overdue."""
        return self.next_arrival_countdown_seconds <= self.overdue_cutoff_seconds

    @property
    def new_blocks(self) -> list[Block]:
        """Blocks currently flagged as newly observed, newest first."""
        return [b for i, b in enumerate(self.blocks) if i in self.new_block_positions]
