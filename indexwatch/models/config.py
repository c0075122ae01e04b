"""Runtime configuration models: fixed at startup."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class RetryPolicy(BaseModel):
    """Bounded exponential backoff: ``min(base * multiplier**attempt, max)``."""

    model_config = ConfigDict(frozen=True)

    max_retries: int = Field(default=3, ge=0)
    base_delay_ms: int = Field(default=1000, gt=0)
    max_delay_ms: int = Field(default=10000, gt=0)
    multiplier: float = Field(default=2.0, ge=1.0)

    def delay_ms(self, attempt: int) -> float:
        """Delay before retry number ``attempt + 1`` (attempt is zero-based)."""
        return min(self.base_delay_ms * self.multiplier**attempt, self.max_delay_ms)


class MonitorConfig(BaseModel):
    """Timing configuration for the ConnectionMachine.

    All durations are in milliseconds except ``overdue_cutoff_seconds``
    and ``tick_interval_seconds``.
    """

    model_config = ConfigDict(frozen=True)

    poll_interval_ms: int = Field(default=10000, gt=0)
    reconnect_interval_ms: int = Field(default=10000, gt=0)
    retry_policy: RetryPolicy = RetryPolicy()
    new_block_marker_ms: int = Field(default=4000, ge=0)
    overdue_cutoff_seconds: int = Field(default=-60, le=0)
    fallback_gap_ms: int = Field(default=60000, gt=0)
    tick_interval_seconds: float = Field(default=1.0, gt=0)

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def reconnect_interval(self) -> float:
        return self.reconnect_interval_ms / 1000

    @property
    def new_block_marker_lifetime(self) -> float:
        return self.new_block_marker_ms / 1000
