"""Environment-driven settings for the indexwatch client.

Centralized config using pydantic-settings.  Reads from a .env file and
INDEXWATCH_* environment variables.
"""

from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from indexwatch.models.config import MonitorConfig, RetryPolicy


class MonitorSettings(BaseSettings):
    """Settings with environment variable overrides.

    Examples
    --------
    Override via environment::

        export INDEXWATCH_INDEXER_API_URL=http://indexer.local:8080/api
        export INDEXWATCH_POLL_INTERVAL_MS=5000
        export INDEXWATCH_LOG_LEVEL=DEBUG

    Or via .env file::

        INDEXWATCH_RECONNECT_INTERVAL_MS=30000
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="INDEXWATCH_",
        env_file_encoding="utf-8",
    )

    log_level: str = "INFO"

    # Indexer endpoint
    indexer_api_url: str = "http://localhost:8080/api"
    request_timeout_seconds: float = 10.0

    # Polling and reconnection (milliseconds)
    poll_interval_ms: int = 10000
    reconnect_interval_ms: int = 10000

    # Retry policy applied to every indexer call
    max_retries: int = 3
    retry_base_delay_ms: int = 1000
    retry_max_delay_ms: int = 10000
    retry_backoff_multiplier: float = 2.0

    # Block display
    new_block_marker_ms: int = 4000
    overdue_cutoff_seconds: int = -60
    fallback_gap_ms: int = 60000
    max_blocks_display: int = 10
    explorer_url_template: str = "https://dogechain.info/block/{hash}"

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_retries=self.max_retries,
            base_delay_ms=self.retry_base_delay_ms,
            max_delay_ms=self.retry_max_delay_ms,
            multiplier=self.retry_backoff_multiplier,
        )

    def to_monitor_config(self) -> MonitorConfig:
        """Freeze the timing-related settings into a ``MonitorConfig``."""
        return MonitorConfig(
            poll_interval_ms=self.poll_interval_ms,
            reconnect_interval_ms=self.reconnect_interval_ms,
            retry_policy=self.retry_policy,
            new_block_marker_ms=self.new_block_marker_ms,
            overdue_cutoff_seconds=self.overdue_cutoff_seconds,
            fallback_gap_ms=self.fallback_gap_ms,
        )


# Module-level singleton; import as `from indexwatch.config import settings`
settings = MonitorSettings()
