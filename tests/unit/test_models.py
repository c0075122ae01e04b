"""Tests for indexwatch data models."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest
from pydantic import ValidationError

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


class TestParseInstant:
    def test_iso_with_z_suffix(self):
        assert parse_instant("2026-03-01T12:00:00Z") == datetime(
            2026, 3, 1, 12, tzinfo=timezone.utc
        )

    def test_iso_with_offset_is_normalised_to_utc(self):
        assert parse_instant("2026-03-01T14:00:00+02:00") == datetime(
            2026, 3, 1, 12, tzinfo=timezone.utc
        )

    def test_naive_string_is_taken_as_utc(self):
        assert parse_instant("2026-03-01T12:00:00").tzinfo is not None

    def test_epoch_seconds(self):
        assert parse_instant(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
        assert parse_instant(1.5).microsecond == 500000

    def test_datetime_passthrough(self):
        naive = datetime(2026, 3, 1, 12)
        assert parse_instant(naive) == datetime(2026, 3, 1, 12, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "not a date", True, [], {"ts": 1}])
    def test_unparseable_raises_data_error(self, value):
        with pytest.raises(DataError):
            parse_instant(value)


class TestBlock:
    def test_optional_fields_default_to_none(self):
        block = Block(height=5)
        assert block.hash is None
        assert block.tx_count is None
        assert block.processing_time_ms is None

    def test_instant_is_none_for_bad_timestamp(self):
        assert Block(height=5, timestamp="yesterday").instant is None

    def test_instant_parses_good_timestamp(self):
        assert Block(height=5, timestamp="2026-03-01T12:00:00Z").instant is not None

    def test_extra_payload_keys_ignored(self):
        block = Block.model_validate({"height": 7, "hash": "aa", "miner": "x"})
        assert block.height == 7

    def test_frozen(self):
        block = Block(height=5)
        with pytest.raises(ValidationError):
            block.height = 6  # type: ignore[misc]

    def test_snapshot_heights(self):
        snap = BlockSnapshot(blocks=(Block(height=3), Block(height=2)), height=3)
        assert snap.heights == {2, 3}
        assert BlockSnapshot.empty().heights == set()


class TestAddressModels:
    def test_balance_accepts_numbers_and_strings(self):
        balance = Balance.model_validate({"available": 1.25, "incoming": "0.5", "current": 2})
        assert balance.incoming == Decimal("0.5")
        assert balance.current == Decimal(2)

    def test_address_report(self):
        report = AddressReport(
            address="DAddr",
            balance=Balance(),
            utxos=[Utxo(tx="ff", vout=1, value=Decimal(3))],
        )
        assert report.utxo_count == 1


class TestConnectionModels:
    def test_nothing_returns_to_connecting(self):
        for targets in VALID_TRANSITIONS.values():
            assert ConnectionState.CONNECTING not in targets

    def test_every_state_has_transitions(self):
        assert set(VALID_TRANSITIONS) == set(ConnectionState)

    def test_reconnect_context_rejects_negative(self):
        with pytest.raises(ValidationError):
            ReconnectContext(attempt_count=-1)

    def test_prediction_countdown_may_be_negative(self):
        assert PredictionContext(countdown_seconds=-30).countdown_seconds == -30


class TestConfigModels:
    def test_retry_policy_delays(self):
        policy = RetryPolicy(max_retries=5, base_delay_ms=1000, max_delay_ms=10000, multiplier=2)
        assert [policy.delay_ms(i) for i in range(5)] == [1000, 2000, 4000, 8000, 10000]

    def test_retry_policy_validation(self):
        with pytest.raises(ValidationError):
            RetryPolicy(max_retries=-1)
        with pytest.raises(ValidationError):
            RetryPolicy(multiplier=0.5)

    def test_monitor_config_defaults(self):
        config = MonitorConfig()
        assert config.poll_interval == 10.0
        assert config.reconnect_interval == 10.0
        assert config.new_block_marker_lifetime == 4.0
        assert config.overdue_cutoff_seconds == -60
        assert config.fallback_gap_ms == 60000
        assert config.retry_policy == RetryPolicy(
            max_retries=3, base_delay_ms=1000, max_delay_ms=10000, multiplier=2
        )

    def test_overdue_cutoff_must_not_be_positive(self):
        with pytest.raises(ValidationError):
            MonitorConfig(overdue_cutoff_seconds=5)
