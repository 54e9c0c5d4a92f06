"""Tests for the temp target activation ledger."""

from datetime import timedelta

import pytest
from conftest import T0

from temp_targets.core.targeting.enums import ActivationState
from temp_targets.core.targeting.exceptions import (
    EmptyLedgerError,
    PersistenceFailure,
)
from temp_targets.database import build_engine, build_session_maker
from temp_targets.services.activation_ledger import ActivationLedger


class TestSeed:
    async def test_empty_ledger_raises(self, ledger):
        with pytest.raises(EmptyLedgerError):
            await ledger.current_state()

    async def test_seed_writes_inactive_record(self, ledger):
        assert await ledger.seed() is True
        state = await ledger.current_state()
        assert state.active is False
        assert state.date == T0

    async def test_seed_is_noop_once_populated(self, ledger):
        await ledger.seed()
        assert await ledger.seed() is False
        assert len(await ledger.history()) == 1


class TestCurrentState:
    async def test_latest_date_wins_regardless_of_insertion_order(self, ledger):
        t1, t2, t3 = T0, T0 + timedelta(minutes=1), T0 + timedelta(minutes=2)

        await ledger.record_manual_activation(duration=30, hbt=140, now=t2)
        await ledger.record_manual_activation(duration=90, hbt=170, now=t3)
        await ledger.record_deactivation(now=t1)

        state = await ledger.current_state()
        assert state.date == t3
        assert state.hbt == 170

    async def test_equal_dates_most_recent_append_wins(self, ledger):
        await ledger.record_manual_activation(duration=60, hbt=150, now=T0)
        await ledger.record_deactivation(now=T0)

        assert (await ledger.current_state()).active is False

        await ledger.record_manual_activation(duration=45, hbt=130, now=T0)

        state = await ledger.current_state()
        assert state.active is True
        assert state.hbt == 130

    async def test_history_is_newest_first(self, ledger):
        await ledger.record_deactivation(now=T0)
        await ledger.record_manual_activation(
            duration=60, hbt=150, now=T0 + timedelta(minutes=5)
        )

        history = await ledger.history()
        assert [r.active for r in history] == [True, False]

    async def test_records_are_never_removed(self, ledger):
        for minute in range(5):
            await ledger.record_deactivation(now=T0 + timedelta(minutes=minute))
        assert len(await ledger.history()) == 5


class TestManualActivation:
    async def test_percentage_mode_keeps_curve_parameters(self, ledger):
        record = await ledger.record_manual_activation(
            duration=90, hbt=150, target=113, now=T0
        )
        assert record.active is True
        assert record.start_date == T0
        assert record.duration == 90
        assert record.hbt == 150
        assert record.target == 113
        assert record.state == ActivationState.active_curve

    async def test_absolute_mode_zeroes_curve_parameters(self, ledger):
        record = await ledger.record_manual_activation(duration=90, target=120, now=T0)
        assert record.active is True
        assert record.hbt is None
        assert record.duration == 0
        assert record.state == ActivationState.active_flat

    async def test_uses_clock_when_now_omitted(self, ledger, clock):
        clock.advance(10)
        record = await ledger.record_manual_activation(duration=30, hbt=140)
        assert record.date == clock.now
        assert record.start_date == clock.now


class TestPresetActivation:
    async def test_recovers_flag_parameters(self, ledger):
        await ledger.record_preset_flag("preset-1", hbt=150, duration=90, now=T0)

        record = await ledger.record_preset_activation(
            "preset-1", now=T0 + timedelta(minutes=1)
        )

        assert record.active is True
        assert record.hbt == 150
        assert record.duration == 90
        assert record.preset_id == "preset-1"
        assert record.start_date == T0 + timedelta(minutes=1)
        assert await ledger.current_state() == record

    async def test_without_flag_records_deactivation(self, ledger):
        await ledger.record_manual_activation(duration=60, hbt=150, now=T0)

        record = await ledger.record_preset_activation(
            "unknown", now=T0 + timedelta(minutes=1)
        )

        assert record.active is False
        assert (await ledger.current_state()).active is False

    async def test_uses_most_recent_flag_for_preset(self, ledger):
        await ledger.record_preset_flag("preset-1", hbt=150, duration=90, now=T0)
        await ledger.record_preset_flag(
            "preset-1", hbt=180, duration=30, now=T0 + timedelta(minutes=1)
        )
        await ledger.record_preset_flag(
            "preset-2", hbt=120, duration=10, now=T0 + timedelta(minutes=2)
        )

        record = await ledger.record_preset_activation(
            "preset-1", now=T0 + timedelta(minutes=3)
        )
        assert (record.hbt, record.duration) == (180, 30)

    async def test_disable_flag_does_not_hide_preset_flag(self, ledger):
        await ledger.record_preset_flag("preset-1", hbt=150, duration=90, now=T0)
        await ledger.record_preset_flags_disabled(now=T0 + timedelta(minutes=1))

        record = await ledger.record_preset_activation(
            "preset-1", now=T0 + timedelta(minutes=2)
        )
        assert record.active is True


class TestPresetFlags:
    async def test_record_flag(self, ledger):
        flag = await ledger.record_preset_flag("preset-1", hbt=150, duration=90, now=T0)
        assert flag.preset_id == "preset-1"
        assert flag.is_preset is True
        assert flag.enabled is True
        assert await ledger.latest_preset_flag("preset-1") == flag

    async def test_latest_flag_missing(self, ledger):
        assert await ledger.latest_preset_flag("preset-1") is None
        assert await ledger.current_preset_flag() is None

    async def test_disable_flag_becomes_current(self, ledger):
        await ledger.record_preset_flag("preset-1", hbt=150, duration=90, now=T0)
        await ledger.record_preset_flags_disabled(now=T0 + timedelta(minutes=1))

        current = await ledger.current_preset_flag()
        assert current.enabled is False
        assert current.preset_id is None

    async def test_flags_do_not_touch_activation_state(self, ledger):
        await ledger.seed()
        await ledger.record_preset_flag(
            "preset-1", hbt=150, duration=90, now=T0 + timedelta(minutes=1)
        )
        assert (await ledger.current_state()).active is False


class TestStorageFailures:
    @pytest.fixture
    async def broken_ledger(self, clock):
        # No tables created, so reads and writes both fail
        engine = build_engine("sqlite+aiosqlite://")
        yield ActivationLedger(build_session_maker(engine), clock=clock)
        await engine.dispose()

    async def test_preset_activation_lookup_failure(self, broken_ledger):
        with pytest.raises(PersistenceFailure) as exc_info:
            await broken_ledger.record_preset_activation("preset-1")
        assert "preset flag lookup" in exc_info.value.operation

    async def test_seed_failure(self, broken_ledger):
        with pytest.raises(PersistenceFailure):
            await broken_ledger.seed()

    async def test_append_failure(self, broken_ledger):
        with pytest.raises(PersistenceFailure):
            await broken_ledger.record_deactivation()
