"""Temp target activation ledger.

Append-only journal of activation and deactivation events. The current
activation state is whichever record has the latest date; on equal dates
the most recently appended one wins. Nothing is ever updated or deleted.

A second journal, the preset flags, remembers the percentage-mode
parameters a preset was saved with so that re-applying the preset can
restore curve tracking. The two journals are written and read
independently.
"""

import asyncio
from collections.abc import Callable
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from temp_targets.core.targeting.constants import DEFAULT_HALF_BASAL_TARGET
from temp_targets.core.targeting.exceptions import (
    EmptyLedgerError,
    PersistenceFailure,
)
from temp_targets.core.targeting.models import ActivationRecord, PresetActivationFlag
from temp_targets.logging_config import get_logger
from temp_targets.models.temp_target import (
    TempTargetActivation,
    TempTargetPresetFlag,
)

logger = get_logger(__name__)


def utc_now() -> datetime:
    return datetime.now(UTC)


class ActivationLedger:
    """Activation and preset-flag journals backed by the database.

    Every public write accepts ``now`` so callers (and tests) can pin
    timestamps; otherwise the injected clock is used.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ):
        self._session_maker = session_maker
        self._clock = clock
        self._lock = asyncio.Lock()

    # ── Activation journal ──

    async def seed(self, now: datetime | None = None) -> bool:
        """Append an inactive record if the ledger is empty.

        Returns:
            True if a seed record was written.
        """
        async with self._lock:
            try:
                async with self._session_maker() as session:
                    count = await session.scalar(
                        select(func.count()).select_from(TempTargetActivation)
                    )
            except SQLAlchemyError as e:
                raise PersistenceFailure("activation ledger (seed)", e) from e
            if count:
                return False
            await self._append(
                TempTargetActivation(
                    active=False,
                    date=now or self._clock(),
                    duration=0.0,
                ),
                "seed",
            )

        logger.info("Seeded temp target activation ledger")
        return True

    async def record_manual_activation(
        self,
        duration: float,
        hbt: float | None = None,
        target: float | None = None,
        now: datetime | None = None,
    ) -> ActivationRecord:
        """Mark a temp target entered by hand as active.

        ``hbt`` is only given for percentage-mode targets; without it the
        record describes a flat target and carries no curve parameters.
        """
        now = now or self._clock()
        row = TempTargetActivation(
            active=True,
            date=now,
            start_date=now,
            duration=duration if hbt is not None else 0.0,
            hbt=hbt,
            target=target,
        )
        async with self._lock:
            await self._append(row, "manual activation")
        return ActivationRecord.model_validate(row)

    async def record_deactivation(
        self,
        now: datetime | None = None,
    ) -> ActivationRecord:
        row = TempTargetActivation(
            active=False,
            date=now or self._clock(),
            duration=0.0,
        )
        async with self._lock:
            await self._append(row, "deactivation")
        return ActivationRecord.model_validate(row)

    async def record_preset_activation(
        self,
        preset_id: str,
        now: datetime | None = None,
    ) -> ActivationRecord:
        """Activate curve tracking for a preset, if it has parameters on file.

        Looks up the most recent preset flag for ``preset_id``. When one
        exists its hbt and duration are copied onto a new active record;
        otherwise an inactive record is written since there is no curve
        to track.
        """
        now = now or self._clock()
        async with self._lock:
            flag = await self._latest_flag(preset_id)
            if flag is not None:
                hbt = flag.hbt if flag.hbt is not None else DEFAULT_HALF_BASAL_TARGET
                row = TempTargetActivation(
                    active=True,
                    date=now,
                    start_date=now,
                    hbt=hbt,
                    duration=flag.duration or 0.0,
                    preset_id=preset_id,
                )
            else:
                row = TempTargetActivation(active=False, date=now, duration=0.0)
            await self._append(row, "preset activation")

        logger.info(
            "Recorded preset activation",
            preset_id=preset_id,
            curve_tracked=row.active,
        )
        return ActivationRecord.model_validate(row)

    async def current_state(self) -> ActivationRecord:
        """The record with the latest date.

        Raises:
            EmptyLedgerError: If the ledger was never seeded.
        """
        async with self._session_maker() as session:
            result = await session.execute(
                select(TempTargetActivation)
                .order_by(
                    TempTargetActivation.date.desc(),
                    TempTargetActivation.seq.desc(),
                )
                .limit(1)
            )
            row = result.scalar_one_or_none()

        if row is None:
            raise EmptyLedgerError("Activation ledger has no records")
        return ActivationRecord.model_validate(row)

    async def history(self, limit: int = 50) -> list[ActivationRecord]:
        """Most recent activation records, newest first."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(TempTargetActivation)
                .order_by(
                    TempTargetActivation.date.desc(),
                    TempTargetActivation.seq.desc(),
                )
                .limit(limit)
            )
            rows = result.scalars().all()
        return [ActivationRecord.model_validate(row) for row in rows]

    # ── Preset flag journal ──

    async def record_preset_flag(
        self,
        preset_id: str,
        hbt: float,
        duration: float,
        now: datetime | None = None,
    ) -> PresetActivationFlag:
        """Remember the percentage-mode parameters of a saved preset."""
        row = TempTargetPresetFlag(
            preset_id=preset_id,
            is_preset=True,
            enabled=True,
            hbt=hbt,
            duration=duration,
            date=now or self._clock(),
        )
        async with self._lock:
            await self._append(row, "preset flag")
        return PresetActivationFlag.model_validate(row)

    async def record_preset_flags_disabled(
        self,
        now: datetime | None = None,
    ) -> PresetActivationFlag:
        """Write the disable flag that turns off preset curve tracking."""
        row = TempTargetPresetFlag(
            enabled=False,
            is_preset=False,
            duration=0.0,
            date=now or self._clock(),
        )
        async with self._lock:
            await self._append(row, "preset flag disable")
        return PresetActivationFlag.model_validate(row)

    async def latest_preset_flag(self, preset_id: str) -> PresetActivationFlag | None:
        flag = await self._latest_flag(preset_id)
        return PresetActivationFlag.model_validate(flag) if flag is not None else None

    async def current_preset_flag(self) -> PresetActivationFlag | None:
        """The newest preset flag of any preset, or None if there are none."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(TempTargetPresetFlag)
                .order_by(
                    TempTargetPresetFlag.date.desc(),
                    TempTargetPresetFlag.seq.desc(),
                )
                .limit(1)
            )
            row = result.scalar_one_or_none()
        return PresetActivationFlag.model_validate(row) if row is not None else None

    # ── Internals ──

    async def _latest_flag(self, preset_id: str) -> TempTargetPresetFlag | None:
        try:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(TempTargetPresetFlag)
                    .where(TempTargetPresetFlag.preset_id == preset_id)
                    .order_by(
                        TempTargetPresetFlag.date.desc(),
                        TempTargetPresetFlag.seq.desc(),
                    )
                    .limit(1)
                )
                return result.scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceFailure("activation ledger (preset flag lookup)", e) from e

    async def _append(
        self,
        row: TempTargetActivation | TempTargetPresetFlag,
        operation: str,
    ) -> None:
        try:
            async with self._session_maker() as session, session.begin():
                session.add(row)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"activation ledger ({operation})", e) from e
