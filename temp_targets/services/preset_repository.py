"""Temp target preset repository.

Keeps the ordered preset list in memory and writes the whole list back
on every mutation, so storage only ever holds a complete list.
"""

import asyncio
from collections.abc import Sequence

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from temp_targets.core.targeting.exceptions import PersistenceFailure
from temp_targets.core.targeting.models import TempTarget
from temp_targets.logging_config import get_logger
from temp_targets.models.temp_target import TempTargetPreset

logger = get_logger(__name__)


class PresetRepository:
    """Ordered, id-unique collection of temp target presets.

    Mutations update the in-memory list first and then persist it. If the
    write fails the in-memory list is kept and PersistenceFailure is
    raised for the caller to report.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._presets: list[TempTarget] = []
        self._lock = asyncio.Lock()

    async def load(self) -> list[TempTarget]:
        """Replace the in-memory list with what storage holds."""
        async with self._lock:
            async with self._session_maker() as session:
                result = await session.execute(
                    select(TempTargetPreset).order_by(TempTargetPreset.position)
                )
                rows = result.scalars().all()
            self._presets = [TempTarget.model_validate(row) for row in rows]

        logger.info("Loaded temp target presets", count=len(self._presets))
        return self.list()

    def list(self) -> list[TempTarget]:
        return list(self._presets)

    def get(self, preset_id: str) -> TempTarget | None:
        return next((p for p in self._presets if p.id == preset_id), None)

    async def append(self, entry: TempTarget) -> None:
        """Add a preset at the end of the list.

        Raises:
            ValueError: If a preset with the same id already exists.
            PersistenceFailure: If the list could not be written.
        """
        async with self._lock:
            if any(p.id == entry.id for p in self._presets):
                msg = f"Preset {entry.id} already exists"
                raise ValueError(msg)
            self._presets.append(entry)
            await self._persist("append")

    async def replace(self, preset_id: str, entry: TempTarget) -> bool:
        """Swap the preset with ``preset_id`` for ``entry``, keeping its position.

        Returns:
            False (and writes nothing) if no such preset exists.
        """
        async with self._lock:
            for index, preset in enumerate(self._presets):
                if preset.id == preset_id:
                    self._presets[index] = entry
                    break
            else:
                return False
            await self._persist("replace")
        return True

    async def remove(self, preset_id: str) -> bool:
        """Drop the preset with ``preset_id``.

        Returns:
            False (and writes nothing) if no such preset exists.
        """
        async with self._lock:
            remaining = [p for p in self._presets if p.id != preset_id]
            if len(remaining) == len(self._presets):
                return False
            self._presets = remaining
            await self._persist("remove")
        return True

    async def _persist(self, operation: str) -> None:
        try:
            async with self._session_maker() as session, session.begin():
                await _write_all(session, self._presets)
        except SQLAlchemyError as e:
            raise PersistenceFailure(f"presets ({operation})", e) from e

        logger.debug(
            "Persisted temp target presets",
            operation=operation,
            count=len(self._presets),
        )


async def _write_all(session: AsyncSession, presets: Sequence[TempTarget]) -> None:
    await session.execute(delete(TempTargetPreset))
    session.add_all(
        TempTargetPreset(
            id=preset.id,
            position=position,
            name=preset.name,
            reason=preset.reason,
            created_at=preset.created_at,
            target_top=preset.target_top,
            target_bottom=preset.target_bottom,
            duration=preset.duration,
            entered_by=str(preset.entered_by),
        )
        for position, preset in enumerate(presets)
    )
