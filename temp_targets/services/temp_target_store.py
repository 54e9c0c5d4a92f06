"""Live temp target store.

Holds the entries handed to the dosing loop, including cancel sentinels.
The target in force is the newest entry, unless that entry is a cancel
or its duration has run out.
"""

import asyncio
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from temp_targets.core.targeting.exceptions import PersistenceFailure
from temp_targets.core.targeting.models import TempTarget
from temp_targets.logging_config import get_logger
from temp_targets.models.temp_target import TempTargetEntry

logger = get_logger(__name__)


class DatabaseTempTargetStore:
    """TempTargetStore that appends entries to the temp_targets table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker
        self._lock = asyncio.Lock()

    async def store_temp_targets(self, entries: Sequence[TempTarget]) -> None:
        """Append ``entries`` in order.

        Raises:
            PersistenceFailure: If the entries could not be written.
        """
        async with self._lock:
            try:
                async with self._session_maker() as session, session.begin():
                    session.add_all(
                        TempTargetEntry(
                            id=entry.id,
                            name=entry.name,
                            reason=entry.reason,
                            created_at=entry.created_at,
                            target_top=entry.target_top,
                            target_bottom=entry.target_bottom,
                            duration=entry.duration,
                            entered_by=str(entry.entered_by),
                        )
                        for entry in entries
                    )
            except SQLAlchemyError as e:
                raise PersistenceFailure("temp targets", e) from e

        for entry in entries:
            logger.info(
                "Stored temp target",
                temp_target_id=entry.id,
                name=entry.name,
                target=entry.target_bottom,
                duration=entry.duration,
                cancel=entry.is_cancel,
            )

    async def history(self, limit: int = 50) -> list[TempTarget]:
        """Most recent entries, newest first."""
        async with self._session_maker() as session:
            result = await session.execute(
                select(TempTargetEntry)
                .order_by(
                    TempTargetEntry.created_at.desc(),
                    TempTargetEntry.seq.desc(),
                )
                .limit(limit)
            )
            rows = result.scalars().all()
        return [TempTarget.model_validate(row) for row in rows]

    async def current(self, now: datetime | None = None) -> TempTarget | None:
        """The temp target in force at ``now``, or None."""
        now = now or datetime.now(UTC)
        latest = await self.history(limit=1)
        if not latest:
            return None

        entry = latest[0]
        if entry.is_cancel or entry.created_at > now:
            return None
        if entry.created_at + timedelta(minutes=entry.duration) <= now:
            return None
        return entry
