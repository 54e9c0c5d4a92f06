"""Temp target controller.

Turns what the user entered into temp target entries and keeps the
activation ledger, the preset list and the loop's temp target store in
step. Activation state is never stored here; it is read back from the
ledger:

- inactive: the latest ledger record is inactive.
- active_curve: a percentage-mode target is tracked via hbt/duration.
- active_flat: an absolute target with no curve parameters.

Storage writes are best effort. A failed write is logged and reported as
``persisted=False`` on the result; it never raises past this layer and
never rolls back what the user just did.
"""

import asyncio
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from temp_targets.core.targeting.constants import (
    CUSTOM_LABEL,
    DEFAULT_HALF_BASAL_TARGET,
)
from temp_targets.core.targeting.enums import EnteredBy, GlucoseUnits, OperationStatus
from temp_targets.core.targeting.exceptions import PersistenceFailure
from temp_targets.core.targeting.interfaces import (
    EditorHost,
    SettingsProvider,
    TempTargetStore,
)
from temp_targets.core.targeting.models import (
    ActivationRecord,
    OperationResult,
    TempTarget,
    TempTargetRequest,
)
from temp_targets.core.targeting.ratio import compute_percentage, compute_target
from temp_targets.core.targeting.units import round_half_up, to_canonical
from temp_targets.logging_config import get_logger
from temp_targets.services.activation_ledger import ActivationLedger
from temp_targets.services.preset_repository import PresetRepository
from temp_targets.services.temp_target_store import DatabaseTempTargetStore

logger = get_logger(__name__)


class LoggingEditorHost:
    """EditorHost for headless use: there is no editor, so just log."""

    def close_editor(self) -> None:
        logger.debug("Temp target editor dismissed")


class TempTargetController:
    """Orchestrates temp target entry, presets and activation tracking.

    Units and the maximum sensitivity ratio are read from ``settings`` once,
    at construction. All public operations are serialized on one lock.
    Call ``start()`` before use.
    """

    def __init__(
        self,
        presets: PresetRepository,
        ledger: ActivationLedger,
        store: TempTargetStore,
        settings: SettingsProvider,
        editor: EditorHost | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self._presets = presets
        self._ledger = ledger
        self._store = store
        self._editor = editor or LoggingEditorHost()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._lock = asyncio.Lock()

        self.units: GlucoseUnits = settings.glucose_units
        self.max_ratio: float = settings.max_sensitivity_ratio

    async def start(self) -> None:
        """Load the preset list and make sure the ledger has a state to read."""
        await self._presets.load()
        await self._ledger.seed()

    # ── Read accessors ──

    @property
    def presets(self) -> list[TempTarget]:
        return self._presets.list()

    def compute_target(
        self,
        percentage: float,
        hbt: float = DEFAULT_HALF_BASAL_TARGET,
    ) -> Decimal:
        """Exact mg/dL target for ``percentage`` sensitivity (live feedback)."""
        return compute_target(percentage, hbt, self.max_ratio)

    def compute_percentage(
        self,
        target: float,
        hbt: float = DEFAULT_HALF_BASAL_TARGET,
    ) -> Decimal:
        """Whole sensitivity percentage produced by a mg/dL ``target``."""
        return compute_percentage(target, hbt, self.max_ratio)

    async def current_state(self) -> ActivationRecord:
        return await self._ledger.current_state()

    # ── Operations ──

    async def enact(self, request: TempTargetRequest) -> OperationResult:
        """Start a temp target from editor input.

        Percentage mode starts curve tracking in the ledger. Absolute mode
        first records a deactivation so no earlier curve keeps being
        tracked under a flat target.
        """
        async with self._lock:
            if request.duration <= 0:
                logger.info("Ignoring temp target without duration", operation="enact")
                return OperationResult(status=OperationStatus.invalid_duration)

            now = self._clock()
            target = self._resolve_target(request)
            persisted = True

            if request.use_percentage:
                persisted &= await self._best_effort(
                    "record curve activation",
                    self._ledger.record_manual_activation(
                        duration=request.duration,
                        hbt=request.hbt,
                        target=target,
                        now=now,
                    ),
                )
            else:
                persisted &= await self._best_effort(
                    "record deactivation",
                    self._ledger.record_deactivation(now=now),
                )

            label = request.name or CUSTOM_LABEL
            entry = TempTarget(
                name=label,
                reason=label,
                created_at=request.date or now,
                target_top=target,
                target_bottom=target,
                duration=request.duration,
                entered_by=EnteredBy.manual,
            )
            persisted &= await self._best_effort(
                "submit temp target",
                self._store.store_temp_targets([entry]),
            )
            self._editor.close_editor()

        logger.info(
            "Enacted temp target",
            temp_target_id=entry.id,
            target=target,
            duration=entry.duration,
            percentage_mode=request.use_percentage,
            persisted=persisted,
        )
        return OperationResult(
            status=OperationStatus.applied,
            entry=entry,
            persisted=persisted,
            settings_changed=request.use_percentage,
        )

    async def cancel(self) -> OperationResult:
        """Clear the active temp target and turn off both activation views."""
        async with self._lock:
            now = self._clock()
            entry = TempTarget.cancel(at=now)

            persisted = await self._best_effort(
                "submit cancel",
                self._store.store_temp_targets([entry]),
            )
            self._editor.close_editor()

            persisted &= await self._best_effort(
                "record deactivation",
                self._ledger.record_deactivation(now=now),
            )
            persisted &= await self._best_effort(
                "disable preset flags",
                self._ledger.record_preset_flags_disabled(now=now),
            )

        logger.info("Cancelled temp target", persisted=persisted)
        return OperationResult(
            status=OperationStatus.applied,
            entry=entry,
            persisted=persisted,
        )

    async def save(self, request: TempTargetRequest) -> OperationResult:
        """Save editor input as a new preset without enacting it.

        Percentage-mode presets also get a preset flag so enacting them
        later restores curve tracking.
        """
        async with self._lock:
            if request.duration <= 0:
                logger.info("Ignoring temp target without duration", operation="save")
                return OperationResult(status=OperationStatus.invalid_duration)

            now = self._clock()
            target = self._resolve_target(request)
            label = request.name or CUSTOM_LABEL
            entry = TempTarget(
                name=label,
                reason=label,
                created_at=now,
                target_top=target,
                target_bottom=target,
                duration=request.duration,
                entered_by=EnteredBy.manual,
            )

            persisted = await self._best_effort(
                "append preset",
                self._presets.append(entry),
            )

            if request.use_percentage:
                persisted &= await self._best_effort(
                    "record preset flag",
                    self._ledger.record_preset_flag(
                        entry.id,
                        hbt=request.hbt,
                        duration=request.duration,
                        now=now,
                    ),
                )

        logger.info(
            "Saved temp target preset",
            preset_id=entry.id,
            name=entry.name,
            target=target,
            percentage_mode=request.use_percentage,
            persisted=persisted,
        )
        return OperationResult(
            status=OperationStatus.applied,
            entry=entry,
            persisted=persisted,
            settings_changed=request.use_percentage,
        )

    async def enact_preset(self, preset_id: str) -> OperationResult:
        """Start a saved preset as of now."""
        async with self._lock:
            preset = self._presets.get(preset_id)
            if preset is None:
                logger.warning("Temp target preset not found", preset_id=preset_id)
                return OperationResult(status=OperationStatus.preset_not_found)

            now = self._clock()
            entry = preset.model_copy(update={"created_at": now})

            persisted = await self._best_effort(
                "submit preset",
                self._store.store_temp_targets([entry]),
            )
            self._editor.close_editor()

            persisted &= await self._best_effort(
                "record preset activation",
                self._ledger.record_preset_activation(preset_id, now=now),
            )

        logger.info("Enacted temp target preset", preset_id=preset_id)
        return OperationResult(
            status=OperationStatus.applied,
            entry=entry,
            persisted=persisted,
        )

    async def remove_preset(self, preset_id: str) -> OperationResult:
        async with self._lock:
            preset = self._presets.get(preset_id)
            if preset is None:
                return OperationResult(status=OperationStatus.preset_not_found)

            persisted = await self._best_effort(
                "remove preset",
                self._presets.remove(preset_id),
            )

        logger.info("Removed temp target preset", preset_id=preset_id)
        return OperationResult(
            status=OperationStatus.applied,
            entry=preset,
            persisted=persisted,
        )

    async def update_preset(
        self,
        preset_id: str,
        request: TempTargetRequest,
    ) -> OperationResult:
        """Rewrite a preset's target and duration in place.

        The preset keeps its id, creation time and provenance, and keeps
        its name and reason unless a new name is given.
        """
        async with self._lock:
            preset = self._presets.get(preset_id)
            if preset is None:
                logger.warning("Temp target preset not found", preset_id=preset_id)
                return OperationResult(status=OperationStatus.preset_not_found)

            target = self._resolve_target(request)
            updated = TempTarget(
                id=preset.id,
                name=request.name or preset.name,
                reason=request.name or preset.reason,
                created_at=preset.created_at,
                target_top=target,
                target_bottom=target,
                duration=request.duration,
                entered_by=preset.entered_by,
            )

            persisted = await self._best_effort(
                "replace preset",
                self._presets.replace(preset_id, updated),
            )

        logger.info(
            "Updated temp target preset",
            preset_id=preset_id,
            target=target,
            persisted=persisted,
        )
        return OperationResult(
            status=OperationStatus.applied,
            entry=updated,
            persisted=persisted,
        )

    # ── Internals ──

    def _resolve_target(self, request: TempTargetRequest) -> float:
        """mg/dL target for the request.

        Percentage-mode targets are already mg/dL and only need rounding.
        Absolute targets are converted when entered in mmol/L.
        """
        if request.use_percentage:
            exact = self.compute_target(request.percentage, request.hbt)
            return float(round_half_up(exact))
        if self.units == GlucoseUnits.mmol_l:
            return float(to_canonical(request.target, self.units))
        return request.target

    async def _best_effort(self, description: str, write: Awaitable[object]) -> bool:
        try:
            await write
        except PersistenceFailure as e:
            logger.exception(
                "Temp target write failed",
                step=description,
                operation=e.operation,
            )
            return False
        return True


def build_controller(
    session_maker: async_sessionmaker[AsyncSession],
    settings: SettingsProvider,
    editor: EditorHost | None = None,
) -> TempTargetController:
    """Wire a controller to database-backed repositories and store."""
    return TempTargetController(
        presets=PresetRepository(session_maker),
        ledger=ActivationLedger(session_maker),
        store=DatabaseTempTargetStore(session_maker),
        settings=settings,
        editor=editor,
    )
