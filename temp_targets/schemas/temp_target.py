"""Temp target API schemas."""

from datetime import datetime

from pydantic import BaseModel, Field

from temp_targets.core.targeting.constants import (
    DEFAULT_HALF_BASAL_TARGET,
    DEFAULT_PERCENTAGE,
)
from temp_targets.core.targeting.enums import (
    ActivationState,
    EnteredBy,
    GlucoseUnits,
    OperationStatus,
)
from temp_targets.core.targeting.models import (
    ActivationRecord,
    OperationResult,
    TempTarget,
)
from temp_targets.core.targeting.units import from_canonical


class TempTargetResponse(BaseModel):
    """A temp target, with its target also given in the display unit."""

    id: str
    name: str
    reason: str
    created_at: datetime
    target_top: float | None
    target_bottom: float | None
    duration: float
    entered_by: EnteredBy
    display_target: float | None = Field(
        default=None,
        description="target_bottom in the configured display unit.",
    )
    units: GlucoseUnits

    @classmethod
    def from_entry(
        cls,
        entry: TempTarget,
        units: GlucoseUnits,
    ) -> "TempTargetResponse":
        display = (
            float(from_canonical(entry.target_bottom, units))
            if entry.target_bottom is not None
            else None
        )
        return cls(
            **entry.model_dump(),
            display_target=display,
            units=units,
        )


class PresetListResponse(BaseModel):
    """Saved presets in display order."""

    presets: list[TempTargetResponse]
    units: GlucoseUnits


class OperationResponse(BaseModel):
    """Outcome of an enact/cancel/save/update/remove request."""

    status: OperationStatus
    persisted: bool
    settings_changed: bool = False
    entry: TempTargetResponse | None = None

    @classmethod
    def from_result(
        cls,
        result: OperationResult,
        units: GlucoseUnits,
    ) -> "OperationResponse":
        return cls(
            status=result.status,
            persisted=result.persisted,
            settings_changed=result.settings_changed,
            entry=(
                TempTargetResponse.from_entry(result.entry, units)
                if result.entry is not None
                else None
            ),
        )


class ActivationStateResponse(BaseModel):
    """The activation ledger's current record."""

    model_config = {"from_attributes": True}

    state: ActivationState
    active: bool
    date: datetime
    start_date: datetime | None
    duration: float
    hbt: float | None
    preset_id: str | None

    @classmethod
    def from_record(cls, record: ActivationRecord) -> "ActivationStateResponse":
        return cls.model_validate(record)


class ComputedTargetResponse(BaseModel):
    """Target produced by a sensitivity percentage."""

    percentage: float
    hbt: float
    target: float = Field(description="Exact target in mg/dL.")
    rounded_target: int = Field(description="Target rounded to whole mg/dL.")


class ComputedPercentageResponse(BaseModel):
    """Sensitivity percentage produced by a target."""

    target: float
    hbt: float
    percentage: int


class TempTargetDefaults(BaseModel):
    """Editor defaults for reference."""

    percentage: float = DEFAULT_PERCENTAGE
    hbt: float = DEFAULT_HALF_BASAL_TARGET
    max_sensitivity_ratio: float
    units: GlucoseUnits
