"""Temp target Pydantic models.

Pure data models shared by the repositories and the controller. No
database dependencies; ORM rows are converted with ``from_attributes``.
All glucose values on stored records are mg/dL.
"""

import uuid
from datetime import UTC, datetime
from typing import Self

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)

from temp_targets.core.targeting.constants import (
    CANCEL_LABEL,
    CUSTOM_LABEL,
    DEFAULT_HALF_BASAL_TARGET,
    DEFAULT_PERCENTAGE,
)
from temp_targets.core.targeting.enums import (
    ActivationState,
    EnteredBy,
    OperationStatus,
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _as_utc(value: datetime | None) -> datetime | None:
    # Stored naive values are UTC; SQLite drops offsets, so normalize first.
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class TempTarget(BaseModel):
    """A temporary override of the loop's glucose target.

    Immutable once created. The controller always sets target_top equal to
    target_bottom.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: str = Field(default_factory=_new_id)
    name: str = CUSTOM_LABEL
    reason: str = CUSTOM_LABEL
    created_at: datetime
    target_top: float | None = None
    target_bottom: float | None = None
    duration: float = Field(ge=0, description="Duration in minutes.")
    entered_by: EnteredBy = EnteredBy.manual

    @field_validator("created_at")
    @classmethod
    def created_at_is_aware(cls, value: datetime) -> datetime:
        return _as_utc(value)

    @classmethod
    def cancel(cls, at: datetime) -> Self:
        """Sentinel entry telling the temp target store to clear the active target."""
        return cls(
            name=CANCEL_LABEL,
            reason=CANCEL_LABEL,
            created_at=at,
            target_top=0,
            target_bottom=0,
            duration=0,
            entered_by=EnteredBy.manual,
        )

    @property
    def is_cancel(self) -> bool:
        return self.duration == 0 and self.name == CANCEL_LABEL


class ActivationRecord(BaseModel):
    """One entry of the append-only activation ledger."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    active: bool
    date: datetime
    start_date: datetime | None = None
    duration: float = 0
    hbt: float | None = None
    preset_id: str | None = None
    target: float | None = None

    @field_validator("date", "start_date")
    @classmethod
    def dates_are_aware(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @property
    def state(self) -> ActivationState:
        if not self.active:
            return ActivationState.inactive
        if self.hbt is None:
            return ActivationState.active_flat
        return ActivationState.active_curve


class PresetActivationFlag(BaseModel):
    """Remembers the percentage-mode parameters a preset was saved with.

    The disable record written on cancel carries no preset id.
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    preset_id: str | None = None
    is_preset: bool = False
    enabled: bool
    hbt: float | None = None
    duration: float = 0
    date: datetime

    @field_validator("date")
    @classmethod
    def date_is_aware(cls, value: datetime) -> datetime:
        return _as_utc(value)


class TempTargetRequest(BaseModel):
    """What the user entered in the temp target editor.

    ``target`` is in the display unit and only used in absolute mode; in
    percentage mode the target is derived from ``percentage`` and ``hbt``.
    Percentages and targets are deliberately not range-checked.
    """

    target: float = 0
    duration: float = Field(ge=0, description="Duration in minutes.")
    use_percentage: bool = False
    percentage: float = DEFAULT_PERCENTAGE
    hbt: float = DEFAULT_HALF_BASAL_TARGET
    name: str = ""
    date: AwareDatetime | None = Field(
        default=None,
        description="Start of the temp target. Defaults to now.",
    )


class OperationResult(BaseModel):
    """Outcome of a controller operation.

    ``persisted`` is False when any storage write failed; in-memory state
    still reflects the operation. ``settings_changed`` is True only when
    this operation wrote percentage-mode parameters the loop must re-read.
    """

    status: OperationStatus
    entry: TempTarget | None = None
    persisted: bool = True
    settings_changed: bool = False

    @property
    def applied(self) -> bool:
        return self.status == OperationStatus.applied
