"""Collaborators the temp target controller depends on."""

from collections.abc import Sequence
from typing import Protocol

from temp_targets.core.targeting.enums import GlucoseUnits
from temp_targets.core.targeting.models import TempTarget


class SettingsProvider(Protocol):
    """Loop settings, read once when the controller is built."""

    glucose_units: GlucoseUnits
    max_sensitivity_ratio: float


class TempTargetStore(Protocol):
    """The control loop's store of live (non-preset) temp targets."""

    async def store_temp_targets(self, entries: Sequence[TempTarget]) -> None: ...


class EditorHost(Protocol):
    """Whatever presents the temp target editor."""

    def close_editor(self) -> None: ...
