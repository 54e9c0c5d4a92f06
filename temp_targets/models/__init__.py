# Database Models
from temp_targets.models.base import Base
from temp_targets.models.temp_target import (
    TempTargetActivation,
    TempTargetEntry,
    TempTargetPreset,
    TempTargetPresetFlag,
)

__all__ = [
    "Base",
    "TempTargetActivation",
    "TempTargetEntry",
    "TempTargetPreset",
    "TempTargetPresetFlag",
]
