# Services package
from temp_targets.services.activation_ledger import ActivationLedger
from temp_targets.services.preset_repository import PresetRepository
from temp_targets.services.temp_target_controller import (
    LoggingEditorHost,
    TempTargetController,
    build_controller,
)
from temp_targets.services.temp_target_store import DatabaseTempTargetStore

__all__ = [
    "ActivationLedger",
    "DatabaseTempTargetStore",
    "LoggingEditorHost",
    "PresetRepository",
    "TempTargetController",
    "build_controller",
]
