"""Temporary glucose target overrides.

Pure building blocks for temp targets: unit normalization, the
percentage/target conversion along the half-basal-target curve, and the
records kept by the preset repository and the activation ledger.

Temp targets change the setpoint the dosing loop works towards. This
package only produces target and sensitivity values; it never doses.
"""

from temp_targets.core.targeting.enums import (
    ActivationState,
    EnteredBy,
    GlucoseUnits,
    OperationStatus,
)
from temp_targets.core.targeting.exceptions import (
    EmptyLedgerError,
    PersistenceFailure,
)
from temp_targets.core.targeting.models import (
    ActivationRecord,
    OperationResult,
    PresetActivationFlag,
    TempTarget,
    TempTargetRequest,
)
from temp_targets.core.targeting.ratio import compute_percentage, compute_target
from temp_targets.core.targeting.units import from_canonical, to_canonical

__all__ = [
    "ActivationRecord",
    "ActivationState",
    "EmptyLedgerError",
    "EnteredBy",
    "GlucoseUnits",
    "OperationResult",
    "OperationStatus",
    "PersistenceFailure",
    "PresetActivationFlag",
    "TempTarget",
    "TempTargetRequest",
    "compute_percentage",
    "compute_target",
    "from_canonical",
    "to_canonical",
]
