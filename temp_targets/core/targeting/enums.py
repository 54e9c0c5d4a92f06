"""Temp target enums."""

from enum import StrEnum, auto


class GlucoseUnits(StrEnum):
    """Glucose units. mg/dL is the canonical storage unit."""

    mg_dl = "mg/dL"
    mmol_l = "mmol/L"


class EnteredBy(StrEnum):
    """Provenance of a temp target entry."""

    manual = auto()
    system = auto()


class ActivationState(StrEnum):
    """Conceptual activation state derived from the latest ledger record.

    ``active_curve`` means a percentage-derived target is being tracked
    through its half-basal-target curve; ``active_flat`` is an absolute
    target with no curve parameters.
    """

    inactive = auto()
    active_flat = auto()
    active_curve = auto()


class OperationStatus(StrEnum):
    """Outcome of a controller operation."""

    applied = auto()
    invalid_duration = auto()
    preset_not_found = auto()
