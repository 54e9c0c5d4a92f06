"""Temp target constants."""

from typing import Final

# mmol/L = mg/dL * exchange rate
MMOL_EXCHANGE_RATE: Final[str] = "0.0555"

# Percentage mode defaults: 100% leaves sensitivity unchanged and a
# half-basal target of 160 mg/dL halves basal at that target.
DEFAULT_PERCENTAGE: Final[float] = 100.0
DEFAULT_HALF_BASAL_TARGET: Final[float] = 160.0

# Fallback upper bound on the sensitivity ratio when no setting is supplied
DEFAULT_MAX_SENSITIVITY_RATIO: Final[float] = 1.2

# Labels used when an entry is not named by the user
CUSTOM_LABEL: Final[str] = "Temp target"
CANCEL_LABEL: Final[str] = "Cancel"
