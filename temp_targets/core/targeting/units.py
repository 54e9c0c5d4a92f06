"""Glucose unit conversion.

Temp targets are always stored in mg/dL. Values entered in mmol/L are
scaled and rounded to whole mg/dL before they reach storage.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext

from temp_targets.core.targeting.constants import MMOL_EXCHANGE_RATE
from temp_targets.core.targeting.enums import GlucoseUnits

_EXCHANGE_RATE = Decimal(MMOL_EXCHANGE_RATE)
_WHOLE = Decimal("1")
_TENTH = Decimal("0.1")

Number = Decimal | float | int


def as_decimal(value: Number) -> Decimal:
    """Convert to Decimal via str so floats keep their shortest repr."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value: Number, places: Decimal = _WHOLE) -> Decimal:
    """Round half away from zero; the one rounding rule used project-wide.

    Works at whatever precision the value needs, so very large targets
    round instead of overflowing the default 28-digit context.
    """
    value = as_decimal(value)
    if not value.is_finite():
        return value
    with localcontext() as ctx:
        digits = value.adjusted() - places.as_tuple().exponent + 2
        ctx.prec = max(ctx.prec, digits)
        return value.quantize(places, rounding=ROUND_HALF_UP)


def to_canonical(value: Number, unit: GlucoseUnits) -> Decimal:
    """Convert a target to whole mg/dL.

    Args:
        value: Target in ``unit``.
        unit: Unit the value was entered in.

    Returns:
        The target in mg/dL, rounded to the nearest integer.
    """
    if unit == GlucoseUnits.mmol_l:
        return round_half_up(as_decimal(value) / _EXCHANGE_RATE)
    return round_half_up(value)


def from_canonical(value: Number, unit: GlucoseUnits) -> Decimal:
    """Convert a mg/dL target for display in ``unit``.

    mmol/L values are rounded to one decimal; mg/dL passes through.
    """
    if unit == GlucoseUnits.mmol_l:
        return round_half_up(as_decimal(value) * _EXCHANGE_RATE, _TENTH)
    return as_decimal(value)
