"""Percentage <-> target conversion along the half-basal-target curve.

With ``c = hbt - 100`` the sensitivity ratio at a target ``t`` is
``c / (c + t - 100)``. These two functions invert that relation in each
direction and fall back to the configured maximum ratio where the curve
is undefined.
"""

from decimal import Decimal, DivisionByZero, InvalidOperation

from temp_targets.core.targeting.units import Number, as_decimal, round_half_up

_HUNDRED = Decimal(100)


def _target_for_ratio(ratio: Decimal, c: Decimal) -> Decimal:
    return (c / ratio) - c + _HUNDRED


def compute_target(percentage: Number, hbt: Number, max_ratio: Number) -> Decimal:
    """Target (mg/dL) that produces ``percentage`` sensitivity at ``hbt``.

    When the requested ratio lands on the wrong side of the curve
    (``c * (c + target - 100) <= 0``) the target for ``max_ratio`` is
    returned instead. A zero percentage counts as such a case.

    The result is exact; callers round it.
    """
    ratio = as_decimal(percentage) / _HUNDRED
    c = as_decimal(hbt) - _HUNDRED

    if ratio != 0:
        target = _target_for_ratio(ratio, c)
        if c * (c + target - _HUNDRED) > 0:
            return target

    return _target_for_ratio(as_decimal(max_ratio), c)


def compute_percentage(target: Number, hbt: Number, max_ratio: Number) -> Decimal:
    """Whole-number sensitivity percentage produced by ``target`` at ``hbt``.

    The ratio is capped at ``max_ratio``; a target sitting on the curve's
    pole yields the cap as well.
    """
    c = as_decimal(hbt) - _HUNDRED
    cap = as_decimal(max_ratio)

    try:
        ratio = c / (c + as_decimal(target) - _HUNDRED)
    except (DivisionByZero, InvalidOperation):
        ratio = cap

    if ratio > cap:
        ratio = cap

    return round_half_up(ratio * _HUNDRED)
