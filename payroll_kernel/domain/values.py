"""
Values -- Decimal coercion and rounding for payroll figures.

Responsibility:
    The numeric floor of the payroll core.  Every amount or percentage that
    enters a calculation passes through ``to_decimal`` / ``clamp_money``,
    which turn loosely-typed input into a finite ``Decimal`` and degrade
    anything unusable to zero.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str`` so
      ``0.1`` becomes ``Decimal("0.1")``, never its binary expansion.
    - Results are always finite: NaN and infinities become zero.
    - Money is rounded to 2 decimal places with ROUND_HALF_UP.

Failure modes:
    None.  These helpers never raise.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any

ZERO = Decimal("0")
CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_decimal(value: Any, default: Decimal = ZERO) -> Decimal:
    """
    Convert *value* to a finite Decimal, or return *default*.

    Accepts Decimal, int, float and numeric strings.  ``None``, booleans,
    empty or non-numeric strings, NaN and infinities yield *default*.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        text = value.strip() if isinstance(value, str) else str(value)
        if not text:
            return default
        try:
            result = Decimal(text)
        except (InvalidOperation, ValueError):
            return default
    else:
        return default
    if not result.is_finite():
        return default
    return result


def clamp_money(value: Any) -> Decimal:
    """Coerce to Decimal and clamp to the natural floor of zero."""
    amount = to_decimal(value)
    return amount if amount > ZERO else ZERO


def round_money(amount: Decimal) -> Decimal:
    """
    Round to cents, half up.

    The working precision is widened to fit every integer digit plus the
    two cents digits and one carry digit, so very large amounts round
    instead of raising ``InvalidOperation``.
    """
    with localcontext() as ctx:
        ctx.prec = max(ctx.prec, amount.adjusted() + 4)
        return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def percent_of(amount: Decimal, rate: Decimal) -> Decimal:
    """``amount * rate / 100`` without rounding."""
    return amount * rate / HUNDRED
