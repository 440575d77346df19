"""Pure domain layer of the payroll kernel: values and clock."""

from payroll_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from payroll_kernel.domain.values import (
    CENT,
    HUNDRED,
    ZERO,
    clamp_money,
    percent_of,
    round_money,
    to_decimal,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "CENT",
    "HUNDRED",
    "ZERO",
    "clamp_money",
    "percent_of",
    "round_money",
    "to_decimal",
]
