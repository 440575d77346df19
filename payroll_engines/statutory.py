"""
Statutory Engine - Pension, health insurance and PAYE from a gross salary.

Applies the Zambian statutory deductions to a monthly gross salary:

    - NAPSA pension, employee and employer shares, capped by a ceiling
    - NHIMA health insurance, a flat percentage with no ceiling
    - PAYE income tax, progressive marginal bands

Pure functions with no I/O.  Rates, ceiling and bands are supplied as an
explicit ``RateConfiguration``; nothing is read from global state.

Every calculation is total: negative, missing, non-numeric or non-finite
amounts are clamped to zero at the boundary of each function and the
result degrades to zero.  These figures feed a display layer, so a stray
value must not cascade into an exception.  Only an invalid band table is
an error, and it is rejected when the ``RateConfiguration`` is built.

Usage:
    from decimal import Decimal
    from payroll_engines.statutory import calculate_payroll_from_gross

    result = calculate_payroll_from_gross(Decimal("10000"))
    print(result.statutory.income_tax)   # Decimal("1141.00")
    print(result.net_pay)                # Decimal("8159.00")
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any

from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.values import (
    ZERO,
    clamp_money,
    percent_of,
    round_money,
    to_decimal,
)
from payroll_kernel.exceptions import InvalidTaxBandError, RateConfigurationError
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.statutory")

ZERO_MONEY = Decimal("0.00")

DEFAULT_PENSION_EMPLOYEE_RATE = Decimal("5")
DEFAULT_PENSION_EMPLOYER_RATE = Decimal("5")
DEFAULT_HEALTH_INSURANCE_RATE = Decimal("2")
DEFAULT_PENSION_CEILING = Decimal("29816.67")


class PensionCeilingMode(str, Enum):
    """What the pension ceiling caps."""

    SALARY = "salary"  # Cap the pensionable salary, then apply the rate
    CONTRIBUTION = "contribution"  # Apply the rate, then cap the contribution


def _coerce_ceiling_mode(mode: Any) -> PensionCeilingMode:
    if isinstance(mode, PensionCeilingMode):
        return mode
    try:
        return PensionCeilingMode(str(mode).strip().lower())
    except ValueError:
        logger.warning("pension_ceiling_mode_unknown", extra={"mode": str(mode)})
        return PensionCeilingMode.SALARY


@dataclass(frozen=True)
class TaxBand:
    """
    One progressive income-tax band.

    The rate applies only to the slice of income between ``lower`` and
    ``upper``.  ``upper=None`` marks the unbounded top band.
    """

    lower: Decimal
    upper: Decimal | None
    rate: Decimal  # Percent, e.g. 20 for 20%

    def __post_init__(self) -> None:
        lower = to_decimal(self.lower)
        upper = None if self.upper is None else to_decimal(self.upper)
        rate = to_decimal(self.rate)
        object.__setattr__(self, "lower", lower)
        object.__setattr__(self, "upper", upper)
        object.__setattr__(self, "rate", rate)

        if lower < ZERO:
            raise InvalidTaxBandError(str(lower), _fmt(upper), "lower bound is negative")
        if upper is not None and upper < lower:
            raise InvalidTaxBandError(str(lower), _fmt(upper), "upper bound is below lower bound")
        if rate < ZERO:
            raise InvalidTaxBandError(str(lower), _fmt(upper), "rate is negative")

    @property
    def is_unbounded(self) -> bool:
        return self.upper is None

    def taxable_slice(self, income: Decimal) -> Decimal:
        """Portion of *income* falling inside this band."""
        if income < self.lower:
            return ZERO
        top = income if self.upper is None else min(income, self.upper)
        return max(ZERO, top - self.lower)


def _fmt(value: Decimal | None) -> str | None:
    return None if value is None else str(value)


ZM_PAYE_BANDS_MONTHLY: tuple[TaxBand, ...] = (
    TaxBand(lower=Decimal("0"), upper=Decimal("5100"), rate=Decimal("0")),
    TaxBand(lower=Decimal("5100"), upper=Decimal("7100"), rate=Decimal("20")),
    TaxBand(lower=Decimal("7100"), upper=Decimal("9200"), rate=Decimal("30")),
    TaxBand(lower=Decimal("9200"), upper=None, rate=Decimal("37")),
)


def validate_tax_bands(bands: Iterable[TaxBand], source: str | None = None) -> tuple[TaxBand, ...]:
    """
    Check a band table and return it as a tuple.

    Raises:
        RateConfigurationError: if the table is empty, not ascending, not
            contiguous, or does not end with exactly one unbounded band.
    """
    table = tuple(bands)
    if not table:
        raise RateConfigurationError("tax band table is empty", source)

    for band in table:
        if not isinstance(band, TaxBand):
            raise RateConfigurationError(
                f"tax band must be a TaxBand, got {type(band).__name__}", source
            )

    unbounded = [i for i, band in enumerate(table) if band.is_unbounded]
    if len(unbounded) != 1:
        raise RateConfigurationError(
            f"expected exactly one unbounded band, found {len(unbounded)}", source
        )
    if unbounded[0] != len(table) - 1:
        raise RateConfigurationError("the unbounded band must be the last band", source)

    for prev, band in zip(table, table[1:]):
        if band.lower <= prev.lower:
            raise RateConfigurationError(
                f"bands must ascend by lower bound ({prev.lower} then {band.lower})", source
            )
        if band.lower != prev.upper:
            raise RateConfigurationError(
                f"bands are not contiguous: {prev.upper} is followed by {band.lower}", source
            )

    return table


@dataclass(frozen=True)
class RateConfiguration:
    """
    Statutory rates, pension ceiling and PAYE band table.

    Immutable.  Use ``with_overrides`` to derive a configuration with
    different values; the original is never modified.
    """

    pension_employee_rate: Decimal = DEFAULT_PENSION_EMPLOYEE_RATE
    pension_employer_rate: Decimal = DEFAULT_PENSION_EMPLOYER_RATE
    health_insurance_rate: Decimal = DEFAULT_HEALTH_INSURANCE_RATE
    pension_ceiling: Decimal = DEFAULT_PENSION_CEILING
    tax_bands: tuple[TaxBand, ...] = field(default=ZM_PAYE_BANDS_MONTHLY)
    pension_ceiling_mode: PensionCeilingMode = PensionCeilingMode.SALARY

    def __post_init__(self) -> None:
        for name in (
            "pension_employee_rate",
            "pension_employer_rate",
            "health_insurance_rate",
            "pension_ceiling",
        ):
            raw = getattr(self, name)
            value = to_decimal(raw, default=Decimal("NaN"))
            if value.is_nan():
                raise RateConfigurationError(f"{name} is not a number: {raw!r}")
            if value < ZERO:
                raise RateConfigurationError(f"{name} cannot be negative: {value}")
            object.__setattr__(self, name, value)

        object.__setattr__(self, "tax_bands", validate_tax_bands(self.tax_bands))

        raw_mode = self.pension_ceiling_mode
        if isinstance(raw_mode, str) and not isinstance(raw_mode, PensionCeilingMode):
            raw_mode = raw_mode.strip().lower()
        try:
            mode = PensionCeilingMode(raw_mode)
        except ValueError as exc:
            raise RateConfigurationError(
                f"unknown pension_ceiling_mode: {self.pension_ceiling_mode!r}"
            ) from exc
        object.__setattr__(self, "pension_ceiling_mode", mode)

    def with_overrides(self, **changes: Any) -> RateConfiguration:
        """Return a new configuration; ``None`` values keep the current field."""
        effective = {k: v for k, v in changes.items() if v is not None}
        if not effective:
            return self
        return replace(self, **effective)

    def to_dict(self) -> dict[str, Any]:
        return {
            "pension_employee_rate": str(self.pension_employee_rate),
            "pension_employer_rate": str(self.pension_employer_rate),
            "health_insurance_rate": str(self.health_insurance_rate),
            "pension_ceiling": str(self.pension_ceiling),
            "pension_ceiling_mode": self.pension_ceiling_mode.value,
            "tax_bands": [
                {
                    "lower": str(b.lower),
                    "upper": None if b.upper is None else str(b.upper),
                    "rate": str(b.rate),
                }
                for b in self.tax_bands
            ],
        }


DEFAULT_RATE_CONFIGURATION = RateConfiguration()


@dataclass(frozen=True)
class StatutoryAmounts:
    """Per-component statutory amounts."""

    pension_employee: Decimal
    pension_employer: Decimal
    health_insurance: Decimal
    income_tax: Decimal


@dataclass(frozen=True)
class EmployeeDeductions:
    """Totals deducted from the employee's pay."""

    total_contributions: Decimal  # Employee pension + health insurance
    total_tax: Decimal
    total_deductions: Decimal


@dataclass(frozen=True)
class PayrollResult:
    """
    Outcome of a statutory payroll calculation.

    Computed fresh on each call and never persisted.  Invariant:
    ``net_pay + deductions_employee_side.total_deductions == gross_salary``.
    """

    gross_salary: Decimal
    taxable_income: Decimal
    rates: RateConfiguration
    statutory: StatutoryAmounts
    deductions_employee_side: EmployeeDeductions
    net_pay: Decimal

    @property
    def pension_ceiling(self) -> Decimal:
        return self.rates.pension_ceiling

    @property
    def pension_ceiling_mode(self) -> PensionCeilingMode:
        return self.rates.pension_ceiling_mode

    @property
    def employer_cost(self) -> Decimal:
        """Gross pay plus the employer's pension share."""
        return self.gross_salary + self.statutory.pension_employer

    @property
    def is_zero(self) -> bool:
        return self.gross_salary == ZERO and self.net_pay == ZERO

    @classmethod
    def zero(cls, rates: RateConfiguration | None = None) -> PayrollResult:
        """All-zero result, the displayable "nothing to compute" state."""
        return cls(
            gross_salary=ZERO_MONEY,
            taxable_income=ZERO_MONEY,
            rates=rates or DEFAULT_RATE_CONFIGURATION,
            statutory=StatutoryAmounts(
                pension_employee=ZERO_MONEY,
                pension_employer=ZERO_MONEY,
                health_insurance=ZERO_MONEY,
                income_tax=ZERO_MONEY,
            ),
            deductions_employee_side=EmployeeDeductions(
                total_contributions=ZERO_MONEY,
                total_tax=ZERO_MONEY,
                total_deductions=ZERO_MONEY,
            ),
            net_pay=ZERO_MONEY,
        )

    def to_dict(self) -> dict[str, Any]:
        """Display-ready mapping; amounts as strings."""
        return {
            "gross_salary": str(self.gross_salary),
            "taxable_income": str(self.taxable_income),
            "rates": self.rates.to_dict(),
            "pension_ceiling": str(self.pension_ceiling),
            "pension_ceiling_mode": self.pension_ceiling_mode.value,
            "statutory": {
                "pension_employee": str(self.statutory.pension_employee),
                "pension_employer": str(self.statutory.pension_employer),
                "health_insurance": str(self.statutory.health_insurance),
                "income_tax": str(self.statutory.income_tax),
            },
            "deductions_employee_side": {
                "total_contributions": str(self.deductions_employee_side.total_contributions),
                "total_tax": str(self.deductions_employee_side.total_tax),
                "total_deductions": str(self.deductions_employee_side.total_deductions),
            },
            "net_pay": str(self.net_pay),
        }


# =============================================================================
# Calculator
# =============================================================================


def calculate_pension(
    gross_salary: Any,
    rate: Any = DEFAULT_PENSION_EMPLOYEE_RATE,
    ceiling: Any = DEFAULT_PENSION_CEILING,
    mode: PensionCeilingMode | str = PensionCeilingMode.SALARY,
) -> Decimal:
    """
    Pension contribution on a gross salary.

    With the default ``SALARY`` mode the contribution base is
    ``min(gross, ceiling)`` and the result is ``base * rate / 100``, so
    contributions stop growing once gross pay passes the ceiling.
    ``CONTRIBUTION`` mode applies the rate to the full gross and caps the
    resulting contribution at ``ceiling`` instead.
    """
    gross = clamp_money(gross_salary)
    pct = clamp_money(rate)
    cap = clamp_money(ceiling)

    if _coerce_ceiling_mode(mode) is PensionCeilingMode.CONTRIBUTION:
        return round_money(min(percent_of(gross, pct), cap))
    return round_money(percent_of(min(gross, cap), pct))


def calculate_health_insurance(
    gross_salary: Any,
    rate: Any = DEFAULT_HEALTH_INSURANCE_RATE,
) -> Decimal:
    """Health insurance: ``gross * rate / 100``, no ceiling."""
    return round_money(percent_of(clamp_money(gross_salary), clamp_money(rate)))


def calculate_income_tax(
    taxable_income: Any,
    bands: Iterable[TaxBand] = ZM_PAYE_BANDS_MONTHLY,
) -> Decimal:
    """
    Progressive marginal income tax.

    Walks the bands in ascending order and taxes only the slice of income
    inside each band.  Income below the first band's lower bound is not
    taxed; the unbounded top band absorbs everything above the last bound.
    The sum is rounded once, at the end.
    """
    income = clamp_money(taxable_income)
    if income <= ZERO:
        return ZERO_MONEY

    tax = ZERO
    for band in sorted(bands, key=lambda b: b.lower):
        tax += percent_of(band.taxable_slice(income), band.rate)
    return round_money(tax)


@traced_engine(
    "statutory.payroll",
    "1.0",
    ("gross_salary", "taxable_income", "statutory_base"),
)
def calculate_payroll_from_gross(
    gross_salary: Any,
    config: RateConfiguration | None = None,
    *,
    pension_employee_rate: Any = None,
    pension_employer_rate: Any = None,
    health_insurance_rate: Any = None,
    pension_ceiling: Any = None,
    pension_ceiling_mode: PensionCeilingMode | str | None = None,
    tax_bands: Iterable[TaxBand] | None = None,
    taxable_income: Any = None,
    statutory_base: Any = None,
) -> PayrollResult:
    """
    Full statutory breakdown for one gross salary.

    Employee pension is a pre-tax deduction: taxable income is
    ``gross - employee pension`` unless ``taxable_income`` is given, which
    is used as-is when an upstream structure already encodes a different
    taxable base.  ``statutory_base`` computes pension and health
    insurance on a base other than gross (e.g. the basic salary alone).

    Args:
        gross_salary: Total earnings before deductions.
        config: Rates, ceiling and bands.  Defaults to
            ``DEFAULT_RATE_CONFIGURATION``.
        pension_employee_rate, pension_employer_rate, health_insurance_rate,
        pension_ceiling, pension_ceiling_mode, tax_bands: Per-call
            overrides applied on top of ``config``.
        taxable_income: Override for the PAYE base.
        statutory_base: Override for the pension / health-insurance base.

    Returns:
        PayrollResult.

    Raises:
        RateConfigurationError: only if ``tax_bands`` is not a valid band
            table.  Numeric input never raises.
    """
    rates = (config or DEFAULT_RATE_CONFIGURATION).with_overrides(
        pension_employee_rate=_optional_money(pension_employee_rate),
        pension_employer_rate=_optional_money(pension_employer_rate),
        health_insurance_rate=_optional_money(health_insurance_rate),
        pension_ceiling=_optional_money(pension_ceiling),
        pension_ceiling_mode=(
            None if pension_ceiling_mode is None else _coerce_ceiling_mode(pension_ceiling_mode)
        ),
        tax_bands=None if tax_bands is None else tuple(tax_bands),
    )

    gross = clamp_money(gross_salary)
    base = gross if statutory_base is None else clamp_money(statutory_base)

    pension_employee = calculate_pension(
        base, rates.pension_employee_rate, rates.pension_ceiling, rates.pension_ceiling_mode
    )
    pension_employer = calculate_pension(
        base, rates.pension_employer_rate, rates.pension_ceiling, rates.pension_ceiling_mode
    )
    health_insurance = calculate_health_insurance(base, rates.health_insurance_rate)

    if taxable_income is None:
        taxable = max(ZERO, gross - pension_employee)
    else:
        taxable = clamp_money(taxable_income)
    income_tax = calculate_income_tax(taxable, rates.tax_bands)

    total_contributions = pension_employee + health_insurance
    total_deductions = total_contributions + income_tax
    net_pay = gross - total_deductions

    logger.debug("payroll_calculation_completed", extra={
        "gross_salary": str(gross),
        "taxable_income": str(taxable),
        "pension_employee": str(pension_employee),
        "health_insurance": str(health_insurance),
        "income_tax": str(income_tax),
        "net_pay": str(net_pay),
    })

    return PayrollResult(
        gross_salary=gross,
        taxable_income=taxable,
        rates=rates,
        statutory=StatutoryAmounts(
            pension_employee=pension_employee,
            pension_employer=pension_employer,
            health_insurance=health_insurance,
            income_tax=income_tax,
        ),
        deductions_employee_side=EmployeeDeductions(
            total_contributions=total_contributions,
            total_tax=income_tax,
            total_deductions=total_deductions,
        ),
        net_pay=net_pay,
    )


def _optional_money(value: Any) -> Decimal | None:
    return None if value is None else clamp_money(value)
