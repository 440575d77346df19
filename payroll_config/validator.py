"""
Rate set validation (``payroll_config.validator``).

Structural checks (required keys, numeric values, band contiguity) run
while parsing and raise.  The checks here are semantic: they look at a
fully parsed ``RateConfigurationSet`` and report every problem at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from payroll_config.schema import ConfigStatus, RateConfigurationSet

_MAX_PERCENT = Decimal("100")


@dataclass
class ConfigValidationResult:
    """Result of validating a rate set."""

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0


def validate_rate_set(rate_set: RateConfigurationSet) -> ConfigValidationResult:
    """Run semantic checks over a parsed rate set."""
    result = ConfigValidationResult()
    scope = rate_set.scope
    rates = rate_set.rates

    if not scope.jurisdiction:
        result.errors.append("scope.jurisdiction is empty")
    if len(scope.currency) != 3 or not scope.currency.isalpha():
        result.errors.append(f"scope.currency is not an ISO 4217 code: {scope.currency!r}")
    if scope.effective_to is not None and scope.effective_to < scope.effective_from:
        result.errors.append(
            f"scope.effective_to ({scope.effective_to}) is before "
            f"effective_from ({scope.effective_from})"
        )
    if rate_set.version < 1:
        result.errors.append(f"version must be positive, got {rate_set.version}")

    for name in ("pension_employee_rate", "pension_employer_rate", "health_insurance_rate"):
        if getattr(rates, name) > _MAX_PERCENT:
            result.errors.append(f"rates.{name} exceeds 100%")
    for band in rates.tax_bands:
        if band.rate > _MAX_PERCENT:
            result.errors.append(f"tax band starting at {band.lower} exceeds 100%")

    if rates.pension_ceiling == 0:
        result.warnings.append("rates.pension_ceiling is zero; no pension will be deducted")
    if rates.tax_bands[0].lower != 0:
        result.warnings.append(
            f"first tax band starts at {rates.tax_bands[0].lower}; income below it is untaxed"
        )
    if rate_set.status is ConfigStatus.DRAFT:
        result.warnings.append(f"rate set {rate_set.set_id} is still a draft")

    return result
