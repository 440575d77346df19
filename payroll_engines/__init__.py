"""
Module: payroll_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    calculation engines.  This is the import surface for higher layers
    (payroll_config, payroll_ingestion, payroll_services).

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import payroll_kernel (and sibling engine modules).
    MUST NOT import payroll_config, payroll_ingestion or payroll_services.

Invariants enforced:
    - Purity: engines NEVER call ``datetime.now()`` or ``date.today()``;
      the resolver reads "today" through an injected ``Clock``.
    - Decimal-only arithmetic: floats are converted at the boundary.
    - Determinism: identical inputs always produce identical outputs.

Usage:
    from payroll_engines import calculate_payroll_from_gross
    from payroll_engines import resolve_active_assignment, expand_structure
"""

from payroll_engines.statutory import (
    DEFAULT_RATE_CONFIGURATION,
    ZM_PAYE_BANDS_MONTHLY,
    EmployeeDeductions,
    PayrollResult,
    PensionCeilingMode,
    RateConfiguration,
    StatutoryAmounts,
    TaxBand,
    calculate_health_insurance,
    calculate_income_tax,
    calculate_payroll_from_gross,
    calculate_pension,
    validate_tax_bands,
)
from payroll_engines.structure import (
    DeductionLine,
    EarningLine,
    ExpandedStructure,
    SalaryStructure,
    StatutoryDeductionLine,
    StructureAssignment,
    apply_statutory_amounts,
    expand_structure,
    resolve_active_assignment,
)

__all__ = [
    # Statutory
    "DEFAULT_RATE_CONFIGURATION",
    "ZM_PAYE_BANDS_MONTHLY",
    "EmployeeDeductions",
    "PayrollResult",
    "PensionCeilingMode",
    "RateConfiguration",
    "StatutoryAmounts",
    "TaxBand",
    "calculate_health_insurance",
    "calculate_income_tax",
    "calculate_payroll_from_gross",
    "calculate_pension",
    "validate_tax_bands",
    # Structure
    "DeductionLine",
    "EarningLine",
    "ExpandedStructure",
    "SalaryStructure",
    "StatutoryDeductionLine",
    "StructureAssignment",
    "apply_statutory_amounts",
    "expand_structure",
    "resolve_active_assignment",
]
