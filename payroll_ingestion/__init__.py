"""
payroll_ingestion -- Normalization of ERP payloads.

Turns the loosely-typed JSON returned by the HR/ERP backend (salary
structure assignments, salary structures, the pension ceiling endpoint,
employee statutory settings) into the typed records the engines expect.

Architecture:
    payroll_ingestion/ is a top-level package.  Nothing in kernel/ or
    engines/ imports from ingestion.
"""

from payroll_ingestion.normalize import (
    normalize_assignment,
    normalize_assignments,
    normalize_rate_overrides,
    normalize_structure,
    parse_iso_date,
    parse_pension_ceiling_amount,
    to_flag,
    to_money,
    unwrap_payload,
)

__all__ = [
    "normalize_assignment",
    "normalize_assignments",
    "normalize_rate_overrides",
    "normalize_structure",
    "parse_iso_date",
    "parse_pension_ceiling_amount",
    "to_flag",
    "to_money",
    "unwrap_payload",
]
