"""
Structure Engine - Active salary-structure selection and expansion.

An employee is linked to salary structures through dated assignments.
The assignment in force on a given date is the one with the most recent
``from_date`` on or before that date.  The chosen structure's earning
lines are summed into the gross salary handed to the statutory engine.

Pure functions with no I/O.  Structures and assignments are read-only
inputs already fetched by the caller; fetching is not this module's
concern.  Dates are compared as ``datetime.date`` values, never as
strings.

Formula lines (``formula``) are carried through unevaluated.  Their
amounts are expected to be resolved by the ERP before they get here.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from payroll_engines.statutory import PayrollResult
from payroll_engines.tracer import traced_engine
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import ZERO, clamp_money
from payroll_kernel.logging_config import get_logger

logger = get_logger("engines.structure")

BASIC_COMPONENT_NAMES = frozenset({"basic", "basic salary"})


@dataclass(frozen=True)
class EarningLine:
    """An earning component of a salary structure."""

    component: str
    amount: Decimal
    is_tax_applicable: bool = True
    depends_on_payment_days: bool = False
    formula: str | None = None
    abbr: str | None = None

    @property
    def is_basic(self) -> bool:
        return self.component.strip().lower() in BASIC_COMPONENT_NAMES


@dataclass(frozen=True)
class DeductionLine:
    """A deduction component of a salary structure."""

    component: str
    amount: Decimal
    is_tax_applicable: bool = False
    depends_on_payment_days: bool = False
    formula: str | None = None
    abbr: str | None = None


@dataclass(frozen=True)
class SalaryStructure:
    """Named compensation template owned by a company."""

    name: str
    company: str | None = None
    earnings: tuple[EarningLine, ...] = ()
    deductions: tuple[DeductionLine, ...] = ()
    is_active: bool = True


@dataclass(frozen=True)
class StructureAssignment:
    """Links an employee to a salary structure from ``from_date`` onward."""

    employee: str
    salary_structure: str
    from_date: date
    company: str | None = None
    name: str | None = None  # ERP record id


@dataclass(frozen=True)
class ExpandedStructure:
    """Line items of a structure and the gross they add up to."""

    earnings: tuple[EarningLine, ...]
    deductions: tuple[DeductionLine, ...]
    gross_total: Decimal

    @property
    def basic_amount(self) -> Decimal:
        """Amount of the basic-salary earning, zero if there is none."""
        for line in self.earnings:
            if line.is_basic:
                return clamp_money(line.amount)
        return ZERO

    @property
    def taxable_total(self) -> Decimal:
        """Sum of tax-applicable earnings."""
        return sum(
            (clamp_money(line.amount) for line in self.earnings if line.is_tax_applicable),
            ZERO,
        )


@dataclass(frozen=True)
class StatutoryDeductionLine:
    """A structure deduction with its effective, display-ready amount."""

    component: str
    label: str
    amount: Decimal
    is_statutory: bool


# =============================================================================
# Resolver
# =============================================================================


@traced_engine("structure.resolve_assignment", "1.0", ("employee", "as_of"))
def resolve_active_assignment(
    employee: str,
    as_of: date | str | None,
    assignments: Iterable[StructureAssignment],
    *,
    clock: Clock | None = None,
    company: str | None = None,
) -> StructureAssignment | None:
    """
    Pick the assignment in force for *employee* on *as_of*.

    Among the employee's assignments that name a structure and start on
    or before *as_of*, returns the one with the latest ``from_date``.  On
    identical ``from_date`` values the first one encountered wins, and a
    warning is logged when the tie is on the date actually picked.
    Returns ``None`` when nothing qualifies.

    Args:
        employee: Employee identifier; compared after trimming whitespace.
        as_of: Evaluation date, or an ISO ``YYYY-MM-DD`` string.  ``None``
            means today, read from *clock*.  An unparseable string
            resolves to ``None``.
        assignments: All known assignments (any employee).
        clock: Time source for the ``as_of=None`` default.
        company: When given, only assignments for this company count.
    """
    code = (employee or "").strip()
    if not code:
        return None

    if as_of is None:
        effective = (clock or SystemClock()).today()
    else:
        effective = _coerce_as_of(as_of)
        if effective is None:
            logger.warning("as_of_unparseable", extra={
                "employee": code,
                "as_of": str(as_of),
            })
            return None

    best: StructureAssignment | None = None
    tied: list[StructureAssignment] = []
    for assignment in assignments:
        if (assignment.employee or "").strip() != code:
            continue
        if not (assignment.salary_structure or "").strip():
            continue
        if company is not None and assignment.company != company:
            continue
        if assignment.from_date > effective:
            continue

        if best is None or assignment.from_date > best.from_date:
            best = assignment
            tied = []
        elif assignment.from_date == best.from_date:
            tied.append(assignment)

    if best is None:
        logger.info("no_active_assignment", extra={
            "employee": code,
            "as_of": effective.isoformat(),
        })
        return None

    for ignored in tied:
        logger.warning("assignment_from_date_tie", extra={
            "employee": code,
            "from_date": best.from_date.isoformat(),
            "kept_structure": best.salary_structure,
            "ignored_structure": ignored.salary_structure,
        })
    return best


def _coerce_as_of(value: date | str) -> date | None:
    """Evaluation date as a plain ``date``; ISO strings are parsed."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def expand_structure(
    structure: SalaryStructure | None,
    fallback_gross: Decimal | None = None,
) -> ExpandedStructure:
    """
    Sum a structure's earnings into a gross figure.

    Line items are returned unchanged.  When the structure is missing or
    has no earnings, ``gross_total`` is *fallback_gross* (clamped, zero if
    not given) so a flat salary can still be calculated.
    """
    if structure is None or not structure.earnings:
        return ExpandedStructure(
            earnings=structure.earnings if structure else (),
            deductions=structure.deductions if structure else (),
            gross_total=clamp_money(fallback_gross),
        )

    gross = sum((clamp_money(line.amount) for line in structure.earnings), ZERO)
    return ExpandedStructure(
        earnings=structure.earnings,
        deductions=structure.deductions,
        gross_total=gross,
    )


def apply_statutory_amounts(
    deductions: Iterable[DeductionLine],
    result: PayrollResult,
) -> tuple[StatutoryDeductionLine, ...]:
    """
    Give each deduction line its effective amount.

    A line with a non-zero amount keeps it.  A zero-amount line whose
    component names a statutory deduction takes the computed figure:
    "napsa" the employee pension, "nhima" the health insurance, and
    "paye", "payee" or "income tax" the income tax.  Anything else stays
    at zero.
    """
    lines: list[StatutoryDeductionLine] = []
    for line in deductions:
        amount = clamp_money(line.amount)
        key = line.component.strip().lower()

        if amount != ZERO:
            lines.append(StatutoryDeductionLine(line.component, line.component, amount, False))
        elif "napsa" in key:
            lines.append(StatutoryDeductionLine(
                line.component,
                f"NAPSA ({result.rates.pension_employee_rate}%)",
                result.statutory.pension_employee,
                True,
            ))
        elif "nhima" in key:
            lines.append(StatutoryDeductionLine(
                line.component,
                f"NHIMA ({result.rates.health_insurance_rate}%)",
                result.statutory.health_insurance,
                True,
            ))
        elif "income tax" in key or "paye" in key:
            # "payee" contains "paye"
            lines.append(StatutoryDeductionLine(
                line.component, "PAYE", result.statutory.income_tax, True
            ))
        else:
            lines.append(StatutoryDeductionLine(line.component, line.component, ZERO, False))
    return tuple(lines)
