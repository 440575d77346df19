"""
payroll_services.preview_service -- Payroll preview for one employee.

Responsibility:
    Compose the structure resolver and the statutory calculator: find the
    salary structure in force for an employee, expand it into a gross
    salary and run the statutory calculation on it.

Architecture position:
    Services -- orchestration over engines + config.  ERP date strings
    are parsed with ``payroll_ingestion.parse_iso_date``.
    Receives the structure lookup, clock and rate configuration by
    injection; performs no I/O of its own beyond what the injected
    lookup does.

Invariants enforced:
    - Absence is not an error: no assignment or no structure yields
      ``PayrollResult.zero()``.
    - Exceptions raised by the injected ``structure_lookup`` propagate
      unchanged.
    - "Today" comes from the injected ``Clock``, never the wall clock.

Usage:
    from payroll_services import PayrollPreviewService

    service = PayrollPreviewService(clock=SystemClock(), jurisdiction="ZM")
    preview = service.preview("EMP-001", None, assignments, structures.get)
    print(preview.result.net_pay)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import uuid4

from payroll_config import get_active_rates
from payroll_engines.statutory import (
    DEFAULT_RATE_CONFIGURATION,
    PayrollResult,
    RateConfiguration,
    calculate_payroll_from_gross,
)
from payroll_engines.structure import (
    ExpandedStructure,
    SalaryStructure,
    StatutoryDeductionLine,
    StructureAssignment,
    apply_statutory_amounts,
    expand_structure,
    resolve_active_assignment,
)
from payroll_ingestion import parse_iso_date
from payroll_kernel.domain.clock import Clock, SystemClock
from payroll_kernel.domain.values import ZERO
from payroll_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.preview")

StructureLookup = Callable[[str], SalaryStructure | None]

_EMPTY_EXPANSION = ExpandedStructure(earnings=(), deductions=(), gross_total=ZERO)


@dataclass(frozen=True)
class PayrollPreview:
    """Everything a payslip preview screen shows for one employee."""

    employee: str
    as_of: date
    assignment: StructureAssignment | None
    structure: SalaryStructure | None
    expanded: ExpandedStructure
    deduction_lines: tuple[StatutoryDeductionLine, ...]
    result: PayrollResult
    correlation_id: str

    @property
    def has_structure(self) -> bool:
        return self.structure is not None


class PayrollPreviewService:
    """
    Builds payroll previews with an injected clock and rate source.

    Rates come from, in order: the ``rate_config`` given here, the active
    ``payroll_config`` set for ``jurisdiction`` on the preview date, or
    the built-in defaults.
    """

    def __init__(
        self,
        clock: Clock | None = None,
        rate_config: RateConfiguration | None = None,
        *,
        jurisdiction: str | None = None,
        pension_on_basic: bool = False,
    ):
        self._clock = clock or SystemClock()
        self._rate_config = rate_config
        self._jurisdiction = jurisdiction
        self._pension_on_basic = pension_on_basic

    def rates_for(self, as_of: date) -> RateConfiguration:
        if self._rate_config is not None:
            return self._rate_config
        if self._jurisdiction is not None:
            return get_active_rates(self._jurisdiction, as_of)
        return DEFAULT_RATE_CONFIGURATION

    def preview(
        self,
        employee: str,
        as_of: date | str | None,
        assignments: Iterable[StructureAssignment],
        structure_lookup: StructureLookup,
        *,
        fallback_gross: Decimal | None = None,
        rate_overrides: Mapping[str, Any] | None = None,
        company: str | None = None,
        correlation_id: str | None = None,
    ) -> PayrollPreview:
        """
        Resolve, expand and calculate for *employee* on *as_of*.

        Args:
            employee: Employee identifier.
            as_of: Evaluation date, as a ``date`` or an ERP date string
                such as ``"2024-08-01"``; ``None`` means today per the
                clock.  A string that is not a date yields the zero
                preview dated today.
            assignments: Candidate assignments (any employee).
            structure_lookup: Maps a structure name to its structure, or
                ``None`` if unknown.
            fallback_gross: Gross used when the structure has no earnings.
            rate_overrides: Per-employee rate kwargs, as produced by
                ``payroll_ingestion.normalize_rate_overrides``.
            company: Restrict assignments to this company.
            correlation_id: Id stamped on every log record of this
                preview; a fresh one is generated when omitted.
        """
        correlation_id = correlation_id or uuid4().hex
        with LogContext.bind(
            correlation_id=correlation_id,
            employee=(employee or "").strip() or None,
            company=company,
        ):
            effective_date = self._clock.today() if as_of is None else parse_iso_date(as_of)
            if effective_date is None:
                logger.warning("as_of_unparseable", extra={"as_of": str(as_of)})
                today = self._clock.today()
                return self._empty(employee, today, None, self.rates_for(today), correlation_id)

            rates = self.rates_for(effective_date)
            overrides = dict(rate_overrides or {})

            assignment = resolve_active_assignment(
                employee, effective_date, assignments, company=company
            )
            if assignment is None:
                return self._empty(employee, effective_date, None, rates, correlation_id)

            structure = structure_lookup(assignment.salary_structure)
            if structure is None:
                logger.warning("salary_structure_not_found", extra={
                    "salary_structure": assignment.salary_structure,
                })
                return self._empty(employee, effective_date, assignment, rates, correlation_id)

            with LogContext.bind(salary_structure=structure.name):
                expanded = expand_structure(structure, fallback_gross)
                statutory_base = None
                if self._pension_on_basic and expanded.basic_amount > ZERO:
                    statutory_base = expanded.basic_amount

                result = calculate_payroll_from_gross(
                    expanded.gross_total,
                    rates,
                    statutory_base=statutory_base,
                    **overrides,
                )
                lines = apply_statutory_amounts(expanded.deductions, result)

                logger.info("payroll_preview_built", extra={
                    "as_of": effective_date.isoformat(),
                    "gross_salary": str(result.gross_salary),
                    "net_pay": str(result.net_pay),
                })

        return PayrollPreview(
            employee=employee,
            as_of=effective_date,
            assignment=assignment,
            structure=structure,
            expanded=expanded,
            deduction_lines=lines,
            result=result,
            correlation_id=correlation_id,
        )

    @staticmethod
    def _empty(
        employee: str,
        as_of: date,
        assignment: StructureAssignment | None,
        rates: RateConfiguration,
        correlation_id: str,
    ) -> PayrollPreview:
        return PayrollPreview(
            employee=employee,
            as_of=as_of,
            assignment=assignment,
            structure=None,
            expanded=_EMPTY_EXPANSION,
            deduction_lines=(),
            result=PayrollResult.zero(rates),
            correlation_id=correlation_id,
        )


def build_payroll_preview(
    employee: str,
    as_of: date | str | None,
    assignments: Iterable[StructureAssignment],
    structure_lookup: StructureLookup,
    rate_config: RateConfiguration | None = None,
    *,
    clock: Clock | None = None,
    fallback_gross: Decimal | None = None,
) -> PayrollResult:
    """Functional form of ``PayrollPreviewService.preview``; returns the result only."""
    service = PayrollPreviewService(clock=clock, rate_config=rate_config)
    return service.preview(
        employee,
        as_of,
        assignments,
        structure_lookup,
        fallback_gross=fallback_gross,
    ).result
