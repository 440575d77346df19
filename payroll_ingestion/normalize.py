"""
Normalization: untyped ERP payloads to typed payroll records.

The only place where loosely-shaped HTTP responses (dicts, lists,
strings) are turned into ``payroll_engines`` types.  Everything past
this module sees ``Decimal`` amounts and ``date`` values only.

Pure functions, ZERO I/O.  Nothing here raises for bad data: a malformed
record is skipped with a warning and a bad amount becomes zero.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from payroll_engines.structure import (
    DeductionLine,
    EarningLine,
    SalaryStructure,
    StructureAssignment,
)
from payroll_kernel.domain.values import clamp_money, to_decimal
from payroll_kernel.logging_config import get_logger

logger = get_logger("ingestion.normalize")

_DATE_FORMATS = ("%Y-%m-%d", "%Y/%m/%d", "%d/%m/%Y", "%d-%m-%Y")
_TRUE_STRINGS = frozenset({"1", "true", "yes", "on", "y"})

_CEILING_KEYS = (
    ("data", "ceiling_amount"),
    ("ceiling_amount",),
    ("data", "amount"),
    ("amount",),
)

_RATE_KEYS = {
    "pension_employee_rate": ("napsaEmployeeRate", "napsa_employee_rate"),
    "pension_employer_rate": ("napsaEmployerRate", "napsa_employer_rate"),
    "health_insurance_rate": ("nhimaRate", "nhima_rate"),
}


# -----------------------------------------------------------------------------
# Primitive coercion (pure)
# -----------------------------------------------------------------------------


def unwrap_payload(response: Any) -> Any:
    """
    Strip the ERP's response envelopes.

    Responses arrive as ``{"data": {"data": [...]}}``, ``{"data": [...]}``
    or already bare.  Returns the innermost ``data`` that is present and
    not ``None``, or *response* itself when there is no envelope.
    """
    if not isinstance(response, Mapping) or "data" not in response:
        return response
    outer = response["data"]
    if isinstance(outer, Mapping) and outer.get("data") is not None:
        return outer["data"]
    return outer


def to_money(value: Any) -> Decimal:
    """Amount from JSON: numbers or strings like ``"12,500.00"``; floor zero."""
    if isinstance(value, str):
        value = value.replace(",", "").strip()
    return clamp_money(value)


def parse_iso_date(value: Any) -> date | None:
    """
    Parse a calendar date, or ``None`` if *value* is not one.

    Accepts ``date``, ``datetime`` and strings.  ERP datetimes such as
    ``"2024-06-01 00:00:00"`` keep only the date part.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    s = value.strip()[:10]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(s, fmt).date()
        except ValueError:
            continue
    return None


def to_flag(value: Any, default: bool = False) -> bool:
    """ERP booleans: ``True``, ``1``, ``"1"``, ``"Yes"`` ..."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    return default


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _records(payload: Any) -> list[Any]:
    items = unwrap_payload(payload)
    if isinstance(items, list):
        return items
    if isinstance(items, Mapping):
        return [items]
    return []


# -----------------------------------------------------------------------------
# Assignments
# -----------------------------------------------------------------------------


def normalize_assignment(record: Any) -> StructureAssignment | None:
    """
    Build a ``StructureAssignment`` from one ERP record.

    Returns ``None`` (with a warning) when the employee, structure name or
    from_date is missing or unparseable.
    """
    if not isinstance(record, Mapping):
        logger.warning("assignment_record_skipped", extra={
            "reason": "not_a_mapping",
            "record_type": type(record).__name__,
        })
        return None

    employee = _text(record.get("employee"))
    structure = _text(record.get("salary_structure"))
    from_date = parse_iso_date(record.get("from_date"))

    if not employee or not structure or from_date is None:
        logger.warning("assignment_record_skipped", extra={
            "reason": "missing_field",
            "record_name": _text(record.get("name")) or None,
            "has_employee": bool(employee),
            "has_salary_structure": bool(structure),
            "from_date": _text(record.get("from_date")) or None,
        })
        return None

    return StructureAssignment(
        employee=employee,
        salary_structure=structure,
        from_date=from_date,
        company=_text(record.get("company")) or None,
        name=_text(record.get("name")) or None,
    )


def normalize_assignments(payload: Any) -> tuple[StructureAssignment, ...]:
    """Normalize a (possibly enveloped) list of assignment records."""
    result = []
    for record in _records(payload):
        assignment = normalize_assignment(record)
        if assignment is not None:
            result.append(assignment)
    return tuple(result)


# -----------------------------------------------------------------------------
# Structures
# -----------------------------------------------------------------------------


def _line_fields(row: Mapping[str, Any], default_tax_applicable: bool) -> dict[str, Any]:
    formula = _text(row.get("formula")) or None
    if formula is not None and not to_flag(row.get("amount_based_on_formula"), default=True):
        formula = None
    return {
        "component": _text(row.get("component")),
        "amount": to_money(row.get("amount")),
        "is_tax_applicable": to_flag(
            row.get("is_tax_applicable", row.get("tax_applicable")),
            default=default_tax_applicable,
        ),
        "depends_on_payment_days": to_flag(row.get("depends_on_payment_days")),
        "formula": formula,
        "abbr": _text(row.get("abbr")) or None,
    }


def _earning(row: Any) -> EarningLine | None:
    if not isinstance(row, Mapping) or not _text(row.get("component")):
        return None
    return EarningLine(**_line_fields(row, default_tax_applicable=True))


def _deduction(row: Any) -> DeductionLine | None:
    if not isinstance(row, Mapping) or not _text(row.get("component")):
        return None
    return DeductionLine(**_line_fields(row, default_tax_applicable=False))


def _collect(rows: Any, build) -> tuple:
    if not isinstance(rows, list):
        return ()
    lines = []
    for row in rows:
        line = build(row)
        if line is None:
            logger.warning("structure_line_skipped", extra={"row": repr(row)[:80]})
            continue
        lines.append(line)
    return tuple(lines)


def normalize_structure(payload: Any, name: str | None = None) -> SalaryStructure | None:
    """
    Build a ``SalaryStructure`` from either ERP shape.

    The detail shape carries ``earnings`` and ``deductions`` lists.  The
    editor shape carries one ``components`` list whose rows have a
    ``type`` of earning or deduction and an ``enabled`` flag; disabled
    rows are dropped.  *name* is used when the payload has none.
    """
    record = unwrap_payload(payload)
    if isinstance(record, list) and len(record) == 1:
        record = record[0]
    if not isinstance(record, Mapping):
        logger.warning("structure_payload_skipped", extra={
            "reason": "not_a_mapping",
            "salary_structure": name,
        })
        return None

    structure_name = _text(record.get("name")) or _text(name)
    if not structure_name:
        logger.warning("structure_payload_skipped", extra={"reason": "missing_name"})
        return None

    if "components" in record and not ("earnings" in record or "deductions" in record):
        earnings, deductions = _split_components(record.get("components"))
    else:
        earnings = _collect(record.get("earnings"), _earning)
        deductions = _collect(record.get("deductions"), _deduction)

    return SalaryStructure(
        name=structure_name,
        company=_text(record.get("company")) or None,
        earnings=earnings,
        deductions=deductions,
        is_active=to_flag(record.get("is_active"), default=True),
    )


def _split_components(
    rows: Any,
) -> tuple[tuple[EarningLine, ...], tuple[DeductionLine, ...]]:
    earnings: list[EarningLine] = []
    deductions: list[DeductionLine] = []
    if not isinstance(rows, list):
        return (), ()

    for row in rows:
        if not isinstance(row, Mapping) or not to_flag(row.get("enabled"), default=True):
            continue
        kind = _text(row.get("type")).lower()
        if kind == "earning":
            line = _earning(row)
            if line is not None:
                earnings.append(line)
                continue
        elif kind == "deduction":
            line = _deduction(row)
            if line is not None:
                deductions.append(line)
                continue
        logger.warning("structure_component_skipped", extra={
            "component": _text(row.get("component")) or None,
            "type": kind or None,
        })
    return tuple(earnings), tuple(deductions)


# -----------------------------------------------------------------------------
# Statutory settings
# -----------------------------------------------------------------------------


def parse_pension_ceiling_amount(response: Any) -> Decimal | None:
    """
    Pension ceiling from the ceiling endpoint's response.

    Looks at ``data.ceiling_amount``, ``ceiling_amount``, ``data.amount``
    and ``amount`` in that order; the first key present wins even if its
    value is unusable (then it is zero).  ``None`` when no key is present.
    """
    for path in _CEILING_KEYS:
        node: Any = response
        for key in path:
            if not isinstance(node, Mapping) or node.get(key) is None:
                node = None
                break
            node = node[key]
        if node is not None:
            return to_money(node)
    return None


def normalize_rate_overrides(record: Any) -> dict[str, Decimal]:
    """
    Per-employee rate overrides as ``calculate_payroll_from_gross`` kwargs.

    Reads the employee's ``statutoryDeductions`` block (or the record
    itself when it is that block).  Missing or non-numeric rates are
    omitted so the configured defaults apply.
    """
    block = unwrap_payload(record)
    if isinstance(block, Mapping) and isinstance(block.get("statutoryDeductions"), Mapping):
        block = block["statutoryDeductions"]
    if not isinstance(block, Mapping):
        return {}

    overrides: dict[str, Decimal] = {}
    for field_name, keys in _RATE_KEYS.items():
        for key in keys:
            raw = block.get(key)
            if isinstance(raw, str):
                raw = raw.replace("%", "").strip()
            value = to_decimal(raw, default=Decimal("NaN"))
            if not value.is_nan():
                overrides[field_name] = clamp_money(value)
                break
    return overrides
