"""
Pytest fixtures for the payroll core test suite.

Provides:
- Structured logging configuration and log capture
- A deterministic clock
- Sample assignments and salary structures
"""

import json
import logging
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from payroll_engines.structure import (
    DeductionLine,
    EarningLine,
    SalaryStructure,
    StructureAssignment,
)
from payroll_kernel.domain.clock import DeterministicClock
from payroll_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture payroll_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            calculate_payroll_from_gross(Decimal("10000"))
            logs = captured_logs()
            assert any(r["message"] == "payroll_calculation_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("payroll_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# Clock fixtures


@pytest.fixture
def deterministic_clock():
    """Provide a deterministic clock for testing."""
    return DeterministicClock()


# =============================================================================
# Sample data
# =============================================================================


@pytest.fixture
def sample_assignments() -> list[StructureAssignment]:
    """EMP-001 moves from Junior (2024-01-01) to Senior (2024-05-01)."""
    return [
        StructureAssignment(
            employee="EMP-001",
            salary_structure="Junior",
            from_date=date(2024, 1, 1),
            company="Acme Zambia",
        ),
        StructureAssignment(
            employee="EMP-001",
            salary_structure="Senior",
            from_date=date(2024, 5, 1),
            company="Acme Zambia",
        ),
        StructureAssignment(
            employee="EMP-002",
            salary_structure="Junior",
            from_date=date(2024, 3, 1),
            company="Acme Zambia",
        ),
    ]


@pytest.fixture
def senior_structure() -> SalaryStructure:
    """Gross 10,000: basic 8,000 plus housing 2,000, with statutory placeholders."""
    return SalaryStructure(
        name="Senior",
        company="Acme Zambia",
        earnings=(
            EarningLine(component="Basic", amount=Decimal("8000")),
            EarningLine(component="Housing Allowance", amount=Decimal("2000")),
        ),
        deductions=(
            DeductionLine(component="NAPSA", amount=Decimal("0")),
            DeductionLine(component="NHIMA", amount=Decimal("0")),
            DeductionLine(component="PAYE", amount=Decimal("0")),
            DeductionLine(component="Staff Loan", amount=Decimal("250")),
        ),
    )


@pytest.fixture
def junior_structure() -> SalaryStructure:
    return SalaryStructure(
        name="Junior",
        company="Acme Zambia",
        earnings=(EarningLine(component="Basic", amount=Decimal("3000")),),
    )


@pytest.fixture
def structures(senior_structure, junior_structure) -> dict[str, SalaryStructure]:
    return {s.name: s for s in (senior_structure, junior_structure)}
