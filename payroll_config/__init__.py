"""
payroll_config -- single public entrypoint for statutory rate configuration.

Responsibility:
    Provides the ONLY way to obtain statutory rates at runtime through
    ``get_active_rates()``.  No other component reads rate files or
    environment variables directly.  Returns an engine-level
    ``RateConfiguration``; ``get_active_rate_set()`` returns the full
    versioned ``RateConfigurationSet`` when its identity is needed too.

Architecture position:
    Configuration -- YAML-driven rate sets, validated on load.
    This package sits above ``payroll_kernel`` / ``payroll_engines`` and
    below ``payroll_services``.  Engines MUST NEVER import from
    ``payroll_config``; they receive a ``RateConfiguration`` value.

Invariants enforced:
    - Single entrypoint: all runtime rates flow through ``get_active_rates()``.
    - Load-time validation: a set must parse and pass semantic validation
      before its rates are returned.
    - Deterministic identity: same YAML always yields the same checksum.

Failure modes:
    - ``ConfigurationSetNotFoundError`` (a ``FileNotFoundError``) -- no set
      covers the requested jurisdiction / date.
    - ``RateConfigurationError`` -- a set is malformed or fails validation.

Audit relevance:
    Every successful lookup emits a ``PAYROLL_CONFIG_TRACE`` log entry with
    the set id, version, checksum and scope, tying each computed payslip
    back to the exact rate version that produced it.
"""

from __future__ import annotations

from datetime import date
from pathlib import Path

from payroll_config.loader import load_rate_set
from payroll_config.schema import ConfigStatus, RateConfigurationSet
from payroll_config.validator import validate_rate_set
from payroll_engines.statutory import RateConfiguration
from payroll_kernel.exceptions import ConfigurationSetNotFoundError, RateConfigurationError
from payroll_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"
RATES_FILE = "rates.yaml"

__all__ = [
    "ConfigStatus",
    "RateConfigurationSet",
    "get_active_rate_set",
    "get_active_rates",
]


def get_active_rates(
    jurisdiction: str,
    as_of_date: date,
    config_dir: Path | None = None,
) -> RateConfiguration:
    """The public rate entrypoint.

    Args:
        jurisdiction: Jurisdiction code, e.g. ``"ZM"``.  Case-insensitive.
        as_of_date: Date for effective date filtering.
        config_dir: Override path to the rate sets directory.
            Defaults to payroll_config/sets/.

    Raises:
        ConfigurationSetNotFoundError: If no set matches.
        RateConfigurationError: If the matching set fails validation.
    """
    return get_active_rate_set(jurisdiction, as_of_date, config_dir).rates


def get_active_rate_set(
    jurisdiction: str,
    as_of_date: date,
    config_dir: Path | None = None,
) -> RateConfigurationSet:
    """Like ``get_active_rates`` but returns the whole versioned set."""
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    rate_set = _find_matching_set(sets_dir, jurisdiction.strip().upper(), as_of_date)

    validation = validate_rate_set(rate_set)
    for warning in validation.warnings:
        _logger.warning("rate_set_warning", extra={
            "config_set_id": rate_set.set_id,
            "warning": warning,
        })
    if not validation.is_valid:
        raise RateConfigurationError(
            "validation failed: " + "; ".join(validation.errors),
            source=rate_set.set_id,
        )

    _logger.info(
        "PAYROLL_CONFIG_TRACE",
        extra={
            "trace_type": "PAYROLL_CONFIG_TRACE",
            "config_set_id": rate_set.set_id,
            "config_set_version": rate_set.version,
            "config_set_status": rate_set.status.value,
            "checksum": rate_set.checksum,
            "scope_jurisdiction": rate_set.jurisdiction,
            "scope_currency": rate_set.currency,
            "as_of_date": as_of_date.isoformat(),
        },
    )
    return rate_set


def _find_matching_set(
    sets_dir: Path, jurisdiction: str, as_of_date: date
) -> RateConfigurationSet:
    """Find the rate set covering *jurisdiction* on *as_of_date*.

    Scans every subdirectory of *sets_dir* holding a ``rates.yaml``.
    Among the matches, PUBLISHED sets win, then the highest version.
    There is no single-set fallback: rates for the wrong jurisdiction or
    period are never returned.
    """
    if not sets_dir.is_dir():
        raise ConfigurationSetNotFoundError(jurisdiction, as_of_date.isoformat(), str(sets_dir))

    candidates: list[RateConfigurationSet] = []
    for subdir in sorted(sets_dir.iterdir()):
        rates_file = subdir / RATES_FILE
        if not subdir.is_dir() or not rates_file.exists():
            continue
        rate_set = load_rate_set(rates_file)
        if rate_set.scope.covers(jurisdiction, as_of_date):
            candidates.append(rate_set)

    if not candidates:
        raise ConfigurationSetNotFoundError(jurisdiction, as_of_date.isoformat(), str(sets_dir))

    if len(candidates) == 1:
        return candidates[0]

    published = [c for c in candidates if c.status == ConfigStatus.PUBLISHED]
    return max(published or candidates, key=lambda c: c.version)
