"""
Configuration Loader (``payroll_config.loader``).

Responsibility
--------------
Loads rate-set YAML files and parses them into typed
``payroll_config.schema`` dataclass instances.  The public runtime
entrypoint is ``payroll_config.get_active_rates()``; this module is the
parsing machinery behind it.

Invariants enforced
-------------------
* Configuration parsing is strict: a missing or non-numeric rate raises
  ``RateConfigurationError``.  The lenient clamp-to-zero policy belongs to
  calculation input, not to configuration.
* Every parsed object is a frozen dataclass.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the raw
  document for identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``RateConfigurationError``.
* Invalid band table  -> ``RateConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any

import yaml

from payroll_config.schema import ConfigStatus, RateConfigurationSet, RateScope
from payroll_engines.statutory import PensionCeilingMode, RateConfiguration, TaxBand
from payroll_kernel.domain.values import to_decimal
from payroll_kernel.exceptions import RateConfigurationError

_NAN = Decimal("NaN")


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_date(value: Any) -> date:
    """
    Parse a date from YAML (string or date object).

    Raises:
        ValueError: if ``value`` is not a valid date representation.
    """
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise ValueError(f"Cannot parse date from {value!r}")


def parse_decimal(value: Any, field_name: str, source: str | None = None) -> Decimal:
    """Strictly parse a configuration number."""
    result = to_decimal(value, default=_NAN)
    if result.is_nan():
        raise RateConfigurationError(f"{field_name} is not a number: {value!r}", source)
    return result


def parse_tax_band(data: dict[str, Any], source: str | None = None) -> TaxBand:
    """Parse a TaxBand; ``upper`` may be omitted or null for the top band."""
    try:
        lower = data["lower"]
        rate = data["rate"]
    except KeyError as exc:
        raise RateConfigurationError(f"tax band is missing {exc.args[0]!r}", source) from exc
    upper = data.get("upper")
    return TaxBand(
        lower=parse_decimal(lower, "tax_bands.lower", source),
        upper=None if upper is None else parse_decimal(upper, "tax_bands.upper", source),
        rate=parse_decimal(rate, "tax_bands.rate", source),
    )


def parse_rates(data: dict[str, Any], source: str | None = None) -> RateConfiguration:
    """
    Parse a ``RateConfiguration`` from the ``rates`` mapping.

    All four numeric fields and a non-empty ``tax_bands`` list are
    required; ``pension_ceiling_mode`` defaults to ``salary``.
    """
    required = (
        "pension_employee_rate",
        "pension_employer_rate",
        "health_insurance_rate",
        "pension_ceiling",
        "tax_bands",
    )
    missing = [key for key in required if key not in data]
    if missing:
        raise RateConfigurationError(f"rates is missing {', '.join(missing)}", source)

    mode_raw = str(data.get("pension_ceiling_mode", PensionCeilingMode.SALARY.value))
    try:
        mode = PensionCeilingMode(mode_raw.strip().lower())
    except ValueError as exc:
        raise RateConfigurationError(f"unknown pension_ceiling_mode: {mode_raw!r}", source) from exc

    try:
        return RateConfiguration(
            pension_employee_rate=parse_decimal(
                data["pension_employee_rate"], "pension_employee_rate", source
            ),
            pension_employer_rate=parse_decimal(
                data["pension_employer_rate"], "pension_employer_rate", source
            ),
            health_insurance_rate=parse_decimal(
                data["health_insurance_rate"], "health_insurance_rate", source
            ),
            pension_ceiling=parse_decimal(data["pension_ceiling"], "pension_ceiling", source),
            tax_bands=tuple(parse_tax_band(b, source) for b in data["tax_bands"] or ()),
            pension_ceiling_mode=mode,
        )
    except RateConfigurationError as exc:
        if exc.source is not None:
            raise
        raise RateConfigurationError(exc.reason, source) from exc


def parse_scope(data: dict[str, Any], source: str | None = None) -> RateScope:
    """Parse a RateScope from a dict."""
    try:
        return RateScope(
            jurisdiction=str(data["jurisdiction"]).strip().upper(),
            currency=str(data["currency"]).strip().upper(),
            effective_from=parse_date(data["effective_from"]),
            effective_to=parse_date(data["effective_to"]) if data.get("effective_to") else None,
        )
    except KeyError as exc:
        raise RateConfigurationError(f"scope is missing {exc.args[0]!r}", source) from exc
    except ValueError as exc:
        raise RateConfigurationError(f"scope has an invalid date: {exc}", source) from exc


def parse_rate_set(data: dict[str, Any], source: str | None = None) -> RateConfigurationSet:
    """
    Parse a full ``RateConfigurationSet`` document.

    Raises:
        RateConfigurationError: on missing keys, bad numbers, bad dates or
            an invalid band table.
    """
    for key in ("set_id", "scope", "rates"):
        if key not in data:
            raise RateConfigurationError(f"rate set is missing {key!r}", source)

    try:
        status = ConfigStatus(str(data.get("status", ConfigStatus.DRAFT.value)).lower())
    except ValueError as exc:
        raise RateConfigurationError(f"unknown status: {data.get('status')!r}", source) from exc
    try:
        version = int(data.get("version", 1))
    except (TypeError, ValueError) as exc:
        raise RateConfigurationError(f"version is not an integer: {data.get('version')!r}", source) from exc

    return RateConfigurationSet(
        set_id=str(data["set_id"]),
        version=version,
        status=status,
        scope=parse_scope(data["scope"], source),
        rates=parse_rates(data["rates"], source),
        checksum=compute_checksum(data),
        description=str(data.get("description", "")),
    )


def load_rate_set(path: Path) -> RateConfigurationSet:
    """Load and parse one rate-set YAML file."""
    return parse_rate_set(load_yaml_file(path), source=str(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
