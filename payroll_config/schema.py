"""
Configuration Schema (``payroll_config.schema``).

Frozen dataclasses describing one statutory rate configuration set as
read from YAML: its identity, lifecycle status, the jurisdiction and
date range it governs, and the engine-level ``RateConfiguration`` it
carries.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum, unique

from payroll_engines.statutory import RateConfiguration


@unique
class ConfigStatus(str, Enum):
    """Lifecycle status for a rate configuration set."""

    DRAFT = "draft"
    REVIEWED = "reviewed"
    APPROVED = "approved"
    PUBLISHED = "published"
    SUPERSEDED = "superseded"


@dataclass(frozen=True)
class RateScope:
    """Where and when a rate set applies."""

    jurisdiction: str
    currency: str
    effective_from: date
    effective_to: date | None = None

    def covers(self, jurisdiction: str, as_of_date: date) -> bool:
        if self.jurisdiction not in (jurisdiction, "*"):
            return False
        if as_of_date < self.effective_from:
            return False
        return self.effective_to is None or as_of_date <= self.effective_to


@dataclass(frozen=True)
class RateConfigurationSet:
    """A versioned, scoped statutory rate configuration."""

    set_id: str
    version: int
    status: ConfigStatus
    scope: RateScope
    rates: RateConfiguration
    checksum: str
    description: str = ""

    @property
    def jurisdiction(self) -> str:
        return self.scope.jurisdiction

    @property
    def currency(self) -> str:
        return self.scope.currency

    @property
    def effective_from(self) -> date:
        return self.scope.effective_from

    @property
    def effective_to(self) -> date | None:
        return self.scope.effective_to
