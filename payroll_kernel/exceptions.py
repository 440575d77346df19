"""
Typed Exception Hierarchy for the Payroll Kernel.

===============================================================================
WHAT RAISES AND WHAT DOES NOT
===============================================================================

The statutory calculator, the structure resolver and the payload
normalization boundary NEVER raise for bad data. Negative, non-numeric,
missing or non-finite amounts degrade to zero; a missing assignment or
structure degrades to "no result". Those figures feed a display layer,
not a ledger of record.

Exceptions are reserved for CONFIGURATION mistakes, which are programming
or deployment errors and should fail loudly when the configuration is
built, never in the middle of a calculation:

    try:
        rates = get_active_rates("ZM", as_of_date=date(2025, 1, 31))
    except ConfigurationSetNotFoundError as e:
        log.error("no_rates", extra={"jurisdiction": e.jurisdiction})
    except RateConfigurationError as e:
        api_response(code=e.code, reason=e.reason)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PayrollKernelError (base)
    |
    +-- ConfigurationError
        +-- RateConfigurationError
        |   +-- InvalidTaxBandError
        +-- ConfigurationSetNotFoundError   (also a FileNotFoundError)

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Configuration   | INVALID_RATE_CONFIGURATION  | Band table not ordered / contiguous,
                |                             | unbounded band missing or not last
                | INVALID_TAX_BAND            | Band upper bound below lower bound
                | CONFIGURATION_SET_NOT_FOUND | No rate set covers jurisdiction/date
===============================================================================
"""


class PayrollKernelError(Exception):
    """
    Base exception for all payroll kernel errors.

    All subclasses carry a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PAYROLL_KERNEL_ERROR"


class ConfigurationError(PayrollKernelError):
    """Base exception for configuration errors."""

    code: str = "CONFIGURATION_ERROR"


class RateConfigurationError(ConfigurationError):
    """A rate configuration violates its structural invariants."""

    code: str = "INVALID_RATE_CONFIGURATION"

    def __init__(self, reason: str, source: str | None = None):
        self.reason = reason
        self.source = source
        where = f" ({source})" if source else ""
        super().__init__(f"Invalid rate configuration{where}: {reason}")


class InvalidTaxBandError(RateConfigurationError):
    """A single tax band is malformed."""

    code: str = "INVALID_TAX_BAND"

    def __init__(self, lower: str, upper: str | None, reason: str):
        self.lower = lower
        self.upper = upper
        super().__init__(f"band [{lower}, {upper if upper is not None else 'unbounded'}]: {reason}")


class ConfigurationSetNotFoundError(ConfigurationError, FileNotFoundError):
    """No rate configuration set matches the requested scope and date."""

    code: str = "CONFIGURATION_SET_NOT_FOUND"

    def __init__(self, jurisdiction: str, as_of_date: str, config_dir: str):
        self.jurisdiction = jurisdiction
        self.as_of_date = as_of_date
        self.config_dir = config_dir
        super().__init__(
            f"No rate configuration set found for jurisdiction='{jurisdiction}' "
            f"as_of_date={as_of_date} in {config_dir}"
        )
