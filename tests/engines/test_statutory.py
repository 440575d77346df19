"""
Tests for the Statutory Engine.

Covers:
- Pension with salary and contribution ceilings
- Health insurance
- Progressive income tax band walk
- Full payroll breakdown from gross
- Rate configuration validation
- Robustness against bad numeric input
"""

from decimal import Decimal

import pytest

from payroll_engines.statutory import (
    DEFAULT_RATE_CONFIGURATION,
    ZM_PAYE_BANDS_MONTHLY,
    PayrollResult,
    PensionCeilingMode,
    RateConfiguration,
    TaxBand,
    calculate_health_insurance,
    calculate_income_tax,
    calculate_payroll_from_gross,
    calculate_pension,
)
from payroll_kernel.exceptions import InvalidTaxBandError, RateConfigurationError


class TestPension:
    """Tests for calculate_pension."""

    def test_below_ceiling(self):
        assert calculate_pension(Decimal("10000")) == Decimal("500.00")

    def test_salary_capped_at_ceiling(self):
        """29,816.67 x 5% = 1,490.8335, rounded half up."""
        assert calculate_pension(Decimal("50000")) == Decimal("1490.83")

    def test_exactly_at_ceiling(self):
        assert calculate_pension(Decimal("29816.67")) == calculate_pension(Decimal("100000"))

    def test_contribution_mode_caps_contribution(self):
        result = calculate_pension(
            Decimal("50000"), Decimal("5"), Decimal("1000"), PensionCeilingMode.CONTRIBUTION
        )
        assert result == Decimal("1000.00")

    def test_salary_mode_caps_salary(self):
        result = calculate_pension(
            Decimal("50000"), Decimal("5"), Decimal("1000"), PensionCeilingMode.SALARY
        )
        assert result == Decimal("50.00")

    def test_mode_accepts_string(self):
        result = calculate_pension(Decimal("50000"), Decimal("5"), Decimal("1000"), "contribution")
        assert result == Decimal("1000.00")

    def test_unknown_mode_falls_back_to_salary(self, captured_logs):
        result = calculate_pension(Decimal("50000"), Decimal("5"), Decimal("1000"), "bogus")

        assert result == Decimal("50.00")
        assert any(r["message"] == "pension_ceiling_mode_unknown" for r in captured_logs())

    @pytest.mark.parametrize("gross", [Decimal("0"), Decimal("-100"), None, "abc", float("nan")])
    def test_invalid_gross_is_zero(self, gross):
        assert calculate_pension(gross) == Decimal("0")


class TestHealthInsurance:
    """Tests for calculate_health_insurance."""

    def test_two_percent(self):
        assert calculate_health_insurance(Decimal("10000")) == Decimal("200.00")

    def test_no_ceiling(self):
        assert calculate_health_insurance(Decimal("100000")) == Decimal("2000.00")

    def test_custom_rate(self):
        assert calculate_health_insurance(Decimal("10000"), Decimal("1")) == Decimal("100.00")

    def test_negative_gross_is_zero(self):
        assert calculate_health_insurance(Decimal("-10000")) == Decimal("0")


class TestIncomeTax:
    """Tests for the progressive band walk."""

    @pytest.mark.parametrize(
        "income, expected",
        [
            (Decimal("0"), Decimal("0.00")),
            (Decimal("5100"), Decimal("0.00")),
            (Decimal("7100"), Decimal("400.00")),
            (Decimal("9200"), Decimal("1030.00")),
            (Decimal("9500"), Decimal("1141.00")),
            (Decimal("10000"), Decimal("1326.00")),
        ],
    )
    def test_band_boundaries(self, income, expected):
        assert calculate_income_tax(income) == expected

    def test_just_above_first_threshold(self):
        """0.01 x 20% = 0.002, which rounds to zero."""
        assert calculate_income_tax(Decimal("5100.01")) == Decimal("0.00")

    def test_negative_income_is_zero(self):
        assert calculate_income_tax(Decimal("-500")) == Decimal("0")

    def test_monotone_non_decreasing(self):
        previous = Decimal("0")
        for step in range(0, 20001, 250):
            tax = calculate_income_tax(Decimal(step))
            assert tax >= previous
            previous = tax

    def test_continuous_at_boundaries(self):
        """No jump larger than the top marginal rate across a band edge."""
        for band in ZM_PAYE_BANDS_MONTHLY[:-1]:
            below = calculate_income_tax(band.upper - Decimal("0.01"))
            at = calculate_income_tax(band.upper)
            assert at - below <= Decimal("0.01")

    def test_income_below_first_band_untaxed(self):
        bands = (
            TaxBand(lower=Decimal("1000"), upper=Decimal("2000"), rate=Decimal("10")),
            TaxBand(lower=Decimal("2000"), upper=None, rate=Decimal("20")),
        )
        assert calculate_income_tax(Decimal("500"), bands) == Decimal("0.00")
        assert calculate_income_tax(Decimal("3000"), bands) == Decimal("300.00")

    def test_unsorted_bands_are_walked_ascending(self):
        bands = tuple(reversed(ZM_PAYE_BANDS_MONTHLY))
        assert calculate_income_tax(Decimal("9500"), bands) == Decimal("1141.00")


class TestPayrollFromGross:
    """Tests for the full breakdown."""

    def test_reference_scenario(self):
        result = calculate_payroll_from_gross(Decimal("10000"))

        assert result.gross_salary == Decimal("10000")
        assert result.statutory.pension_employee == Decimal("500.00")
        assert result.statutory.pension_employer == Decimal("500.00")
        assert result.statutory.health_insurance == Decimal("200.00")
        assert result.taxable_income == Decimal("9500.00")
        assert result.statutory.income_tax == Decimal("1141.00")
        assert result.deductions_employee_side.total_contributions == Decimal("700.00")
        assert result.deductions_employee_side.total_tax == Decimal("1141.00")
        assert result.deductions_employee_side.total_deductions == Decimal("1841.00")
        assert result.net_pay == Decimal("8159.00")

    def test_below_tax_threshold(self):
        result = calculate_payroll_from_gross(Decimal("3000"))

        assert result.statutory.pension_employee == Decimal("150.00")
        assert result.statutory.health_insurance == Decimal("60.00")
        assert result.statutory.income_tax == Decimal("0.00")
        assert result.net_pay == Decimal("2790.00")

    def test_above_pension_ceiling(self):
        result = calculate_payroll_from_gross(Decimal("50000"))

        assert result.statutory.pension_employee == Decimal("1490.83")
        assert result.statutory.health_insurance == Decimal("1000.00")
        assert result.taxable_income == Decimal("48509.17")
        assert result.statutory.income_tax == Decimal("15574.39")
        assert result.net_pay == Decimal("31934.78")

    @pytest.mark.parametrize("gross", [Decimal("0"), Decimal("-2500"), None, "not a number"])
    def test_non_positive_gross_gives_zero(self, gross):
        result = calculate_payroll_from_gross(gross)

        assert result.gross_salary == Decimal("0")
        assert result.deductions_employee_side.total_deductions == Decimal("0")
        assert result.net_pay == Decimal("0")

    def test_accepts_strings_and_floats(self):
        expected = calculate_payroll_from_gross(Decimal("10000"))

        assert calculate_payroll_from_gross("10000").net_pay == expected.net_pay
        assert calculate_payroll_from_gross(10000.0).net_pay == expected.net_pay

    @pytest.mark.parametrize(
        "gross",
        ["0.01", "1234.56", "5100", "7100.50", "9200", "29816.67", "45000.99", "250000"],
    )
    def test_conservation(self, gross):
        result = calculate_payroll_from_gross(Decimal(gross))
        assert result.net_pay + result.deductions_employee_side.total_deductions == result.gross_salary

    def test_idempotent(self):
        assert calculate_payroll_from_gross(Decimal("12345.67")) == calculate_payroll_from_gross(
            Decimal("12345.67")
        )

    def test_taxable_income_override(self):
        result = calculate_payroll_from_gross(Decimal("10000"), taxable_income=Decimal("10000"))

        assert result.taxable_income == Decimal("10000")
        assert result.statutory.income_tax == Decimal("1326.00")

    def test_statutory_base_override(self):
        result = calculate_payroll_from_gross(Decimal("10000"), statutory_base=Decimal("8000"))

        assert result.statutory.pension_employee == Decimal("400.00")
        assert result.statutory.health_insurance == Decimal("160.00")
        assert result.taxable_income == Decimal("9600.00")
        assert result.statutory.income_tax == Decimal("1178.00")
        assert result.net_pay == Decimal("8262.00")

    def test_rate_overrides(self):
        result = calculate_payroll_from_gross(
            Decimal("10000"),
            pension_employee_rate=Decimal("6"),
            pension_employer_rate=Decimal("4"),
            health_insurance_rate=Decimal("1"),
        )

        assert result.statutory.pension_employee == Decimal("600.00")
        assert result.statutory.pension_employer == Decimal("400.00")
        assert result.statutory.health_insurance == Decimal("100.00")
        assert result.rates.pension_employee_rate == Decimal("6")

    def test_ceiling_override(self):
        result = calculate_payroll_from_gross(Decimal("10000"), pension_ceiling=Decimal("2000"))

        assert result.statutory.pension_employee == Decimal("100.00")
        assert result.pension_ceiling == Decimal("2000")

    def test_contribution_mode_override(self):
        result = calculate_payroll_from_gross(
            Decimal("50000"),
            pension_ceiling=Decimal("1000"),
            pension_ceiling_mode="contribution",
        )

        assert result.statutory.pension_employee == Decimal("1000.00")
        assert result.pension_ceiling_mode is PensionCeilingMode.CONTRIBUTION

    def test_tax_band_override(self):
        flat = [TaxBand(lower=Decimal("0"), upper=None, rate=Decimal("10"))]
        result = calculate_payroll_from_gross(Decimal("10000"), tax_bands=flat)

        assert result.statutory.income_tax == Decimal("950.00")

    def test_invalid_tax_band_override_raises(self):
        gapped = [
            TaxBand(lower=Decimal("0"), upper=Decimal("1000"), rate=Decimal("0")),
            TaxBand(lower=Decimal("2000"), upper=None, rate=Decimal("10")),
        ]
        with pytest.raises(RateConfigurationError):
            calculate_payroll_from_gross(Decimal("10000"), tax_bands=gapped)

    def test_explicit_config(self):
        config = RateConfiguration(health_insurance_rate=Decimal("1"))
        result = calculate_payroll_from_gross(Decimal("10000"), config)

        assert result.statutory.health_insurance == Decimal("100.00")
        assert result.rates is config

    def test_employer_cost(self):
        result = calculate_payroll_from_gross(Decimal("10000"))
        assert result.employer_cost == Decimal("10500.00")

    def test_emits_trace_and_completion_logs(self, captured_logs):
        calculate_payroll_from_gross(Decimal("10000"))
        logs = captured_logs()

        completed = [r for r in logs if r["message"] == "payroll_calculation_completed"]
        traces = [r for r in logs if r["message"] == "PAYROLL_ENGINE_TRACE"]
        assert completed and completed[0]["net_pay"] == "8159.00"
        assert traces and traces[0]["engine_name"] == "statutory.payroll"


class TestVeryLargeAmounts:
    """Amounts beyond the default 28-digit Decimal context still compute."""

    def test_pension_salary_mode_is_capped(self):
        assert calculate_pension(Decimal("1e30")) == Decimal("1490.83")

    def test_pension_contribution_mode_uncapped(self):
        result = calculate_pension(
            Decimal("1e30"), Decimal("5"), Decimal("1e40"), PensionCeilingMode.CONTRIBUTION
        )

        assert result == Decimal("5E+28")
        assert result.as_tuple().exponent == -2

    def test_health_insurance(self):
        result = calculate_health_insurance(1e30)

        assert result == Decimal("2E+28")
        assert result.as_tuple().exponent == -2

    def test_income_tax(self):
        tax = calculate_income_tax(1e30)

        assert tax.is_finite()
        assert tax.as_tuple().exponent == -2
        assert Decimal("3.6E+29") < tax < Decimal("3.7E+29")

    @pytest.mark.parametrize("gross", [1e30, Decimal("1e30"), "5e26"])
    def test_payroll_from_gross(self, gross):
        result = calculate_payroll_from_gross(gross)

        assert result.statutory.pension_employee == Decimal("1490.83")
        assert result.statutory.health_insurance == result.gross_salary * Decimal("0.02")
        assert result.statutory.income_tax.as_tuple().exponent == -2
        assert result.net_pay.is_finite()
        assert Decimal("0") < result.net_pay < result.gross_salary


class TestPayrollResult:
    """Tests for the result value object."""

    def test_zero(self):
        result = PayrollResult.zero()

        assert result.is_zero
        assert result.rates == DEFAULT_RATE_CONFIGURATION
        assert result.net_pay == Decimal("0.00")

    def test_to_dict(self):
        data = calculate_payroll_from_gross(Decimal("10000")).to_dict()

        assert data["net_pay"] == "8159.00"
        assert data["statutory"]["income_tax"] == "1141.00"
        assert data["deductions_employee_side"]["total_deductions"] == "1841.00"
        assert data["pension_ceiling_mode"] == "salary"
        assert data["rates"]["tax_bands"][-1]["upper"] is None


class TestRateConfiguration:
    """Tests for configuration validation."""

    def test_defaults(self):
        config = RateConfiguration()

        assert config.pension_employee_rate == Decimal("5")
        assert config.pension_employer_rate == Decimal("5")
        assert config.health_insurance_rate == Decimal("2")
        assert config.pension_ceiling == Decimal("29816.67")
        assert config.tax_bands == ZM_PAYE_BANDS_MONTHLY

    def test_with_overrides_returns_new_instance(self):
        base = RateConfiguration()
        changed = base.with_overrides(health_insurance_rate=Decimal("1"), pension_ceiling=None)

        assert changed is not base
        assert changed.health_insurance_rate == Decimal("1")
        assert changed.pension_ceiling == base.pension_ceiling
        assert base.health_insurance_rate == Decimal("2")

    def test_with_no_overrides_returns_self(self):
        base = RateConfiguration()
        assert base.with_overrides(pension_ceiling=None) is base

    def test_coerces_numbers(self):
        config = RateConfiguration(pension_employee_rate="5.5", pension_ceiling=1000)
        assert config.pension_employee_rate == Decimal("5.5")
        assert config.pension_ceiling == Decimal("1000")

    def test_negative_rate_rejected(self):
        with pytest.raises(RateConfigurationError):
            RateConfiguration(pension_employee_rate=Decimal("-1"))

    def test_non_numeric_ceiling_rejected(self):
        with pytest.raises(RateConfigurationError):
            RateConfiguration(pension_ceiling="lots")

    def test_empty_band_table_rejected(self):
        with pytest.raises(RateConfigurationError):
            RateConfiguration(tax_bands=())

    def test_two_unbounded_bands_rejected(self):
        bands = (
            TaxBand(lower=Decimal("0"), upper=None, rate=Decimal("0")),
            TaxBand(lower=Decimal("100"), upper=None, rate=Decimal("10")),
        )
        with pytest.raises(RateConfigurationError):
            RateConfiguration(tax_bands=bands)

    def test_unbounded_band_must_be_last(self):
        bands = (
            TaxBand(lower=Decimal("0"), upper=None, rate=Decimal("0")),
            TaxBand(lower=Decimal("100"), upper=Decimal("200"), rate=Decimal("10")),
        )
        with pytest.raises(RateConfigurationError):
            RateConfiguration(tax_bands=bands)

    def test_non_contiguous_bands_rejected(self):
        bands = (
            TaxBand(lower=Decimal("0"), upper=Decimal("100"), rate=Decimal("0")),
            TaxBand(lower=Decimal("150"), upper=None, rate=Decimal("10")),
        )
        with pytest.raises(RateConfigurationError, match="not contiguous"):
            RateConfiguration(tax_bands=bands)

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("SALARY", PensionCeilingMode.SALARY),
            (" Contribution ", PensionCeilingMode.CONTRIBUTION),
            (PensionCeilingMode.CONTRIBUTION, PensionCeilingMode.CONTRIBUTION),
        ],
    )
    def test_ceiling_mode_is_case_insensitive(self, raw, expected):
        assert RateConfiguration(pension_ceiling_mode=raw).pension_ceiling_mode is expected

    def test_unknown_ceiling_mode_rejected(self):
        with pytest.raises(RateConfigurationError):
            RateConfiguration(pension_ceiling_mode="per-annum")

    def test_band_upper_below_lower(self):
        with pytest.raises(InvalidTaxBandError) as exc_info:
            TaxBand(lower=Decimal("100"), upper=Decimal("50"), rate=Decimal("10"))

        assert exc_info.value.code == "INVALID_TAX_BAND"
        assert exc_info.value.lower == "100"

    def test_band_negative_rate(self):
        with pytest.raises(InvalidTaxBandError):
            TaxBand(lower=Decimal("0"), upper=None, rate=Decimal("-5"))

    def test_is_frozen(self):
        config = RateConfiguration()
        with pytest.raises(AttributeError):
            config.health_insurance_rate = Decimal("9")
