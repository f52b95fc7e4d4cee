from datetime import date
from decimal import Decimal

import pytest

from deposit_calc.data_models import InvestmentTerms
from deposit_calc.errors import CalculationInputError
from deposit_calc.maturity import (
    calculate_fd_maturity,
    calculate_fd_maturity_bank_style,
    calculate_maturity,
    expected_maturity_amount,
    simple_interest,
)


class TestFractionalMaturity:
    def test_reference_value_from_dates(self):
        result = calculate_fd_maturity(457779, 7.75, "2024-09-19", "2025-12-07")
        assert result.maturity_amount == Decimal("502582.02")
        assert result.interest_earned == Decimal("44803.02")
        assert result.explanation["duration_days"] == 444

    def test_duration_entry_point_agrees_with_dates(self):
        by_dates = calculate_fd_maturity(457779, 7.75, "2024-09-19", "2025-12-07")
        by_days = calculate_fd_maturity(457779, 7.75, duration_days=444)
        assert by_days.maturity_amount == by_dates.maturity_amount
        assert by_days.interest_earned == by_dates.interest_earned

    @pytest.mark.parametrize("principal, rate", [(1000, 5), (Decimal("250000.50"), 0), ("99999", "12.5")])
    def test_zero_duration_returns_principal(self, principal, rate):
        result = calculate_fd_maturity(principal, rate, duration_days=0)
        assert result.maturity_amount == Decimal(str(principal)).quantize(Decimal("0.01"))
        assert result.interest_earned == Decimal("0.00")

    def test_zero_rate_earns_nothing(self):
        result = calculate_fd_maturity(100000, 0, duration_days=365)
        assert result.maturity_amount == Decimal("100000.00")

    @pytest.mark.parametrize(
        "kwargs",
        [
            dict(principal=0, annual_rate_percent=7),
            dict(principal=-5, annual_rate_percent=7),
            dict(principal=1000, annual_rate_percent=-1),
            dict(principal=None, annual_rate_percent=7),
        ],
    )
    def test_invalid_amounts(self, kwargs):
        with pytest.raises(CalculationInputError):
            calculate_fd_maturity(duration_days=30, **kwargs)

    def test_missing_tenure(self):
        with pytest.raises(CalculationInputError):
            calculate_fd_maturity(1000, 7, start_date="2024-01-01")

    def test_maturity_before_start(self):
        with pytest.raises(CalculationInputError):
            calculate_fd_maturity(1000, 7, "2025-01-01", "2024-01-01")

    def test_negative_duration(self):
        with pytest.raises(CalculationInputError):
            calculate_fd_maturity(1000, 7, duration_days=-1)

    def test_input_error_is_a_value_error(self):
        with pytest.raises(ValueError):
            calculate_fd_maturity(0, 7, duration_days=1)


class TestBankStyleMaturity:
    def test_four_posted_quarters(self):
        result = calculate_fd_maturity_bank_style(100000, 8, duration_days=365)
        assert result.maturity_amount == Decimal("108243.22")
        assert result.explanation["full_quarters"] == 4
        assert result.explanation["remainder_days"] == 0

    def test_remainder_days_earn_simple_interest(self):
        result = calculate_fd_maturity_bank_style(100000, 8, duration_days=100)
        # one quarter posted (102000.00) then 9 days of simple interest
        assert result.explanation["full_quarters"] == 1
        assert result.explanation["remainder_days"] == 9
        assert result.maturity_amount == Decimal("102201.21")

    def test_short_tenure_is_simple_interest(self):
        result = calculate_fd_maturity_bank_style(100000, 8, duration_days=30)
        assert result.maturity_amount == Decimal("100657.53")


class TestCalculateMaturity:
    def test_dispatches_on_mode(self):
        terms = InvestmentTerms(
            start_date="2024-01-01",
            maturity_date="2024-12-31",
            principal=100000,
            interest_rate=8,
            calculation_mode="bank",
        )
        bank = calculate_maturity(terms)
        fractional = calculate_maturity(terms.with_changes(calculation_mode="fractional"))
        assert bank.explanation["method"] == "bank"
        assert fractional.explanation["method"] == "fractional"

    def test_maturity_date_override(self, cumulative_fd):
        partial = calculate_maturity(cumulative_fd, date(2025, 3, 31))
        assert partial.explanation["duration_days"] == 220


def test_simple_interest_is_unrounded():
    assert simple_interest(100000, 7, 365) == Decimal("7000")
    assert simple_interest(300000, 8, 29) > Decimal("1906.84")


class TestExpectedMaturityAmount:
    def test_periodic_payout_returns_principal(self, scss):
        assert expected_maturity_amount(scss) == Decimal("300000.00")

    def test_cumulative_without_compounding(self):
        terms = InvestmentTerms(
            start_date="2024-01-01", maturity_date="2024-12-31", principal=100000, interest_rate=7, compounding="no"
        )
        # 365 days
        assert expected_maturity_amount(terms) == Decimal("107000.00")

    def test_cumulative_with_compounding(self, cumulative_fd):
        assert expected_maturity_amount(cumulative_fd) == calculate_maturity(cumulative_fd).maturity_amount

    def test_incomplete_terms(self):
        assert expected_maturity_amount(InvestmentTerms(start_date=None, maturity_date=None)) is None
