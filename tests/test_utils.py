from datetime import date, datetime
from decimal import Decimal

import pytest

from deposit_calc.utils import (
    days_between_exclusive,
    financial_year_label,
    is_financial_year_end,
    is_quarter_end,
    month_end,
    next_calendar_quarter_end,
    next_financial_year_end,
    next_month_end,
    parse_date,
    round2,
    to_decimal,
)


class TestParsing:
    def test_parse_iso_string(self):
        assert parse_date("2024-09-19") == date(2024, 9, 19)

    def test_parse_ignores_time_component(self):
        assert parse_date("2024-09-19T00:00:00") == date(2024, 9, 19)

    def test_parse_datetime(self):
        assert parse_date(datetime(2024, 9, 19, 15, 30)) == date(2024, 9, 19)

    def test_parse_invalid(self):
        with pytest.raises(ValueError):
            parse_date("19/09/2024")

    def test_to_decimal_avoids_float_noise(self):
        assert to_decimal(7.75) == Decimal("7.75")
        assert to_decimal("1,00,000") == Decimal("100000")

    def test_to_decimal_rejects_bool(self):
        with pytest.raises(ValueError):
            to_decimal(True)


def test_round2_half_away_from_zero():
    assert round2(Decimal("2.675")) == Decimal("2.68")
    assert round2(Decimal("-2.675")) == Decimal("-2.68")
    assert round2(Decimal("2.674")) == Decimal("2.67")


class TestCalendar:
    def test_month_end_overflows_into_next_year(self):
        assert month_end(2024, 14) == date(2025, 3, 31)

    def test_next_month_end_leap_february(self):
        assert next_month_end(date(2024, 1, 31)) == date(2024, 2, 29)
        assert next_month_end(date(2024, 2, 10)) == date(2024, 2, 29)

    @pytest.mark.parametrize(
        "given, expected",
        [
            (date(2023, 6, 1), date(2023, 6, 30)),
            (date(2023, 6, 30), date(2023, 9, 30)),
            (date(2023, 12, 31), date(2024, 3, 31)),
            (date(2024, 8, 23), date(2024, 9, 30)),
        ],
    )
    def test_next_calendar_quarter_end(self, given, expected):
        assert next_calendar_quarter_end(given) == expected

    def test_next_financial_year_end(self):
        assert next_financial_year_end(date(2024, 8, 23)) == date(2025, 3, 31)
        assert next_financial_year_end(date(2025, 3, 31)) == date(2026, 3, 31)

    def test_financial_year_label(self):
        assert financial_year_label(date(2025, 3, 31)) == "FY2024-25"
        assert financial_year_label(date(2025, 4, 1)) == "FY2025-26"
        assert financial_year_label(date(1999, 12, 1)) == "FY1999-00"

    def test_boundary_predicates(self):
        assert is_financial_year_end(date(2025, 3, 31))
        assert not is_financial_year_end(date(2025, 6, 30))
        assert is_quarter_end(date(2025, 6, 30))
        assert not is_quarter_end(date(2025, 5, 31))


class TestDayCount:
    def test_exclusive_day_count(self):
        assert days_between_exclusive("2024-09-19", "2025-12-07") == 444

    def test_same_day_is_zero(self):
        assert days_between_exclusive(date(2024, 1, 1), date(2024, 1, 1)) == 0

    def test_negative_span_raises(self):
        with pytest.raises(ValueError):
            days_between_exclusive("2025-01-02", "2025-01-01")
