from datetime import date
from decimal import Decimal

from deposit_calc.data_models import CashflowRecord, CashflowStatus, CashflowType, InvestmentTerms
from deposit_calc.engine import generate_interest_schedule
from deposit_calc.maturity import calculate_maturity
from deposit_calc.summary import (
    build_investment_preview,
    generate_tds_cashflows,
    schedule_to_cashflows,
    summarize_by_financial_year,
)
from deposit_calc.utils import round2


def test_schedule_rows_become_ledger_records(cumulative_fd):
    record = CashflowRecord(
        investment_id="fd-750k", date=date(2024, 9, 30), type="accrued_interest", amount=5270.55, status="confirmed"
    )
    rows = generate_interest_schedule(cumulative_fd, [record], date(2025, 5, 15), include_confirmed=True)
    records = schedule_to_cashflows(rows, cumulative_fd)
    assert len(records) == len(rows) - 1
    assert records[0].status == CashflowStatus.CONFIRMED
    assert records[0].date == date(2025, 3, 31)
    assert {r.status for r in records[1:]} == {CashflowStatus.PLANNED}
    assert records[-1].type == CashflowType.MATURITY_PAYOUT


class TestTds:
    def test_one_deduction_per_booked_interest(self):
        interest = CashflowRecord(
            id="i1", investment_id="inv", date="2025-03-31", type="interest", amount="1234.55", status="confirmed"
        )
        planned = CashflowRecord(investment_id="inv", date="2025-06-30", type="interest", amount="1000")
        deductions = generate_tds_cashflows([interest, planned], 10)
        assert len(deductions) == 1
        tds = deductions[0]
        assert tds.type == CashflowType.TDS_DEDUCTION
        assert tds.amount == Decimal("-123.46")
        assert tds.date == interest.date
        assert tds.financial_year == "FY2024-25"
        assert tds.status == CashflowStatus.CONFIRMED
        assert tds.metadata == {"taxesCashflowId": "i1"}

    def test_zero_rate_produces_nothing(self):
        interest = CashflowRecord(investment_id="inv", date="2025-03-31", type="interest", amount="100", status="confirmed")
        assert generate_tds_cashflows([interest], 0) == []


class TestFinancialYearSummary:
    def test_grouping(self):
        records = [
            CashflowRecord(investment_id="inv", date="2024-06-30", type="interest", amount="1000"),
            CashflowRecord(investment_id="inv", date="2025-03-31", type="accrued_interest", amount="500"),
            CashflowRecord(investment_id="inv", date="2025-03-31", type="tds", amount="-150"),
            CashflowRecord(investment_id="inv", date="2025-06-30", type="interest", amount="800"),
        ]
        summary = summarize_by_financial_year(records)
        assert list(summary) == ["FY2024-25", "FY2025-26"]
        fy = summary["FY2024-25"]
        assert (fy.interest, fy.accrued, fy.tds, fy.net_income) == (
            Decimal("1000.00"),
            Decimal("500.00"),
            Decimal("150.00"),
            Decimal("1350.00"),
        )
        assert summary["FY2025-26"].tds == 0

    def test_tds_estimated_when_missing(self):
        records = [
            CashflowRecord(investment_id="inv", date="2024-06-30", type="interest", amount="1000"),
            CashflowRecord(investment_id="inv", date="2025-06-30", type="interest", amount="800"),
            CashflowRecord(investment_id="inv", date="2025-06-30", type="tds", amount="-10"),
        ]
        summary = summarize_by_financial_year(records, tds_rate=10)
        assert summary["FY2024-25"].tds == Decimal("100.00")
        assert summary["FY2024-25"].tds_estimated
        assert summary["FY2025-26"].tds == Decimal("10.00")
        assert not summary["FY2025-26"].tds_estimated


class TestPreview:
    def test_incomplete_terms_only_warn(self):
        preview = build_investment_preview(InvestmentTerms(start_date="2024-01-01", maturity_date=None), date(2024, 1, 1))
        assert preview.rows == []
        assert "Principal must be a positive amount" in preview.warnings
        assert "Start date and maturity date are required" in preview.warnings

    def test_cumulative_preview(self, cumulative_fd):
        preview = build_investment_preview(cumulative_fd, date(2024, 1, 1))
        maturity = calculate_maturity(cumulative_fd)
        assert preview.warnings == []
        assert preview.maturity.maturity_amount == maturity.maturity_amount
        assert preview.expected_maturity_amount == maturity.maturity_amount
        assert sum(preview.fy_accruals.values()) == maturity.interest_earned
        assert set(preview.fy_summary) == {"FY2024-25", "FY2025-26"}
        # all rows are projections, so TDS is estimated at the default 10%
        fy = preview.fy_summary["FY2024-25"]
        assert fy.tds_estimated
        assert fy.tds == round2(fy.accrued * Decimal("0.10"))

    def test_periodic_preview_has_no_compounded_result(self, scss):
        preview = build_investment_preview(scss, date(2023, 1, 1), tds_rate=0)
        assert preview.maturity is None
        assert preview.expected_maturity_amount == Decimal("300000.00")
        assert all(s.tds == 0 for s in preview.fy_summary.values())
