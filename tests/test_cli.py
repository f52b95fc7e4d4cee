import csv
import json

import pytest
from click.testing import CliRunner

from deposit_calc.main import cli, parse_amount


@pytest.fixture
def runner():
    return CliRunner()


SCSS_OPTIONS = [
    "-p", "3l",
    "-r", "8",
    "-s", "2023-06-01",
    "-m", "2028-06-01",
    "--frequency", "quarterly",
    "--payout", "quarterly",
    "--compounding", "no",
]


@pytest.mark.parametrize("value, expected", [("500000", "500000"), ("3l", "300000"), ("1.5cr", "15000000"), ("2,500k", "2500000")])
def test_parse_amount(value, expected):
    assert parse_amount(value) == int(expected)


class TestMaturityCommand:
    def test_fractional_by_days(self, runner):
        result = runner.invoke(cli, ["maturity", "-p", "457779", "-r", "7.75", "--days", "444"])
        assert result.exit_code == 0, result.output
        assert "502582.02" in result.output
        assert "44803.02" in result.output

    def test_bank_by_dates(self, runner):
        result = runner.invoke(
            cli, ["maturity", "-p", "100000", "-r", "8", "-s", "2024-01-01", "-m", "2024-12-31", "--mode", "bank"]
        )
        assert result.exit_code == 0, result.output
        assert "108243.22" in result.output

    def test_missing_tenure_is_a_usage_error(self, runner):
        result = runner.invoke(cli, ["maturity", "-p", "1000", "-r", "7"])
        assert result.exit_code == 2
        assert "duration_days" in result.output


class TestScheduleCommand:
    def test_prints_rows(self, runner):
        result = runner.invoke(cli, ["schedule", *SCSS_OPTIONS, "--as-of", "2023-01-01"])
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0].startswith("Date\tFY")
        assert lines[1].startswith("2023-06-30\tFY2023-24\texpected\tinterest_payout\t1906.85")

    def test_requires_terms(self, runner):
        result = runner.invoke(cli, ["schedule", "-p", "1000"])
        assert result.exit_code == 2
        assert "--rate" in result.output

    def test_json_export(self, runner, tmp_path):
        path = tmp_path / "schedule.json"
        result = runner.invoke(cli, ["schedule", *SCSS_OPTIONS, "--as-of", "2023-01-01", "--output", str(path)])
        assert result.exit_code == 0, result.output
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["schedule"][0]["date"] == "2023-06-30"
        assert data["summary"]["expected_maturity_amount"] == 300000.0

    def test_csv_export(self, runner, tmp_path):
        path = tmp_path / "schedule.csv"
        result = runner.invoke(cli, ["schedule", *SCSS_OPTIONS, "--as-of", "2023-01-01", "--output", str(path)])
        assert result.exit_code == 0, result.output
        with path.open(newline="", encoding="utf-8") as f:
            rows = list(csv.reader(f))
        assert rows[0][0] == "Date"
        assert rows[1][:2] == ["2023-06-30", "FY2023-24"]

    def test_unsupported_export(self, runner, tmp_path):
        result = runner.invoke(cli, ["schedule", *SCSS_OPTIONS, "--output", str(tmp_path / "out.xlsx")])
        assert result.exit_code == 2

    def test_fixture_with_ledger(self, runner, tmp_path):
        fixture = tmp_path / "fd.json"
        fixture.write_text(
            json.dumps(
                {
                    "investment": {
                        "id": "fd-750k",
                        "principal": 750000,
                        "interestRate": 6.75,
                        "startDate": "2024-08-23",
                        "maturityDate": "2025-11-20",
                        "interestCalculationFrequency": "quarterly",
                        "interestPayoutFrequency": "maturity",
                        "compounding": "yes",
                    },
                    "cashflows": [
                        {
                            "investmentId": "fd-750k",
                            "date": "2024-09-30",
                            "type": "interest_accrual",
                            "amount": 5270.55,
                            "status": "confirmed",
                        }
                    ],
                }
            ),
            encoding="utf-8",
        )
        result = runner.invoke(cli, ["schedule", "--fixture", str(fixture), "--as-of", "2024-01-01"])
        assert result.exit_code == 0, result.output
        assert "2024-09-30" not in result.output
        assert "maturity_payout" in result.output

        result = runner.invoke(
            cli, ["schedule", "--fixture", str(fixture), "--as-of", "2024-01-01", "--include-confirmed"]
        )
        assert "2024-09-30\tFY2024-25\tconfirmed" in result.output


class TestClosureCommand:
    def test_payout(self, runner):
        result = runner.invoke(
            cli,
            [
                "closure",
                "-p", "100000",
                "-r", "7",
                "-s", "2024-09-19",
                "-m", "2025-12-07",
                "--compounding", "no",
                "-c", "2025-03-19",
                "--penalty-amount", "500",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "102971.23" in result.output
        assert "40.77%" in result.output

    def test_penalty_shorthand_is_parsed_before_validation(self, runner):
        result = runner.invoke(
            cli,
            [
                "closure",
                "-p", "1l",
                "-r", "7%",
                "-s", "2024-09-19",
                "-m", "2025-12-07",
                "-c", "2025-03-19",
                "--penalty-amount", "0.5k",
            ],
        )
        assert result.exit_code == 0, result.output
        assert "102971.23" in result.output

    def test_invalid_closure(self, runner):
        result = runner.invoke(
            cli,
            ["closure", "-p", "100000", "-r", "7", "-s", "2024-09-19", "-m", "2025-12-07", "-c", "2026-01-01"],
        )
        assert result.exit_code == 1
        assert "must be before maturity date" in result.output


class TestFySummaryCommand:
    def test_summary(self, runner):
        result = runner.invoke(
            cli,
            [
                "fy-summary",
                "-p", "750000",
                "-r", "6.75",
                "-s", "2024-08-23",
                "-m", "2025-11-20",
                "--as-of", "2024-01-01",
                "--tds-rate", "10",
            ],
        )
        assert result.exit_code == 0, result.output
        lines = result.output.splitlines()
        assert lines[0] == "FY\tInterest\tAccrued\tTDS\tNet\tEarned"
        assert lines[1].startswith("FY2024-25\t")
        assert lines[2].startswith("FY2025-26\t")

    def test_invalid_terms(self, runner):
        result = runner.invoke(
            cli, ["fy-summary", "-p", "1000", "-r", "7", "-s", "2025-01-01", "-m", "2024-01-01"]
        )
        assert result.exit_code == 1
        assert "must be after start date" in result.output

    def test_fixture_ledger_supplies_booked_interest_and_tds(self, runner, tmp_path):
        fixture = tmp_path / "scss.json"
        fixture.write_text(
            json.dumps(
                {
                    "investment": {
                        "id": "scss-1",
                        "principal": 300000,
                        "interestRate": 8,
                        "startDate": "2023-06-01",
                        "maturityDate": "2028-06-01",
                        "interestCalculationFrequency": "quarterly",
                        "interestPayoutFrequency": "quarterly",
                    },
                    "cashflows": [
                        {
                            "id": "int-1",
                            "investmentId": "scss-1",
                            "date": "2023-06-30",
                            "type": "interest_payout",
                            "amount": "1906.85",
                            "status": "confirmed",
                        },
                        {
                            "investmentId": "scss-1",
                            "date": "2023-06-30",
                            "type": "tds_deduction",
                            "amount": "-190.69",
                            "status": "confirmed",
                        },
                    ],
                }
            ),
            encoding="utf-8",
        )
        result = runner.invoke(
            cli, ["fy-summary", "--fixture", str(fixture), "--as-of", "2023-07-15", "--tds-rate", "10"]
        )
        assert result.exit_code == 0, result.output
        first = result.output.splitlines()[1]
        # booked 1906.85 plus three projected quarters; TDS is the booked figure
        assert first.startswith("FY2023-24\t19989.05\t0.00\t190.69\t19798.36\t")
        assert "*" not in first
