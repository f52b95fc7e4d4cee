"""Command-line interface for the deposit calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute the maturity value of a fixed deposit, print
the interest schedule of an investment, preview a premature closure or view
income per financial year. Investment terms come either from options or
from a JSON fixture holding an investment and, optionally, its ledger.
Schedules can be exported to JSON/CSV files.
"""

from __future__ import annotations

import csv
import json
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import click

from .closure import (
    build_premature_closure,
    calculate_premature_closure_payout,
    get_closure_diagnostics,
    validate_premature_closure,
)
from .config import configure_logging
from .data_models import (
    CashflowRecord,
    InvestmentTerms,
    ScheduleRow,
    cashflow_from_dict,
    investment_from_dict,
)
from .engine import generate_interest_schedule
from .errors import CalculationInputError, DepositCalcError
from .formatter import print_closure, print_fy_summary, print_maturity, print_schedule
from .maturity import calculate_fd_maturity, calculate_fd_maturity_bank_style, expected_maturity_amount
from .summary import build_investment_preview
from .utils import decimal_from_str, parse_date


def parse_amount(value: str) -> Decimal:
    """Parse a numeric string with optional suffixes.

    Accepts plain numbers ("500000") and shorthand with ``k`` (thousand),
    ``l`` (lakh) and ``cr`` (crore) suffixes, e.g. "5l" meaning 500000.
    """
    value = value.strip().lower().replace(",", "")
    factor = Decimal(1)
    if value.endswith("cr"):
        factor = Decimal(10_000_000)
        value = value[:-2]
    elif value.endswith("l"):
        factor = Decimal(100_000)
        value = value[:-1]
    elif value.endswith("k"):
        factor = Decimal(1_000)
        value = value[:-1]
    try:
        return decimal_from_str(value) * factor
    except ValueError:
        raise click.BadParameter(f"Invalid amount: {value}")


def parse_percent(value: str) -> Decimal:
    """Parse an annual percentage such as "7.75" or "7.75%"."""
    value = value.strip()
    if value.endswith("%"):
        value = value[:-1]
    try:
        return decimal_from_str(value)
    except ValueError:
        raise click.BadParameter(f"Invalid percentage: {value}")


def parse_date_option(value: Optional[str], name: str = "date") -> Optional[date]:
    if value is None:
        return None
    try:
        return parse_date(value)
    except ValueError as exc:
        raise click.BadParameter(f"Invalid {name}: {value}") from exc


def load_fixture(path: Path) -> Tuple[InvestmentTerms, List[CashflowRecord]]:
    """Read an investment (and optional ledger) from a JSON file.

    The file holds either a single investment object or an object with
    ``investment`` and ``cashflows`` keys.
    """
    try:
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise click.BadParameter(f"Cannot read fixture {path}: {exc}")
    investment = data.get("investment", data)
    try:
        terms = investment_from_dict(investment)
        ledger = [cashflow_from_dict(cf) for cf in data.get("cashflows", [])]
    except (ValueError, KeyError, TypeError) as exc:
        raise click.BadParameter(f"Invalid fixture {path}: {exc}")
    return terms, ledger


def build_terms_from_options(
    fixture: Optional[str],
    principal: Optional[str],
    rate: Optional[str],
    start_date: Optional[str],
    maturity_date: Optional[str],
    frequency: str,
    payout: str,
    compounding: str,
    mode: str,
) -> Tuple[InvestmentTerms, List[CashflowRecord]]:
    if fixture:
        return load_fixture(Path(fixture))
    missing = [
        name
        for name, value in (
            ("--principal", principal),
            ("--rate", rate),
            ("--start-date", start_date),
            ("--maturity-date", maturity_date),
        )
        if value is None
    ]
    if missing:
        raise click.UsageError(f"Missing option(s) {', '.join(missing)} (or use --fixture)")
    terms = InvestmentTerms(
        start_date=parse_date_option(start_date, "start date"),
        maturity_date=parse_date_option(maturity_date, "maturity date"),
        principal=parse_amount(principal),
        interest_rate=parse_percent(rate),
        interest_calculation_frequency=frequency,
        interest_payout_frequency=payout,
        compounding=compounding,
        calculation_mode=mode,
    )
    return terms, []


def terms_options(func):
    """Attach the options describing an investment to a command."""
    options = [
        click.option("--fixture", "fixture", type=click.Path(exists=True, dir_okay=False), help="JSON file with the investment (and ledger)"),
        click.option("--principal", "-p", "principal", help="Amount deposited, e.g. 300000 or 3l"),
        click.option("--rate", "-r", "rate", help="Annual interest rate (percent)"),
        click.option("--start-date", "-s", "start_date", help="Start date (YYYY-MM-DD)"),
        click.option("--maturity-date", "-m", "maturity_date", help="Maturity date (YYYY-MM-DD)"),
        click.option("--frequency", "frequency", type=click.Choice(["monthly", "quarterly", "yearly"]), default="quarterly", help="Interest calculation frequency"),
        click.option("--payout", "payout", type=click.Choice(["monthly", "quarterly", "yearly", "maturity"]), default="maturity", help="Interest payout frequency; 'maturity' for cumulative deposits"),
        click.option("--compounding", "compounding", type=click.Choice(["yes", "no"]), default="no", help="Compound interest into principal (cumulative deposits only)"),
        click.option("--mode", "mode", type=click.Choice(["fractional", "bank"]), default="fractional", help="Maturity calculation convention"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _row_to_dict(row: ScheduleRow) -> Dict[str, Any]:
    return {
        "id": row.id,
        "date": row.date.isoformat(),
        "financial_year": row.financial_year,
        "kind": row.kind.value,
        "type": row.cashflow_type.value,
        "amount": float(row.amount),
        "status": row.status.value,
        "is_preview": row.is_preview,
        "label": row.label,
        "period_note": row.period_note,
    }


def export_to_json(path: Path, rows: List[ScheduleRow], summary: Dict[str, Any]) -> None:
    """Export schedule rows and a summary to a JSON file."""
    data = {"summary": summary, "schedule": [_row_to_dict(r) for r in rows]}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, rows: List[ScheduleRow]) -> None:
    """Export schedule rows to a CSV file."""
    header = ["Date", "Financial_Year", "Kind", "Type", "Amount", "Status", "Label"]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for r in rows:
            writer.writerow(
                [
                    r.date.isoformat(),
                    r.financial_year,
                    r.kind.value,
                    r.cashflow_type.value,
                    f"{r.amount:.2f}",
                    r.status.value,
                    r.label,
                ]
            )


@click.group()
@click.option("--log-level", "log_level", type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False), help="Override DEPOSIT_CALC_LOG_LEVEL")
def cli(log_level: Optional[str]) -> None:
    """A command-line calculator for fixed deposits and savings schemes."""
    configure_logging(log_level)


@cli.command()
@click.option("--principal", "-p", "principal", required=True, help="Amount deposited")
@click.option("--rate", "-r", "rate", required=True, help="Annual interest rate (percent)")
@click.option("--start-date", "-s", "start_date", help="Start date (YYYY-MM-DD)")
@click.option("--maturity-date", "-m", "maturity_date", help="Maturity date (YYYY-MM-DD)")
@click.option("--days", "days", type=int, help="Tenure in days (instead of dates)")
@click.option("--mode", "mode", type=click.Choice(["fractional", "bank"]), default="fractional", help="Maturity calculation convention")
def maturity(
    principal: str,
    rate: str,
    start_date: Optional[str],
    maturity_date: Optional[str],
    days: Optional[int],
    mode: str,
) -> None:
    """Compute the maturity value of a cumulative fixed deposit."""
    calculator = calculate_fd_maturity_bank_style if mode == "bank" else calculate_fd_maturity
    try:
        result = calculator(
            parse_amount(principal),
            parse_percent(rate),
            start_date=parse_date_option(start_date, "start date"),
            maturity_date=parse_date_option(maturity_date, "maturity date"),
            duration_days=days,
        )
    except CalculationInputError as exc:
        raise click.BadParameter(str(exc))
    print_maturity(result)


@cli.command()
@terms_options
@click.option("--as-of", "as_of", help="Reference date separating past and future (default: today)")
@click.option("--include-confirmed", "include_confirmed", is_flag=True, help="Also list confirmed ledger records")
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
def schedule(
    fixture: Optional[str],
    principal: Optional[str],
    rate: Optional[str],
    start_date: Optional[str],
    maturity_date: Optional[str],
    frequency: str,
    payout: str,
    compounding: str,
    mode: str,
    as_of: Optional[str],
    include_confirmed: bool,
    output: Optional[str],
) -> None:
    """Compute and print the interest schedule of an investment."""
    terms, ledger = build_terms_from_options(
        fixture, principal, rate, start_date, maturity_date, frequency, payout, compounding, mode
    )
    reference = parse_date_option(as_of, "as-of date") or date.today()
    try:
        rows = generate_interest_schedule(terms, ledger, reference, include_confirmed=include_confirmed)
        expected = expected_maturity_amount(terms)
    except DepositCalcError as exc:
        raise click.ClickException(str(exc))

    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            summary = {
                "investment_id": terms.display_id,
                "as_of": reference.isoformat(),
                "expected_maturity_amount": float(expected) if expected is not None else None,
            }
            export_to_json(path, rows, summary)
            click.echo(f"Schedule exported to {path}")
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, rows)
            click.echo(f"Schedule exported to {path}")
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv")
    else:
        if not rows:
            click.echo("No schedule: principal and interest rate are required.")
            return
        print_schedule(rows, expected)


@cli.command()
@terms_options
@click.option("--closure-date", "-c", "closure_date", required=True, help="Date the deposit is broken (YYYY-MM-DD)")
@click.option("--penalty-rate", "penalty_rate", default="0", help="Rate reduction in percentage points")
@click.option("--penalty-amount", "penalty_amount", default="0", help="Fixed penalty deducted from the payout")
def closure(
    fixture: Optional[str],
    principal: Optional[str],
    rate: Optional[str],
    start_date: Optional[str],
    maturity_date: Optional[str],
    frequency: str,
    payout: str,
    compounding: str,
    mode: str,
    closure_date: str,
    penalty_rate: str,
    penalty_amount: str,
) -> None:
    """Preview the payout of closing an investment before maturity."""
    terms, _ = build_terms_from_options(
        fixture, principal, rate, start_date, maturity_date, frequency, payout, compounding, mode
    )
    rate_cut = parse_percent(penalty_rate)
    fee = parse_amount(penalty_amount)
    errors = validate_premature_closure(terms, closure_date, rate_cut, fee)
    if errors:
        for message in errors:
            click.echo(message, err=True)
        raise click.ClickException("Invalid premature closure")

    result = calculate_premature_closure_payout(terms, closure_date, rate_cut, fee)
    record = build_premature_closure(terms, closure_date, rate_cut, fee)
    print_closure(result, get_closure_diagnostics(terms, record))


@cli.command(name="fy-summary")
@terms_options
@click.option("--as-of", "as_of", help="Reference date separating past and future (default: today)")
@click.option("--tds-rate", "tds_rate", help="TDS percentage (default: DEPOSIT_CALC_TDS_RATE or 10)")
def fy_summary(
    fixture: Optional[str],
    principal: Optional[str],
    rate: Optional[str],
    start_date: Optional[str],
    maturity_date: Optional[str],
    frequency: str,
    payout: str,
    compounding: str,
    mode: str,
    as_of: Optional[str],
    tds_rate: Optional[str],
) -> None:
    """Print interest, accruals and TDS per financial year."""
    terms, ledger = build_terms_from_options(
        fixture, principal, rate, start_date, maturity_date, frequency, payout, compounding, mode
    )
    reference = parse_date_option(as_of, "as-of date") or date.today()
    try:
        preview = build_investment_preview(
            terms, reference, parse_percent(tds_rate) if tds_rate is not None else None, ledger
        )
    except DepositCalcError as exc:
        raise click.ClickException(str(exc))
    if preview.warnings:
        for message in preview.warnings:
            click.echo(message, err=True)
        raise click.ClickException("Invalid investment terms")
    print_fy_summary(preview.fy_summary, preview.fy_accruals)


if __name__ == "__main__":
    cli()
