"""Output helpers for the deposit calculator.

This module renders maturity results, interest schedules, premature closure
payouts and financial year summaries as plain tab separated text, the same
way for every command so the output can be pasted into a spreadsheet.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Iterable, Mapping, Optional

from .data_models import ClosurePayout, FinancialYearSummary, MaturityResult, ScheduleRow

RULE = "-" * 72


def _money(value: Optional[Decimal]) -> str:
    return "-" if value is None else f"{value:.2f}"


def print_maturity(result: MaturityResult) -> None:
    """Print a maturity result and its main intermediates."""
    explanation = result.explanation
    print("Maturity")
    print(RULE)
    print(f"Method             : {explanation.get('method', '-')}")
    print(f"Principal          : {_money(explanation.get('principal'))}")
    print(f"Annual rate        : {explanation.get('annual_rate_percent')}%")
    print(f"Duration (days)    : {explanation.get('duration_days')}")
    if "full_quarters" in explanation:
        print(f"Full quarters      : {explanation['full_quarters']}")
        print(f"Remainder days     : {explanation['remainder_days']}")
    elif "fractional_periods" in explanation:
        print(f"Quarterly periods  : {explanation['fractional_periods']:.6f}")
    print(f"Maturity amount    : {_money(result.maturity_amount)}")
    print(f"Interest earned    : {_money(result.interest_earned)}")
    print(RULE)


def print_schedule(rows: Iterable[ScheduleRow], expected_maturity: Optional[Decimal] = None) -> None:
    """Print schedule rows as a table.

    Parameters
    ----------
    rows: Iterable[ScheduleRow]
        Rows in the order returned by the engine.
    expected_maturity: Decimal, optional
        Printed under the table when known.
    """
    headers = ["Date", "FY", "Kind", "Type", "Amount", "Label"]
    print("\t".join(headers))
    for row in rows:
        label = row.label
        if row.period_note:
            label = f"{label} [{row.period_note}]"
        print(
            "\t".join(
                [
                    row.date.isoformat(),
                    row.financial_year,
                    row.kind.value,
                    row.cashflow_type.value,
                    f"{row.amount:.2f}",
                    label,
                ]
            )
        )
    if expected_maturity is not None:
        print(RULE)
        print(f"Expected maturity  : {expected_maturity:.2f}")


def print_closure(payout: ClosurePayout, diagnostics: Optional[Dict[str, Any]] = None) -> None:
    """Print the payout of a premature closure."""
    print("Premature closure")
    print(RULE)
    if diagnostics:
        print(f"Closure date       : {diagnostics['closure_date']}")
        print(f"Days held          : {diagnostics['days_held']} of {diagnostics['days_to_maturity']}")
        if diagnostics.get("percentage_held"):
            print(f"Tenure held        : {diagnostics['percentage_held']}")
    print(f"Effective rate     : {payout.effective_rate}%")
    print(f"Interest earned    : {_money(payout.recalculated_interest)}")
    if payout.penalties:
        print(f"Penalty            : {_money(payout.penalties)}")
    print(f"Final payout       : {_money(payout.final_payout)}")
    print(RULE)


def print_fy_summary(
    summaries: Mapping[str, FinancialYearSummary], accruals: Optional[Mapping[str, Decimal]] = None
) -> None:
    """Print one line per financial year.

    An estimated TDS figure is marked with ``*``.
    """
    headers = ["FY", "Interest", "Accrued", "TDS", "Net"]
    if accruals is not None:
        headers.append("Earned")
    print("\t".join(headers))
    labels = list(summaries)
    for label in accruals or {}:
        if label not in summaries:
            labels.append(label)
    for label in sorted(labels):
        summary = summaries.get(label, FinancialYearSummary())
        tds = f"{summary.tds:.2f}" + ("*" if summary.tds_estimated else "")
        row = [
            label,
            f"{summary.interest:.2f}",
            f"{summary.accrued:.2f}",
            tds,
            f"{summary.net_income:.2f}",
        ]
        if accruals is not None:
            row.append(_money(accruals.get(label)))
        print("\t".join(row))
