"""Premature closure calculator.

Breaking a deposit before maturity recalculates the interest up to the
closure date at an effective rate (the contracted rate minus any penalty
rate) and deducts an optional fixed penalty from the payout. Validation of
the user's closure inputs returns messages instead of raising, because the
values come straight from a form.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from .data_models import (
    ClosurePayout,
    InvestmentStatus,
    InvestmentTerms,
    PrematureClosure,
    PrematureInterest,
)
from .errors import CalculationInputError
from .maturity import calculate_fd_maturity, simple_interest
from .utils import DateLike, Number, days_between_exclusive, parse_date, round2, to_decimal

logger = logging.getLogger(__name__)

ZERO = Decimal("0.00")


def _effective_rate(terms: InvestmentTerms, penalty_rate_percent: Number) -> Decimal:
    rate = terms.interest_rate or Decimal(0)
    return max(Decimal(0), rate - to_decimal(penalty_rate_percent or 0))


def calculate_premature_interest(
    terms: InvestmentTerms, closure_date: Optional[DateLike], penalty_rate_percent: Number = 0
) -> PrematureInterest:
    """Interest earned from the start date up to ``closure_date``.

    Non-compounding deposits earn simple interest on the days held.
    Compounding deposits use the fractional maturity calculator with the
    closure date as maturity; if that calculator rejects the inputs the
    simple-interest figure is used instead. Never raises for a closure date
    on or before the start date: the interest is zero.
    """
    if terms.start_date is None or not closure_date:
        return PrematureInterest(ZERO, Decimal(0), "Missing dates")
    if not terms.principal:
        return PrematureInterest(ZERO, Decimal(0), "Missing principal")

    effective_rate = _effective_rate(terms, penalty_rate_percent)
    if effective_rate == 0:
        return PrematureInterest(ZERO, effective_rate, "Effective rate is 0 after penalty")

    closure = parse_date(closure_date)
    if closure <= terms.start_date:
        return PrematureInterest(ZERO, effective_rate, "Closure date is not after start date")

    days_held = days_between_exclusive(terms.start_date, closure)
    simple = round2(simple_interest(terms.principal, effective_rate, days_held))

    if not terms.compounding:
        return PrematureInterest(
            simple,
            effective_rate,
            {
                "method": "Simple Interest",
                "principal": terms.principal,
                "rate": effective_rate,
                "days_held": days_held,
                "formula": f"{terms.principal} x {effective_rate}% x ({days_held} / 365)",
            },
        )

    try:
        result = calculate_fd_maturity(terms.principal, effective_rate, terms.start_date, closure)
    except CalculationInputError as exc:
        logger.warning(
            "%s: compounding failed for closure on %s (%s); using simple interest",
            terms.display_id,
            closure,
            exc,
        )
        return PrematureInterest(simple, effective_rate, f"Fallback to simple interest: {exc}")

    return PrematureInterest(
        result.interest_earned,
        effective_rate,
        {
            "method": "Compound Interest",
            "principal": terms.principal,
            "rate": effective_rate,
            "days_held": days_held,
            "maturity_amount": result.maturity_amount,
            "formula": "Principal x (1 + rate/4)^(days_held/365 x 4)",
        },
    )


def calculate_premature_closure_payout(
    terms: InvestmentTerms,
    closure_date: Optional[DateLike],
    penalty_rate_percent: Number = 0,
    penalty_amount: Number = 0,
) -> ClosurePayout:
    """Compute the payout of a premature closure.

    ``final_payout = max(0, principal + recalculated_interest - penalty_amount)``.
    Terms without a principal produce an all-zero result.
    """
    if not terms.principal:
        return ClosurePayout(ZERO, ZERO, ZERO, Decimal(0), {"note": "Invalid investment"})

    interest = calculate_premature_interest(terms, closure_date, penalty_rate_percent)
    recalculated = max(ZERO, interest.interest_earned)
    penalties = to_decimal(penalty_amount or 0)
    before_floor = round2(terms.principal + recalculated - penalties)
    final_payout = max(ZERO, before_floor)

    return ClosurePayout(
        final_payout=final_payout,
        recalculated_interest=recalculated,
        penalties=penalties,
        effective_rate=interest.effective_rate,
        explanation={
            "principal": terms.principal,
            "recalculated_interest": recalculated,
            "penalty_rate": to_decimal(penalty_rate_percent or 0),
            "penalty_amount": penalties,
            "payout_before_floor": before_floor,
            "final_payout": final_payout,
            "formula": f"{terms.principal} + {recalculated} - {penalties} = {final_payout}",
            "interest": interest.explanation,
        },
    )


def _optional_number(value: Optional[Number], label: str, errors: List[str]) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return to_decimal(value)
    except ValueError:
        errors.append(f"{label} must be a number")
        return None


def validate_premature_closure(
    terms: InvestmentTerms,
    closure_date: Optional[DateLike],
    penalty_rate_percent: Optional[Number] = None,
    penalty_amount: Optional[Number] = None,
) -> List[str]:
    """Check user supplied closure inputs.

    Returns
    -------
    List[str]
        Human readable problems; an empty list means the inputs are valid.
    """
    errors: List[str] = []

    closure: Optional[date] = None
    if not closure_date:
        errors.append("Closure date is required")
    else:
        try:
            closure = parse_date(closure_date)
        except ValueError:
            errors.append(f"Closure date ({closure_date}) is not a valid date")

    if closure is not None and terms.start_date is not None and closure <= terms.start_date:
        errors.append(f"Closure date ({closure}) must be after start date ({terms.start_date})")
    if closure is not None and terms.maturity_date is not None and closure >= terms.maturity_date:
        errors.append(f"Closure date ({closure}) must be before maturity date ({terms.maturity_date})")

    rate = _optional_number(penalty_rate_percent, "Penalty rate", errors)
    amount = _optional_number(penalty_amount, "Penalty amount", errors)
    if rate is not None and rate < 0:
        errors.append("Penalty rate cannot be negative")
    if rate is not None and rate > 100:
        errors.append("Penalty rate cannot exceed 100%")
    if amount is not None and amount < 0:
        errors.append("Penalty amount cannot be negative")

    if not errors and closure is not None:
        payout = calculate_premature_closure_payout(terms, closure, rate or 0, amount or 0)
        before_floor = payout.explanation.get("payout_before_floor", payout.final_payout)
        if before_floor < 0:
            errors.append(f"Final payout cannot be negative (current: {before_floor})")

    return errors


def get_closure_diagnostics(
    terms: InvestmentTerms, closure: Optional[PrematureClosure]
) -> Optional[Dict[str, Any]]:
    """Derived figures shown next to a closed investment, or ``None``."""
    if closure is None or not closure.is_closed:
        return None
    if terms.start_date is None or terms.maturity_date is None:
        return None

    days_held = (closure.closure_date - terms.start_date).days
    days_to_maturity = (terms.maturity_date - terms.start_date).days
    percentage_held = None
    if days_to_maturity > 0:
        percentage_held = f"{Decimal(days_held) / Decimal(days_to_maturity) * 100:.2f}%"

    rate = terms.interest_rate or Decimal(0)
    return {
        "original_start_date": terms.start_date,
        "original_maturity_date": terms.maturity_date,
        "closure_date": closure.closure_date,
        "days_held": days_held,
        "days_to_maturity": days_to_maturity,
        "percentage_held": percentage_held,
        "principal": terms.principal,
        "original_rate": rate,
        "penalty_rate": closure.penalty_rate,
        "effective_rate": max(Decimal(0), rate - closure.penalty_rate),
        "recalculated_interest": closure.recalculated_interest,
        "penalty_amount": closure.penalty_amount,
        "final_payout": closure.final_payout if closure.final_payout is not None else ZERO,
    }


def build_premature_closure(
    terms: InvestmentTerms,
    closure_date: DateLike,
    penalty_rate: Number = 0,
    penalty_amount: Number = 0,
    maturity_override: Optional[Number] = None,
) -> PrematureClosure:
    """Compute the payout and package it as a :class:`PrematureClosure`."""
    closure = parse_date(closure_date)
    payout = calculate_premature_closure_payout(terms, closure, penalty_rate, penalty_amount)
    return PrematureClosure(
        closure_date=closure,
        is_closed=True,
        penalty_rate=to_decimal(penalty_rate or 0),
        penalty_amount=payout.penalties,
        recalculated_interest=payout.recalculated_interest,
        final_payout=payout.final_payout,
        maturity_override=to_decimal(maturity_override) if maturity_override is not None else None,
    )


def apply_premature_closure(terms: InvestmentTerms, closure: PrematureClosure) -> InvestmentTerms:
    """Return a closed copy of ``terms`` carrying ``closure``.

    The input terms are left unchanged.
    """
    amount = closure.maturity_override if closure.maturity_override is not None else closure.final_payout
    logger.info("%s: closed prematurely on %s, payout %s", terms.display_id, closure.closure_date, amount)
    return terms.with_changes(
        status=InvestmentStatus.CLOSED,
        closed_at=closure.closure_date,
        closure_amount=amount,
        premature_closure=closure,
    )
