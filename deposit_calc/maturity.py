"""Maturity calculators for cumulative fixed deposits.

Two compounding conventions are implemented. Both use ACT/365 day counting
(a fixed 365-day year, leap years included) and quarterly compounding, and
both return a :class:`~deposit_calc.data_models.MaturityResult`.

Fractional mode
    Raises the quarterly growth factor to a fractional number of periods:

        periods = (days / 365) * 4
        growth  = exp(periods * ln(1 + rate / 400))

    Only the final amounts are rounded; intermediates keep full precision.

Bank mode
    Compounds over whole 91.25-day quarters, rounding the running amount to
    the cent after every quarter the way a passbook is posted, then adds
    simple interest for the remaining days.

The two conventions diverge by a few rupees on long tenures; callers pick
one explicitly through ``calculation_mode``.
"""

from __future__ import annotations

from datetime import date
from decimal import ROUND_FLOOR, Decimal, getcontext
from typing import Optional

from .data_models import CalculationMode, InvestmentTerms, MaturityResult
from .errors import CalculationInputError
from .utils import DateLike, Number, days_between_exclusive, round2, to_decimal

getcontext().prec = 28  # increase precision for financial calculations

DAYS_IN_YEAR = Decimal(365)
COMPOUNDING_PER_YEAR = 4
ROUNDING_METHOD = "round half away from zero (2 decimals)"


def _validate_amounts(principal: Optional[Number], annual_rate_percent: Optional[Number]) -> tuple:
    if principal is None or isinstance(principal, bool):
        raise CalculationInputError("principal must be a positive number")
    try:
        principal_dec = to_decimal(principal)
    except ValueError as exc:
        raise CalculationInputError("principal must be a positive number") from exc
    if not principal_dec.is_finite() or principal_dec <= 0:
        raise CalculationInputError("principal must be a positive number")

    if annual_rate_percent is None or isinstance(annual_rate_percent, bool):
        raise CalculationInputError("annual_rate_percent must be a non-negative number")
    try:
        rate_dec = to_decimal(annual_rate_percent)
    except ValueError as exc:
        raise CalculationInputError("annual_rate_percent must be a non-negative number") from exc
    if not rate_dec.is_finite() or rate_dec < 0:
        raise CalculationInputError("annual_rate_percent must be a non-negative number")
    return principal_dec, rate_dec


def _resolve_duration(
    start_date: Optional[DateLike],
    maturity_date: Optional[DateLike],
    duration_days: Optional[int],
) -> int:
    """Return the tenure in days from an explicit duration or a date pair."""
    if duration_days is not None:
        if isinstance(duration_days, bool) or not isinstance(duration_days, int) or duration_days < 0:
            raise CalculationInputError("duration_days must be a non-negative integer if provided")
        return duration_days
    if not start_date or not maturity_date:
        raise CalculationInputError(
            "Either duration_days or both start_date and maturity_date must be provided"
        )
    try:
        return days_between_exclusive(start_date, maturity_date)
    except ValueError as exc:
        raise CalculationInputError("maturity_date must be after start_date") from exc


def calculate_fd_maturity(
    principal: Number,
    annual_rate_percent: Number,
    start_date: Optional[DateLike] = None,
    maturity_date: Optional[DateLike] = None,
    duration_days: Optional[int] = None,
) -> MaturityResult:
    """Compute maturity with fractional quarterly compounding (ACT/365).

    Parameters
    ----------
    principal: Number
        Amount deposited; must be positive.
    annual_rate_percent: Number
        Annual rate as a percentage, e.g. ``7.75``; must not be negative.
    start_date, maturity_date: date or ISO string, optional
        Used to derive the exclusive day count when ``duration_days`` is not
        given.
    duration_days: int, optional
        Pre-computed tenure in days.

    Raises
    ------
    CalculationInputError
        For a non-positive principal, a negative rate or a missing tenure.
    """
    principal_dec, rate_dec = _validate_amounts(principal, annual_rate_percent)
    days = _resolve_duration(start_date, maturity_date, duration_days)

    if days == 0:
        maturity_amount = round2(principal_dec)
        return MaturityResult(
            maturity_amount=maturity_amount,
            interest_earned=round2(maturity_amount - principal_dec),
            explanation={
                "note": "Zero duration: maturity equals principal",
                "principal": principal_dec,
                "annual_rate_percent": rate_dec,
                "duration_days": 0,
                "days_in_year": DAYS_IN_YEAR,
                "compounding_frequency_per_year": COMPOUNDING_PER_YEAR,
                "growth_factor": Decimal(1),
                "rounding_method": ROUNDING_METHOD,
            },
        )

    period_rate = rate_dec / Decimal(100) / COMPOUNDING_PER_YEAR
    fractional_periods = Decimal(days) / DAYS_IN_YEAR * COMPOUNDING_PER_YEAR
    # ln/exp keeps the non-integer exponent well behaved
    ln_factor = fractional_periods * (Decimal(1) + period_rate).ln()
    growth_factor = ln_factor.exp()

    maturity_raw = principal_dec * growth_factor
    maturity_amount = round2(maturity_raw)
    return MaturityResult(
        maturity_amount=maturity_amount,
        interest_earned=round2(maturity_amount - principal_dec),
        explanation={
            "method": CalculationMode.FRACTIONAL.value,
            "principal": principal_dec,
            "annual_rate_percent": rate_dec,
            "duration_days": days,
            "days_in_year": DAYS_IN_YEAR,
            "compounding_frequency_per_year": COMPOUNDING_PER_YEAR,
            "period_rate": period_rate,
            "fractional_periods": fractional_periods,
            "ln_factor": ln_factor,
            "growth_factor": growth_factor,
            "maturity_amount_raw": maturity_raw,
            "interest_raw": maturity_raw - principal_dec,
            "rounding_method": ROUNDING_METHOD,
        },
    )


def calculate_fd_maturity_bank_style(
    principal: Number,
    annual_rate_percent: Number,
    start_date: Optional[DateLike] = None,
    maturity_date: Optional[DateLike] = None,
    duration_days: Optional[int] = None,
) -> MaturityResult:
    """Compute maturity with per-quarter rounding plus remainder interest.

    Accepts the same arguments and raises the same errors as
    :func:`calculate_fd_maturity`.
    """
    principal_dec, rate_dec = _validate_amounts(principal, annual_rate_percent)
    days = _resolve_duration(start_date, maturity_date, duration_days)

    period_rate = rate_dec / Decimal(100) / COMPOUNDING_PER_YEAR
    approx_quarter_days = DAYS_IN_YEAR / COMPOUNDING_PER_YEAR  # 91.25
    full_quarters = int(Decimal(days) // approx_quarter_days)

    amount = principal_dec
    for _ in range(full_quarters):
        # each quarter is posted (rounded) before the next one compounds
        amount = round2(amount * (Decimal(1) + period_rate))

    covered_days = int((full_quarters * approx_quarter_days).to_integral_value(rounding=ROUND_FLOOR))
    remainder_days = days - covered_days
    remainder_interest = amount * rate_dec / Decimal(100) * Decimal(remainder_days) / DAYS_IN_YEAR
    amount_raw = amount + remainder_interest

    maturity_amount = round2(amount_raw)
    return MaturityResult(
        maturity_amount=maturity_amount,
        interest_earned=round2(maturity_amount - principal_dec),
        explanation={
            "method": CalculationMode.BANK.value,
            "principal": principal_dec,
            "annual_rate_percent": rate_dec,
            "duration_days": days,
            "days_in_year": DAYS_IN_YEAR,
            "compounding_frequency_per_year": COMPOUNDING_PER_YEAR,
            "period_rate": period_rate,
            "approx_quarter_days": approx_quarter_days,
            "full_quarters": full_quarters,
            "remainder_days": remainder_days,
            "remainder_interest": remainder_interest,
            "maturity_amount_raw": amount_raw,
            "interest_raw": amount_raw - principal_dec,
            "rounding_method": "per-quarter and final " + ROUNDING_METHOD,
        },
    )


def calculate_maturity(terms: InvestmentTerms, maturity_date: Optional[date] = None) -> MaturityResult:
    """Run the calculator selected by ``terms.calculation_mode``.

    ``maturity_date`` overrides the contracted maturity, which is how
    interest up to an arbitrary date (a financial-year end, a closure date)
    is obtained.
    """
    end = maturity_date or terms.maturity_date
    if terms.calculation_mode == CalculationMode.BANK:
        return calculate_fd_maturity_bank_style(terms.principal, terms.interest_rate, terms.start_date, end)
    return calculate_fd_maturity(terms.principal, terms.interest_rate, terms.start_date, end)


def simple_interest(principal: Number, annual_rate_percent: Number, days: int) -> Decimal:
    """Unrounded simple interest ``P * R * D / (100 * 365)``."""
    return to_decimal(principal) * to_decimal(annual_rate_percent) * Decimal(days) / (Decimal(100) * DAYS_IN_YEAR)


def expected_maturity_amount(terms: InvestmentTerms) -> Optional[Decimal]:
    """Amount the investment is expected to pay out at maturity.

    Periodic-payout deposits return only the principal at maturity (interest
    has been paid along the way). Cumulative deposits return principal plus
    interest, compounded by the selected calculator or simple when
    compounding is disabled. Returns ``None`` when the terms are incomplete.
    """
    if not terms.principal or terms.interest_rate is None:
        return None
    if terms.start_date is None or terms.maturity_date is None or terms.maturity_date < terms.start_date:
        return None
    if not terms.is_cumulative:
        return round2(terms.principal)
    if terms.compounding:
        return calculate_maturity(terms).maturity_amount
    days = days_between_exclusive(terms.start_date, terms.maturity_date)
    return round2(terms.principal + simple_interest(terms.principal, terms.interest_rate, days))
