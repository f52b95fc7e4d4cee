"""Core interest schedule engine for the deposit calculator.

This module builds the authoritative interest timeline of one investment.
Calculation periods are aligned to the calendar (month ends, calendar
quarter ends or 31 March financial-year ends) rather than to the deposit's
anniversary, so the first period is usually a prorated stub.

Every period produces at most one result:

* a *confirmed* ledger record dated on the period end wins and suppresses
  anything generated for that period;
* otherwise a past period ending on 31 March or on maturity yields an
  *accrued* row (earned, not yet paid, recognised for tax);
* otherwise a future period yields an *expected* preview row.

For cumulative deposits the interest of each period is added to a running
base, so later periods earn interest on interest, and a final maturity row
carries the compounded value. The reference date separating past from
future (``as_of``) is always passed in by the caller.

The module also offers :func:`accrued_interest_by_financial_year`, which
splits a deposit's interest across financial years for tax reporting.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List, Optional, Tuple

from .config import get_settings
from .data_models import (
    CashflowRecord,
    CashflowStatus,
    CashflowType,
    Frequency,
    InvestmentTerms,
    Period,
    RowKind,
    ScheduleRow,
)
from .errors import ScheduleInvariantError
from .maturity import calculate_maturity, simple_interest
from .utils import (
    days_between_exclusive,
    financial_year_label,
    is_financial_year_end,
    is_month_end,
    is_quarter_end,
    next_calendar_quarter_end,
    next_financial_year_end,
    next_month_end,
    round2,
)

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)


def _next_boundary(frequency: Frequency, dt: date) -> date:
    if frequency == Frequency.QUARTERLY:
        return next_calendar_quarter_end(dt)
    if frequency == Frequency.MONTHLY:
        return next_month_end(dt)
    return next_financial_year_end(dt)


def _is_boundary(frequency: Frequency, dt: date) -> bool:
    if frequency == Frequency.QUARTERLY:
        return is_quarter_end(dt)
    if frequency == Frequency.MONTHLY:
        return is_month_end(dt)
    return is_financial_year_end(dt)


def generate_calendar_periods(terms: InvestmentTerms) -> List[Period]:
    """Split the tenure into calendar-aligned calculation periods.

    Each period ends on the first boundary strictly after the previous one
    (the first period starts on the start date) and the last period is
    clipped to the maturity date. A period's day count is the exclusive
    difference between its start and end, so the day counts add up to the
    tenure.
    """
    start, maturity = terms.start_date, terms.maturity_date
    if start is None or maturity is None:
        return []

    frequency = terms.interest_calculation_frequency
    periods: List[Period] = []
    boundary = start
    while boundary < maturity:
        end = min(_next_boundary(frequency, boundary), maturity)
        prorated = (not periods and not _is_boundary(frequency, start)) or (
            end == maturity and not _is_boundary(frequency, maturity)
        )
        periods.append(
            Period(
                start=boundary,
                end=end,
                days=days_between_exclusive(boundary, end),
                is_prorated=prorated,
            )
        )
        boundary = end
    return periods


def _confirmed_interest_by_date(
    terms: InvestmentTerms, cashflows: Iterable[CashflowRecord]
) -> Dict[date, CashflowRecord]:
    """Index confirmed interest records of this investment by date."""
    mapping: Dict[date, CashflowRecord] = {}
    for cf in cashflows:
        if cf.investment_id != terms.id or cf.status != CashflowStatus.CONFIRMED:
            continue
        if not cf.type.is_interest:
            continue
        if cf.date in mapping:
            logger.warning(
                "%s: more than one confirmed interest record on %s; using %s",
                terms.display_id,
                cf.date,
                mapping[cf.date].id,
            )
            continue
        mapping[cf.date] = cf
    return mapping


def _has_confirmed_maturity(terms: InvestmentTerms, cashflows: Iterable[CashflowRecord]) -> bool:
    for cf in cashflows:
        if (
            cf.investment_id == terms.id
            and cf.status == CashflowStatus.CONFIRMED
            and cf.date == terms.maturity_date
            and (cf.type.is_interest or cf.type == CashflowType.MATURITY_PAYOUT)
        ):
            return True
    return False


def _violation(message: str, strict: bool) -> None:
    logger.error(message)
    if strict:
        raise ScheduleInvariantError(message)


def _row(
    terms: InvestmentTerms,
    kind: RowKind,
    on: date,
    cashflow_type: CashflowType,
    amount: Decimal,
    label: str,
    period_note: Optional[str] = None,
) -> ScheduleRow:
    return ScheduleRow(
        id=f"{kind.value}-{terms.id}-{on.isoformat()}",
        investment_id=terms.id,
        date=on,
        kind=kind,
        cashflow_type=cashflow_type,
        amount=amount,
        financial_year=financial_year_label(on),
        is_preview=kind in (RowKind.EXPECTED, RowKind.MATURITY),
        label=label,
        period_note=period_note,
    )


def _confirmed_row(record: CashflowRecord) -> ScheduleRow:
    return ScheduleRow(
        id=record.id,
        investment_id=record.investment_id,
        date=record.date,
        kind=RowKind.CONFIRMED,
        cashflow_type=record.type,
        amount=record.amount,
        financial_year=record.financial_year or financial_year_label(record.date),
        source=record.source,
        status=record.status,
        label="Confirmed Interest",
    )


def _period_note(period: Period) -> Optional[str]:
    if not period.is_prorated:
        return None
    return f"Prorated: {period.start:%d %b %Y} to {period.end:%d %b %Y} ({period.days} days)"


def _check_schedule(
    terms: InvestmentTerms,
    rows: List[ScheduleRow],
    confirmed: Iterable[CashflowRecord],
    as_of: date,
    strict: bool,
) -> None:
    """Flag duplicate rows, future accruals and off-quarter confirmations."""
    seen: Dict[Tuple[date, RowKind], str] = {}
    for row in rows:
        if row.kind == RowKind.ACCRUED and row.date > as_of:
            logger.warning("%s: accrued interest generated for future date %s", terms.display_id, row.date)
        key = (row.date, row.kind)
        if key in seen:
            _violation(
                f"{terms.display_id}: duplicate {row.kind.value} rows on {row.date}", strict
            )
        seen[key] = row.id

    if terms.interest_calculation_frequency == Frequency.QUARTERLY:
        for cf in confirmed:
            if not (is_quarter_end(cf.date) or cf.date == terms.maturity_date):
                logger.warning(
                    "%s: confirmed interest on %s is not a calendar quarter end",
                    terms.display_id,
                    cf.date,
                )


def generate_interest_schedule(
    terms: InvestmentTerms,
    confirmed_cashflows: Iterable[CashflowRecord],
    as_of: date,
    *,
    include_confirmed: bool = False,
    strict: Optional[bool] = None,
) -> List[ScheduleRow]:
    """Compute the interest schedule of an investment.

    Parameters
    ----------
    terms: InvestmentTerms
        The investment. Terms without a principal or rate produce an empty
        schedule, since the creation wizard asks for previews while the form
        is still incomplete.
    confirmed_cashflows: Iterable[CashflowRecord]
        Ledger records. Only confirmed interest records of this investment
        are considered; the ledger is never modified.
    as_of: date
        Reference "today". Periods ending on or before it are in the past.
    include_confirmed: bool
        Also return the consumed confirmed records as ``confirmed`` rows so a
        full timeline can be rendered from the result.
    strict: bool, optional
        Raise :class:`ScheduleInvariantError` on broken invariants instead of
        logging them. Defaults to the ``DEPOSIT_CALC_STRICT`` setting.

    Returns
    -------
    List[ScheduleRow]
        Rows sorted by date, then confirmed, accrued, expected.
    """
    if not terms.principal or not terms.interest_rate:
        return []
    if strict is None:
        strict = get_settings().strict_invariants

    ledger = list(confirmed_cashflows)
    confirmed_by_date = _confirmed_interest_by_date(terms, ledger)
    periods = generate_calendar_periods(terms)
    maturity = terms.maturity_date
    rate = terms.interest_rate
    cumulative = terms.is_cumulative

    if cumulative:
        expected_type = CashflowType.ACCRUED_INTEREST
        expected_label = "Expected Interest"
    else:
        expected_type = CashflowType.INTEREST_PAYOUT
        expected_label = f"Expected ({terms.interest_calculation_frequency.value})"

    rows: List[ScheduleRow] = []
    base = terms.principal  # interest is computed on this amount
    accumulated = terms.principal  # value owed at maturity for cumulative deposits
    previous: Optional[Tuple[int, Decimal]] = None

    for period in periods:
        end = period.end
        calculated = round2(simple_interest(base, rate, period.days))
        confirmed = confirmed_by_date.get(end)

        if confirmed is not None:
            booked = confirmed.amount
            if include_confirmed:
                rows.append(_confirmed_row(confirmed))
        else:
            booked = calculated
            if end <= as_of:
                if is_financial_year_end(end) or end == maturity:
                    rows.append(
                        _row(terms, RowKind.ACCRUED, end, CashflowType.ACCRUED_INTEREST, calculated, "Accrued Interest")
                    )
            else:
                rows.append(
                    _row(terms, RowKind.EXPECTED, end, expected_type, calculated, expected_label, _period_note(period))
                )

        if not cumulative:
            continue

        if terms.compounds and previous is not None and period.days > 0 and previous[0] > 0:
            previous_days, previous_interest = previous
            # compare interest per day so periods of different lengths line up
            if booked * previous_days <= previous_interest * period.days:
                logger.warning(
                    "%s: daily interest for period ending %s (%s over %s days) is not above "
                    "the previous period (%s over %s days); compounding may be broken",
                    terms.display_id,
                    end,
                    booked,
                    period.days,
                    previous_interest,
                    previous_days,
                )
        previous = (period.days, booked)

        updated = round2(accumulated + booked)
        if terms.compounds and updated <= accumulated:
            _violation(
                f"{terms.display_id}: running principal did not increase for period ending {end} "
                f"({accumulated} -> {updated})",
                strict,
            )
        accumulated = updated
        if terms.compounds:
            base = accumulated

    if cumulative and maturity is not None and maturity > as_of and not _has_confirmed_maturity(terms, ledger):
        label = (
            "Maturity Payout (Principal + Compounded Interest)"
            if terms.compounds
            else "Maturity Payout (Principal + Interest)"
        )
        rows.append(_row(terms, RowKind.MATURITY, maturity, CashflowType.MATURITY_PAYOUT, accumulated, label))

    rows.sort(key=lambda r: (r.date, r.priority))
    _check_schedule(terms, rows, confirmed_by_date.values(), as_of, strict)
    logger.debug(
        "%s: %d periods, %d rows, as of %s", terms.display_id, len(periods), len(rows), as_of
    )
    return rows


def accrued_interest_by_financial_year(terms: InvestmentTerms) -> "OrderedDict[str, Decimal]":
    """Split the interest earned over the tenure by Indian financial year.

    The cumulative interest earned up to each 31 March inside the tenure and
    up to maturity is computed with the investment's own convention
    (the selected maturity calculator for compounding deposits, simple
    interest otherwise); each year's accrual is the difference between two
    consecutive cumulative figures. Because the cumulative figures are
    rounded to the cent, the yearly accruals add up exactly to the total
    interest. Incomplete terms return an empty mapping.
    """
    result: "OrderedDict[str, Decimal]" = OrderedDict()
    start, maturity = terms.start_date, terms.maturity_date
    if not terms.principal or terms.interest_rate is None or start is None or maturity is None:
        return result
    if maturity <= start:
        return result

    boundaries: List[date] = []
    boundary = next_financial_year_end(start)
    while boundary < maturity:
        boundaries.append(boundary)
        boundary = next_financial_year_end(boundary)
    boundaries.append(maturity)

    earned_so_far = Decimal("0.00")
    for boundary in boundaries:
        if terms.compounds:
            cumulative = calculate_maturity(terms, boundary).interest_earned
        else:
            days = days_between_exclusive(start, boundary)
            cumulative = round2(simple_interest(terms.principal, terms.interest_rate, days))
        label = financial_year_label(boundary)
        result[label] = result.get(label, Decimal("0.00")) + (cumulative - earned_so_far)
        earned_so_far = cumulative
    return result
