"""Cashflow adjustment and aggregation utilities.

System generated cashflows are never edited in place. When the bank's
figures differ from the calculated ones the user records an ``adjustment``
entry that points back at the record it corrects (``adjusts_cashflow_id``)
and tags what it corrects (``linked_to``). The functions here aggregate a
ledger into maturity figures, build such adjustment entries, and produce the
records that a premature closure adds to the ledger.

Every function is pure: ledgers passed in are never mutated and new lists
are returned instead. Missing data yields ``None``, zero or an empty list
rather than an exception so reports can render placeholders.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from .closure import apply_premature_closure
from .config import get_settings
from .data_models import (
    AdjustmentTarget,
    CashflowRecord,
    CashflowSource,
    CashflowStatus,
    CashflowType,
    InvestmentStatus,
    InvestmentTerms,
    PrematureClosure,
)
from .maturity import expected_maturity_amount
from .utils import Number, financial_year_label, round2, to_decimal

logger = logging.getLogger(__name__)

# linked_to tag of a manual adjustment, by the type of the record it corrects
ADJUSTMENT_TARGETS: Dict[CashflowType, AdjustmentTarget] = {
    CashflowType.TDS_DEDUCTION: AdjustmentTarget.TDS,
    CashflowType.INTEREST_PAYOUT: AdjustmentTarget.INTEREST,
    CashflowType.ACCRUED_INTEREST: AdjustmentTarget.INTEREST,
    CashflowType.MATURITY_PAYOUT: AdjustmentTarget.MATURITY,
    CashflowType.PENALTY: AdjustmentTarget.PENALTY,
    CashflowType.PREMATURE_CLOSURE: AdjustmentTarget.PREMATURE_CLOSURE,
}


def get_total_tds_for_investment(investment_id: Optional[str], ledger: Iterable[CashflowRecord]) -> Decimal:
    """Sum of the absolute TDS amounts recorded for an investment."""
    if not investment_id:
        return Decimal("0.00")
    total = sum(
        (abs(cf.amount) for cf in ledger if cf.investment_id == investment_id and cf.type == CashflowType.TDS_DEDUCTION),
        Decimal("0.00"),
    )
    return round2(total)


def _maturity_adjustments(terms: InvestmentTerms, ledger: Iterable[CashflowRecord]) -> Decimal:
    return sum(
        (
            cf.amount
            for cf in ledger
            if cf.investment_id == terms.id
            and cf.type == CashflowType.ADJUSTMENT
            and cf.linked_to == AdjustmentTarget.MATURITY
        ),
        Decimal("0"),
    )


def get_gross_maturity_amount(terms: InvestmentTerms, ledger: Iterable[CashflowRecord]) -> Optional[Decimal]:
    """Expected maturity amount plus manual adjustments linked to maturity.

    The stored ``expected_maturity_amount`` is used when present, otherwise
    it is computed from the terms. Returns ``None`` when neither is known.
    """
    base = terms.expected_maturity_amount
    if base is None:
        base = expected_maturity_amount(terms)
    if base is None:
        return None
    return round2(base + _maturity_adjustments(terms, ledger))


def get_net_maturity_amount(terms: InvestmentTerms, ledger: Iterable[CashflowRecord]) -> Optional[Decimal]:
    """Gross maturity amount less all TDS withheld on the investment."""
    records = list(ledger)
    gross = get_gross_maturity_amount(terms, records)
    if gross is None:
        return None
    return round2(gross - get_total_tds_for_investment(terms.id, records))


def get_effective_maturity_amount(terms: InvestmentTerms, ledger: Iterable[CashflowRecord]) -> Optional[Decimal]:
    """The maturity figure to display, by precedence.

    1. the payout recorded when the investment was closed at maturity;
    2. the final payout of a premature closure;
    3. the actual maturity amount entered by the user;
    4. the net maturity amount.
    """
    closure = terms.premature_closure
    prematurely_closed = closure is not None and closure.is_closed
    if terms.status == InvestmentStatus.CLOSED and terms.closure_amount is not None and not prematurely_closed:
        return terms.closure_amount
    if prematurely_closed and closure.final_payout is not None:
        return closure.final_payout
    if terms.actual_maturity_amount is not None:
        return terms.actual_maturity_amount
    return get_net_maturity_amount(terms, ledger)


def find_maturity_cashflow(
    ledger: Iterable[CashflowRecord], investment_id: Optional[str]
) -> Optional[CashflowRecord]:
    if not investment_id:
        return None
    for cf in ledger:
        if cf.investment_id == investment_id and cf.type == CashflowType.MATURITY_PAYOUT:
            return cf
    return None


def get_adjustments_for_cashflow(ledger: Iterable[CashflowRecord], cashflow_id: Optional[str]) -> List[CashflowRecord]:
    if not cashflow_id:
        return []
    return [cf for cf in ledger if cf.type == CashflowType.ADJUSTMENT and cf.adjusts_cashflow_id == cashflow_id]


def get_net_cashflow_amount(cashflow: Optional[CashflowRecord], ledger: Iterable[CashflowRecord]) -> Decimal:
    """Amount of ``cashflow`` including every adjustment pointing at it."""
    if cashflow is None:
        return Decimal("0")
    adjustments = get_adjustments_for_cashflow(ledger, cashflow.id)
    return cashflow.amount + sum((adj.amount for adj in adjustments), Decimal("0"))


def create_adjustment(
    cashflow: CashflowRecord,
    amount: Number,
    reason: Optional[str] = None,
    linked_to: Optional[AdjustmentTarget] = None,
) -> CashflowRecord:
    """Build a confirmed manual adjustment correcting ``cashflow`` by ``amount``.

    The ``linked_to`` tag is derived from the corrected record's type unless
    given explicitly.
    """
    target = linked_to or ADJUSTMENT_TARGETS.get(cashflow.type, AdjustmentTarget.MATURITY)
    return CashflowRecord(
        investment_id=cashflow.investment_id,
        date=cashflow.date,
        type=CashflowType.ADJUSTMENT,
        amount=to_decimal(amount),
        financial_year=cashflow.financial_year,
        source=CashflowSource.MANUAL,
        status=CashflowStatus.CONFIRMED,
        adjusts_cashflow_id=cashflow.id,
        linked_to=target,
        reason=reason,
    )


def create_maturity_adjustment(
    maturity_cashflow: Optional[CashflowRecord],
    calculated: Optional[Number],
    actual: Optional[Number],
) -> Optional[CashflowRecord]:
    """Adjustment for the difference between actual and calculated maturity.

    Returns ``None`` when any input is missing or the amounts agree.
    """
    if maturity_cashflow is None or calculated is None or actual is None:
        return None
    delta = to_decimal(actual) - to_decimal(calculated)
    if delta == 0:
        return None
    return create_adjustment(
        maturity_cashflow,
        delta,
        reason="Actual maturity override - reconciliation with bank statement",
        linked_to=AdjustmentTarget.MATURITY,
    )


def process_maturity_override(terms: InvestmentTerms, ledger: Iterable[CashflowRecord]) -> Optional[CashflowRecord]:
    """Adjustment entry implied by the user's actual maturity amount, if any."""
    if terms.actual_maturity_amount is None or terms.expected_maturity_amount is None:
        return None
    maturity_cashflow = find_maturity_cashflow(ledger, terms.id)
    if maturity_cashflow is None:
        return None
    return create_maturity_adjustment(
        maturity_cashflow, terms.expected_maturity_amount, terms.actual_maturity_amount
    )


def preserve_manual_cashflows(
    existing: Optional[Iterable[CashflowRecord]], new_system: Optional[Iterable[CashflowRecord]]
) -> List[CashflowRecord]:
    """Merge regenerated system rows with the manual rows of the old ledger.

    Manual-source and adjustment records survive regeneration; the result is
    de-duplicated by id, first occurrence wins.
    """
    fresh = list(new_system or [])
    if existing is None:
        return fresh
    kept = [cf for cf in existing if cf.source == CashflowSource.MANUAL or cf.type == CashflowType.ADJUSTMENT]

    merged: List[CashflowRecord] = []
    seen = set()
    for cf in fresh + kept:
        if cf.id in seen:
            continue
        seen.add(cf.id)
        merged.append(cf)
    return merged


def remove_future_cashflows(ledger: Iterable[CashflowRecord], cutoff: date) -> List[CashflowRecord]:
    """Drop system rows dated after ``cutoff``; manual-source rows are always kept.

    System-generated adjustments are treated like any other system row.
    """
    return [cf for cf in ledger if cf.is_manual or cf.date <= cutoff]


def generate_premature_closure_cashflows(
    terms: InvestmentTerms,
    closure: PrematureClosure,
    financial_year: Optional[str] = None,
    tds_rate: Optional[Number] = None,
) -> List[CashflowRecord]:
    """Ledger records produced by a premature closure, in order.

    * a ``maturity_payout`` of the final payout, when known;
    * a negative ``penalty`` when a fixed penalty applies;
    * a negative ``tds_deduction`` on the recalculated interest of a
      compounding deposit;
    * a zero-amount ``premature_closure`` audit record whose metadata lists
      the ids of the records above.

    ``tds_rate`` defaults to the configured rate.
    """
    fy = financial_year or financial_year_label(closure.closure_date)
    rate = to_decimal(tds_rate) if tds_rate is not None else get_settings().tds_rate

    def record(cashflow_type: CashflowType, amount: Decimal, **extra) -> CashflowRecord:
        return CashflowRecord(
            investment_id=terms.id,
            date=closure.closure_date,
            type=cashflow_type,
            amount=amount,
            financial_year=fy,
            source=CashflowSource.SYSTEM,
            status=CashflowStatus.CONFIRMED,
            **extra,
        )

    records: List[CashflowRecord] = []
    if closure.final_payout is not None:
        records.append(record(CashflowType.MATURITY_PAYOUT, closure.final_payout))
    if closure.penalty_amount > 0:
        records.append(record(CashflowType.PENALTY, -closure.penalty_amount))
    if terms.compounding and closure.recalculated_interest > 0:
        tds = round2(closure.recalculated_interest * rate / Decimal(100))
        if tds > 0:
            records.append(record(CashflowType.TDS_DEDUCTION, -tds))

    records.append(
        record(
            CashflowType.PREMATURE_CLOSURE,
            Decimal("0"),
            reason="Premature closure",
            metadata={
                "originalMaturityDate": terms.maturity_date.isoformat() if terms.maturity_date else None,
                "finalPayout": closure.final_payout,
                "penaltyAmount": closure.penalty_amount,
                "recalculatedInterest": closure.recalculated_interest,
                "linkedCashflowIds": [cf.id for cf in records],
            },
        )
    )
    return records


def record_premature_closure(
    terms: InvestmentTerms,
    ledger: Iterable[CashflowRecord],
    closure: PrematureClosure,
    tds_rate: Optional[Number] = None,
) -> Tuple[InvestmentTerms, List[CashflowRecord]]:
    """Close ``terms`` early and return the updated terms and ledger.

    System rows of this investment dated after the closure are dropped, the
    closure records are appended and the investment is marked closed.
    Records of other investments pass through unchanged.
    """
    records = list(ledger)
    own = [cf for cf in records if cf.investment_id == terms.id]
    others = [cf for cf in records if cf.investment_id != terms.id]
    kept = remove_future_cashflows(own, closure.closure_date)
    if len(kept) != len(own):
        logger.info(
            "%s: dropped %d projected cashflows after %s",
            terms.display_id,
            len(own) - len(kept),
            closure.closure_date,
        )
    closed = apply_premature_closure(terms, closure)
    return closed, others + kept + generate_premature_closure_cashflows(closed, closure, tds_rate=tds_rate)
