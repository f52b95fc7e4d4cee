"""Financial year reporting built on top of the schedule engine.

Turns schedule rows into ledger records, derives TDS deductions from
interest records and groups a ledger into per financial year income
summaries. :func:`build_investment_preview` bundles all of it for an
investment that has not been saved yet.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from .config import get_settings
from .data_models import (
    CashflowRecord,
    CashflowSource,
    CashflowStatus,
    CashflowType,
    FinancialYearSummary,
    InvestmentPreview,
    InvestmentTerms,
    RowKind,
    ScheduleRow,
)
from .engine import accrued_interest_by_financial_year, generate_interest_schedule
from .maturity import calculate_maturity, expected_maturity_amount
from .utils import Number, round2, to_decimal

logger = logging.getLogger(__name__)


def schedule_to_cashflows(rows: Iterable[ScheduleRow], terms: InvestmentTerms) -> List[CashflowRecord]:
    """Convert generated rows into ledger records.

    Confirmed rows are already in the ledger and are skipped. Accrued rows
    describe the past and become confirmed records; expected and maturity
    rows stay planned.
    """
    records: List[CashflowRecord] = []
    for row in rows:
        if row.kind == RowKind.CONFIRMED:
            continue
        status = CashflowStatus.CONFIRMED if row.kind == RowKind.ACCRUED else CashflowStatus.PLANNED
        records.append(
            CashflowRecord(
                id=row.id,
                investment_id=terms.id,
                date=row.date,
                type=row.cashflow_type,
                amount=row.amount,
                financial_year=row.financial_year,
                source=CashflowSource.SYSTEM,
                status=status,
            )
        )
    return records


def generate_tds_cashflows(records: Iterable[CashflowRecord], tds_rate: Number) -> List[CashflowRecord]:
    """One negative ``tds_deduction`` per booked interest record.

    Planned (projected) interest is not taxed yet. Each deduction keeps the
    date, financial year and status of its interest record and refers back
    to it through ``metadata["taxesCashflowId"]``.
    """
    rate = to_decimal(tds_rate)
    deductions: List[CashflowRecord] = []
    for cf in records:
        if not cf.type.is_interest or cf.status == CashflowStatus.PLANNED or cf.amount <= 0:
            continue
        tds = round2(cf.amount * rate / Decimal(100))
        if tds == 0:
            continue
        deductions.append(
            CashflowRecord(
                investment_id=cf.investment_id,
                date=cf.date,
                type=CashflowType.TDS_DEDUCTION,
                amount=-tds,
                financial_year=cf.financial_year,
                source=CashflowSource.SYSTEM,
                status=cf.status,
                metadata={"taxesCashflowId": cf.id},
            )
        )
    return deductions


def summarize_by_financial_year(
    records: Iterable[CashflowRecord], tds_rate: Optional[Number] = None
) -> "OrderedDict[str, FinancialYearSummary]":
    """Group interest, accruals and TDS by financial year.

    When a year has no TDS records and ``tds_rate`` is given, its TDS is
    estimated from that year's interest and ``tds_estimated`` is set.
    """
    by_year: Dict[str, FinancialYearSummary] = {}
    has_tds: Dict[str, bool] = {}
    for cf in records:
        summary = by_year.setdefault(cf.financial_year, FinancialYearSummary())
        if cf.type == CashflowType.INTEREST_PAYOUT:
            summary.interest += cf.amount
        elif cf.type == CashflowType.ACCRUED_INTEREST:
            summary.accrued += cf.amount
        elif cf.type == CashflowType.TDS_DEDUCTION:
            summary.tds += abs(cf.amount)
            has_tds[cf.financial_year] = True

    rate = to_decimal(tds_rate) if tds_rate is not None else None
    result: "OrderedDict[str, FinancialYearSummary]" = OrderedDict()
    for label in sorted(by_year):
        summary = by_year[label]
        if rate is not None and not has_tds.get(label):
            summary.tds = round2((summary.interest + summary.accrued) * rate / Decimal(100))
            summary.tds_estimated = summary.tds > 0
        summary.interest = round2(summary.interest)
        summary.accrued = round2(summary.accrued)
        summary.tds = round2(summary.tds)
        summary.net_income = round2(summary.interest + summary.accrued - summary.tds)
        result[label] = summary
    return result


def build_investment_preview(
    terms: InvestmentTerms,
    as_of: date,
    tds_rate: Optional[Number] = None,
    ledger: Optional[Iterable[CashflowRecord]] = None,
) -> InvestmentPreview:
    """Compute the preview of an investment, new or already on the books.

    Booked (non-planned) records of ``ledger`` are taken as they are,
    including their TDS; the schedule fills in the periods they leave open
    and only those generated rows get derived TDS. Invalid or incomplete
    terms produce a preview with only ``warnings`` filled in.
    """
    preview = InvestmentPreview(terms=terms, warnings=terms.validate())
    if preview.warnings:
        logger.debug("%s: preview skipped: %s", terms.display_id, "; ".join(preview.warnings))
        return preview

    booked = [
        cf for cf in ledger or [] if cf.investment_id == terms.id and cf.status != CashflowStatus.PLANNED
    ]
    rate = to_decimal(tds_rate) if tds_rate is not None else get_settings().tds_rate
    preview.rows = generate_interest_schedule(terms, booked, as_of)
    if terms.compounds:
        preview.maturity = calculate_maturity(terms)
    preview.expected_maturity_amount = expected_maturity_amount(terms)
    preview.fy_accruals = accrued_interest_by_financial_year(terms)

    generated = schedule_to_cashflows(preview.rows, terms)
    records = booked + generated + generate_tds_cashflows(generated, rate)
    preview.fy_summary = summarize_by_financial_year(records, rate)
    return preview
