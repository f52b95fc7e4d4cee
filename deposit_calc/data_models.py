"""Data models for the deposit calculator.

This module defines the enums and dataclasses shared by the calculators: the
terms of an investment, ledger cashflow records, premature closure records,
schedule rows and calculation results. Cashflow types are a closed enum; the
legacy strings found in older data (``interest``, ``tds``, ``maturity``) are
normalised when a record is built so business logic never compares raw
strings.

Helpers at the bottom convert the camelCase dictionaries used by JSON
fixtures into records and back.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .errors import InvalidCashflowError
from .utils import financial_year_label, parse_date, to_decimal


def new_id() -> str:
    """Return a random identifier for a ledger record."""
    return uuid4().hex


class Frequency(str, Enum):
    """How often interest is calculated (and compounds, when enabled)."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "annually":
                return cls.YEARLY
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class PayoutFrequency(str, Enum):
    """When interest is disbursed. ``maturity`` means a cumulative deposit."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"
    MATURITY = "maturity"

    @classmethod
    def _missing_(cls, value):
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered == "annually":
                return cls.YEARLY
            for member in cls:
                if member.value == lowered:
                    return member
        return None


class CalculationMode(str, Enum):
    FRACTIONAL = "fractional"
    BANK = "bank"


class CashflowType(str, Enum):
    """Canonical cashflow kinds recorded in the ledger."""

    PRINCIPAL = "principal"
    INTEREST_PAYOUT = "interest_payout"
    ACCRUED_INTEREST = "accrued_interest"
    MATURITY_PAYOUT = "maturity_payout"
    TDS_DEDUCTION = "tds_deduction"
    REINVESTMENT = "reinvestment"
    ADJUSTMENT = "adjustment"
    PENALTY = "penalty"
    PREMATURE_CLOSURE = "premature_closure"
    UNALLOCATED = "unallocated"
    CLOSURE = "closure"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        lowered = value.strip().lower()
        if lowered in LEGACY_CASHFLOW_ALIASES:
            return cls(LEGACY_CASHFLOW_ALIASES[lowered])
        for member in cls:
            if member.value == lowered:
                return member
        return None

    @property
    def is_interest(self) -> bool:
        return self in (CashflowType.INTEREST_PAYOUT, CashflowType.ACCRUED_INTEREST)


# Older records and fixtures use these names for the canonical kinds.
LEGACY_CASHFLOW_ALIASES: Dict[str, str] = {
    "interest": "interest_payout",
    "tds": "tds_deduction",
    "maturity": "maturity_payout",
    "interest_accrual": "accrued_interest",
    "accrued": "accrued_interest",
}

INFLOW_TYPES = frozenset(
    {CashflowType.INTEREST_PAYOUT, CashflowType.ACCRUED_INTEREST, CashflowType.MATURITY_PAYOUT}
)
OUTFLOW_TYPES = frozenset({CashflowType.TDS_DEDUCTION, CashflowType.REINVESTMENT, CashflowType.PENALTY})


class CashflowSource(str, Enum):
    SYSTEM = "system"
    MANUAL = "manual"


class CashflowStatus(str, Enum):
    PLANNED = "planned"
    CONFIRMED = "confirmed"
    ADJUSTED = "adjusted"


class InvestmentStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"


class AdjustmentTarget(str, Enum):
    """What a manual adjustment entry corrects (the ``linkedTo`` tag)."""

    MATURITY = "MATURITY"
    INTEREST = "INTEREST"
    TDS = "TDS"
    PENALTY = "PENALTY"
    PREMATURE_CLOSURE = "PREMATURE_CLOSURE"


class RowKind(str, Enum):
    """Kind of a generated schedule row."""

    CONFIRMED = "confirmed"
    ACCRUED = "accrued"
    EXPECTED = "expected"
    MATURITY = "maturity"

    @property
    def priority(self) -> int:
        # Same-date ordering: confirmed -> accrued -> expected
        return {RowKind.CONFIRMED: 1, RowKind.ACCRUED: 2}.get(self, 3)


def _optional_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    return to_decimal(value)


def _optional_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    return parse_date(value)


def parse_compounding(value: Any) -> bool:
    """Interpret the ``compounding`` flag (``yes``/``no`` or a boolean); missing means no."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() not in {"", "no", "false", "0", "n", "off"}


@dataclass(frozen=True)
class PrematureClosure:
    """The outcome of closing an investment before maturity.

    Attributes
    ----------
    is_closed: bool
        Whether the closure has been recorded.
    closure_date: date
        The date the deposit was broken.
    penalty_rate: Decimal
        Percentage points deducted from the contracted rate.
    penalty_amount: Decimal
        Fixed amount deducted from the payout.
    recalculated_interest: Decimal
        Interest earned up to ``closure_date`` at the effective rate.
    final_payout: Decimal
        ``principal + recalculated_interest - penalty_amount`` floored at 0.
    maturity_override: Decimal, optional
        Amount actually credited by the bank when it differs.
    """

    closure_date: date
    is_closed: bool = True
    penalty_rate: Decimal = Decimal("0")
    penalty_amount: Decimal = Decimal("0")
    recalculated_interest: Decimal = Decimal("0")
    final_payout: Optional[Decimal] = None
    maturity_override: Optional[Decimal] = None


@dataclass(frozen=True)
class InvestmentTerms:
    """Terms of a single fixed-income investment.

    ``principal`` and ``interest_rate`` are optional so half-filled wizard
    state can be represented; the schedule generator returns an empty
    schedule for such terms. ``interest_rate`` is an annual percentage
    (``7.75`` for 7.75%).
    """

    start_date: Optional[date]
    maturity_date: Optional[date]
    principal: Optional[Decimal] = None
    interest_rate: Optional[Decimal] = None
    id: str = field(default_factory=new_id)
    interest_calculation_frequency: Frequency = Frequency.YEARLY
    interest_payout_frequency: PayoutFrequency = PayoutFrequency.MATURITY
    compounding: bool = False
    calculation_mode: CalculationMode = CalculationMode.FRACTIONAL
    external_id: Optional[str] = None
    name: Optional[str] = None
    expected_maturity_amount: Optional[Decimal] = None
    actual_maturity_amount: Optional[Decimal] = None
    status: InvestmentStatus = InvestmentStatus.ACTIVE
    closed_at: Optional[date] = None
    closure_amount: Optional[Decimal] = None
    premature_closure: Optional[PrematureClosure] = None

    def __post_init__(self) -> None:
        # Accept loose input types (strings, floats) and store canonical ones.
        object.__setattr__(self, "start_date", _optional_date(self.start_date))
        object.__setattr__(self, "maturity_date", _optional_date(self.maturity_date))
        object.__setattr__(self, "principal", _optional_decimal(self.principal))
        object.__setattr__(self, "interest_rate", _optional_decimal(self.interest_rate))
        object.__setattr__(self, "interest_calculation_frequency", Frequency(self.interest_calculation_frequency))
        object.__setattr__(self, "interest_payout_frequency", PayoutFrequency(self.interest_payout_frequency))
        object.__setattr__(self, "compounding", parse_compounding(self.compounding))
        object.__setattr__(self, "calculation_mode", CalculationMode(self.calculation_mode))
        object.__setattr__(self, "status", InvestmentStatus(self.status))
        object.__setattr__(self, "expected_maturity_amount", _optional_decimal(self.expected_maturity_amount))
        object.__setattr__(self, "actual_maturity_amount", _optional_decimal(self.actual_maturity_amount))
        object.__setattr__(self, "closure_amount", _optional_decimal(self.closure_amount))
        object.__setattr__(self, "closed_at", _optional_date(self.closed_at))

    @property
    def is_cumulative(self) -> bool:
        """Interest is paid only at maturity."""
        return self.interest_payout_frequency == PayoutFrequency.MATURITY

    @property
    def compounds(self) -> bool:
        """Interest is added back to the calculation base every period."""
        return self.is_cumulative and self.compounding

    @property
    def display_id(self) -> str:
        return self.external_id or self.id

    def validate(self) -> List[str]:
        """Return human readable problems with the terms (empty when valid)."""
        errors: List[str] = []
        if self.principal is None or self.principal <= 0:
            errors.append("Principal must be a positive amount")
        if self.interest_rate is None or self.interest_rate < 0:
            errors.append("Interest rate must be a non-negative percentage")
        if self.start_date is None or self.maturity_date is None:
            errors.append("Start date and maturity date are required")
        elif self.maturity_date <= self.start_date:
            errors.append(
                f"Maturity date ({self.maturity_date}) must be after start date ({self.start_date})"
            )
        if self.compounding and not self.is_cumulative:
            errors.append("Payout frequency must be Maturity if compounding is enabled")
        return errors

    def with_changes(self, **changes: Any) -> "InvestmentTerms":
        """Return a copy with ``changes`` applied; the original is untouched."""
        return replace(self, **changes)


@dataclass(frozen=True)
class CashflowRecord:
    """A single money movement recorded against an investment.

    Amounts are signed: inflows (interest, maturity payouts) are positive,
    outflows (TDS, penalties, reinvested cash) are negative. Adjustment
    entries may carry either sign. ``premature_closure`` records are audit
    entries and always carry zero.
    """

    investment_id: Optional[str]
    date: date
    type: CashflowType
    amount: Decimal
    id: str = field(default_factory=new_id)
    financial_year: Optional[str] = None
    source: CashflowSource = CashflowSource.SYSTEM
    status: CashflowStatus = CashflowStatus.PLANNED
    adjusts_cashflow_id: Optional[str] = None
    linked_to: Optional[AdjustmentTarget] = None
    reason: Optional[str] = None
    source_investment_id: Optional[str] = None
    reinvested_investment_id: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "date", parse_date(self.date))
        object.__setattr__(self, "type", CashflowType(self.type))
        object.__setattr__(self, "amount", to_decimal(self.amount))
        object.__setattr__(self, "source", CashflowSource(self.source))
        object.__setattr__(self, "status", CashflowStatus(self.status))
        if self.linked_to is not None and not isinstance(self.linked_to, AdjustmentTarget):
            object.__setattr__(self, "linked_to", AdjustmentTarget(self.linked_to.upper()))
        if not self.financial_year:
            object.__setattr__(self, "financial_year", financial_year_label(self.date))

        if self.type in INFLOW_TYPES and self.amount < 0:
            raise InvalidCashflowError(f"{self.type.value} amount must not be negative (got {self.amount})")
        if self.type in OUTFLOW_TYPES and self.amount > 0:
            raise InvalidCashflowError(f"{self.type.value} amount must not be positive (got {self.amount})")
        if self.type == CashflowType.PREMATURE_CLOSURE and self.amount != 0:
            raise InvalidCashflowError(f"premature_closure audit entries carry no amount (got {self.amount})")

    @property
    def is_manual(self) -> bool:
        return self.source == CashflowSource.MANUAL


@dataclass
class Period:
    """A calculation period ending on a calendar boundary."""

    start: date
    end: date
    days: int
    is_prorated: bool = False


@dataclass
class ScheduleRow:
    """A row of the generated interest schedule.

    ``kind`` tells whether the interest is already booked (confirmed), earned
    but unpaid (accrued) or projected (expected / maturity). Rows whose
    ``is_preview`` flag is set are always safe to regenerate.
    """

    id: str
    investment_id: Optional[str]
    date: date
    kind: RowKind
    cashflow_type: CashflowType
    amount: Decimal
    financial_year: str
    source: CashflowSource = CashflowSource.SYSTEM
    status: CashflowStatus = CashflowStatus.PLANNED
    is_preview: bool = False
    label: str = ""
    period_note: Optional[str] = None

    @property
    def priority(self) -> int:
        return self.kind.priority


@dataclass
class MaturityResult:
    """Outcome of a maturity calculation; ``explanation`` keeps intermediates."""

    maturity_amount: Decimal
    interest_earned: Decimal
    explanation: Dict[str, Any] = field(default_factory=dict)


@dataclass
class PrematureInterest:
    """Interest earned up to a premature closure date."""

    interest_earned: Decimal
    effective_rate: Decimal
    explanation: Any = None


@dataclass
class ClosurePayout:
    """What the bank pays when an investment is broken early.

    Attributes
    ----------
    final_payout: Decimal
        ``principal + recalculated_interest - penalties``, never negative.
    recalculated_interest: Decimal
        Interest at the effective (penalised) rate up to the closure date.
    penalties: Decimal
        Fixed penalty amount deducted from the payout.
    effective_rate: Decimal
        Contracted rate minus the penalty rate, floored at zero.
    """

    final_payout: Decimal
    recalculated_interest: Decimal
    penalties: Decimal
    effective_rate: Decimal
    explanation: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FinancialYearSummary:
    """Income of one financial year. ``tds`` is positive (amount withheld)."""

    interest: Decimal = Decimal("0.00")
    accrued: Decimal = Decimal("0.00")
    tds: Decimal = Decimal("0.00")
    net_income: Decimal = Decimal("0.00")
    tds_estimated: bool = False


@dataclass
class InvestmentPreview:
    """Everything the creation wizard shows before an investment is saved."""

    terms: InvestmentTerms
    rows: List[ScheduleRow] = field(default_factory=list)
    maturity: Optional[MaturityResult] = None
    expected_maturity_amount: Optional[Decimal] = None
    fy_accruals: Dict[str, Decimal] = field(default_factory=dict)
    fy_summary: Dict[str, FinancialYearSummary] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)


# JSON fixture helpers ---------------------------------------------------------

def _pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def closure_from_dict(data: Dict[str, Any]) -> PrematureClosure:
    return PrematureClosure(
        closure_date=parse_date(_pick(data, "closureDate", "closure_date")),
        is_closed=bool(_pick(data, "isClosed", "is_closed", default=True)),
        penalty_rate=to_decimal(_pick(data, "penaltyRate", "penalty_rate", default=0)),
        penalty_amount=to_decimal(_pick(data, "penaltyAmount", "penalty_amount", default=0)),
        recalculated_interest=to_decimal(
            _pick(data, "recalculatedInterest", "recalculated_interest", default=0)
        ),
        final_payout=_optional_decimal(_pick(data, "finalPayout", "final_payout")),
        maturity_override=_optional_decimal(_pick(data, "maturityOverride", "maturity_override")),
    )


def investment_from_dict(data: Dict[str, Any]) -> InvestmentTerms:
    """Build :class:`InvestmentTerms` from a camelCase (or snake_case) dict."""
    closure = _pick(data, "prematureClosure", "premature_closure")
    kwargs: Dict[str, Any] = dict(
        start_date=_pick(data, "startDate", "start_date"),
        maturity_date=_pick(data, "maturityDate", "maturity_date"),
        principal=_pick(data, "principal"),
        interest_rate=_pick(data, "interestRate", "interest_rate"),
        interest_calculation_frequency=_pick(
            data, "interestCalculationFrequency", "interest_calculation_frequency", default="yearly"
        ),
        interest_payout_frequency=_pick(
            data, "interestPayoutFrequency", "interest_payout_frequency", default="maturity"
        ),
        compounding=_pick(data, "compounding", default=False),
        calculation_mode=_pick(data, "calculationMode", "calculation_mode", default="fractional"),
        external_id=_pick(data, "externalInvestmentId", "external_id"),
        name=_pick(data, "name"),
        expected_maturity_amount=_pick(data, "expectedMaturityAmount", "expected_maturity_amount"),
        actual_maturity_amount=_pick(data, "actualMaturityAmount", "actual_maturity_amount"),
        status=_pick(data, "status", default="active"),
        closed_at=_pick(data, "closedAt", "closed_at"),
        closure_amount=_pick(data, "closureAmount", "closure_amount"),
        premature_closure=closure_from_dict(closure) if closure else None,
    )
    if data.get("id"):
        kwargs["id"] = data["id"]
    return InvestmentTerms(**kwargs)


def cashflow_from_dict(data: Dict[str, Any]) -> CashflowRecord:
    """Build a :class:`CashflowRecord`, normalising legacy type names."""
    kwargs: Dict[str, Any] = dict(
        investment_id=_pick(data, "investmentId", "investment_id"),
        date=_pick(data, "date"),
        type=_pick(data, "type"),
        amount=_pick(data, "amount", default=0),
        financial_year=_pick(data, "financialYear", "financial_year", "fy"),
        source=_pick(data, "source", default="system"),
        status=_pick(data, "status", default="planned"),
        adjusts_cashflow_id=_pick(data, "adjustsCashflowId", "adjusts_cashflow_id"),
        linked_to=_pick(data, "linkedTo", "linked_to"),
        reason=_pick(data, "reason"),
        source_investment_id=_pick(data, "sourceInvestmentId", "source_investment_id"),
        reinvested_investment_id=_pick(
            data, "reinvestedInvestmentId", "targetInvestmentId", "reinvested_investment_id"
        ),
        metadata=_pick(data, "metadata"),
    )
    if data.get("id"):
        kwargs["id"] = data["id"]
    return CashflowRecord(**kwargs)


def cashflow_to_dict(record: CashflowRecord) -> Dict[str, Any]:
    """Serialise a record to the camelCase shape used by fixtures."""
    return {
        "id": record.id,
        "investmentId": record.investment_id,
        "date": record.date.isoformat(),
        "type": record.type.value,
        "amount": float(record.amount),
        "financialYear": record.financial_year,
        "source": record.source.value,
        "status": record.status.value,
        "adjustsCashflowId": record.adjusts_cashflow_id,
        "linkedTo": record.linked_to.value if record.linked_to else None,
        "reason": record.reason,
        "sourceInvestmentId": record.source_investment_id,
        "reinvestedInvestmentId": record.reinvested_investment_id,
        "metadata": record.metadata,
    }
