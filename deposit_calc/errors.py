"""Exception types raised by the deposit calculator.

Caller mistakes (bad principal, missing dates) surface as ``ValueError``
subclasses so existing ``except ValueError`` handlers keep working. Broken
schedule invariants are defects and only raise when strict mode is on.
"""


class DepositCalcError(Exception):
    """Base class for all errors raised by ``deposit_calc``."""


class CalculationInputError(DepositCalcError, ValueError):
    """Invalid input passed to a maturity calculator."""


class InvalidCashflowError(DepositCalcError, ValueError):
    """A cashflow record violates the sign rules of its type."""


class ScheduleInvariantError(DepositCalcError, AssertionError):
    """The schedule generator produced an inconsistent schedule."""
