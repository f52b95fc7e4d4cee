import logging
from datetime import date
from decimal import Decimal

import pytest

from deposit_calc.config import get_settings
from deposit_calc.data_models import InvestmentTerms


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
    # the CLI installs a console handler bound to the runner's stderr
    logger = logging.getLogger("deposit_calc")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def cumulative_fd():
    return InvestmentTerms(
        id="fd-750k",
        principal=Decimal("750000"),
        interest_rate=Decimal("6.75"),
        start_date=date(2024, 8, 23),
        maturity_date=date(2025, 11, 20),
        interest_calculation_frequency="quarterly",
        interest_payout_frequency="maturity",
        compounding=True,
    )


@pytest.fixture
def scss():
    return InvestmentTerms(
        id="scss-1",
        principal=Decimal("300000"),
        interest_rate=Decimal("8.0"),
        start_date=date(2023, 6, 1),
        maturity_date=date(2028, 6, 1),
        interest_calculation_frequency="quarterly",
        interest_payout_frequency="quarterly",
        compounding="no",
    )


@pytest.fixture
def simple_fd():
    return InvestmentTerms(
        id="inv-1",
        principal=Decimal("100000"),
        interest_rate=Decimal("7"),
        start_date=date(2024, 9, 19),
        maturity_date=date(2025, 12, 7),
        interest_calculation_frequency="quarterly",
        interest_payout_frequency="maturity",
        compounding="no",
    )
