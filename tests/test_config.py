import logging
from decimal import Decimal

from deposit_calc.config import DEFAULT_TDS_RATE, configure_logging, get_settings, load_settings


def test_defaults():
    settings = load_settings({})
    assert settings.tds_rate == DEFAULT_TDS_RATE
    assert settings.strict_invariants is False
    assert settings.log_level == "WARNING"


def test_values_from_environment():
    settings = load_settings(
        {"DEPOSIT_CALC_TDS_RATE": " 7.5 ", "DEPOSIT_CALC_STRICT": "Yes", "DEPOSIT_CALC_LOG_LEVEL": "debug"}
    )
    assert settings.tds_rate == Decimal("7.5")
    assert settings.strict_invariants is True
    assert settings.log_level == "DEBUG"


def test_invalid_tds_rate_falls_back(caplog):
    with caplog.at_level(logging.WARNING, logger="deposit_calc"):
        assert load_settings({"DEPOSIT_CALC_TDS_RATE": "ten"}).tds_rate == DEFAULT_TDS_RATE
        assert load_settings({"DEPOSIT_CALC_TDS_RATE": "150"}).tds_rate == DEFAULT_TDS_RATE
    assert len(caplog.records) == 2


def test_get_settings_reads_os_environ(monkeypatch):
    monkeypatch.setenv("DEPOSIT_CALC_TDS_RATE", "5")
    assert get_settings().tds_rate == Decimal("5")
    monkeypatch.setenv("DEPOSIT_CALC_TDS_RATE", "6")
    # cached until cleared
    assert get_settings().tds_rate == Decimal("5")


def test_configure_logging_sets_level():
    configure_logging("error")
    logger = logging.getLogger("deposit_calc")
    assert logger.level == logging.ERROR
    assert logger.handlers
