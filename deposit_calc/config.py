"""Runtime settings for the deposit calculator.

Settings are read from environment variables so the same code can run in a
relaxed mode for end users and a strict mode in development and CI:

``DEPOSIT_CALC_TDS_RATE``
    Percentage withheld as TDS when closure cashflows are generated
    (default ``10``).
``DEPOSIT_CALC_STRICT``
    When truthy (``1``, ``true``, ``yes``, ``on``) broken schedule invariants
    raise instead of only being logged.
``DEPOSIT_CALC_LOG_LEVEL``
    Level used by :func:`configure_logging` (default ``WARNING``).
"""

from __future__ import annotations

import logging
import logging.config
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from typing import Mapping, Optional

TDS_RATE_ENV = "DEPOSIT_CALC_TDS_RATE"
STRICT_ENV = "DEPOSIT_CALC_STRICT"
LOG_LEVEL_ENV = "DEPOSIT_CALC_LOG_LEVEL"

DEFAULT_TDS_RATE = Decimal("10")

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "standard": {
            "format": LOG_FORMAT,
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "standard",
            "stream": "ext://sys.stderr",
        },
    },
    "loggers": {
        "deposit_calc": {
            "handlers": ["console"],
            "level": "WARNING",
            "propagate": True,
        },
    },
}

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    tds_rate: Decimal = DEFAULT_TDS_RATE
    strict_invariants: bool = False
    log_level: str = "WARNING"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from a mapping of environment variables.

    Invalid TDS rates fall back to the default with a warning rather than
    failing, since a bad environment should not stop a report from rendering.
    """
    env = os.environ if environ is None else environ
    tds_rate = DEFAULT_TDS_RATE
    raw_rate = env.get(TDS_RATE_ENV)
    if raw_rate:
        try:
            tds_rate = Decimal(raw_rate.strip())
        except InvalidOperation:
            logging.getLogger(__name__).warning(
                "Ignoring invalid %s=%r, using %s", TDS_RATE_ENV, raw_rate, DEFAULT_TDS_RATE
            )
        else:
            if tds_rate < 0 or tds_rate > 100:
                logging.getLogger(__name__).warning(
                    "Ignoring out-of-range %s=%s, using %s", TDS_RATE_ENV, tds_rate, DEFAULT_TDS_RATE
                )
                tds_rate = DEFAULT_TDS_RATE
    strict = env.get(STRICT_ENV, "").strip().lower() in _TRUTHY
    log_level = env.get(LOG_LEVEL_ENV, "WARNING").strip().upper() or "WARNING"
    return Settings(tds_rate=tds_rate, strict_invariants=strict, log_level=log_level)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings read once from ``os.environ``."""
    return load_settings()


def configure_logging(level: Optional[str] = None) -> None:
    """Install :data:`LOGGING_CONFIG`; used by the command line entry point."""
    config = dict(LOGGING_CONFIG)
    loggers = {name: dict(cfg) for name, cfg in LOGGING_CONFIG["loggers"].items()}
    loggers["deposit_calc"]["level"] = (level or get_settings().log_level).upper()
    config["loggers"] = loggers
    logging.config.dictConfig(config)
