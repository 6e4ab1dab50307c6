"""Tunable limits for the payoff engine.

The defaults mirror the behaviour users of the debt dashboard are used to
(a 100 year horizon, one cent payoff tolerance). Deployments can override
them through environment variables without touching code.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

ENV_PREFIX = "DEBT_PAYOFF_"


@dataclass(frozen=True)
class EngineSettings:
    """Limits shared by the interest model, simulator and calculators.

    Attributes
    ----------
    horizon_months: int
        Maximum simulated duration; a run that reaches it is non-convergent.
    payoff_epsilon: Decimal
        A balance at or below this amount counts as paid off.
    large_number_threshold: Decimal
        Amounts above this are rounded through integer cents.
    max_monthly_interest_fraction: Decimal
        Monthly interest above this fraction of the balance is capped.
    max_total_interest_multiple: Decimal
        Cumulative interest above this multiple of the balance is capped.
    """

    horizon_months: int = 1200
    payoff_epsilon: Decimal = Decimal("0.01")
    large_number_threshold: Decimal = Decimal("1000000")
    max_monthly_interest_fraction: Decimal = Decimal("0.20")
    max_total_interest_multiple: Decimal = Decimal("1.5")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            horizon_months=_read_int(env, "HORIZON_MONTHS", defaults.horizon_months),
            payoff_epsilon=_read_decimal(env, "EPSILON", defaults.payoff_epsilon),
            large_number_threshold=_read_decimal(
                env, "LARGE_NUMBER_THRESHOLD", defaults.large_number_threshold
            ),
            max_monthly_interest_fraction=_read_decimal(
                env, "MAX_MONTHLY_INTEREST_FRACTION", defaults.max_monthly_interest_fraction
            ),
            max_total_interest_multiple=_read_decimal(
                env, "MAX_TOTAL_INTEREST_MULTIPLE", defaults.max_total_interest_multiple
            ),
        )


def _read_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(ENV_PREFIX + name)
    if raw in (None, ""):
        return default
    try:
        value = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, name, raw)
        return default
    return value if value > 0 else default


def _read_decimal(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(ENV_PREFIX + name)
    if raw in (None, ""):
        return default
    try:
        value = Decimal(raw)
    except InvalidOperation:
        logger.warning("Ignoring invalid %s%s=%r", ENV_PREFIX, name, raw)
        return default
    return value if value.is_finite() and value > 0 else default


DEFAULT_SETTINGS = EngineSettings()


def database_url_from_env(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    env = os.environ if environ is None else environ
    return env.get(ENV_PREFIX + "DATABASE_URL") or None
