from __future__ import annotations

import sys
from pathlib import Path
from typing import Callable

import pytest

# Ensure local "src/" takes precedence over any globally-installed "ztoken" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from ztoken.ledger.constants import (  # noqa: E402
    DEFAULT_ADMIN_DELAY_SECONDS,
    DEFAULT_FINAL_INFLATION_RATE,
    DEFAULT_INFLATION_RATES,
    DEFAULT_INITIAL_SUPPLY,
)
from ztoken.runtime import metrics  # noqa: E402
from ztoken.runtime.token import ZToken  # noqa: E402

ADMIN = "0x" + "a1" * 20
BENEFICIARY = "0x" + "b2" * 20
RANDOM = "0x" + "c3" * 20
DEPLOY_TIME = 1_722_542_400


@pytest.fixture(autouse=True)
def _reset_metrics() -> None:
    metrics.reset()


@pytest.fixture
def make_token() -> Callable[..., ZToken]:
    """Deploy a token with the reference parameters; any field can be overridden."""

    def _make(**overrides) -> ZToken:
        kwargs = dict(
            name="Z",
            symbol="Z",
            default_admin=ADMIN,
            initial_admin_delay=DEFAULT_ADMIN_DELAY_SECONDS,
            minter=ADMIN,
            mint_beneficiary=BENEFICIARY,
            initial_supply=DEFAULT_INITIAL_SUPPLY,
            inflation_rates=DEFAULT_INFLATION_RATES,
            final_inflation_rate=DEFAULT_FINAL_INFLATION_RATE,
            deploy_time=DEPLOY_TIME,
            clock=lambda: DEPLOY_TIME,
        )
        kwargs.update(overrides)
        return ZToken(**kwargs)

    return _make
