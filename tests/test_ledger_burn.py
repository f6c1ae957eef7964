from __future__ import annotations

import pytest

from conftest import BENEFICIARY, RANDOM
from ztoken.ledger.balances import TokenLedger, TransferEvent
from ztoken.ledger.constants import UNIT, ZERO_ADDRESS
from ztoken.runtime import metrics
from ztoken.runtime.errors import InsufficientBalance, InvalidReceiver

TOKEN = "0x" + "ee" * 20


def _ledger(balance: int = 100) -> TokenLedger:
    led = TokenLedger(token_address=TOKEN)
    led.credit(BENEFICIARY, balance)
    return led


def test_transfer_to_token_address_burns() -> None:
    led = _ledger()
    r = led.transfer(BENEFICIARY, TOKEN, 40)

    assert r == {
        "applied": "BURN",
        "from": BENEFICIARY,
        "amount": 40,
        "total_supply": 60,
        "events": [
            TransferEvent(BENEFICIARY, TOKEN, 40).to_json(),
            TransferEvent(BENEFICIARY, ZERO_ADDRESS, 40).to_json(),
        ],
    }
    assert led.balance_of(BENEFICIARY) == 60
    assert led.balance_of(TOKEN) == 0
    assert led.total_supply == 60


def test_token_address_match_is_case_insensitive() -> None:
    led = _ledger()
    r = led.transfer(BENEFICIARY, TOKEN.upper().replace("0X", "0x"), 1)
    assert r["applied"] == "BURN"


def test_regular_transfer_keeps_supply() -> None:
    led = _ledger()
    r = led.transfer(BENEFICIARY, RANDOM, 30)
    assert r["applied"] == "TRANSFER"
    assert led.balance_of(RANDOM) == 30
    assert led.total_supply == 100
    assert r["events"] == [{"from": BENEFICIARY, "to": RANDOM, "amount": "30"}]


def test_transfer_to_null_address_is_rejected() -> None:
    led = _ledger()
    with pytest.raises(InvalidReceiver):
        led.transfer(BENEFICIARY, ZERO_ADDRESS, 1)
    assert led.total_supply == 100
    assert led.balance_of(BENEFICIARY) == 100


def test_burn_more_than_balance_fails() -> None:
    led = _ledger()
    with pytest.raises(InsufficientBalance):
        led.transfer(BENEFICIARY, TOKEN, 101)
    assert led.total_supply == 100
    assert led.balance_of(BENEFICIARY) == 100


def test_credit_rejects_null_receiver() -> None:
    led = TokenLedger(token_address=TOKEN)
    with pytest.raises(InvalidReceiver):
        led.credit(ZERO_ADDRESS, 5)


def test_ledger_state_round_trip() -> None:
    led = _ledger()
    led.transfer(BENEFICIARY, RANDOM, 7)
    again = TokenLedger.from_state(led.to_state())
    assert again.total_supply == led.total_supply
    assert again.balance_of(RANDOM) == 7
    assert again.balance_of(BENEFICIARY) == 93


def test_token_burn_updates_metrics(make_token, monkeypatch) -> None:
    monkeypatch.setenv("ZTOKEN_METRICS_ENABLED", "1")
    tok = make_token()
    tok.transfer(BENEFICIARY, tok.token_address, 10 * UNIT)

    snap = metrics.snapshot()
    assert snap["counters"]["burned_tokens"] == 10
    assert snap["gauges"]["total_supply_tokens"] == tok.total_supply // UNIT


def test_credit_receipt_carries_mint_event() -> None:
    led = TokenLedger(token_address=TOKEN)
    r = led.credit(RANDOM, 9)
    assert r["events"] == [{"from": ZERO_ADDRESS, "to": RANDOM, "amount": "9"}]


def test_ledger_keeps_no_event_history() -> None:
    led = _ledger()
    for _ in range(50):
        led.transfer(BENEFICIARY, RANDOM, 1)
    assert not hasattr(led, "events")
    assert "events" not in led.to_state()
