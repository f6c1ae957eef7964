# src/ztoken/ledger/balances.py
from __future__ import annotations

"""Fungible balance ledger.

One rule beyond plain transfers: sending tokens to the token's own address
burns them. Balance and total supply both drop, and the receipt carries two
transfer events (holder -> token, then holder -> null address). Events are not
kept here; the store appends them to its transfer log.
"""

from dataclasses import dataclass, field
from typing import Any, Dict

from ztoken.ledger.constants import ZERO_ADDRESS
from ztoken.runtime.errors import InsufficientBalance, InvalidReceiver

Json = Dict[str, Any]


def normalize_address(addr: Any) -> str:
    return str(addr or "").strip().lower()


def is_zero_address(addr: Any) -> bool:
    a = normalize_address(addr)
    return a in {"", ZERO_ADDRESS}


@dataclass(frozen=True)
class TransferEvent:
    sender: str
    receiver: str
    amount: int

    def to_json(self) -> Json:
        return {"from": self.sender, "to": self.receiver, "amount": str(self.amount)}


@dataclass
class TokenLedger:
    token_address: str
    balances: Dict[str, int] = field(default_factory=dict)
    total_supply: int = 0

    def __post_init__(self) -> None:
        self.token_address = normalize_address(self.token_address)

    def balance_of(self, account: str) -> int:
        return int(self.balances.get(normalize_address(account), 0))

    def credit(self, to: str, amount: int) -> Json:
        """Mint ``amount`` new units to ``to``."""
        dst = normalize_address(to)
        if is_zero_address(dst):
            raise InvalidReceiver(dst or ZERO_ADDRESS)
        amt = int(amount)
        if amt < 0:
            raise ValueError(f"credit amount must be >= 0; got: {amt}")

        self.balances[dst] = self.balance_of(dst) + amt
        self.total_supply += amt
        return {
            "applied": "CREDIT",
            "to": dst,
            "amount": amt,
            "events": [TransferEvent(ZERO_ADDRESS, dst, amt).to_json()],
        }

    def transfer(self, sender: str, to: str, amount: int) -> Json:
        src = normalize_address(sender)
        dst = normalize_address(to)
        amt = int(amount)
        if amt < 0:
            raise ValueError(f"transfer amount must be >= 0; got: {amt}")
        if is_zero_address(dst):
            raise InvalidReceiver(dst or ZERO_ADDRESS)

        bal = self.balance_of(src)
        if bal < amt:
            raise InsufficientBalance(src, bal, amt)

        if dst == self.token_address:
            self.balances[src] = bal - amt
            self.total_supply -= amt
            events = [TransferEvent(src, dst, amt), TransferEvent(src, ZERO_ADDRESS, amt)]
            return {
                "applied": "BURN",
                "from": src,
                "amount": amt,
                "total_supply": self.total_supply,
                "events": [e.to_json() for e in events],
            }

        self.balances[src] = bal - amt
        self.balances[dst] = self.balance_of(dst) + amt
        return {
            "applied": "TRANSFER",
            "from": src,
            "to": dst,
            "amount": amt,
            "events": [TransferEvent(src, dst, amt).to_json()],
        }

    def to_state(self) -> Json:
        return {
            "token_address": self.token_address,
            "total_supply": str(self.total_supply),
            "balances": {a: str(b) for a, b in sorted(self.balances.items()) if b},
        }

    @classmethod
    def from_state(cls, state: Json) -> "TokenLedger":
        raw = state.get("balances")
        balances = {normalize_address(a): int(b) for a, b in raw.items()} if isinstance(raw, dict) else {}
        return cls(
            token_address=str(state.get("token_address") or ""),
            balances=balances,
            total_supply=int(state.get("total_supply") or 0),
        )
