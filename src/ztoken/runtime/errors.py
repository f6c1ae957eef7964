from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable


@dataclass
class TokenError(Exception):
    """Canonical error type for token engine, ledger and role failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class InvalidTime(TokenError):
    """A timestamp did not come after the bound it must follow."""

    def __init__(self, lower_bound: int, actual: int) -> None:
        super().__init__(
            "invalid_time",
            "timestamp_not_after_bound",
            {"lower_bound": int(lower_bound), "actual": int(actual)},
        )
        self.lower_bound = int(lower_bound)
        self.actual = int(actual)


class InvalidInflationArray(TokenError):
    def __init__(self, rates: Iterable[Any]) -> None:
        rs = list(rates)
        super().__init__("invalid_inflation_array", "empty_or_nonzero_first_rate", {"rates": rs})
        self.rates = rs


class ZeroAddressPassed(TokenError):
    def __init__(self, field: str = "address") -> None:
        super().__init__("zero_address", "null_address_not_allowed", {"field": str(field)})
        self.field = str(field)


class InvalidDefaultAdmin(ZeroAddressPassed):
    def __init__(self) -> None:
        super().__init__("default_admin")


class ZeroInitialSupply(TokenError):
    def __init__(self) -> None:
        super().__init__("zero_initial_supply", "initial_supply_must_be_positive", None)


class AuthorizationError(TokenError):
    def __init__(self, account: str, role: str) -> None:
        super().__init__("unauthorized", "missing_role", {"account": str(account), "role": str(role)})
        self.account = str(account)
        self.role = str(role)


class InvalidReceiver(TokenError):
    def __init__(self, receiver: str) -> None:
        super().__init__("invalid_receiver", "null_receiver", {"receiver": str(receiver)})
        self.receiver = str(receiver)


class InsufficientBalance(TokenError):
    def __init__(self, account: str, balance: int, needed: int) -> None:
        super().__init__(
            "insufficient_balance",
            "balance_below_amount",
            {"account": str(account), "balance": int(balance), "needed": int(needed)},
        )


class AdminTransferError(TokenError):
    def __init__(self, reason: str, details: Any | None = None) -> None:
        super().__init__("admin_transfer", reason, details)
