# src/ztoken/runtime/token.py
from __future__ import annotations

import hashlib
import logging
import threading
import time
from typing import Any, Callable, Dict, Iterable, Optional, Tuple

from ztoken.ledger.balances import TokenLedger, is_zero_address, normalize_address
from ztoken.ledger.constants import (
    DEFAULT_ADMIN_ROLE,
    MINTER_ROLE,
    TOKEN_DECIMALS,
    UNIT,
    YEAR_IN_SECONDS,
)
from ztoken.ledger.issuance import AccrualTerms, IssuancePolicy
from ztoken.ledger.roles import RoleRegistry
from ztoken.ledger.schedule import InflationSchedule
from ztoken.ledger.years import YearResolver
from ztoken.runtime import metrics
from ztoken.runtime.errors import InvalidTime, ZeroAddressPassed, ZeroInitialSupply
from ztoken.util.jsonlog import log_event

Json = Dict[str, Any]
Clock = Callable[[], int]

log = logging.getLogger("ztoken.token")


def system_clock() -> int:
    return int(time.time())


def derive_token_address(name: str, symbol: str, deploy_time: int) -> str:
    h = hashlib.sha256(f"{name}|{symbol}|{int(deploy_time)}".encode("utf-8")).hexdigest()
    return "0x" + h[:40]


class ZToken:
    """Inflationary token with time-weighted, non-compounding minting.

    The issuance policy (deploy time, base supply, schedule) is frozen at
    construction. ``last_mint_time`` is the only mutable input to accrual and
    is written only by ``mint()``, under ``self._lock``.
    """

    def __init__(
        self,
        *,
        name: str,
        symbol: str,
        default_admin: str,
        initial_admin_delay: int,
        minter: str,
        mint_beneficiary: str,
        initial_supply: int,
        inflation_rates: Iterable[int],
        final_inflation_rate: int,
        deploy_time: Optional[int] = None,
        clock: Optional[Clock] = None,
        token_address: Optional[str] = None,
    ) -> None:
        self._clock: Clock = clock or system_clock

        roles = RoleRegistry(default_admin=default_admin, admin_delay=initial_admin_delay)
        if is_zero_address(minter):
            raise ZeroAddressPassed("minter")
        if is_zero_address(mint_beneficiary):
            raise ZeroAddressPassed("mint_beneficiary")
        if int(initial_supply) <= 0:
            raise ZeroInitialSupply()
        schedule = InflationSchedule.from_rates(inflation_rates, final_inflation_rate)

        t0 = int(deploy_time) if deploy_time is not None else int(self._clock())

        self.name = str(name)
        self.symbol = str(symbol)
        self.decimals = TOKEN_DECIMALS
        self.policy = IssuancePolicy(
            resolver=YearResolver(deploy_time=t0, year_seconds=YEAR_IN_SECONDS),
            base_supply=int(initial_supply) * UNIT,
            schedule=schedule,
        )
        self.roles = roles
        self.roles.members[MINTER_ROLE].add(normalize_address(minter))
        self.ledger = TokenLedger(token_address=token_address or derive_token_address(self.name, self.symbol, t0))
        self._mint_beneficiary = normalize_address(mint_beneficiary)
        self._last_mint_time = t0
        self._lock = threading.Lock()

        self.ledger.credit(self._mint_beneficiary, self.policy.base_supply)
        metrics.set_gauge("total_supply_tokens", self.ledger.total_supply // UNIT)
        metrics.set_gauge("last_mint_time", t0)

        log_event(
            log,
            "token_deployed",
            name=self.name,
            symbol=self.symbol,
            token_address=self.ledger.token_address,
            deploy_time=t0,
            base_supply=self.policy.base_supply,
            rates=list(schedule.rates),
            final_rate=schedule.final_rate,
        )

    # ------------------------------------------------------------------
    # Read-only queries
    # ------------------------------------------------------------------

    @property
    def deploy_time(self) -> int:
        return self.policy.deploy_time

    @property
    def last_mint_time(self) -> int:
        return self._last_mint_time

    @property
    def base_supply(self) -> int:
        return self.policy.base_supply

    @property
    def mint_beneficiary(self) -> str:
        return self._mint_beneficiary

    @property
    def token_address(self) -> str:
        return self.ledger.token_address

    @property
    def total_supply(self) -> int:
        return self.ledger.total_supply

    def now(self) -> int:
        return int(self._clock())

    def balance_of(self, account: str) -> int:
        return self.ledger.balance_of(account)

    def has_role(self, role: str, account: str) -> bool:
        return self.roles.has_role(role, account)

    def current_inflation_rate(self, year: int) -> int:
        return self.policy.current_inflation_rate(year)

    def year_since_deploy(self, timestamp: int) -> int:
        return self.policy.year_since_deploy(timestamp)

    def tokens_per_year(self, year: int) -> int:
        return self.policy.tokens_per_year(year)

    def accrual_terms(self, timestamp: int) -> AccrualTerms:
        return self.policy.accrual_terms(self._last_mint_time, timestamp)

    def calculate_mintable_tokens(self, timestamp: int) -> int:
        return self.policy.calculate_mintable_tokens(self._last_mint_time, timestamp)

    def accrual_snapshot(self, timestamp: int) -> Tuple[int, AccrualTerms]:
        """Watermark and the accrual computed from that same watermark."""
        with self._lock:
            last = self._last_mint_time
            policy = self.policy
        return last, policy.accrual_terms(last, timestamp)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mint(self, caller: str, now: Optional[int] = None) -> Json:
        """Credit everything accrued since the last mint to the beneficiary.

        A mint in the same second as the previous one credits 0 and leaves
        the watermark where it is.
        """
        with self._lock:
            self.roles.require_role(MINTER_ROLE, caller)
            t = int(now) if now is not None else self.now()
            last = self._last_mint_time
            if t < last:
                raise InvalidTime(last, t)

            if t == last:
                terms = None
                amount = 0
            else:
                terms = self.policy.accrual_terms(last, t)
                amount = terms.total

            beneficiary = self._mint_beneficiary
            self.ledger.credit(beneficiary, amount)
            self._last_mint_time = t

        metrics.inc_counter("mint_calls")
        metrics.inc_counter("minted_tokens", amount // UNIT)
        metrics.set_gauge("last_mint_time", t)
        metrics.set_gauge("total_supply_tokens", self.ledger.total_supply // UNIT)
        log_event(
            log,
            "mint",
            caller=normalize_address(caller),
            beneficiary=beneficiary,
            amount=amount,
            last_mint_time=last,
            minted_at=t,
        )

        return {
            "applied": "MINT",
            "beneficiary": beneficiary,
            "amount": amount,
            "previous_mint_time": last,
            "last_mint_time": t,
            "terms": terms.to_json() if terms is not None else None,
        }

    def set_mint_beneficiary(self, caller: str, address: str) -> Json:
        new = normalize_address(address)
        with self._lock:
            self.roles.require_role(DEFAULT_ADMIN_ROLE, caller)
            if is_zero_address(new):
                raise ZeroAddressPassed("mint_beneficiary")
            old = self._mint_beneficiary
            self._mint_beneficiary = new

        log_event(log, "mint_beneficiary_set", caller=normalize_address(caller), old=old, new=new)
        return {"applied": "MINT_BENEFICIARY_SET", "old": old, "new": new}

    def transfer(self, sender: str, to: str, amount: int) -> Json:
        with self._lock:
            receipt = self.ledger.transfer(sender, to, amount)

        if receipt["applied"] == "BURN":
            metrics.inc_counter("burned_tokens", int(amount) // UNIT)
            metrics.set_gauge("total_supply_tokens", self.ledger.total_supply // UNIT)
            log_event(log, "burn", holder=receipt["from"], amount=int(amount), total_supply=self.ledger.total_supply)
        return receipt

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        with self._lock:
            changed = self.roles.grant_role(caller, role, account)
        if changed:
            log_event(log, "role_granted", role=role, account=normalize_address(account), caller=normalize_address(caller))
        return changed

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        with self._lock:
            changed = self.roles.revoke_role(caller, role, account)
        if changed:
            log_event(log, "role_revoked", role=role, account=normalize_address(account), caller=normalize_address(caller))
        return changed

    def renounce_role(self, caller: str, role: str) -> bool:
        with self._lock:
            return self.roles.renounce_role(caller, role)

    def begin_default_admin_transfer(self, caller: str, new_admin: str, now: Optional[int] = None) -> Json:
        t = int(now) if now is not None else self.now()
        with self._lock:
            p = self.roles.begin_default_admin_transfer(caller, new_admin, t)
        log_event(log, "admin_transfer_started", new_admin=p.new_admin, schedule=p.schedule)
        return {"new_admin": p.new_admin, "schedule": p.schedule}

    def cancel_default_admin_transfer(self, caller: str) -> None:
        with self._lock:
            self.roles.cancel_default_admin_transfer(caller)
        log_event(log, "admin_transfer_cancelled", caller=normalize_address(caller))

    def accept_default_admin_transfer(self, caller: str, now: Optional[int] = None) -> str:
        t = int(now) if now is not None else self.now()
        with self._lock:
            admin = self.roles.accept_default_admin_transfer(caller, t)
        log_event(log, "admin_transfer_accepted", new_admin=admin)
        return admin

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_state(self) -> Json:
        """Serializable snapshot. Amounts are decimal strings."""
        with self._lock:
            return {
                "name": self.name,
                "symbol": self.symbol,
                "deploy_time": self.deploy_time,
                "last_mint_time": self._last_mint_time,
                "base_supply": str(self.base_supply),
                "inflation_rates": list(self.policy.schedule.rates),
                "final_inflation_rate": self.policy.schedule.final_rate,
                "mint_beneficiary": self._mint_beneficiary,
                "roles": self.roles.to_state(),
                "ledger": self.ledger.to_state(),
            }

    @classmethod
    def from_state(cls, state: Json, *, clock: Optional[Clock] = None) -> "ZToken":
        """Rebuild a token from ``to_state()`` output without re-running deployment."""
        tok = cls.__new__(cls)
        tok._clock = clock or system_clock
        tok._lock = threading.Lock()
        tok._load_state(state)
        return tok

    def restore_state(self, state: Json) -> None:
        """Roll this token back, in place, to an earlier ``to_state()`` snapshot."""
        with self._lock:
            self._load_state(state)
        metrics.set_gauge("last_mint_time", self._last_mint_time)
        metrics.set_gauge("total_supply_tokens", self.ledger.total_supply // UNIT)
        log_event(log, "token_state_restored", last_mint_time=self._last_mint_time)

    def _load_state(self, state: Json) -> None:
        base_supply = int(state["base_supply"])
        if base_supply <= 0:
            raise ZeroInitialSupply()
        policy = IssuancePolicy(
            resolver=YearResolver(deploy_time=int(state["deploy_time"]), year_seconds=YEAR_IN_SECONDS),
            base_supply=base_supply,
            schedule=InflationSchedule.from_rates(state["inflation_rates"], int(state["final_inflation_rate"])),
        )
        roles = RoleRegistry.from_state(state["roles"])
        ledger = TokenLedger.from_state(state["ledger"])

        beneficiary = normalize_address(state.get("mint_beneficiary"))
        if is_zero_address(beneficiary):
            raise ZeroAddressPassed("mint_beneficiary")

        last = int(state["last_mint_time"])
        if last < policy.deploy_time:
            raise InvalidTime(policy.deploy_time, last)

        # all checks passed
        self.name = str(state["name"])
        self.symbol = str(state["symbol"])
        self.decimals = TOKEN_DECIMALS
        self.policy = policy
        self.roles = roles
        self.ledger = ledger
        self._mint_beneficiary = beneficiary
        self._last_mint_time = last
