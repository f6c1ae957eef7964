from __future__ import annotations

"""
Role registry for the token.

Two roles:
- DEFAULT_ADMIN_ROLE: exactly one holder; administers MINTER_ROLE and the
  mint beneficiary. Moving it is a two-step, timelocked transfer
  (begin -> wait admin_delay -> accept), never a direct grant.
- MINTER_ROLE: any number of holders; may call mint().
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from ztoken.ledger.balances import is_zero_address, normalize_address
from ztoken.ledger.constants import DEFAULT_ADMIN_ROLE, MINTER_ROLE
from ztoken.runtime.errors import AdminTransferError, AuthorizationError, InvalidDefaultAdmin

Json = Dict[str, Any]

_ROLES = (DEFAULT_ADMIN_ROLE, MINTER_ROLE)


@dataclass
class PendingAdmin:
    new_admin: str
    schedule: int


@dataclass
class RoleRegistry:
    default_admin: str
    admin_delay: int
    members: Dict[str, Set[str]] = field(default_factory=dict)
    pending: Optional[PendingAdmin] = None

    def __post_init__(self) -> None:
        admin = normalize_address(self.default_admin)
        if is_zero_address(admin):
            raise InvalidDefaultAdmin()
        self.default_admin = admin
        self.admin_delay = int(self.admin_delay)
        for r in _ROLES:
            self.members.setdefault(r, set())
        self.members[DEFAULT_ADMIN_ROLE] = {admin}

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def has_role(self, role: str, account: str) -> bool:
        return normalize_address(account) in self.members.get(role, set())

    def require_role(self, role: str, account: str) -> None:
        if not self.has_role(role, account):
            raise AuthorizationError(normalize_address(account), role)

    def holders(self, role: str) -> list[str]:
        return sorted(self.members.get(role, set()))

    # ------------------------------------------------------------------
    # MINTER_ROLE management
    # ------------------------------------------------------------------

    def _check_role_name(self, role: str) -> None:
        if role not in _ROLES:
            raise ValueError(f"unknown role: {role!r}")
        if role == DEFAULT_ADMIN_ROLE:
            raise AdminTransferError("enforced_default_admin_rules", {"role": role})

    def grant_role(self, caller: str, role: str, account: str) -> bool:
        self.require_role(DEFAULT_ADMIN_ROLE, caller)
        self._check_role_name(role)
        acct = normalize_address(account)
        if acct in self.members[role]:
            return False
        self.members[role].add(acct)
        return True

    def revoke_role(self, caller: str, role: str, account: str) -> bool:
        self.require_role(DEFAULT_ADMIN_ROLE, caller)
        self._check_role_name(role)
        acct = normalize_address(account)
        if acct not in self.members[role]:
            return False
        self.members[role].discard(acct)
        return True

    def renounce_role(self, caller: str, role: str) -> bool:
        self._check_role_name(role)
        acct = normalize_address(caller)
        if acct not in self.members[role]:
            return False
        self.members[role].discard(acct)
        return True

    # ------------------------------------------------------------------
    # Timelocked DEFAULT_ADMIN_ROLE transfer
    # ------------------------------------------------------------------

    def begin_default_admin_transfer(self, caller: str, new_admin: str, now: int) -> PendingAdmin:
        self.require_role(DEFAULT_ADMIN_ROLE, caller)
        target = normalize_address(new_admin)
        if is_zero_address(target):
            raise InvalidDefaultAdmin()
        self.pending = PendingAdmin(new_admin=target, schedule=int(now) + self.admin_delay)
        return self.pending

    def cancel_default_admin_transfer(self, caller: str) -> None:
        self.require_role(DEFAULT_ADMIN_ROLE, caller)
        self.pending = None

    def accept_default_admin_transfer(self, caller: str, now: int) -> str:
        p = self.pending
        acct = normalize_address(caller)
        if p is None or p.new_admin != acct:
            raise AdminTransferError("not_pending_admin", {"caller": acct})
        if int(now) <= p.schedule:
            raise AdminTransferError("delay_not_passed", {"schedule": p.schedule, "now": int(now)})

        self.members[DEFAULT_ADMIN_ROLE] = {acct}
        self.default_admin = acct
        self.pending = None
        return acct

    def change_default_admin_delay(self, caller: str, new_delay: int) -> None:
        self.require_role(DEFAULT_ADMIN_ROLE, caller)
        d = int(new_delay)
        if d < 0:
            raise ValueError(f"admin delay must be >= 0; got: {d}")
        self.admin_delay = d

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def to_state(self) -> Json:
        return {
            "default_admin": self.default_admin,
            "admin_delay": self.admin_delay,
            "minters": self.holders(MINTER_ROLE),
            "pending": (
                {"new_admin": self.pending.new_admin, "schedule": self.pending.schedule} if self.pending else None
            ),
        }

    @classmethod
    def from_state(cls, state: Json) -> "RoleRegistry":
        reg = cls(default_admin=str(state.get("default_admin") or ""), admin_delay=int(state.get("admin_delay") or 0))
        for m in state.get("minters") or []:
            reg.members[MINTER_ROLE].add(normalize_address(m))
        p = state.get("pending")
        if isinstance(p, dict):
            reg.pending = PendingAdmin(new_admin=normalize_address(p.get("new_admin")), schedule=int(p.get("schedule") or 0))
        return reg
