# src/ztoken/ledger/issuance.py
from __future__ import annotations

"""Time-weighted, non-compounding issuance.

Every year's issuance is priced off the frozen ``base_supply``, never the live
total supply, so minting cadence cannot change the cumulative amount beyond
per-call floor rounding.

Accrual between two instants ``last < now``:

  same year:   tpy(start) * (now - last) // YEAR
  otherwise:   tpy(start) * (YEAR - offset(last)) // YEAR     (remainder)
             + sum(tpy(y) for start < y < end)                (full years)
             + tpy(end) * offset(now) // YEAR                 (partial)

Each of the three terms is floored on its own.
"""

from dataclasses import dataclass
from typing import Any, Dict

from ztoken.ledger.constants import BPS_DENOMINATOR
from ztoken.ledger.schedule import InflationSchedule
from ztoken.ledger.years import YearResolver
from ztoken.runtime.errors import InvalidTime

Json = Dict[str, Any]


def tokens_per_year(base_supply: int, schedule: InflationSchedule, year: int) -> int:
    """Full-year issuance for a 1-based year index."""
    return int(base_supply) * schedule.rate(year) // BPS_DENOMINATOR


@dataclass(frozen=True)
class AccrualTerms:
    start_year: int
    end_year: int
    remainder: int
    full_years: int
    partial: int

    @property
    def total(self) -> int:
        return self.remainder + self.full_years + self.partial

    def to_json(self) -> Json:
        # Amounts as strings: 18-decimal values overflow JSON doubles.
        return {
            "start_year": self.start_year,
            "end_year": self.end_year,
            "remainder": str(self.remainder),
            "full_years": str(self.full_years),
            "partial": str(self.partial),
            "total": str(self.total),
        }


@dataclass(frozen=True)
class IssuancePolicy:
    """Immutable issuance configuration plus the pure accrual math over it."""

    resolver: YearResolver
    base_supply: int
    schedule: InflationSchedule

    @property
    def deploy_time(self) -> int:
        return self.resolver.deploy_time

    @property
    def year_seconds(self) -> int:
        return self.resolver.year_seconds

    def year_since_deploy(self, timestamp: int) -> int:
        return self.resolver.year_since_deploy(timestamp)

    def current_inflation_rate(self, year: int) -> int:
        return self.schedule.rate(year)

    def tokens_per_year(self, year: int) -> int:
        return tokens_per_year(self.base_supply, self.schedule, year)

    def _full_years_between(self, start_year: int, end_year: int) -> int:
        lo = start_year + 1
        hi = end_year - 1
        if lo > hi:
            return 0

        plateau = self.schedule.plateau_year
        total = 0
        for y in range(lo, min(hi, plateau - 1) + 1):
            total += self.tokens_per_year(y)

        # Past the schedule every year prices identically.
        if hi >= plateau:
            n = hi - max(lo, plateau) + 1
            total += n * self.tokens_per_year(plateau)
        return total

    def accrual_terms(self, last_mint_time: int, current_time: int) -> AccrualTerms:
        last = int(last_mint_time)
        now = int(current_time)
        if now <= last:
            raise InvalidTime(last, now)

        year = self.year_seconds
        start_year = self.resolver.year_since_deploy(last)
        end_year = self.resolver.year_since_deploy(now)

        if start_year == end_year:
            amount = self.tokens_per_year(start_year) * (now - last) // year
            return AccrualTerms(start_year, end_year, remainder=0, full_years=0, partial=amount)

        start_offset = self.resolver.offset_in_year(last, start_year)
        remainder = self.tokens_per_year(start_year) * (year - start_offset) // year
        full_years = self._full_years_between(start_year, end_year)
        end_offset = self.resolver.offset_in_year(now, end_year)
        partial = self.tokens_per_year(end_year) * end_offset // year

        return AccrualTerms(start_year, end_year, remainder=remainder, full_years=full_years, partial=partial)

    def calculate_mintable_tokens(self, last_mint_time: int, current_time: int) -> int:
        return self.accrual_terms(last_mint_time, current_time).total
