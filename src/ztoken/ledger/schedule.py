# src/ztoken/ledger/schedule.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Tuple

from ztoken.ledger.constants import MAX_RATE_BPS
from ztoken.runtime.errors import InvalidInflationArray


@dataclass(frozen=True)
class InflationSchedule:
    """Per-year inflation rates in basis points.

    Index 0 is a sentinel and always holds 0; year indices are 1-based and
    index ``rates`` directly. Every year at or beyond ``len(rates)`` uses
    ``final_rate``.
    """

    rates: Tuple[int, ...]
    final_rate: int

    @classmethod
    def from_rates(cls, rates: Iterable[Any], final_rate: int) -> "InflationSchedule":
        rs = tuple(int(r) for r in rates)
        if not rs or rs[0] != 0:
            raise InvalidInflationArray(rs)
        return cls(rates=rs, final_rate=int(final_rate))

    def __len__(self) -> int:
        return len(self.rates)

    def rate(self, year: int) -> int:
        y = int(year)
        if y < len(self.rates):
            return self.rates[y]
        return self.final_rate

    @property
    def plateau_year(self) -> int:
        """First year index that is priced at ``final_rate``."""
        return len(self.rates)

    def is_non_increasing(self) -> bool:
        """True when rates never rise from year 1 onward, final rate included."""
        seq = list(self.rates[1:]) + [self.final_rate]
        return all(b <= a for a, b in zip(seq, seq[1:]))

    def out_of_range(self) -> list[tuple[int, int]]:
        """(index, rate) pairs outside 0..MAX_RATE_BPS; the final rate reports index -1."""
        bad = [(i, r) for i, r in enumerate(self.rates) if r < 0 or r > MAX_RATE_BPS]
        if self.final_rate < 0 or self.final_rate > MAX_RATE_BPS:
            bad.append((-1, self.final_rate))
        return bad
