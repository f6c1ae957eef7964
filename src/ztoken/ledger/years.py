from __future__ import annotations

from dataclasses import dataclass

from ztoken.ledger.constants import YEAR_IN_SECONDS
from ztoken.runtime.errors import InvalidTime


@dataclass(frozen=True)
class YearResolver:
    """Maps unix seconds onto 1-based year indices counted from deploy_time."""

    deploy_time: int
    year_seconds: int = YEAR_IN_SECONDS

    def year_since_deploy(self, timestamp: int) -> int:
        ts = int(timestamp)
        if ts < self.deploy_time:
            raise InvalidTime(self.deploy_time, ts)
        return (ts - self.deploy_time) // self.year_seconds + 1

    def year_start(self, year: int) -> int:
        return self.deploy_time + (int(year) - 1) * self.year_seconds

    def offset_in_year(self, timestamp: int, year: int) -> int:
        return int(timestamp) - self.year_start(year)
