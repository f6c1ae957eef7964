# src/ztoken/ledger/constants.py
from __future__ import annotations

"""Issuance and ledger constants.

- Fixed-length year of 365 days (not calendar-accurate)
- Rates are basis points: 10,000 bps = 100%
- Token amounts are 18-decimal fixed point integers
"""

# Monetary precision (1 token = 1e18 units)
TOKEN_DECIMALS: int = 18
UNIT: int = 10**TOKEN_DECIMALS

# Year length used by every year index computation
YEAR_IN_SECONDS: int = 365 * 24 * 60 * 60  # 31,536,000

BPS_DENOMINATOR: int = 10_000
MAX_RATE_BPS: int = 10_000

# Null address; also the "to" side of a burn transfer event
ZERO_ADDRESS: str = "0x" + "0" * 40

# Roles
DEFAULT_ADMIN_ROLE: str = "DEFAULT_ADMIN_ROLE"
MINTER_ROLE: str = "MINTER_ROLE"

# Deployment defaults
DEFAULT_ADMIN_DELAY_SECONDS: int = 3 * 24 * 60 * 60  # 259,200
DEFAULT_INITIAL_SUPPLY: int = 369_000_000
DEFAULT_INFLATION_RATES: tuple[int, ...] = (0, 900, 765, 650, 552, 469, 398, 338, 287, 243, 206, 175)
DEFAULT_FINAL_INFLATION_RATE: int = 150
