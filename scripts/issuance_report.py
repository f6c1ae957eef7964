#!/usr/bin/env python3
"""
Generate a human-friendly issuance report for the configured token.

Reads the token config (ZTOKEN_CONFIG_PATH / ZTOKEN_* env, or --config) and
writes a markdown table of the per-year rate, full-year issuance and the
cumulative supply if every year were minted in full.

Output: generated/issuance_report.md (or --out)
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Optional

from ztoken.ledger.constants import UNIT, YEAR_IN_SECONDS
from ztoken.ledger.issuance import IssuancePolicy
from ztoken.ledger.schedule import InflationSchedule
from ztoken.ledger.years import YearResolver
from ztoken.runtime.token_config import TokenConfig, load_token_config

REPO_ROOT = Path(__file__).resolve().parents[1]
OUT_MD = REPO_ROOT / "generated" / "issuance_report.md"


def _fmt_tokens(units: int) -> str:
    whole, frac = divmod(int(units), UNIT)
    return f"{whole:,}.{frac:018d}".rstrip("0").rstrip(".")


def _policy(cfg: TokenConfig) -> IssuancePolicy:
    return IssuancePolicy(
        resolver=YearResolver(deploy_time=int(cfg.deploy_time or 0), year_seconds=YEAR_IN_SECONDS),
        base_supply=int(cfg.initial_token_supply) * UNIT,
        schedule=InflationSchedule.from_rates(cfg.annual_inflation_rates, cfg.final_inflation_rate),
    )


def render_report(cfg: TokenConfig, years: int) -> str:
    policy = _policy(cfg)
    supply = policy.base_supply

    lines: list[str] = []
    lines.append(f"# {cfg.token_name} ({cfg.token_symbol}) issuance schedule")
    lines.append("")
    lines.append(f"- base supply: **{_fmt_tokens(policy.base_supply)}**")
    lines.append(f"- schedule length: **{len(policy.schedule)}** (year {policy.schedule.plateau_year}+ at final rate)")
    lines.append(f"- final rate: **{policy.schedule.final_rate} bps**")
    lines.append("")
    lines.append("| year | rate_bps | issuance | supply_end_of_year |")
    lines.append("|---|---|---|---|")
    for y in range(1, int(years) + 1):
        amount = policy.tokens_per_year(y)
        supply += amount
        lines.append(f"| {y} | {policy.current_inflation_rate(y)} | {_fmt_tokens(amount)} | {_fmt_tokens(supply)} |")
    lines.append("")
    return "\n".join(lines)


def main(argv: Optional[list[str]] = None) -> None:
    ap = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    ap.add_argument("--config", default=None, help="JSON/YAML token config (default: env)")
    ap.add_argument("--years", type=int, default=20)
    ap.add_argument("--out", default=str(OUT_MD))
    args = ap.parse_args(argv)

    if args.years <= 0:
        raise SystemExit("--years must be > 0")

    cfg = load_token_config(config_path=args.config)
    out = Path(args.out)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(render_report(cfg, args.years), encoding="utf-8")
    print(f"wrote {out}")


if __name__ == "__main__":
    main()
