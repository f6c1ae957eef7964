from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ztoken.ledger.constants import (
    DEFAULT_ADMIN_DELAY_SECONDS,
    DEFAULT_FINAL_INFLATION_RATE,
    DEFAULT_INFLATION_RATES,
    DEFAULT_INITIAL_SUPPLY,
    MAX_RATE_BPS,
    ZERO_ADDRESS,
)
from ztoken.ledger.schedule import InflationSchedule

Json = Dict[str, Any]

_ALLOWED_ENV_LEVELS = {"dev", "test", "prod"}
_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")

# Local development identities; never valid outside env_level=dev.
DEV_ADMIN_ADDRESS = "0x00000000000000000000000000000000000000a1"
DEV_MINTER_ADDRESS = "0x00000000000000000000000000000000000000a1"
DEV_BENEFICIARY_ADDRESS = "0x00000000000000000000000000000000000000b2"

# config field -> environment variable
ENV_VARS: Dict[str, str] = {
    "env_level": "ZTOKEN_ENV_LEVEL",
    "token_name": "ZTOKEN_NAME",
    "token_symbol": "ZTOKEN_SYMBOL",
    "admin_address": "ZTOKEN_ADMIN_ADDRESS",
    "minter_address": "ZTOKEN_MINTER_ADDRESS",
    "mint_beneficiary_address": "ZTOKEN_MINT_BENEFICIARY_ADDRESS",
    "initial_admin_delay": "ZTOKEN_INITIAL_ADMIN_DELAY",
    "initial_token_supply": "ZTOKEN_INITIAL_SUPPLY",
    "annual_inflation_rates": "ZTOKEN_ANNUAL_INFLATION_RATES",
    "final_inflation_rate": "ZTOKEN_FINAL_INFLATION_RATE",
    "deploy_time": "ZTOKEN_DEPLOY_TIME",
    "require_decaying_schedule": "ZTOKEN_REQUIRE_DECAYING_SCHEDULE",
    "db_path": "ZTOKEN_DB_PATH",
    "api_host": "ZTOKEN_API_HOST",
    "api_port": "ZTOKEN_API_PORT",
    "log_level": "ZTOKEN_LOG_LEVEL",
}

# Token parameters that must be explicit outside dev.
_REQUIRED_OUTSIDE_DEV = (
    "token_name",
    "token_symbol",
    "admin_address",
    "minter_address",
    "mint_beneficiary_address",
    "initial_admin_delay",
    "initial_token_supply",
    "annual_inflation_rates",
    "final_inflation_rate",
)


def _as_int(v: Any, name: str) -> int:
    if isinstance(v, bool):
        raise ValueError(f"{name} must be an integer; got: {v!r}")
    try:
        return int(str(v).strip().replace("_", ""))
    except ValueError:
        raise ValueError(f"{name} must be an integer; got: {v!r}") from None


def _as_bool(v: Any) -> bool:
    if isinstance(v, bool):
        return v
    return str(v).strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_rates(v: Any) -> Tuple[int, ...]:
    if isinstance(v, str):
        parts = [p.strip() for p in v.split(",") if p.strip()]
    elif isinstance(v, (list, tuple)):
        parts = list(v)
    else:
        raise ValueError(f"annual_inflation_rates must be a list or comma-separated string; got: {v!r}")
    return tuple(_as_int(p, "annual_inflation_rates") for p in parts)


@dataclass(frozen=True)
class TokenConfig:
    env_level: str  # "dev" | "test" | "prod"

    token_name: str
    token_symbol: str

    admin_address: str
    minter_address: str
    mint_beneficiary_address: str
    initial_admin_delay: int

    # Whole tokens; scaled by 10**18 at deployment.
    initial_token_supply: int
    annual_inflation_rates: Tuple[int, ...]
    final_inflation_rate: int
    deploy_time: Optional[int]
    require_decaying_schedule: bool

    db_path: str
    api_host: str
    api_port: int
    log_level: str


def validate_token_config(cfg: TokenConfig) -> None:
    """Fail-fast validation for operator config."""

    if cfg.env_level not in _ALLOWED_ENV_LEVELS:
        raise ValueError(f"env_level must be one of {sorted(_ALLOWED_ENV_LEVELS)}; got: {cfg.env_level!r}")

    for name in ("token_name", "token_symbol"):
        v = getattr(cfg, name)
        if not isinstance(v, str) or not v.strip():
            raise ValueError(f"{name} must be a non-empty string")

    for name in ("admin_address", "minter_address", "mint_beneficiary_address"):
        v = str(getattr(cfg, name) or "").strip().lower()
        if not _ADDRESS_RE.match(v):
            raise ValueError(f"{name} must be a 0x-prefixed 20-byte hex address; got: {v!r}")
        if v == ZERO_ADDRESS:
            raise ValueError(f"{name} must not be the zero address")

    if int(cfg.initial_admin_delay) < 0:
        raise ValueError(f"initial_admin_delay must be >= 0; got: {cfg.initial_admin_delay}")

    if int(cfg.initial_token_supply) <= 0:
        raise ValueError("initial_token_supply has to be greater than 0")

    rates = tuple(cfg.annual_inflation_rates)
    if not rates:
        raise ValueError("annual_inflation_rates is empty")
    if rates[0] != 0:
        raise ValueError("annual_inflation_rates is invalid: first element has to be 0")

    schedule = InflationSchedule(rates=rates, final_rate=int(cfg.final_inflation_rate))
    for idx, rate in schedule.out_of_range():
        where = "final_inflation_rate" if idx < 0 else f"index {idx}"
        raise ValueError(f"inflation rate {rate} at {where} is out of range 0..{MAX_RATE_BPS}")

    if cfg.require_decaying_schedule and not schedule.is_non_increasing():
        raise ValueError("inflation schedule must be non-increasing (final rate included)")

    if cfg.deploy_time is not None and int(cfg.deploy_time) < 0:
        raise ValueError(f"deploy_time must be >= 0; got: {cfg.deploy_time}")

    if int(cfg.api_port) <= 0 or int(cfg.api_port) > 65535:
        raise ValueError(f"api_port must be 1..65535; got: {cfg.api_port}")

    if not isinstance(cfg.db_path, str) or not cfg.db_path.strip():
        raise ValueError("db_path must be a non-empty string")


def default_token_config() -> TokenConfig:
    return TokenConfig(
        env_level="dev",
        token_name="Z",
        token_symbol="Z",
        admin_address=DEV_ADMIN_ADDRESS,
        minter_address=DEV_MINTER_ADDRESS,
        mint_beneficiary_address=DEV_BENEFICIARY_ADDRESS,
        initial_admin_delay=DEFAULT_ADMIN_DELAY_SECONDS,
        initial_token_supply=DEFAULT_INITIAL_SUPPLY,
        annual_inflation_rates=DEFAULT_INFLATION_RATES,
        final_inflation_rate=DEFAULT_FINAL_INFLATION_RATE,
        deploy_time=None,
        require_decaying_schedule=False,
        db_path="./data/ztoken.db",
        api_host="127.0.0.1",
        api_port=8080,
        log_level="INFO",
    )


def token_config_from_mapping(raw: Json) -> TokenConfig:
    """Build a validated config from a flat mapping keyed by field name.

    Outside ``dev`` every token parameter must be present; ``dev`` fills
    gaps from ``default_token_config()``.
    """
    env_level = str(raw.get("env_level") or "dev").strip().lower()

    if env_level != "dev":
        missing = [ENV_VARS[k] for k in _REQUIRED_OUTSIDE_DEV if raw.get(k) in (None, "")]
        if missing:
            raise ValueError(f"Missing token config values: {', '.join(missing)}")

    d = default_token_config()

    def pick(name: str) -> Any:
        v = raw.get(name)
        return getattr(d, name) if v in (None, "") else v

    deploy_raw = raw.get("deploy_time")
    cfg = TokenConfig(
        env_level=env_level,
        token_name=str(pick("token_name")).strip(),
        token_symbol=str(pick("token_symbol")).strip(),
        admin_address=str(pick("admin_address")).strip().lower(),
        minter_address=str(pick("minter_address")).strip().lower(),
        mint_beneficiary_address=str(pick("mint_beneficiary_address")).strip().lower(),
        initial_admin_delay=_as_int(pick("initial_admin_delay"), "initial_admin_delay"),
        initial_token_supply=_as_int(pick("initial_token_supply"), "initial_token_supply"),
        annual_inflation_rates=_as_rates(pick("annual_inflation_rates")),
        final_inflation_rate=_as_int(pick("final_inflation_rate"), "final_inflation_rate"),
        deploy_time=None if deploy_raw in (None, "") else _as_int(deploy_raw, "deploy_time"),
        require_decaying_schedule=_as_bool(pick("require_decaying_schedule")),
        db_path=str(pick("db_path")).strip(),
        api_host=str(pick("api_host")).strip(),
        api_port=_as_int(pick("api_port"), "api_port"),
        log_level=str(pick("log_level")).strip().upper(),
    )

    validate_token_config(cfg)
    return cfg


def read_token_config_file(path: str) -> TokenConfig:
    p = Path(path)
    text = p.read_text(encoding="utf-8")
    if p.suffix.lower() in {".yaml", ".yml"}:
        raw = yaml.safe_load(text)
    else:
        raw = json.loads(text)
    if not isinstance(raw, dict):
        raise ValueError("token config must be a mapping/object")

    known = {f.name for f in fields(TokenConfig)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"unknown token config keys: {unknown}")

    return token_config_from_mapping(raw)


def token_config_from_env() -> TokenConfig:
    raw = {name: os.environ.get(var) for name, var in ENV_VARS.items()}
    return token_config_from_mapping(raw)


def load_token_config(*, config_path: Optional[str] = None) -> TokenConfig:
    p = config_path or os.environ.get("ZTOKEN_CONFIG_PATH")
    if p:
        return read_token_config_file(p)
    return token_config_from_env()
