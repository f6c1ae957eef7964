# src/ztoken/runtime/token_boot.py

from __future__ import annotations

import logging
from typing import Optional

from ztoken.runtime.sqlite_store import SqliteDB, TokenStateStore
from ztoken.runtime.token import Clock, ZToken
from ztoken.runtime.token_config import TokenConfig, load_token_config
from ztoken.util.jsonlog import log_event

log = logging.getLogger("ztoken.boot")


def deploy_token(cfg: TokenConfig, *, clock: Optional[Clock] = None) -> ZToken:
    return ZToken(
        name=cfg.token_name,
        symbol=cfg.token_symbol,
        default_admin=cfg.admin_address,
        initial_admin_delay=cfg.initial_admin_delay,
        minter=cfg.minter_address,
        mint_beneficiary=cfg.mint_beneficiary_address,
        initial_supply=cfg.initial_token_supply,
        inflation_rates=cfg.annual_inflation_rates,
        final_inflation_rate=cfg.final_inflation_rate,
        deploy_time=cfg.deploy_time,
        clock=clock,
    )


def build_token(
    cfg: Optional[TokenConfig] = None,
    *,
    store: Optional[TokenStateStore] = None,
    clock: Optional[Clock] = None,
) -> ZToken:
    """
    Resume the token from its persisted snapshot, or deploy and persist a new
    one when the store is empty.

    With no explicit config the token config is loaded from
    ZTOKEN_CONFIG_PATH / ZTOKEN_* environment variables.
    """
    c = cfg or load_token_config()
    st = store or TokenStateStore(db=SqliteDB(path=c.db_path))

    if st.exists():
        token = ZToken.from_state(st.read(), clock=clock)
        log_event(log, "token_resumed", deploy_time=token.deploy_time, last_mint_time=token.last_mint_time)
        return token

    token = deploy_token(c, clock=clock)
    st.write(token.to_state())
    return token
