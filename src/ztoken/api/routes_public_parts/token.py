from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Request

from ztoken.api.errors import ApiError
from ztoken.api.routes_public_parts.common import _commit, _int_param, _store, _token
from ztoken.api.schemas import BeneficiaryRequest, MintRequest, TransferRequest
from ztoken.ledger.constants import YEAR_IN_SECONDS

router = APIRouter()

Json = Dict[str, Any]


@router.get("/token")
def token_info(request: Request) -> Json:
    tok = _token(request)
    schedule = tok.policy.schedule
    return {
        "ok": True,
        "name": tok.name,
        "symbol": tok.symbol,
        "decimals": tok.decimals,
        "token_address": tok.token_address,
        "deploy_time": tok.deploy_time,
        "last_mint_time": tok.last_mint_time,
        "year_seconds": YEAR_IN_SECONDS,
        "base_supply": str(tok.base_supply),
        "total_supply": str(tok.total_supply),
        "mint_beneficiary": tok.mint_beneficiary,
        "inflation_rates": list(schedule.rates),
        "final_inflation_rate": schedule.final_rate,
    }


@router.get("/token/inflation-rate/{year}")
def inflation_rate(year: int, request: Request) -> Json:
    if year < 0:
        raise ApiError.bad_request("bad_request", "year must be >= 0", {"year": year})
    tok = _token(request)
    return {"ok": True, "year": year, "rate_bps": tok.current_inflation_rate(year)}


@router.get("/token/year-since-deploy")
def year_since_deploy(request: Request, timestamp: Optional[str] = None) -> Json:
    tok = _token(request)
    ts = tok.now() if timestamp is None else _int_param(timestamp, "timestamp")
    return {"ok": True, "timestamp": ts, "year": tok.year_since_deploy(ts)}


@router.get("/token/tokens-per-year/{year}")
def tokens_per_year(year: int, request: Request) -> Json:
    if year < 0:
        raise ApiError.bad_request("bad_request", "year must be >= 0", {"year": year})
    tok = _token(request)
    return {"ok": True, "year": year, "amount": str(tok.tokens_per_year(year))}


@router.get("/token/mintable")
def mintable(request: Request, timestamp: Optional[str] = None) -> Json:
    tok = _token(request)
    ts = tok.now() if timestamp is None else _int_param(timestamp, "timestamp")
    last, terms = tok.accrual_snapshot(ts)
    return {
        "ok": True,
        "timestamp": ts,
        "last_mint_time": last,
        "amount": str(terms.total),
        "terms": terms.to_json(),
    }


@router.get("/token/balances/{address}")
def balance(address: str, request: Request) -> Json:
    tok = _token(request)
    return {"ok": True, "address": address.strip().lower(), "balance": str(tok.balance_of(address))}


@router.get("/token/mints")
def mint_history(request: Request, limit: int = 100) -> Json:
    st = _store(request)
    if st is None:
        raise ApiError.not_found("no_store", "mint history requires persistence", {})
    return {"ok": True, "mints": st.mint_history(limit=limit)}


@router.get("/token/transfers")
def transfer_history(request: Request, limit: int = 100) -> Json:
    st = _store(request)
    if st is None:
        raise ApiError.not_found("no_store", "transfer history requires persistence", {})
    return {"ok": True, "transfers": st.transfer_history(limit=limit)}


@router.post("/token/mint")
def mint(body: MintRequest, request: Request) -> Json:
    tok = _token(request)
    receipt = _commit(
        request,
        tok,
        lambda: tok.mint(body.caller),
        lambda st, state, r: st.record_mint(state, r),
    )
    out = dict(receipt)
    out["amount"] = str(receipt["amount"])
    return {"ok": True, "receipt": out}


@router.post("/token/beneficiary")
def set_beneficiary(body: BeneficiaryRequest, request: Request) -> Json:
    tok = _token(request)
    receipt = _commit(
        request,
        tok,
        lambda: tok.set_mint_beneficiary(body.caller, body.address),
        lambda st, state, r: st.write(state),
    )
    return {"ok": True, "receipt": receipt}


@router.post("/token/transfer")
def transfer(body: TransferRequest, request: Request) -> Json:
    tok = _token(request)
    receipt = _commit(
        request,
        tok,
        lambda: tok.transfer(body.sender, body.to, int(body.amount)),
        lambda st, state, r: st.record_transfer(state, r),
    )
    out = dict(receipt)
    out["amount"] = str(receipt["amount"])
    if "total_supply" in out:
        out["total_supply"] = str(out["total_supply"])
    return {"ok": True, "receipt": out}
