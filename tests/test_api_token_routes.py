from __future__ import annotations

import sqlite3
from pathlib import Path

from fastapi.testclient import TestClient

from conftest import ADMIN, BENEFICIARY, DEPLOY_TIME, RANDOM
from ztoken.api import app as app_mod
from ztoken.api.app import create_app
from ztoken.ledger.constants import UNIT, YEAR_IN_SECONDS
from ztoken.runtime.sqlite_store import SqliteDB, TokenStateStore

Y = YEAR_IN_SECONDS


class _Clock:
    def __init__(self, t: int) -> None:
        self.t = t

    def __call__(self) -> int:
        return self.t


def _stored_last_mint(tmp_path: Path) -> int:
    return int(TokenStateStore(db=SqliteDB(path=str(tmp_path / "z.db"))).read()["last_mint_time"])


def _client(make_token, tmp_path: Path | None = None):
    clock = _Clock(DEPLOY_TIME)
    tok = make_token(clock=clock)
    app = create_app(boot_runtime=False)
    app.state.token = tok
    if tmp_path is not None:
        st = TokenStateStore(db=SqliteDB(path=str(tmp_path / "z.db")))
        st.write(tok.to_state())
        app.state.store = st
    return TestClient(app), tok, clock


def test_health_reports_readiness(make_token) -> None:
    c = TestClient(create_app(boot_runtime=False))
    assert c.get("/v1/health").json() == {"ok": True, "ready": False}

    c, _, _ = _client(make_token)
    assert c.get("/v1/health").json() == {"ok": True, "ready": True}


def test_token_routes_need_attached_token() -> None:
    c = TestClient(create_app(boot_runtime=False))
    r = c.get("/v1/token")
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "not_ready"


def test_token_info(make_token) -> None:
    c, tok, _ = _client(make_token)
    j = c.get("/v1/token").json()
    assert j["ok"] is True
    assert j["deploy_time"] == DEPLOY_TIME
    assert j["base_supply"] == str(tok.base_supply)
    assert j["total_supply"] == str(tok.base_supply)
    assert j["inflation_rates"][0] == 0
    assert j["final_inflation_rate"] == 150
    assert j["decimals"] == 18


def test_read_queries(make_token) -> None:
    c, tok, _ = _client(make_token)

    assert c.get("/v1/token/inflation-rate/1").json()["rate_bps"] == 900
    assert c.get("/v1/token/inflation-rate/50").json()["rate_bps"] == 150
    assert c.get("/v1/token/year-since-deploy", params={"timestamp": DEPLOY_TIME + Y}).json()["year"] == 2
    assert c.get("/v1/token/tokens-per-year/2").json()["amount"] == str(tok.tokens_per_year(2))

    j = c.get("/v1/token/mintable", params={"timestamp": DEPLOY_TIME + Y}).json()
    assert j["amount"] == str(tok.tokens_per_year(1))
    assert j["terms"]["start_year"] == 1

    j = c.get(f"/v1/token/balances/{BENEFICIARY.upper().replace('0X', '0x')}").json()
    assert j["balance"] == str(tok.base_supply)


def test_query_before_deploy_is_bad_request(make_token) -> None:
    c, _, _ = _client(make_token)
    r = c.get("/v1/token/year-since-deploy", params={"timestamp": DEPLOY_TIME - 1})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_time"

    r = c.get("/v1/token/mintable", params={"timestamp": "soon"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "bad_request"


def test_mint_uses_clock_and_persists(make_token, tmp_path: Path) -> None:
    c, tok, clock = _client(make_token, tmp_path)
    clock.t = DEPLOY_TIME + Y // 2

    r = c.post("/v1/token/mint", json={"caller": ADMIN})
    assert r.status_code == 200
    receipt = r.json()["receipt"]
    assert receipt["amount"] == str(tok.tokens_per_year(1) // 2)
    assert receipt["last_mint_time"] == DEPLOY_TIME + Y // 2

    # same second: zero-value success
    r = c.post("/v1/token/mint", json={"caller": ADMIN})
    assert r.json()["receipt"]["amount"] == "0"

    hist = c.get("/v1/token/mints").json()["mints"]
    assert len(hist) == 2
    assert _stored_last_mint(tmp_path) == DEPLOY_TIME + Y // 2


def test_mint_without_role_is_forbidden(make_token) -> None:
    c, tok, clock = _client(make_token)
    clock.t = DEPLOY_TIME + 10
    r = c.post("/v1/token/mint", json={"caller": RANDOM})
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "unauthorized"
    assert tok.last_mint_time == DEPLOY_TIME


def test_mint_with_clock_behind_watermark_fails(make_token) -> None:
    c, _, clock = _client(make_token)
    clock.t = DEPLOY_TIME + 100
    assert c.post("/v1/token/mint", json={"caller": ADMIN}).status_code == 200
    clock.t = DEPLOY_TIME + 50
    r = c.post("/v1/token/mint", json={"caller": ADMIN})
    assert r.status_code == 400
    assert r.json()["error"]["details"] == {"lower_bound": DEPLOY_TIME + 100, "actual": DEPLOY_TIME + 50}


def test_mint_history_requires_store(make_token) -> None:
    c, _, _ = _client(make_token)
    assert c.get("/v1/token/mints").status_code == 404


def test_set_beneficiary(make_token, tmp_path: Path) -> None:
    c, tok, _ = _client(make_token, tmp_path)
    r = c.post("/v1/token/beneficiary", json={"caller": ADMIN, "address": RANDOM})
    assert r.status_code == 200
    assert tok.mint_beneficiary == RANDOM

    r = c.post("/v1/token/beneficiary", json={"caller": ADMIN, "address": "0x" + "0" * 40})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "zero_address"

    r = c.post("/v1/token/beneficiary", json={"caller": RANDOM, "address": BENEFICIARY})
    assert r.status_code == 403


def test_transfer_and_burn(make_token, tmp_path: Path) -> None:
    c, tok, _ = _client(make_token, tmp_path)

    r = c.post("/v1/token/transfer", json={"sender": BENEFICIARY, "to": RANDOM, "amount": str(3 * UNIT)})
    assert r.json()["receipt"]["applied"] == "TRANSFER"

    r = c.post(
        "/v1/token/transfer",
        json={"sender": RANDOM, "to": tok.token_address, "amount": str(UNIT)},
    )
    receipt = r.json()["receipt"]
    assert receipt["applied"] == "BURN"
    assert receipt["total_supply"] == str(tok.base_supply - UNIT)

    r = c.post("/v1/token/transfer", json={"sender": RANDOM, "to": "0x" + "0" * 40, "amount": "1"})
    assert r.status_code == 400
    assert r.json()["error"]["code"] == "invalid_receiver"

    r = c.post("/v1/token/transfer", json={"sender": RANDOM, "to": BENEFICIARY, "amount": "-1"})
    assert r.status_code == 422


def test_metrics_endpoint_toggle(make_token, monkeypatch) -> None:
    c, _, clock = _client(make_token)
    monkeypatch.delenv("ZTOKEN_METRICS_ENABLED", raising=False)
    assert c.get("/v1/metrics").status_code == 404

    monkeypatch.setenv("ZTOKEN_METRICS_ENABLED", "1")
    clock.t = DEPLOY_TIME + 60
    c.post("/v1/token/mint", json={"caller": ADMIN})
    r = c.get("/v1/metrics")
    assert r.status_code == 200
    assert r.headers["content-type"].startswith("text/plain; version=0.0.4")
    assert "ztoken_mint_calls 1" in r.text
    assert f"ztoken_last_mint_time {DEPLOY_TIME + 60}" in r.text


def test_create_app_boots_runtime(monkeypatch, make_token) -> None:
    tok = make_token()
    monkeypatch.setattr(app_mod, "build_token", lambda: (tok, None))
    c = TestClient(create_app())
    assert c.get("/v1/token").json()["token_address"] == tok.token_address


def test_prod_mode_hides_docs(monkeypatch) -> None:
    monkeypatch.setenv("ZTOKEN_ENV_LEVEL", "prod")
    c = TestClient(create_app(boot_runtime=False))
    assert c.get("/docs").status_code == 404
    assert c.get("/openapi.json").status_code == 404


def _failing(*args, **kwargs) -> None:
    raise sqlite3.OperationalError("disk I/O error")


def test_mint_rolls_back_when_store_write_fails(make_token, tmp_path: Path, monkeypatch) -> None:
    c, tok, clock = _client(make_token, tmp_path)
    st = c.app.state.store
    monkeypatch.setattr(st, "record_mint", _failing)
    clock.t = DEPLOY_TIME + 86_400

    r = c.post("/v1/token/mint", json={"caller": ADMIN})
    assert r.status_code == 500
    assert r.json()["error"]["code"] == "persist_failed"

    # memory still matches disk
    assert tok.last_mint_time == DEPLOY_TIME
    assert tok.total_supply == tok.base_supply
    assert _stored_last_mint(tmp_path) == DEPLOY_TIME

    # once the store recovers the same interval is minted exactly once
    monkeypatch.undo()
    r = c.post("/v1/token/mint", json={"caller": ADMIN})
    assert r.status_code == 200
    assert r.json()["receipt"]["amount"] == str(tok.tokens_per_year(1) * 86_400 // Y)
    assert _stored_last_mint(tmp_path) == DEPLOY_TIME + 86_400


def test_transfer_rolls_back_when_store_write_fails(make_token, tmp_path: Path, monkeypatch) -> None:
    c, tok, _ = _client(make_token, tmp_path)
    monkeypatch.setattr(c.app.state.store, "record_transfer", _failing)

    r = c.post("/v1/token/transfer", json={"sender": BENEFICIARY, "to": tok.token_address, "amount": str(UNIT)})
    assert r.status_code == 500
    assert tok.total_supply == tok.base_supply
    assert tok.balance_of(BENEFICIARY) == tok.base_supply


def test_beneficiary_change_rolls_back_when_store_write_fails(make_token, tmp_path: Path, monkeypatch) -> None:
    c, tok, _ = _client(make_token, tmp_path)
    monkeypatch.setattr(c.app.state.store, "write", _failing)

    r = c.post("/v1/token/beneficiary", json={"caller": ADMIN, "address": RANDOM})
    assert r.status_code == 500
    assert tok.mint_beneficiary == BENEFICIARY


def test_transfer_history_route(make_token, tmp_path: Path) -> None:
    c, tok, _ = _client(make_token, tmp_path)
    c.post("/v1/token/transfer", json={"sender": BENEFICIARY, "to": RANDOM, "amount": "7"})

    rows = c.get("/v1/token/transfers").json()["transfers"]
    assert rows == [{"id": 1, "kind": "TRANSFER", "from": BENEFICIARY, "to": RANDOM, "amount": "7"}]

    c2, _, _ = _client(make_token)
    assert c2.get("/v1/token/transfers").status_code == 404


def test_mintable_reports_watermark_used_for_terms(make_token) -> None:
    c, tok, clock = _client(make_token)
    clock.t = DEPLOY_TIME + 500
    c.post("/v1/token/mint", json={"caller": ADMIN})

    j = c.get("/v1/token/mintable", params={"timestamp": DEPLOY_TIME + 800}).json()
    assert j["last_mint_time"] == DEPLOY_TIME + 500
    assert j["amount"] == str(tok.tokens_per_year(1) * 300 // Y)
