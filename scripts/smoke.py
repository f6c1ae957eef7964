#!/usr/bin/env python3

"""Smoke test for the token service.

It verifies:
  - the token deploys onto a fresh SQLite db
  - the FastAPI app serves /v1/health and /v1/token
  - a mint one simulated day after deployment credits the beneficiary
  - a restarted app resumes from the persisted watermark

Usage:
  python3 scripts/smoke.py
"""

from __future__ import annotations

import os
import tempfile

from fastapi.testclient import TestClient

from ztoken.api.app import create_app
from ztoken.runtime.token_config import DEV_MINTER_ADDRESS


def main() -> int:
    with tempfile.TemporaryDirectory(prefix="ztoken-smoke-") as td:
        os.environ["ZTOKEN_ENV_LEVEL"] = "dev"
        os.environ["ZTOKEN_DB_PATH"] = os.path.join(td, "ztoken.db")
        os.environ.pop("ZTOKEN_CONFIG_PATH", None)

        app = create_app(boot_runtime=True)
        tok = app.state.token
        c = TestClient(app)

        r = c.get("/v1/health")
        assert r.status_code == 200, r.text
        assert r.json().get("ready") is True

        r = c.get("/v1/token")
        assert r.status_code == 200, r.text
        deploy_time = int(r.json()["deploy_time"])

        tok._clock = lambda: deploy_time + 86_400
        r = c.post("/v1/token/mint", json={"caller": DEV_MINTER_ADDRESS})
        assert r.status_code == 200, r.text
        minted = int(r.json()["receipt"]["amount"])
        if minted <= 0:
            raise RuntimeError(f"mint credited nothing: {r.json()}")

        app2 = create_app(boot_runtime=True)
        if app2.state.token.last_mint_time != deploy_time + 86_400:
            raise RuntimeError("restarted token did not resume the persisted watermark")

        print("OK: health + token + mint + resume", {"deploy_time": deploy_time, "minted": str(minted)})
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
