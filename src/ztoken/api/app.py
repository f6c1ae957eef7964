from __future__ import annotations

import os
import threading

from fastapi import FastAPI

from ztoken.api.errors import ApiError, api_error_handler, token_error_handler
from ztoken.api.routes_public import public_router
from ztoken.api.structured_logging import RequestLogMiddleware
from ztoken.runtime.errors import TokenError
from ztoken.runtime.sqlite_store import SqliteDB, TokenStateStore
from ztoken.runtime.token_boot import build_token as _build_token
from ztoken.runtime.token_config import load_token_config


def build_token():
    """Load config, open the SQLite store and resume or deploy the token.

    This wrapper exists so tests can monkeypatch `ztoken.api.app.build_token`
    without reaching into runtime modules.
    """
    cfg = load_token_config()
    store = TokenStateStore(db=SqliteDB(path=cfg.db_path))
    return _build_token(cfg, store=store), store


def create_app(*, boot_runtime: bool = True) -> FastAPI:
    """Create the FastAPI application.

    boot_runtime:
      - True (default): load token config and attach token + store
      - False: keep lightweight; callers attach app.state.token themselves
    """
    mode = os.environ.get("ZTOKEN_ENV_LEVEL", "dev").strip().lower()

    # Disable docs in production.
    if mode == "prod":
        app = FastAPI(title="ZToken API", docs_url=None, redoc_url=None, openapi_url=None)
    else:
        app = FastAPI(title="ZToken API")

    app.state.write_lock = threading.Lock()
    if boot_runtime:
        app.state.token, app.state.store = build_token()
    else:
        app.state.token = None
        app.state.store = None

    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(TokenError, token_error_handler)
    app.add_middleware(RequestLogMiddleware)

    app.include_router(public_router)

    return app
