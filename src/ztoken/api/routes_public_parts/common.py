from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Optional

from fastapi import Request

from ztoken.api.errors import ApiError
from ztoken.runtime.sqlite_store import TokenStateStore
from ztoken.runtime.token import ZToken
from ztoken.util.jsonlog import log_event

Json = Dict[str, Any]

log = logging.getLogger("ztoken.api")


def _token(request: Request) -> ZToken:
    tok = getattr(request.app.state, "token", None)
    if tok is None:
        raise ApiError.internal("not_ready", "token not attached to app.state", {})
    return tok


def _store(request: Request) -> Optional[TokenStateStore]:
    return getattr(request.app.state, "store", None)


def _write_lock(request: Request) -> threading.Lock:
    """Serializes mutate + persist so snapshots land in mutation order."""
    return request.app.state.write_lock


def _int_param(v: Any, name: str) -> int:
    if isinstance(v, bool):
        raise ApiError.bad_request("bad_request", f"{name} must be an integer", {name: v})
    try:
        return int(str(v).strip())
    except ValueError:
        raise ApiError.bad_request("bad_request", f"{name} must be an integer", {name: v}) from None


def _commit(
    request: Request,
    tok: ZToken,
    mutate: Callable[[], Json],
    persist: Callable[[TokenStateStore, Json, Json], None],
) -> Json:
    """Apply ``mutate`` and persist its result, or leave the token untouched.

    If the store write fails the in-memory token is rolled back to the
    snapshot taken before ``mutate`` ran, so memory never runs ahead of disk.
    """
    st = _store(request)
    with _write_lock(request):
        if st is None:
            return mutate()

        before = tok.to_state()
        receipt = mutate()
        try:
            persist(st, tok.to_state(), receipt)
        except Exception as e:
            tok.restore_state(before)
            log_event(log, "persist_failed", applied=receipt.get("applied"), error=str(e))
            raise ApiError.internal("persist_failed", "token state could not be persisted; change rolled back", {}) from e
    return receipt
