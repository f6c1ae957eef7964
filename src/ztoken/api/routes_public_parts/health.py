from __future__ import annotations

from fastapi import APIRouter, Request

router = APIRouter()


@router.get("/health")
def health(request: Request) -> dict:
    tok = getattr(request.app.state, "token", None)
    return {"ok": True, "ready": tok is not None}
