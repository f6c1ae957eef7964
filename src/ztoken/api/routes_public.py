# src/ztoken/api/routes_public.py
from __future__ import annotations

from fastapi import APIRouter

from ztoken.api.routes_public_parts.health import router as health_router
from ztoken.api.routes_public_parts.metrics import router as metrics_router
from ztoken.api.routes_public_parts.token import router as token_router

public_router = APIRouter()

public_router.include_router(health_router, prefix="/v1", tags=["health"])
public_router.include_router(token_router, prefix="/v1", tags=["token"])

# Ops
public_router.include_router(metrics_router, prefix="/v1", tags=["metrics"])
