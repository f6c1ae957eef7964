from __future__ import annotations

from fastapi import APIRouter, Response

from ztoken.runtime.metrics import format_prometheus, metrics_enabled

router = APIRouter()

_PROM_CONTENT_TYPE = "text/plain; version=0.0.4"


@router.get("/metrics")
def metrics() -> Response:
    """Issuance counters and supply gauges in Prometheus text format.

    Exposes mint_calls, minted_tokens, burned_tokens, last_mint_time and
    total_supply_tokens (amounts in whole tokens). Returns 404 unless
    ZTOKEN_METRICS_ENABLED is set.
    """
    if not metrics_enabled():
        return Response(status_code=404, content="metrics_disabled\n", media_type="text/plain")
    return Response(content=format_prometheus(), media_type=_PROM_CONTENT_TYPE)
