"""
Prometheus metrics endpoint for monitoring infrastructure.

This is a PUBLIC endpoint (no authentication required) following
standard Prometheus practices. It exposes metrics collected from
the @measure_operation decorators and the booking/capacity counters.
"""

from time import monotonic
from typing import Optional, Tuple

from fastapi import APIRouter, Request, Response
from prometheus_client import Counter

from ..core.config import settings
from ..core.exceptions import NotFoundException
from ..monitoring.prometheus_metrics import REGISTRY, prometheus_metrics

router = APIRouter(tags=["monitoring"])


_METRICS_CACHE_TTL_SECONDS = 1.0
_metrics_cache: Optional[Tuple[float, bytes]] = None
_scrape_counter = Counter(
    "plindo_prometheus_scrapes_total",
    "Total number of Prometheus metrics scrapes",
    registry=REGISTRY,
)


def _cache_enabled() -> bool:
    return (settings.environment or "").strip().lower() not in {"test", "development"}


def _get_cached_metrics_payload(*, force_refresh: bool = False) -> bytes:
    """Return cached metrics payload with fresh-if-recent bypass for rapid scrapes."""

    global _metrics_cache

    if not _cache_enabled():
        return prometheus_metrics.get_metrics()

    now = monotonic()
    if not force_refresh and _metrics_cache is not None:
        cached_ts, cached_payload = _metrics_cache
        if now - cached_ts < _METRICS_CACHE_TTL_SECONDS:
            return cached_payload

    payload = prometheus_metrics.get_metrics()
    _metrics_cache = (now, payload)
    return payload


@router.get("/metrics", include_in_schema=False, response_class=Response, response_model=None)
async def get_prometheus_metrics(request: Request) -> Response:
    """
    Expose Prometheus metrics for scraping.

    Returns:
        Response with Prometheus exposition format (text/plain)
    """
    if not settings.metrics_enabled:
        raise NotFoundException("Metrics are disabled", code="METRICS_DISABLED")
    refresh_flag = request.query_params.get("refresh", "").lower() in {"1", "true", "yes"}
    _scrape_counter.inc()
    metrics_data = _get_cached_metrics_payload(force_refresh=refresh_flag)

    return Response(
        content=metrics_data,
        media_type=prometheus_metrics.get_content_type(),
        headers={
            "Cache-Control": "no-cache, no-store, must-revalidate",
            "Pragma": "no-cache",
            "Expires": "0",
        },
    )
