"""Store and cache metrics endpoints."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from newsrelay.routers.chat import get_services
from newsrelay.services.container import ServiceContainer

router = APIRouter()


@router.get("")
async def metrics(services: ServiceContainer = Depends(get_services)) -> dict:
    """Return store connectivity, cache effectiveness, and latency figures."""
    store_metrics = services.store.metrics
    totals = services.cache.totals()
    return {
        "store": {
            "status": "connected" if services.store.is_connected else "disconnected",
            "uptime": round(store_metrics.uptime_seconds(), 3),
        },
        "cache": {
            "hits": store_metrics.hits,
            "misses": store_metrics.misses,
            "hitRate": store_metrics.hit_rate,
            "totalOperations": store_metrics.operations,
            "domains": {
                name: {"hits": stats.hits, "misses": stats.misses, "hitRate": stats.hit_rate}
                for name, stats in services.cache.stats().items()
            },
            "layerHits": totals.hits,
            "layerMisses": totals.misses,
        },
        "performance": {
            "averageLatency": store_metrics.average_latency_ms,
            "operationsPerSecond": store_metrics.operations_per_second(),
            "failedOperations": store_metrics.failures,
            "connectionErrors": store_metrics.connection_errors,
        },
        "timestamp": datetime.now(tz=timezone.utc).isoformat(),
    }


@router.post("/reset")
async def reset_metrics(services: ServiceContainer = Depends(get_services)) -> dict[str, bool]:
    """Zero the store and cache counters."""
    services.store.reset_metrics()
    services.cache.reset_stats()
    return {"success": True}
