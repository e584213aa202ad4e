"""
Operational endpoints: optimizer log and cache counters.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from ..core.cache_metrics import get_cache_metrics
from ..core.ops_log import ops_log
from ..services.optimizer import ImageOptimizer
from .optimize import get_optimizer

router = APIRouter(prefix="/ops", tags=["ops"])


@router.get("/logs")
async def get_logs(
    since_id: int | None = Query(None, ge=0),
    limit: int = Query(200, ge=1, le=2000),
    scope: str = Query("all", pattern="^(all|errors)$"),
    cache_key: str | None = Query(None, description="Only entries for this cache key"),
) -> Dict[str, Any]:
    """Recent optimizer log entries, newest last."""
    items, last_id = ops_log.entries(
        since_id=since_id,
        limit=limit,
        errors_only=scope == "errors",
        cache_key=cache_key,
    )
    return {"items": items, "last_id": last_id}


@router.post("/logs/clear")
async def clear_logs() -> Dict[str, Any]:
    ops_log.clear()
    return {"cleared": True}


@router.get("/cache")
async def cache_status(optimizer: ImageOptimizer = Depends(get_optimizer)) -> Dict[str, Any]:
    """Cache counters, in-flight computations and on-disk size."""
    return {
        "counters": get_cache_metrics(),
        "in_flight": optimizer.registry.in_flight(),
        "disk": optimizer.store.stats(),
    }
