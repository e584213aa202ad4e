import asyncio
import os

from fastapi import APIRouter, Depends, status

from ..core.time_utils import utc_now
from ..services.optimizer import ImageOptimizer
from .optimize import get_optimizer

router = APIRouter()


def check_source_dir(optimizer: ImageOptimizer) -> dict:
    """Source directory must exist and be readable."""
    path = optimizer.source_dir
    ok = path.is_dir() and os.access(path, os.R_OK)
    return {
        "status": "online" if ok else "offline",
        "path": str(path),
        "last_error": None if ok else "missing or unreadable",
    }


def check_cache_dir(optimizer: ImageOptimizer) -> dict:
    """Cache directory (or the parent it will be created in) must accept writes."""
    path = optimizer.store.root
    target = path
    while not target.exists() and target.parent != target:
        target = target.parent
    ok = target.is_dir() and os.access(target, os.W_OK)
    return {
        "status": "online" if ok else "offline",
        "path": str(path),
        "created": path.is_dir(),
        "last_error": None if ok else "not writable",
    }


@router.get("/health", status_code=status.HTTP_200_OK)
async def health() -> dict:
    return {"status": "ok"}


@router.get("/health/detailed", status_code=status.HTTP_200_OK)
async def detailed_health(optimizer: ImageOptimizer = Depends(get_optimizer)) -> dict:
    """Detailed health check with storage status."""
    source, cache = await asyncio.gather(
        asyncio.to_thread(check_source_dir, optimizer),
        asyncio.to_thread(check_cache_dir, optimizer),
    )
    checks = [source["status"] == "online", cache["status"] == "online"]
    system_status = "online"
    if not all(checks):
        system_status = "degraded" if any(checks) else "offline"
    return {
        "status": system_status,
        "last_checked": utc_now().isoformat(),
        "services": {"source": source, "cache": cache},
    }
