"""
Image optimize/resize endpoint.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import PlainTextResponse, Response

from ..core import cache_metrics
from ..core.cache_store import CacheStore
from ..core.config import settings
from ..core.errors import OptimizeError
from ..core.ops_log import log_context
from ..services.optimizer import ImageOptimizer, parse_request

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/optimize", tags=["images"])

CACHE_CONTROL = "public, max-age=31536000, immutable"

_optimizer: Optional[ImageOptimizer] = None


async def get_optimizer() -> ImageOptimizer:
    """Process-wide optimizer built on the event loop, so one registry exists."""
    global _optimizer
    if _optimizer is None:
        _optimizer = ImageOptimizer(settings.SOURCE_DIR, CacheStore(settings.CACHE_DIR))
    return _optimizer


@router.get("/{image_name:path}")
async def optimize_image(
    image_name: str,
    width: Optional[str] = Query(None, description="Max width in px (default 800)"),
    height: Optional[str] = Query(None, description="Max height in px (default 600)"),
    quality: Optional[str] = Query(None, description="Encoder quality 1-100 (default 80)"),
    fmt: Optional[str] = Query(None, alias="format", description="jpg, jpeg, png or webp (default jpg)"),
    optimizer: ImageOptimizer = Depends(get_optimizer),
):
    request = None
    try:
        request = parse_request(image_name, width, height, quality, fmt)
        result = await optimizer.optimize(request)
    except OptimizeError as exc:
        cache_metrics.record("failures")
        if exc.status_code >= 500:
            logger.error(
                "[optimize] %s failed (key=%s format=%s quality=%s): %s",
                image_name,
                request.cache_key if request else None,
                request.format.value if request else fmt,
                request.quality if request else quality,
                exc,
                extra=log_context(request),
            )
        else:
            logger.info("[optimize] rejected %r: %s", image_name, exc, extra=log_context(request))
        return PlainTextResponse(exc.message, status_code=exc.status_code)
    except Exception:
        cache_metrics.record("failures")
        logger.exception("[optimize] unexpected error for %r", image_name, extra=log_context(request))
        return PlainTextResponse(OptimizeError.message, status_code=500)

    return Response(
        content=result.data,
        media_type=result.content_type,
        headers={
            "Cache-Control": CACHE_CONTROL,
            "X-Cache": "HIT" if result.cache_hit else "MISS",
        },
    )
