"""
Cache-aside image optimization.

Looks up the content-addressed cache, runs the transform pipeline on a worker
thread on a miss, and publishes the result. Concurrent requests for the same
key share a single lookup/transform/publish cycle.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ..core import cache_metrics
from ..core.cache_store import CacheStore
from ..core.config import Settings, settings as default_settings
from ..core.errors import CacheReadError, CacheWriteError
from ..core.fingerprint import fingerprint
from ..core.formats import ImageFormat, content_type, normalize_format
from ..core.inflight import InflightRegistry
from ..core.ops_log import log_context
from ..core.paths import resolve_source_path
from ..core.transform import MAX_QUALITY, MIN_QUALITY, transform

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransformRequest:
    source_name: str
    width: int
    height: int
    quality: int
    format: ImageFormat

    @property
    def cache_key(self) -> str:
        return fingerprint(self.source_name, self.width, self.height, self.quality, self.format)

    @property
    def content_type(self) -> str:
        return content_type(self.format)


@dataclass(frozen=True)
class OptimizedImage:
    data: bytes
    content_type: str
    cache_key: str
    cache_hit: bool


_ASCII_DIGITS = "0123456789"
_MAX_DIGITS = 10


def _parse_int(value: Optional[str], default: int) -> int:
    """Leading-integer parse; absent, non-numeric or zero falls back to default."""
    if value is None:
        return default
    text = str(value).strip()
    sign = 1
    if text[:1] in ("+", "-"):
        sign = -1 if text[0] == "-" else 1
        text = text[1:]
    digits = ""
    for ch in text:
        if ch not in _ASCII_DIGITS:
            break
        digits += ch
    if not digits:
        return default
    digits = digits.lstrip("0") or "0"
    if len(digits) > _MAX_DIGITS:
        # Far beyond any bound; let the caller's clamp pick the limit.
        return sign * 10 ** _MAX_DIGITS
    parsed = sign * int(digits)
    return parsed or default


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(high, value))


def parse_request(
    source_name: str,
    width: Optional[str] = None,
    height: Optional[str] = None,
    quality: Optional[str] = None,
    fmt: Optional[str] = None,
    config: Optional[Settings] = None,
) -> TransformRequest:
    """
    Build a TransformRequest from raw query values.

    Dimensions are clamped to 1..MAX_DIMENSION and quality to 1..100, so the
    cache key is always computed from the values the pipeline will use.
    Raises InvalidFormat for unsupported formats.
    """
    config = config or default_settings
    fmt_token = fmt if fmt not in (None, "") else config.DEFAULT_FORMAT
    image_format = normalize_format(fmt_token)
    return TransformRequest(
        source_name=source_name,
        width=_clamp(_parse_int(width, config.DEFAULT_WIDTH), 1, config.MAX_DIMENSION),
        height=_clamp(_parse_int(height, config.DEFAULT_HEIGHT), 1, config.MAX_DIMENSION),
        quality=_clamp(_parse_int(quality, config.DEFAULT_QUALITY), MIN_QUALITY, MAX_QUALITY),
        format=image_format,
    )


class ImageOptimizer:
    def __init__(
        self,
        source_dir,
        store: CacheStore,
        pipeline: Callable[..., bytes] = transform,
        registry: Optional[InflightRegistry] = None,
    ):
        self.source_dir = Path(source_dir)
        self.store = store
        self.pipeline = pipeline
        self.registry = registry or InflightRegistry()

    async def optimize(self, request: TransformRequest) -> OptimizedImage:
        """Serve `request` from cache or compute it. Raises OptimizeError subclasses."""
        source_path = resolve_source_path(self.source_dir, request.source_name)
        key = request.cache_key
        data, hit = await self.registry.run(
            key,
            lambda: self._load_or_build(request, key, source_path),
            on_join=lambda: cache_metrics.record("coalesced"),
        )
        return OptimizedImage(
            data=data,
            content_type=request.content_type,
            cache_key=key,
            cache_hit=hit,
        )

    async def _load_or_build(self, request: TransformRequest, key: str, source_path: Path):
        try:
            cached = await asyncio.to_thread(self.store.get, key)
        except CacheReadError as exc:
            cache_metrics.record("read_errors")
            logger.warning(
                "[optimizer] unreadable cache entry %s, recomputing: %s",
                key,
                exc,
                extra=log_context(request, key),
            )
            cached = None
        if cached is not None:
            cache_metrics.record("hits")
            return cached, True

        cache_metrics.record("misses")
        cache_metrics.record("transforms")
        data = await asyncio.to_thread(
            self.pipeline,
            source_path,
            request.width,
            request.height,
            request.quality,
            request.format,
        )

        try:
            await asyncio.to_thread(self.store.put, key, data)
        except CacheWriteError as exc:
            cache_metrics.record("write_errors")
            logger.error("[optimizer] failed to cache %s: %s", key, exc, extra=log_context(request, key))
        else:
            logger.info(
                "[optimizer] cached %s as %s (%dx%d q=%d, %d bytes)",
                request.source_name,
                key,
                request.width,
                request.height,
                request.quality,
                len(data),
                extra=log_context(request, key),
            )
        return data, False
