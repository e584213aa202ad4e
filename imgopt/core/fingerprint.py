"""
Content-addressed cache keys for optimized images.
"""

import hashlib
import json

from .formats import ImageFormat, normalize_format


def fingerprint(source_name: str, width: int, height: int, quality: int, fmt) -> str:
    """
    Derive the cache key for a transform.

    Fields are hashed in a fixed order from a JSON array so that no two
    distinct field tuples share a serialization. The canonical format is
    appended as an extension: `<sha256-hex>.<format>`.
    """
    if not source_name:
        raise ValueError("source_name must be non-empty")
    if width <= 0 or height <= 0:
        raise ValueError("width and height must be positive")
    fmt = normalize_format(fmt)
    payload = json.dumps(
        [source_name, int(width), int(height), int(quality), fmt.value],
        ensure_ascii=False,
        separators=(",", ":"),
    )
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()
    return f"{digest}.{fmt.value}"


def format_from_key(key: str) -> ImageFormat:
    _, _, suffix = key.rpartition(".")
    return normalize_format(suffix)
