"""
Lightweight in-memory cache counters for observability and tuning.
"""

from threading import Lock
from typing import Dict

_COUNTERS = (
    "hits",
    "misses",
    "coalesced",
    "transforms",
    "read_errors",
    "write_errors",
    "failures",
)

_metrics_lock = Lock()
_metrics: Dict[str, int] = {name: 0 for name in _COUNTERS}


def record(name: str, amount: int = 1) -> None:
    if name not in _metrics:
        return
    with _metrics_lock:
        _metrics[name] += amount


def get_cache_metrics() -> Dict[str, int]:
    """Return a snapshot of current cache counters."""
    with _metrics_lock:
        return dict(_metrics)


def reset_cache_metrics() -> None:
    with _metrics_lock:
        for name in _COUNTERS:
            _metrics[name] = 0
