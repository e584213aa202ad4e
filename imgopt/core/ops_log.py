"""
Operational log for the optimizer, served by /ops/logs.

Records from the `imgopt` loggers land in a bounded ring. Optimizer calls pass
`extra=log_context(request)` so each entry carries the cache key, image
format and source name as fields that clients can filter on instead of
parsing the message text.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, List, Optional, Tuple

CONTEXT_FIELDS = ("cache_key", "image_format", "source_name")
ERROR_LEVELS = {"WARNING", "ERROR", "CRITICAL"}


def log_context(request=None, cache_key: Optional[str] = None) -> Dict[str, Any]:
    """`extra=` payload for optimizer log calls."""
    if request is None:
        return {"cache_key": cache_key}
    return {
        "cache_key": cache_key or request.cache_key,
        "image_format": request.format.value,
        "source_name": request.source_name,
    }


class OpsLog:
    """Bounded, thread-safe ring of log entries with monotonically rising ids."""

    def __init__(self, maxlen: int = 2000) -> None:
        self._entries: Deque[Dict[str, Any]] = deque(maxlen=maxlen)
        self._lock = threading.Lock()
        self._next_id = 1

    def append(self, level: str, logger_name: str, message: str, created: float, **fields: Any) -> int:
        ts = datetime.fromtimestamp(created, tz=timezone.utc).isoformat()
        with self._lock:
            entry_id = self._next_id
            self._next_id += 1
            self._entries.append({
                "id": entry_id,
                "ts": ts,
                "level": level,
                "logger": logger_name,
                "message": message,
                **{name: fields.get(name) for name in CONTEXT_FIELDS},
            })
        return entry_id

    def entries(
        self,
        since_id: Optional[int] = None,
        limit: int = 200,
        errors_only: bool = False,
        cache_key: Optional[str] = None,
    ) -> Tuple[List[Dict[str, Any]], Optional[int]]:
        with self._lock:
            items = list(self._entries)
            newest = items[-1]["id"] if items else None
        if since_id is not None:
            items = [entry for entry in items if entry["id"] > since_id]
        if errors_only:
            items = [entry for entry in items if entry["level"] in ERROR_LEVELS]
        if cache_key:
            items = [entry for entry in items if entry["cache_key"] == cache_key]
        if limit and len(items) > limit:
            items = items[-limit:]
        return items, (items[-1]["id"] if items else newest)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._next_id = 1


class OpsLogHandler(logging.Handler):
    def __init__(self, sink: OpsLog, level: int = logging.INFO) -> None:
        super().__init__(level)
        self.sink = sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.exc_info:
                # Keep the exception type/text; full tracebacks stay in the process log.
                exc = record.exc_info[1]
                message = f"{message} [{type(exc).__name__}: {exc}]"
            self.sink.append(
                record.levelname,
                record.name,
                message,
                record.created,
                **{name: getattr(record, name, None) for name in CONTEXT_FIELDS},
            )
        except Exception:
            self.handleError(record)


ops_log = OpsLog()
_handler: Optional[OpsLogHandler] = None


def install_ops_log(level: str = "INFO") -> None:
    """Attach the ring to the package logger once."""
    global _handler
    if _handler is not None:
        return
    numeric = getattr(logging, level.upper(), logging.INFO)
    _handler = OpsLogHandler(ops_log, numeric)
    package_logger = logging.getLogger("imgopt")
    package_logger.addHandler(_handler)
    if package_logger.level == logging.NOTSET:
        package_logger.setLevel(numeric)
