"""
Flat on-disk store for optimized images, one file per cache key.

Entries are published atomically: bytes go to a hidden temp file in the same
directory which is then renamed over the final name, so readers never see a
partial file. The directory is created on the first put, so lookups and
rejected requests never touch the disk for writing.
"""

import logging
import os
import uuid
from pathlib import Path
from typing import List, Optional

from .errors import CacheReadError, CacheWriteError, InvalidFormat
from .fingerprint import format_from_key
from .formats import sniff_format

logger = logging.getLogger(__name__)

_TMP_PREFIX = ".tmp-"


class CacheStore:
    def __init__(self, root):
        self.root = Path(root)

    def _path(self, key: str) -> Path:
        if not key or key.startswith(".") or "/" in key or "\\" in key or "\x00" in key:
            raise ValueError(f"invalid cache key {key!r}")
        return self.root / key

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def get(self, key: str) -> Optional[bytes]:
        """Return cached bytes, or None when the key was never written."""
        path = self._path(key)
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise CacheReadError(f"cannot read {key}: {exc}") from exc

        if not data:
            raise CacheReadError(f"empty cache entry {key}")
        try:
            expected = format_from_key(key)
        except InvalidFormat:
            expected = None
        if expected is not None and sniff_format(data) != expected:
            raise CacheReadError(f"cache entry {key} does not look like {expected.value}")
        return data

    def put(self, key: str, data: bytes) -> None:
        path = self._path(key)
        tmp_path = self.root / f"{_TMP_PREFIX}{uuid.uuid4().hex}-{key}"
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, path)
        except OSError as exc:
            try:
                tmp_path.unlink(missing_ok=True)
            except OSError:
                logger.warning("[cache_store] could not remove temp file %s", tmp_path)
            raise CacheWriteError(f"cannot write {key}: {exc}") from exc

    def keys(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(
            entry.name
            for entry in self.root.iterdir()
            if entry.is_file() and not entry.name.startswith(".")
        )

    def stats(self) -> dict:
        entries = 0
        total_bytes = 0
        for key in self.keys():
            try:
                total_bytes += (self.root / key).stat().st_size
            except FileNotFoundError:
                continue
            entries += 1
        return {"entries": entries, "bytes": total_bytes, "path": str(self.root)}
