import os
from pathlib import Path

from .errors import PathTraversalRejected


def resolve_source_path(source_dir, name: str) -> Path:
    """
    Join `name` onto `source_dir` and make sure the result stays inside it.

    Pure string work: nothing on disk is touched, so callers can reject a
    request before any read happens. Symlinks inside the source directory
    are trusted.
    """
    if not name or "\x00" in name or "\\" in name:
        raise PathTraversalRejected(f"rejected image name {name!r}")
    if os.path.isabs(name) or name.startswith("/"):
        raise PathTraversalRejected(f"absolute image name {name!r}")

    root = os.path.normpath(os.path.abspath(os.fspath(source_dir)))
    candidate = os.path.normpath(os.path.join(root, name))
    if candidate == root or os.path.commonpath([root, candidate]) != root:
        raise PathTraversalRejected(f"image name {name!r} escapes {root}")
    return Path(candidate)
