"""
Path safety utilities for ocikit.

Layer titles and tar entry names come from remote content; this module
validates them before anything is written to disk.
"""
from __future__ import annotations

from pathlib import Path, PurePosixPath

from .errors import UnsafeLayerPath


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a remote-provided path to prevent traversal attacks.

    Rules:
    - No empty strings or "." (would target the output directory itself)
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes

    Examples:
        >>> safe_relpath("dir/file.txt")
        'dir/file.txt'

        >>> safe_relpath("../secrets.txt")
        UnsafeLayerPath: unsafe path: ../secrets.txt

    Raises:
        UnsafeLayerPath: If path violates safety rules
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not s or s == ".":
        raise UnsafeLayerPath(f"unsafe path: {path}")
    if "\\" in s:
        raise UnsafeLayerPath(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise UnsafeLayerPath(f"unsafe path: {path}")
    return s


def join_under(root: Path, path: str) -> Path:
    """Join a validated relative path under ``root``."""
    return root.joinpath(*PurePosixPath(safe_relpath(path)).parts)
