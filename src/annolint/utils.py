from __future__ import annotations

from pathlib import Path


def safe_relpath(path: Path, root: Path) -> str:
    """
    Return a POSIX-style path for reporting, relative to `root` when possible.

    Paths outside the root (or that cannot be resolved) are reported as given.
    """

    try:
        return path.resolve().relative_to(root.resolve()).as_posix()
    except (ValueError, OSError):
        return path.as_posix()
