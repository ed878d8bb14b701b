"""Filesystem collaborators for taskshell.

The interpreter never touches the filesystem for glob matching or home
directory lookup directly; it calls a GlobMatcher and a HomeDirResolver,
which embedding applications can replace (tests use this to sandbox).
"""

from __future__ import annotations

import glob
import os
from pathlib import Path
from typing import Callable, Optional, Protocol


class GlobMatcher(Protocol):
    """Contract for glob matching."""

    def match(self, pattern: str, base_dir: str) -> list[str]:
        """Return paths matching pattern, relative to base_dir for relative patterns.

        No matches is not an error: an empty list is returned.
        """
        ...


HomeDirResolver = Callable[[], Optional[str]]
"""Returns the user's home directory, or None if it cannot be determined."""


class FileSystemGlobMatcher:
    """Glob matcher backed by the real filesystem.

    Hidden entries only match when the pattern component starts with a dot,
    as in POSIX shells. Results are sorted for determinism.
    """

    def match(self, pattern: str, base_dir: str) -> list[str]:
        return sorted(glob.glob(pattern, root_dir=base_dir))


def home_dir() -> Optional[str]:
    """Default home directory resolver."""
    try:
        return str(Path.home())
    except RuntimeError:
        return None


DEVNULL_PATHS = frozenset({"/dev/null", "NUL", "nul"})


def resolve_path(cwd: str, path: str) -> str:
    """Resolve path against cwd and normalize it lexically.

    /dev/null (and NUL) resolve to the platform null device so scripts can
    discard output the same way everywhere.
    """
    if path in DEVNULL_PATHS:
        return os.devnull
    return os.path.normpath(os.path.join(cwd, path))


__all__ = [
    "FileSystemGlobMatcher",
    "GlobMatcher",
    "HomeDirResolver",
    "home_dir",
    "resolve_path",
]
