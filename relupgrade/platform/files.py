"""Filesystem helpers for best-effort removal.

Both helpers report failures instead of raising so the caller can finish
removing everything else and surface the problems afterwards.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path

__all__ = ["remove_file", "remove_tree"]


def remove_file(path: Path) -> list[tuple[Path, OSError]]:
    """Unlink ``path`` (symlinks themselves, never their targets).

    A path that is already gone is not a failure.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return []
    except OSError as e:
        return [(path, e)]
    return []


def remove_tree(root: Path) -> list[tuple[Path, OSError]]:
    """Remove ``root`` and everything below it.

    Walks depth-first: each entry is lstat'ed, directories are emptied then
    removed, anything else (files, symlinks, fifos) is unlinked. Symlinked
    directories are unlinked, not followed. Failures are collected and the
    walk continues with the next entry.
    """
    failures: list[tuple[Path, OSError]] = []
    _remove_entry(root, failures)
    return failures


def _remove_entry(path: Path, failures: list[tuple[Path, OSError]]) -> None:
    try:
        info = path.lstat()
    except FileNotFoundError:
        return
    except OSError as e:
        failures.append((path, e))
        return

    if not stat.S_ISDIR(info.st_mode):
        failures.extend(remove_file(path))
        return

    try:
        names = sorted(os.listdir(path))
    except OSError as e:
        failures.append((path, e))
        return

    for name in names:
        _remove_entry(path / name, failures)

    try:
        path.rmdir()
    except FileNotFoundError:
        pass
    except OSError as e:
        failures.append((path, e))
