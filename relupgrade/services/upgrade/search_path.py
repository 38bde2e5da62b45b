"""Code search path staging.

``systools`` resolves release manifests and application ``ebin`` directories
through the code path, so both release trees have to be on it while the
upgrade is computed. The path itself is an explicit value (``SearchContext``)
handed to the toolchain; ``SearchPath`` is the process-wide holder that
``staged`` extends for the duration of a build and always puts back.

Usage:
    with staged(code_path, staged_entries(ctx)) as search:
        toolchain.make_relup(ctx.name_ver, [ctx.name], [ctx.name], search)
    # code_path is back to its previous value here, on every exit path
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from relupgrade.core.result import Err, Ok, Result

from .cleanup import Artifacts
from .errors import FilesystemFailed, UpgradeError, filesystem_error
from .layout import BuildContext

__all__ = [
    "SearchContext",
    "SearchPath",
    "code_path",
    "copy_release_manifest",
    "ensure_clean_work_dir",
    "staged",
    "staged_entries",
]


@dataclass(frozen=True, slots=True)
class SearchContext:
    """An ordered code path. First match wins during module resolution."""

    paths: tuple[str, ...] = ()

    def extended(self, paths: Iterable[str]) -> SearchContext:
        return SearchContext(self.paths + tuple(paths))

    def __len__(self) -> int:
        return len(self.paths)


class SearchPath:
    """Mutable, process-wide code path."""

    def __init__(self, initial: SearchContext | None = None) -> None:
        self._current = initial or SearchContext()

    @property
    def current(self) -> SearchContext:
        return self._current

    def snapshot(self) -> SearchContext:
        return self._current

    def install(self, context: SearchContext) -> None:
        self._current = context

    def restore(self, snapshot: SearchContext) -> None:
        self._current = snapshot


code_path = SearchPath()


@contextmanager
def staged(search_path: SearchPath, entries: Iterable[str]) -> Iterator[SearchContext]:
    """Append ``entries`` to ``search_path`` for the duration of the block.

    The snapshot taken on entry is restored exactly once on exit, whether
    the block returns, fails with an error value, or raises.
    """
    snapshot = search_path.snapshot()
    context = snapshot.extended(entries)
    search_path.install(context)
    try:
        yield context
    finally:
        search_path.restore(snapshot)


def _expand(pattern_root: Path, pattern: str) -> list[str]:
    return [str(p) for p in sorted(pattern_root.glob(pattern))]


def staged_entries(ctx: BuildContext) -> list[str]:
    """Code path entries for a build, in resolution order.

    1. old release ``releases/*`` (old manifests)
    2. old release ``lib/*/ebin``
    3. new release ``lib/*/ebin``
    4. new release top level ``<name>/*``
    """
    return [
        *_expand(ctx.old_root, "releases/*"),
        *_expand(ctx.old_root, "lib/*/ebin"),
        *_expand(ctx.new_root, "lib/*/ebin"),
        *_expand(ctx.new_root, "*"),
    ]


def ensure_clean_work_dir(ctx: BuildContext) -> Result[None, UpgradeError]:
    """Refuse to build over existing ``releases/`` or ``lib/`` in the work dir.

    Both are removed wholesale after the build, so they must be ours.
    """
    for tree in ctx.transient_trees():
        if tree.exists() or tree.is_symlink():
            return Err(FilesystemFailed(operation="stage", path=tree, reason="already exists"))
    return Ok(None)


def copy_release_manifest(ctx: BuildContext, artifacts: Artifacts) -> Result[Path, UpgradeError]:
    """Copy the new ``.rel`` to ``<name>_<vsn>.rel`` where systools expects it."""
    artifacts.track(ctx.staged_rel_file)
    try:
        shutil.copyfile(ctx.new_rel_file, ctx.staged_rel_file)
    except OSError as e:
        return Err(filesystem_error("copy", ctx.new_rel_file, e))
    return Ok(ctx.staged_rel_file)
