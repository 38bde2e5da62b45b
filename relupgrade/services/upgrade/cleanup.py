"""Removal of the intermediate artifacts of an upgrade build.

Each stage records what it creates in ``Artifacts`` before creating it;
``cleanup`` removes exactly those paths, in a fixed order, and never raises.
Problems are collected as ``CleanupIssue`` values so the caller can report
them as warnings next to (not instead of) the build result.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from relupgrade.platform.files import remove_file, remove_tree

from .layout import BuildContext

__all__ = ["Artifacts", "CleanupIssue", "CleanupReport", "cleanup"]


@dataclass
class Artifacts:
    """Paths created during one build."""

    created: set[Path] = field(default_factory=set)

    def track(self, *paths: Path) -> None:
        self.created.update(paths)

    def __contains__(self, path: object) -> bool:
        return path in self.created


@dataclass(frozen=True, slots=True)
class CleanupIssue:
    path: Path
    reason: str

    def __str__(self) -> str:
        return f"could not remove {self.path}: {self.reason}"


@dataclass(frozen=True, slots=True)
class CleanupReport:
    removed: tuple[Path, ...] = ()
    issues: tuple[CleanupIssue, ...] = ()

    @property
    def clean(self) -> bool:
        return not self.issues


def cleanup(ctx: BuildContext, artifacts: Artifacts, *, keep_package: bool) -> CleanupReport:
    """Remove tracked intermediate files, then tracked trees.

    The package is removed too unless ``keep_package`` is set, so a failed
    build leaves no partial deliverable behind.
    """
    removed: list[Path] = []
    issues: list[CleanupIssue] = []

    targets = list(ctx.transient_files())
    if not keep_package:
        targets.append(ctx.package)

    for path in targets:
        if path not in artifacts or (not path.is_symlink() and not path.exists()):
            continue
        failures = remove_file(path)
        issues.extend(CleanupIssue(p, _reason(e)) for p, e in failures)
        if not failures:
            removed.append(path)

    for tree in ctx.transient_trees():
        if tree not in artifacts or not tree.exists():
            continue
        failures = remove_tree(tree)
        issues.extend(CleanupIssue(p, _reason(e)) for p, e in failures)
        if not failures:
            removed.append(tree)

    return CleanupReport(removed=tuple(removed), issues=tuple(issues))


def _reason(error: OSError) -> str:
    return error.strerror or str(error)
