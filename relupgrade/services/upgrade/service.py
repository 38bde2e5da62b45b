"""Upgrade package build pipeline.

    checks -> stage search path -> systools (relup, script, tar)
           -> boot files -> repackage -> cleanup -> restore search path

Every stage returns a Result and the first Err aborts the build. Cleanup and
search path restoration run on every exit path once staging has begun:
cleanup in a ``finally`` inside the ``staged`` block, restoration when that
block exits.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from relupgrade.core.result import Err, Ok, Result
from relupgrade.output.console import ConsoleProtocol

from .boot import patch_boot_files
from .checks import run_checks
from .cleanup import Artifacts, CleanupIssue, CleanupReport, cleanup
from .errors import MissingPreviousRelease, ToolchainMissing, UpgradeError
from .layout import BuildContext
from .package import repackage
from .search_path import (
    SearchContext,
    SearchPath,
    code_path,
    copy_release_manifest,
    ensure_clean_work_dir,
    staged,
    staged_entries,
)
from .toolchain import ErlangToolchain, Toolchain, run_toolchain

__all__ = ["UpgradeOutcome", "UpgradeRequest", "UpgradeService"]


@dataclass(frozen=True, slots=True)
class UpgradeRequest:
    """Inputs of one build.

    Attributes:
        reltool_file: reltool descriptor naming the new release
        previous_release: root of the deployed (old) release tree
        work_dir: directory holding the new release tree; outputs land here
    """

    reltool_file: Path
    previous_release: Path | None
    work_dir: Path


@dataclass(frozen=True, slots=True)
class UpgradeOutcome:
    context: BuildContext
    package: Path
    cleanup_issues: tuple[CleanupIssue, ...] = ()


class UpgradeService:
    """Builds upgrade packages with a given toolchain."""

    def __init__(
        self,
        *,
        console: ConsoleProtocol,
        toolchain: Toolchain | None = None,
        search_path: SearchPath = code_path,
    ) -> None:
        self._console = console
        self._toolchain: Toolchain = toolchain or ErlangToolchain()
        self._search_path = search_path

    def describe(self, request: UpgradeRequest) -> Result[BuildContext, UpgradeError]:
        """Validate the request without building anything."""
        if request.previous_release is None:
            return Err(MissingPreviousRelease())
        return run_checks(request.reltool_file, request.previous_release, request.work_dir)

    def generate(self, request: UpgradeRequest) -> Result[UpgradeOutcome, UpgradeError]:
        """Build ``<name>_<vsn>.tar.gz`` in the request's work dir.

        Returns:
            Ok(UpgradeOutcome) with the package path and any cleanup issues,
            Err(UpgradeError) naming the first failure.
        """
        checked = self.describe(request)
        if isinstance(checked, Err):
            return checked
        ctx = checked.value

        if not self._toolchain.is_available():
            return Err(ToolchainMissing(executable=self._toolchain.executable))

        clean = ensure_clean_work_dir(ctx)
        if isinstance(clean, Err):
            return clean

        artifacts = Artifacts()
        built: Result[Path, UpgradeError] | None = None
        with staged(self._search_path, staged_entries(ctx)) as search:
            self._console.debug(f"Staged {len(search)} code path entries")
            try:
                built = self._build(ctx, search, artifacts)
            finally:
                succeeded = isinstance(built, Ok)
                report = cleanup(ctx, artifacts, keep_package=succeeded)
                self._report_cleanup(report)

        if isinstance(built, Err):
            return built
        package = built.value if built is not None else ctx.package

        self._console.success(f"{ctx.name_ver} upgrade package created")
        return Ok(UpgradeOutcome(context=ctx, package=package, cleanup_issues=report.issues))

    def _build(
        self,
        ctx: BuildContext,
        search: SearchContext,
        artifacts: Artifacts,
    ) -> Result[Path, UpgradeError]:
        staged_rel = copy_release_manifest(ctx, artifacts)
        if isinstance(staged_rel, Err):
            return staged_rel

        tools = run_toolchain(self._toolchain, ctx, search, artifacts, self._console)
        if isinstance(tools, Err):
            return tools

        boot = patch_boot_files(ctx, artifacts)
        if isinstance(boot, Err):
            return boot

        return repackage(ctx, artifacts)

    def _report_cleanup(self, report: CleanupReport) -> None:
        self._console.debug("Removed files needed for building the upgrade")
        for issue in report.issues:
            self._console.warning(str(issue))
