"""generate / check / contents commands."""

from __future__ import annotations

from pathlib import Path

import typer

from relupgrade.cli.commands._helpers import exit_on_upgrade_error
from relupgrade.cli.context import CLIContext, build_context
from relupgrade.core.result import Err
from relupgrade.output.console import RichConsole, Style
from relupgrade.services.upgrade.package import list_package
from relupgrade.services.upgrade.service import UpgradeRequest, UpgradeService
from relupgrade.services.upgrade.toolchain import ErlangToolchain

_RELTOOL_ARG = typer.Argument(..., help="reltool descriptor of the new release")
_PREVIOUS_OPT = typer.Option(
    None, "--previous-release", help="Root of the deployed release tree (previous_release)"
)
_WORK_DIR_OPT = typer.Option(Path("."), "--work-dir", help="Directory holding the new release tree")
_CONFIG_OPT = typer.Option(None, "--config", help="Config file (default: ./relupgrade.toml)")
_VERBOSE_OPT = typer.Option(False, "--verbose", "-v", help="Show per-stage progress")


def _service(ctx: CLIContext) -> UpgradeService:
    toolchain = ErlangToolchain(ctx.config.toolchain.erl, timeout=ctx.config.toolchain.timeout)
    return UpgradeService(console=ctx.console, toolchain=toolchain)


def _request(ctx: CLIContext, reltool_file: Path) -> UpgradeRequest:
    return UpgradeRequest(
        reltool_file=reltool_file.expanduser().absolute(),
        previous_release=ctx.config.upgrade.previous_release,
        work_dir=ctx.work_dir,
    )


def generate(
    reltool_file: Path = _RELTOOL_ARG,
    previous_release: Path | None = _PREVIOUS_OPT,
    work_dir: Path = _WORK_DIR_OPT,
    config: Path | None = _CONFIG_OPT,
    erl: str | None = typer.Option(None, "--erl", help="erl executable running systools"),
    verbose: bool = _VERBOSE_OPT,
) -> None:
    """Build <name>_<vsn>.tar.gz upgrading the previous release to the new one."""
    ctx = build_context(
        work_dir=work_dir,
        config_path=config,
        previous_release=previous_release,
        erl=erl,
        verbose=verbose,
    )
    result = _service(ctx).generate(_request(ctx, reltool_file))
    exit_on_upgrade_error(result, ctx.console)


def check(
    reltool_file: Path = _RELTOOL_ARG,
    previous_release: Path | None = _PREVIOUS_OPT,
    work_dir: Path = _WORK_DIR_OPT,
    config: Path | None = _CONFIG_OPT,
) -> None:
    """Validate both release trees without building."""
    ctx = build_context(
        work_dir=work_dir,
        config_path=config,
        previous_release=previous_release,
    )
    result = _service(ctx).describe(_request(ctx, reltool_file))
    exit_on_upgrade_error(result, ctx.console)
    if isinstance(result, Err):
        return

    build = result.value
    ctx.console.header(f"{build.name} {build.old_version} -> {build.version}")
    ctx.console.print(f"new release: {build.new_root}", Style.DIM)
    ctx.console.print(f"old release: {build.old_root}", Style.DIM)
    ctx.console.success(f"{build.package.name} can be built")


def contents(package: Path = typer.Argument(..., help="Upgrade package (.tar.gz)")) -> None:
    """List the entries of an upgrade package."""
    console = RichConsole()
    result = list_package(package)
    exit_on_upgrade_error(result, console)
    if isinstance(result, Err):
        return
    for name in result.value:
        console.print(name)

