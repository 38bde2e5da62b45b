from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer

from relupgrade.core.config import Config, load_config, load_config_or_default
from relupgrade.core.errors import ErrorCode
from relupgrade.core.result import Err
from relupgrade.output.console import ConsoleProtocol, RichConsole


@dataclass(frozen=True, slots=True)
class CLIContext:
    work_dir: Path
    config: Config
    console: ConsoleProtocol


def build_context(
    *,
    work_dir: Path,
    config_path: Path | None = None,
    previous_release: Path | None = None,
    erl: str | None = None,
    verbose: bool = False,
) -> CLIContext:
    """Resolve the work dir and merged configuration for a command.

    Exits with CONFIG_ERROR when the work dir or config file is unusable.
    """
    console = RichConsole(verbose=verbose)

    try:
        root = work_dir.expanduser().resolve()
    except OSError as e:
        console.error(f"invalid --work-dir: {e}")
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))
    if not root.is_dir():
        console.error(f"working directory not found: {root}")
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    if config_path is not None:
        config_result = load_config(config_path.expanduser())
    else:
        config_result = load_config_or_default(root)
    if isinstance(config_result, Err):
        console.error(config_result.error.message)
        raise typer.Exit(code=int(ErrorCode.CONFIG_ERROR))

    if previous_release is not None:
        previous_release = previous_release.expanduser().absolute()
    config = config_result.value.with_overrides(previous_release=previous_release, erl=erl)

    return CLIContext(work_dir=root, config=config, console=console)
