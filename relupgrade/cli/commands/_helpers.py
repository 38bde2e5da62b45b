"""Shared helpers for CLI commands."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import typer

from relupgrade.core.result import Err, Result
from relupgrade.output.errors import print_upgrade_error, upgrade_error_exit_code
from relupgrade.services.upgrade.errors import UpgradeError

if TYPE_CHECKING:
    from relupgrade.output.console import ConsoleProtocol

T = TypeVar("T")


def exit_on_upgrade_error(result: Result[T, UpgradeError], console: ConsoleProtocol) -> None:
    """Print the error and exit with its category's code if ``result`` is Err."""
    if isinstance(result, Err):
        print_upgrade_error(result.error, console)
        raise typer.Exit(code=upgrade_error_exit_code(result.error))
