from __future__ import annotations

import typer

from relupgrade import __version__
from relupgrade.cli.commands.upgrade import check, contents, generate


app = typer.Typer(
    add_completion=False,
    no_args_is_help=True,
    rich_markup_mode="rich",
    help="Build OTP release upgrade packages.",
)


app.command()(generate)
app.command()(check)
app.command()(contents)


def _show_version(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(code=0)


@app.callback()
def _main(  # pyright: ignore[reportUnusedFunction]
    version: bool = typer.Option(
        False,
        "--version",
        help="Show version and exit.",
        callback=_show_version,
        is_eager=True,
    ),
) -> None:
    pass


def main() -> None:
    app()
