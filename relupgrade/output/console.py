"""Console output abstraction.

Services report progress through ``ConsoleProtocol`` rather than printing
directly, so the pipeline can run under Rich in the CLI and under
``MockConsole`` in tests.

Message levels follow the build tool tradition:
- ``debug``: per-stage progress ("Relup created"), shown with ``--verbose``
- ``info``/``success``: operator-facing results
- ``warning``: non-fatal problems (e.g. leftovers cleanup could not remove)
- ``error``: the single abort message of a failed build
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Protocol

__all__ = [
    "Style",
    "ConsoleProtocol",
    "RichConsole",
    "MockConsole",
    "OutputRecord",
]


class Style(Enum):
    """Text styles for console output."""

    DEFAULT = auto()
    SUCCESS = auto()
    ERROR = auto()
    WARNING = auto()
    INFO = auto()
    DEBUG = auto()
    DIM = auto()
    HEADER = auto()

    def __str__(self) -> str:
        return self.name.lower()


class ConsoleProtocol(Protocol):
    """Interface for styled console output."""

    def print(self, message: str, style: Style = Style.DEFAULT) -> None: ...

    def success(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def info(self, message: str) -> None: ...

    def debug(self, message: str) -> None:
        """Print a progress detail; implementations may drop it."""
        ...

    def header(self, message: str) -> None: ...


class RichConsole:
    """Production console backed by Rich.

    Errors and warnings go to stderr so stdout only carries results.
    """

    def __init__(self, *, verbose: bool = False) -> None:
        from rich.console import Console

        self._out = Console()
        self._err = Console(stderr=True)
        self._verbose = verbose
        self._style_map = {
            Style.DEFAULT: "",
            Style.SUCCESS: "green",
            Style.ERROR: "red bold",
            Style.WARNING: "yellow",
            Style.INFO: "cyan",
            Style.DEBUG: "dim",
            Style.DIM: "dim",
            Style.HEADER: "blue bold",
        }

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        rich_style = self._style_map.get(style, "")
        target = self._err if style in (Style.ERROR, Style.WARNING) else self._out
        if rich_style:
            target.print(message, style=rich_style, markup=False)
        else:
            target.print(message, markup=False)

    def success(self, message: str) -> None:
        self._out.print(f"[green]OK[/green] {_escape(message)}")

    def error(self, message: str) -> None:
        self._err.print(f"[red bold]error:[/red bold] {_escape(message)}")

    def warning(self, message: str) -> None:
        self._err.print(f"[yellow]warning:[/yellow] {_escape(message)}")

    def info(self, message: str) -> None:
        self._out.print(f"[cyan]info:[/cyan] {_escape(message)}")

    def debug(self, message: str) -> None:
        if self._verbose:
            self._out.print(message, style="dim", markup=False)

    def header(self, message: str) -> None:
        self._out.print(f"\n[blue bold]{_escape(message)}[/blue bold]")


def _escape(message: str) -> str:
    # Paths and Erlang terms routinely contain [brackets].
    from rich.markup import escape

    return escape(message)


@dataclass
class OutputRecord:
    message: str
    style: Style


def _empty_outputs() -> list[OutputRecord]:
    return []


@dataclass
class MockConsole:
    """Console that records output for assertions in tests."""

    outputs: list[OutputRecord] = field(default_factory=_empty_outputs)

    def print(self, message: str, style: Style = Style.DEFAULT) -> None:
        self.outputs.append(OutputRecord(message, style))

    def success(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"OK {message}", Style.SUCCESS))

    def error(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"error: {message}", Style.ERROR))

    def warning(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"warning: {message}", Style.WARNING))

    def info(self, message: str) -> None:
        self.outputs.append(OutputRecord(f"info: {message}", Style.INFO))

    def debug(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.DEBUG))

    def header(self, message: str) -> None:
        self.outputs.append(OutputRecord(message, Style.HEADER))

    @property
    def messages(self) -> list[str]:
        return [o.message for o in self.outputs]

    @property
    def text(self) -> str:
        return "\n".join(self.messages)

    def has_error(self) -> bool:
        return any(o.style == Style.ERROR for o in self.outputs)

    def has_warning(self) -> bool:
        return any(o.style == Style.WARNING for o in self.outputs)

    def find(self, substring: str) -> list[OutputRecord]:
        return [o for o in self.outputs if substring in o.message]

    def count(self, style: Style) -> int:
        return sum(1 for o in self.outputs if o.style == style)
