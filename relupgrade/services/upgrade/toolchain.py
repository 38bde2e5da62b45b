"""External release toolchain (OTP ``systools``).

The toolchain is a black box behind the ``Toolchain`` protocol: three calls,
each succeeding or reporting a reason. ``ErlangToolchain`` runs each call in a
fresh ``erl`` with the staged search path passed as ``-pa`` directories.
``run_toolchain`` sequences the three calls and stops at the first failure.
"""

from __future__ import annotations

import shutil
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from relupgrade.core.config import DEFAULT_ERL, DEFAULT_TOOLCHAIN_TIMEOUT
from relupgrade.core.result import Err, Ok, Result
from relupgrade.output.console import ConsoleProtocol
from relupgrade.platform.process import run

from .cleanup import Artifacts
from .errors import ToolchainFailed, ToolchainStage, UpgradeError
from .layout import BuildContext
from .search_path import SearchContext

__all__ = ["ErlangToolchain", "Toolchain", "erlang_string", "run_toolchain"]


class Toolchain(Protocol):
    """Release differencing toolchain.

    All calls run in ``work_dir`` and read/write files there by convention:
    ``<name_ver>.rel`` in, ``relup``/``<name_ver>.boot``/``.script``/``.tar.gz``
    out.
    """

    @property
    def executable(self) -> str: ...

    def is_available(self) -> bool: ...

    def make_relup(
        self,
        name_ver: str,
        up_from: Sequence[str],
        down_from: Sequence[str],
        search: SearchContext,
        work_dir: Path,
    ) -> Result[None, ToolchainFailed]: ...

    def make_script(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]: ...

    def make_tar(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]: ...


def erlang_string(value: str) -> str:
    """Quote ``value`` as an Erlang string literal."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _erlang_string_list(values: Sequence[str]) -> str:
    return "[" + ", ".join(erlang_string(v) for v in values) + "]"


# {error, Module, Reason} is the failure shape of every systools call in
# silent mode; the reason term goes to stderr unformatted.
_EVAL_TEMPLATE = (
    "case {call} of "
    "{{error, _Mod, Reason}} -> io:format(standard_error, \"~p~n\", [Reason]), halt(1); "
    "error -> halt(1); "
    "_ -> halt(0) "
    "end."
)


class ErlangToolchain:
    """Run ``systools`` through an ``erl`` executable."""

    def __init__(
        self,
        erl: str = DEFAULT_ERL,
        *,
        timeout: float | None = DEFAULT_TOOLCHAIN_TIMEOUT,
    ) -> None:
        self._erl = erl
        self._timeout = timeout

    @property
    def executable(self) -> str:
        return self._erl

    def is_available(self) -> bool:
        return shutil.which(self._erl) is not None

    def command(self, call: str, search: SearchContext) -> list[str]:
        """Build the ``erl`` command line evaluating ``call``."""
        cmd = [self._erl, "-noshell", "-noinput"]
        if search.paths:
            cmd += ["-pa", *search.paths]
        cmd += ["-eval", _EVAL_TEMPLATE.format(call=call)]
        return cmd

    def _call(
        self,
        stage: ToolchainStage,
        call: str,
        search: SearchContext,
        work_dir: Path,
    ) -> Result[None, ToolchainFailed]:
        result = run(self.command(call, search), cwd=work_dir, timeout=self._timeout)
        if isinstance(result, Err):
            return Err(ToolchainFailed(stage=stage, reason=result.error.detail))
        return Ok(None)

    def make_relup(
        self,
        name_ver: str,
        up_from: Sequence[str],
        down_from: Sequence[str],
        search: SearchContext,
        work_dir: Path,
    ) -> Result[None, ToolchainFailed]:
        call = (
            f"systools:make_relup({erlang_string(name_ver)}, "
            f"{_erlang_string_list(up_from)}, {_erlang_string_list(down_from)}, [silent])"
        )
        return self._call("relup", call, search, work_dir)

    def make_script(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]:
        call = f"systools:make_script({erlang_string(name_ver)}, [silent])"
        return self._call("script", call, search, work_dir)

    def make_tar(
        self, name_ver: str, search: SearchContext, work_dir: Path
    ) -> Result[None, ToolchainFailed]:
        call = f"systools:make_tar({erlang_string(name_ver)}, [silent])"
        return self._call("tar", call, search, work_dir)


def run_toolchain(
    toolchain: Toolchain,
    ctx: BuildContext,
    search: SearchContext,
    artifacts: Artifacts,
    console: ConsoleProtocol,
) -> Result[None, UpgradeError]:
    """Generate relup, boot script and raw package, in that order.

    Each call consumes what the previous one wrote.
    """
    apps = [ctx.name]

    artifacts.track(ctx.relup_file)
    relup = toolchain.make_relup(ctx.name_ver, apps, apps, search, ctx.work_dir)
    if isinstance(relup, Err):
        return relup
    console.debug("Relup created")

    artifacts.track(ctx.boot_file, ctx.script_file)
    script = toolchain.make_script(ctx.name_ver, search, ctx.work_dir)
    if isinstance(script, Err):
        return script
    console.debug("Script created")

    # A package left by an earlier build is not ours to remove.
    if not ctx.package.exists():
        artifacts.track(ctx.package)
    tar = toolchain.make_tar(ctx.name_ver, search, ctx.work_dir)
    if isinstance(tar, Err):
        return tar
    console.debug("Raw package created")

    return Ok(None)
