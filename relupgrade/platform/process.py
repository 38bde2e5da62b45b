"""Subprocess execution with Result-based error handling.

The external toolchain (``erl`` running ``systools``) is driven through
:func:`run`, which captures both streams and turns every failure mode
(non-zero exit, timeout, missing executable) into a ``ProcessError`` value.

Usage:
    match run(["erl", "-noshell", "-eval", "halt()."], cwd=work_dir):
        case Ok(stdout):
            print(stdout)
        case Err(error):
            print(f"erl failed: {error.detail}")
"""

from __future__ import annotations

import subprocess
from dataclasses import dataclass
from pathlib import Path

from relupgrade.core.result import Err, Ok, Result

__all__ = ["NOT_RUN", "ProcessError", "run"]

# Exit status recorded when the process could not be started or was killed
# after its timeout.
NOT_RUN = -1


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that did not exit with status 0.

    Attributes:
        command: argv of the command
        returncode: exit status, or NOT_RUN
        stdout: captured standard output
        stderr: captured standard error, or the OS/timeout message
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    def __str__(self) -> str:
        shown = " ".join(self.command[:3]) + (" ..." if len(self.command) > 3 else "")
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """stderr, else stdout, else the one-line summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def run(
    cmd: list[str],
    cwd: Path,
    env: dict[str, str] | None = None,
    *,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run ``cmd`` in ``cwd`` and return its stdout.

    Args:
        cmd: argv
        cwd: working directory
        env: full environment, or None to inherit
        timeout: seconds before the process is killed, None for no limit
    """
    argv = tuple(cmd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(argv, NOT_RUN, partial, f"timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(argv, NOT_RUN, "", str(e)))

    if proc.returncode != 0:
        return Err(ProcessError(argv, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
