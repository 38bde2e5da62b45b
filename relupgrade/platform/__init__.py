"""Platform abstraction layer."""

from .files import remove_file, remove_tree
from .process import ProcessError, run

__all__ = [
    # files
    "remove_file",
    "remove_tree",
    # process
    "ProcessError",
    "run",
]
