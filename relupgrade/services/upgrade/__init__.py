"""Upgrade package build pipeline."""

from .errors import UpgradeError
from .layout import BuildContext, ReleaseIdentity
from .search_path import SearchContext, SearchPath, code_path
from .service import UpgradeOutcome, UpgradeRequest, UpgradeService
from .toolchain import ErlangToolchain, Toolchain

__all__ = [
    "BuildContext",
    "ErlangToolchain",
    "ReleaseIdentity",
    "SearchContext",
    "SearchPath",
    "Toolchain",
    "UpgradeError",
    "UpgradeOutcome",
    "UpgradeRequest",
    "UpgradeService",
    "code_path",
]
