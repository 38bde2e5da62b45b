"""Typed configuration loading.

Settings live in an optional ``relupgrade.toml`` next to the reltool
descriptor (or wherever ``--config`` points):

    [upgrade]
    previous_release = "/opt/myapp"

    [toolchain]
    erl = "erl"
    timeout = 600

Command-line options always win over file values.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from pathlib import Path

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_number, get_str, get_table

__all__ = [
    "CONFIG_FILENAME",
    "DEFAULT_ERL",
    "DEFAULT_TOOLCHAIN_TIMEOUT",
    "Config",
    "ConfigError",
    "ToolchainConfig",
    "UpgradeConfig",
    "find_config",
    "load_config",
    "load_config_or_default",
]

CONFIG_FILENAME = "relupgrade.toml"

DEFAULT_ERL = "erl"
# Seconds allowed for each systools call (relup, script, tar).
DEFAULT_TOOLCHAIN_TIMEOUT = 10 * 60.0


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the config file cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class UpgradeConfig:
    """Inputs of the upgrade build.

    ``previous_release`` is the root of the already-deployed release tree.
    It has no default: building without it is a configuration error.
    """

    previous_release: Path | None = None


@dataclass(frozen=True, slots=True)
class ToolchainConfig:
    erl: str = DEFAULT_ERL
    timeout: float | None = DEFAULT_TOOLCHAIN_TIMEOUT


@dataclass(frozen=True, slots=True)
class Config:
    upgrade: UpgradeConfig = field(default_factory=UpgradeConfig)
    toolchain: ToolchainConfig = field(default_factory=ToolchainConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object], *, base_dir: Path | None = None) -> Config:
        """Create Config from parsed TOML.

        Relative ``previous_release`` paths are resolved against ``base_dir``
        (the directory holding the config file).
        """
        upgrade: StrDict = get_table(data, "upgrade") or {}
        toolchain: StrDict = get_table(data, "toolchain") or {}

        previous: Path | None = None
        raw_previous = get_str(upgrade, "previous_release")
        if raw_previous is not None:
            previous = Path(raw_previous).expanduser()
            if base_dir is not None and not previous.is_absolute():
                previous = base_dir / previous

        timeout = get_number(toolchain, "timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError("toolchain.timeout must be positive")

        return cls(
            upgrade=UpgradeConfig(previous_release=previous),
            toolchain=ToolchainConfig(
                erl=get_str(toolchain, "erl") or DEFAULT_ERL,
                timeout=timeout if timeout is not None else DEFAULT_TOOLCHAIN_TIMEOUT,
            ),
        )

    def with_overrides(
        self,
        *,
        previous_release: Path | None = None,
        erl: str | None = None,
    ) -> Config:
        """Return a copy with command-line values applied on top."""
        upgrade = self.upgrade
        toolchain = self.toolchain
        if previous_release is not None:
            upgrade = replace(upgrade, previous_release=previous_release)
        if erl is not None:
            toolchain = replace(toolchain, erl=erl)
        return replace(self, upgrade=upgrade, toolchain=toolchain)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        content = path.read_bytes()
        data_obj: object = tomllib.loads(content.decode("utf-8"))
        data = as_str_dict(data_obj)
        if data is None:
            return Err(ConfigError("Config root must be a TOML table", path=path))
        return Ok(data)
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))


def load_config(path: Path) -> Result[Config, ConfigError]:
    """Load and parse configuration from a TOML file.

    Returns:
        Ok(Config) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(Config.from_dict(result.value, base_dir=path.parent))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def find_config(work_dir: Path) -> Path | None:
    """Return the default config file in ``work_dir`` if there is one."""
    candidate = work_dir / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def load_config_or_default(work_dir: Path) -> Result[Config, ConfigError]:
    """Load ``relupgrade.toml`` from ``work_dir``, or defaults when absent.

    A present but broken file is still an error.
    """
    path = find_config(work_dir)
    if path is None:
        return Ok(Config())
    return load_config(path)
