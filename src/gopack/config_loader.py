"""
Configuration file loader for gopack.

Supports loading archive options from a TOML file in the module source
directory:
- gopack.toml
- .gopack.toml

Keys may sit at the top level or under a `[gopack]` table. CLI flags override
config file values.
"""

from __future__ import annotations

import importlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .errors import ConfigError

# Optional runtime module (loaded via importlib); typed as Any to avoid stub issues.
tomllib: Any | None

try:
    import tomllib as _tomllib  # Python 3.11+
except ImportError:
    try:
        _tomllib = importlib.import_module("tomli")
    except ImportError:
        _tomllib = None
tomllib = _tomllib


# Config file search order (first found wins)
CONFIG_FILE_NAMES = [
    "gopack.toml",
    ".gopack.toml",
]

_KNOWN_KEYS = frozenset({"respect_gitignore", "exclude_globs"})


@dataclass
class ProjectConfig:
    """
    Project-level configuration loaded from a config file.

    All fields are optional - CLI flags will override any values set here.
    """

    respect_gitignore: bool | None = None
    exclude_globs: set[str] | None = None

    # Source file path (for error messages)
    _config_file: Path | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary with sorted keys."""
        result: dict[str, Any] = {}
        if self.respect_gitignore is not None:
            result["respect_gitignore"] = self.respect_gitignore
        if self.exclude_globs is not None:
            result["exclude_globs"] = sorted(self.exclude_globs)
        if self._config_file is not None:
            result["_loaded_from"] = str(self._config_file)
        return dict(sorted(result.items()))


def find_config_file(src_dir: Path) -> Path | None:
    """
    Find a configuration file in the module source directory.

    Args:
        src_dir: Module source directory

    Returns:
        Path to the config file, or None if not found
    """
    for name in CONFIG_FILE_NAMES:
        config_path = src_dir / name
        if config_path.exists() and config_path.is_file():
            return config_path
    return None


def _parse_toml(path: Path) -> dict[str, Any]:
    """Parse a TOML config file into a dict.

    Raises:
        ConfigError: If TOML support is unavailable or the file is malformed.
    """
    if tomllib is None:
        raise ConfigError(
            "TOML support requires 'tomli' package (Python < 3.11) or Python 3.11+. "
            "Install with: pip install tomli"
        )

    try:
        with open(path, "rb") as f:
            data: dict[str, Any] = tomllib.load(f)
    except OSError as e:
        raise ConfigError(f"read {path}: {e}") from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"parse {path}: {e}") from e

    if "gopack" in data and isinstance(data["gopack"], dict):
        return dict(data["gopack"])
    return data


def _normalize_globs(value: Any, path: Path) -> set[str]:
    if isinstance(value, str):
        value = value.split(",")
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{path}: exclude_globs must be a list of strings or a comma-separated string")
    return {g.strip() for g in value if g.strip()}


def load_config(path: Path) -> ProjectConfig:
    """Load a gopack config file.

    Args:
        path: TOML file to load.

    Returns:
        The parsed `ProjectConfig`.

    Raises:
        ConfigError: If the file cannot be read or holds invalid values.
    """
    data = _parse_toml(path)

    unknown = sorted(set(data) - _KNOWN_KEYS)
    if unknown:
        raise ConfigError(f"{path}: unknown config key(s): {', '.join(unknown)}")

    config = ProjectConfig(_config_file=path)

    if "respect_gitignore" in data:
        value = data["respect_gitignore"]
        if not isinstance(value, bool):
            raise ConfigError(f"{path}: respect_gitignore must be true or false")
        config.respect_gitignore = value

    if "exclude_globs" in data:
        config.exclude_globs = _normalize_globs(data["exclude_globs"], path)

    return config


def load_project_config(src_dir: Path | None, explicit: Path | None = None) -> ProjectConfig:
    """Load the config for a source tree.

    Args:
        src_dir: Module source directory searched for `CONFIG_FILE_NAMES`.
        explicit: Config file given on the command line; takes precedence.

    Returns:
        The loaded config, or an empty `ProjectConfig` when no file exists.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    if explicit is not None:
        if not explicit.is_file():
            raise ConfigError(f"config file not found: {explicit}")
        return load_config(explicit)

    if src_dir is None or not src_dir.is_dir():
        return ProjectConfig()

    found = find_config_file(src_dir)
    if found is None:
        return ProjectConfig()
    return load_config(found)
