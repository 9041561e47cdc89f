"""Typed configuration loading and access.

Two YAML files feed the configuration:

- the local file ``trunk.yml`` at the repository root (branch names, which
  external checks are enabled, the version manifest path)
- the global file ``~/.trunk.yml`` (API tokens)

Both are optional. A missing local file means default branch names with
every check enabled; a missing global file means empty tokens, which makes
the corresponding checks fail fast unless they are skipped.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

import yaml

from .result import Err, Ok, Result
from .structured import StrDict, as_str_dict, get_bool, get_str, get_table

__all__ = [
    "BranchesConfig",
    "Config",
    "ConfigError",
    "GlobalConfig",
    "LocalConfig",
    "PluginsConfig",
    "TokensConfig",
    "load_config",
    "load_global_config",
    "load_local_config",
    "DEFAULT_TRUNK_BRANCH",
    "DEFAULT_RELEASE_BRANCH",
    "DEFAULT_PRODUCTION_BRANCH",
    "DEFAULT_MANIFEST",
    "LOCAL_CONFIG_FILE_NAME",
    "GLOBAL_CONFIG_FILE_NAME",
]

DEFAULT_TRUNK_BRANCH = "develop"
DEFAULT_RELEASE_BRANCH = "release"
DEFAULT_PRODUCTION_BRANCH = "master"
DEFAULT_MANIFEST = "package.json"

LOCAL_CONFIG_FILE_NAME = "trunk.yml"
GLOBAL_CONFIG_FILE_NAME = ".trunk.yml"


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when a config file cannot be read or has the wrong shape."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class BranchesConfig:
    trunk: str = DEFAULT_TRUNK_BRANCH
    release: str = DEFAULT_RELEASE_BRANCH
    production: str = DEFAULT_PRODUCTION_BRANCH

    def all(self) -> tuple[str, str, str]:
        return (self.trunk, self.release, self.production)


@dataclass(frozen=True, slots=True)
class PluginsConfig:
    """Which external services take part in a release."""

    build_status: bool = True
    milestones: bool = True


@dataclass(frozen=True, slots=True)
class LocalConfig:
    """Repository-tracked settings (``trunk.yml``)."""

    branches: BranchesConfig = field(default_factory=BranchesConfig)
    plugins: PluginsConfig = field(default_factory=PluginsConfig)
    manifest: str = DEFAULT_MANIFEST

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> LocalConfig:
        branches: StrDict = get_table(data, "branches") or {}
        plugins: StrDict = get_table(data, "plugins") or {}

        return cls(
            branches=BranchesConfig(
                trunk=get_str(branches, "trunk") or DEFAULT_TRUNK_BRANCH,
                release=get_str(branches, "release") or DEFAULT_RELEASE_BRANCH,
                production=get_str(branches, "production") or DEFAULT_PRODUCTION_BRANCH,
            ),
            plugins=PluginsConfig(
                build_status=_flag(plugins, "build_status"),
                milestones=_flag(plugins, "milestones"),
            ),
            manifest=get_str(data, "manifest") or DEFAULT_MANIFEST,
        )


@dataclass(frozen=True, slots=True)
class TokensConfig:
    github: str = ""
    circleci: str = ""


@dataclass(frozen=True, slots=True)
class GlobalConfig:
    """Per-user settings (``~/.trunk.yml``)."""

    tokens: TokensConfig = field(default_factory=TokensConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> GlobalConfig:
        tokens: StrDict = get_table(data, "tokens") or {}
        return cls(
            tokens=TokensConfig(
                github=get_str(tokens, "github") or "",
                circleci=get_str(tokens, "circleci") or "",
            )
        )


@dataclass(frozen=True, slots=True)
class Config:
    """Everything a command needs, built once at process entry."""

    local: LocalConfig = field(default_factory=LocalConfig)
    global_: GlobalConfig = field(default_factory=GlobalConfig)

    @property
    def branches(self) -> BranchesConfig:
        return self.local.branches

    @property
    def plugins(self) -> PluginsConfig:
        return self.local.plugins

    @property
    def tokens(self) -> TokensConfig:
        return self.global_.tokens


def _flag(table: Mapping[str, object], key: str) -> bool:
    if key not in table or table[key] is None:
        return True
    value = get_bool(table, key)
    if value is None:
        raise ValueError(f"plugins.{key} must be true or false")
    return value


def _parse_yaml(path: Path) -> Result[StrDict | None, ConfigError]:
    """Parse a YAML file; a missing file yields Ok(None)."""
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return Ok(None)
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except (OSError, UnicodeDecodeError) as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    try:
        data_obj: object = yaml.safe_load(content)
    except yaml.YAMLError as e:
        return Err(ConfigError(f"Invalid YAML syntax: {e}", path=path))

    if data_obj is None:
        return Ok({})
    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a mapping", path=path))
    return Ok(data)


def load_local_config(repo_root: Path) -> Result[LocalConfig, ConfigError]:
    """Load ``trunk.yml`` from the repository root, or the defaults."""
    path = repo_root / LOCAL_CONFIG_FILE_NAME
    parsed = _parse_yaml(path)
    if isinstance(parsed, Err):
        return parsed
    if parsed.value is None:
        return Ok(LocalConfig())

    try:
        return Ok(LocalConfig.from_dict(parsed.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_global_config(home: Path | None = None) -> Result[GlobalConfig, ConfigError]:
    """Load ``~/.trunk.yml``, or empty tokens when it does not exist."""
    path = (home or Path.home()) / GLOBAL_CONFIG_FILE_NAME
    parsed = _parse_yaml(path)
    if isinstance(parsed, Err):
        return parsed
    if parsed.value is None:
        return Ok(GlobalConfig())

    try:
        return Ok(GlobalConfig.from_dict(parsed.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_config(repo_root: Path, home: Path | None = None) -> Result[Config, ConfigError]:
    """Load the local and global configuration into one value."""
    local = load_local_config(repo_root)
    if isinstance(local, Err):
        return local
    global_ = load_global_config(home)
    if isinstance(global_, Err):
        return global_
    return Ok(Config(local=local.value, global_=global_.value))
