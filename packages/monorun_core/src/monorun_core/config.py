from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from monorun_core.errors import ConfigError
from monorun_core.filesystem import FileSystem, LocalFileSystem

CONFIG_FILENAMES: tuple[str, ...] = ("monorun.yaml", ".monorun.yaml")

_CONFIG_VERSION = 1
_TOP_LEVEL_KEYS = {"version", "workspace_aliases", "run"}
_RUN_KEYS = {"parallel", "runner", "prefix_output", "fail_fast"}


@dataclass(frozen=True)
class RunConfig:
    parallel: bool = False
    runner: tuple[str, ...] | None = None
    prefix_output: bool = True
    fail_fast: bool = False


@dataclass(frozen=True)
class ProjectConfig:
    version: int = _CONFIG_VERSION
    workspace_aliases: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    run: RunConfig = field(default_factory=RunConfig)
    source_path: Path | None = None

    def __hash__(self) -> int:
        return hash((self.version, tuple(sorted(self.workspace_aliases.items())), self.run, self.source_path))


def _load_yaml_mapping(path: Path, *, fs: FileSystem) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(fs.read_text(path))
    except UnicodeDecodeError as e:
        raise ConfigError(f"Failed to read {path}: not valid UTF-8 ({e.reason})") from e
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML in {path}: {e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(raw).__name__}.")
    return raw


def _ensure_no_unknown_keys(*, data: dict[str, Any], allowed: set[str], path: Path, where: str) -> None:
    unknown = set(data) - allowed
    if not unknown:
        return
    unknown_list = ", ".join(sorted(str(k) for k in unknown))
    allowed_list = ", ".join(sorted(allowed))
    raise ConfigError(f"Unknown keys in {where} of {path}: {unknown_list}. Allowed: {allowed_list}.")


def _require_bool(value: Any, *, path: Path, field_name: str) -> bool:
    if not isinstance(value, bool):
        raise ConfigError(f"Expected boolean for {field_name} in {path}.")
    return value


def _parse_aliases(value: Any, *, path: Path) -> dict[str, str]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for workspace_aliases in {path}.")
    out: dict[str, str] = {}
    for alias, target in value.items():
        if not isinstance(alias, str) or not alias.strip():
            raise ConfigError(f"Expected non-empty string alias in workspace_aliases of {path}.")
        if not isinstance(target, str) or not target.strip():
            raise ConfigError(f"Expected workspace name for workspace_aliases.{alias} in {path}.")
        if "*" in alias:
            raise ConfigError(f"Alias {alias!r} in {path} must not contain '*'.")
        out[alias] = target
    return out


def _parse_run(value: Any, *, path: Path) -> RunConfig:
    if value is None:
        return RunConfig()
    if not isinstance(value, dict):
        raise ConfigError(f"Expected mapping for run in {path}.")
    _ensure_no_unknown_keys(data=value, allowed=_RUN_KEYS, path=path, where="run")

    runner_raw = value.get("runner")
    runner: tuple[str, ...] | None = None
    if runner_raw is not None:
        if (
            not isinstance(runner_raw, list)
            or not runner_raw
            or not all(isinstance(part, str) and part for part in runner_raw)
        ):
            raise ConfigError(f"Expected non-empty list of strings for run.runner in {path}.")
        runner = tuple(runner_raw)

    defaults = RunConfig()
    return RunConfig(
        parallel=_require_bool(value.get("parallel", defaults.parallel), path=path, field_name="run.parallel"),
        runner=runner,
        prefix_output=_require_bool(
            value.get("prefix_output", defaults.prefix_output), path=path, field_name="run.prefix_output"
        ),
        fail_fast=_require_bool(value.get("fail_fast", defaults.fail_fast), path=path, field_name="run.fail_fast"),
    )


def find_config_path(root: Path, *, fs: FileSystem | None = None) -> Path | None:
    fs = fs or LocalFileSystem()
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if fs.is_file(candidate):
            return candidate
    return None


def load_project_config(path: Path, *, fs: FileSystem | None = None) -> ProjectConfig:
    data = _load_yaml_mapping(path, fs=fs or LocalFileSystem())
    _ensure_no_unknown_keys(data=data, allowed=_TOP_LEVEL_KEYS, path=path, where="top level")

    version = data.get("version", _CONFIG_VERSION)
    if not isinstance(version, int) or isinstance(version, bool):
        raise ConfigError(f"{path}: version must be an integer")
    if version > _CONFIG_VERSION:
        raise ConfigError(
            f"{path}: version {version} is newer than this tool supports ({_CONFIG_VERSION})"
        )

    return ProjectConfig(
        version=version,
        workspace_aliases=MappingProxyType(_parse_aliases(data.get("workspace_aliases"), path=path)),
        run=_parse_run(data.get("run"), path=path),
        source_path=path,
    )


def discover_project_config(root: Path, *, fs: FileSystem | None = None) -> ProjectConfig:
    fs = fs or LocalFileSystem()
    path = find_config_path(root, fs=fs)
    if path is None:
        return ProjectConfig()
    return load_project_config(path, fs=fs)
