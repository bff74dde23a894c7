from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any

from jsonschema import Draft202012Validator

from monorun_core.errors import ManifestParseError

MANIFEST_FILENAME = "package.json"

ROOT_MANIFEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "workspaces": {"type": "array", "items": {"type": "string", "minLength": 1}},
    },
}

WORKSPACE_MANIFEST_SCHEMA: dict[str, Any] = {
    "type": "object",
    "required": ["name"],
    "properties": {
        "name": {"type": "string", "minLength": 1},
        "version": {"type": "string"},
        "scripts": {"type": "object", "additionalProperties": {"type": "string"}},
    },
}

_ROOT_VALIDATOR = Draft202012Validator(ROOT_MANIFEST_SCHEMA)
_WORKSPACE_VALIDATOR = Draft202012Validator(WORKSPACE_MANIFEST_SCHEMA)


@dataclass(frozen=True)
class RootManifest:
    workspace_globs: tuple[str, ...]
    raw: Mapping[str, Any]

    def __hash__(self) -> int:
        return hash(self.workspace_globs)


@dataclass(frozen=True)
class PackageManifest:
    name: str
    version: str | None
    scripts: Mapping[str, str]
    raw: Mapping[str, Any]

    def __hash__(self) -> int:
        return hash((self.name, self.version, tuple(self.scripts.items())))


def _format_errors(validator: Draft202012Validator, data: Any) -> list[str]:
    errors = sorted(validator.iter_errors(data), key=lambda e: str(e.path))
    formatted: list[str] = []
    for error in errors:
        path = "$"
        for part in error.path:
            path += f"[{part!r}]" if isinstance(part, int) else f".{part}"
        formatted.append(f"{path}: {error.message}")
    return formatted


def parse_json_object(text: str, *, source: Path) -> dict[str, Any]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestParseError(
            f"Expected package.json to be an object: {source} is not valid JSON ({e.msg})",
            details={"path": str(source)},
        ) from e
    if not isinstance(data, dict):
        raise ManifestParseError(
            f"Expected package.json to be an object: {source} contains {type(data).__name__}",
            details={"path": str(source)},
        )
    return data


def parse_root_manifest(text: str, *, source: Path) -> RootManifest:
    data = parse_json_object(text, source=source)
    errors = _format_errors(_ROOT_VALIDATOR, data)
    if errors:
        raise ManifestParseError(
            f"Invalid root package.json {source}: " + "; ".join(errors),
            details={"path": str(source), "errors": errors},
        )
    globs = data.get("workspaces") or []
    return RootManifest(workspace_globs=tuple(globs), raw=MappingProxyType(data))


def parse_workspace_manifest(text: str, *, source: Path) -> PackageManifest:
    data = parse_json_object(text, source=source)
    errors = _format_errors(_WORKSPACE_VALIDATOR, data)
    if errors:
        raise ManifestParseError(
            f"Invalid workspace package.json {source}: " + "; ".join(errors),
            details={"path": str(source), "errors": errors},
        )
    # json.loads keeps object key order, so scripts stay in manifest order.
    scripts = dict(data.get("scripts") or {})
    return PackageManifest(
        name=data["name"],
        version=data.get("version"),
        scripts=MappingProxyType(scripts),
        raw=MappingProxyType(data),
    )
