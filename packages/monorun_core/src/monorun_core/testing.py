"""Test-only utilities for monorun_core.

Helpers to write throwaway monorepos to disk and a recording process launcher
that never spawns anything.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from monorun_core.process import CompletedCommand, ScriptCommand

__all__ = [
    "DEFAULT_WORKSPACE_GLOBS",
    "DEFAULT_WORKSPACES",
    "FakeLauncher",
    "write_default_project",
    "write_json",
    "write_project",
]

DEFAULT_WORKSPACE_GLOBS: tuple[str, ...] = ("applications/*", "libraries/**/*")

# location -> (name, script names)
DEFAULT_WORKSPACES: dict[str, tuple[str, tuple[str, ...]]] = {
    "applications/applicationA": ("application-a", ("a-workspaces", "all-workspaces", "application-a")),
    "applications/applicationB": ("application-b", ("all-workspaces", "b-workspaces", "application-b")),
    "libraries/libraryA": ("library-a", ("a-workspaces", "all-workspaces", "library-a")),
    "libraries/libraryB": ("library-b", ("all-workspaces", "b-workspaces", "library-b")),
    "libraries/nested/libraryC": ("library-c", ("all-workspaces", "c-workspaces", "library-c")),
}


def write_json(path: Path, data: Any) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    return path


def write_project(
    root: Path,
    *,
    globs: list[str] | tuple[str, ...] | None,
    workspaces: Mapping[str, Mapping[str, Any]],
) -> Path:
    """Write `root/package.json` plus one `package.json` per workspace location."""
    root_manifest: dict[str, Any] = {"name": "test-root", "private": True}
    if globs is not None:
        root_manifest["workspaces"] = list(globs)
    write_json(root / "package.json", root_manifest)
    for location, manifest in workspaces.items():
        write_json(root / location / "package.json", dict(manifest))
    return root


def write_default_project(root: Path, *, command: str = "echo {script}") -> Path:
    workspaces = {
        location: {
            "name": name,
            "version": "1.0.0",
            "scripts": {script: command.format(script=script, name=name) for script in scripts},
        }
        for location, (name, scripts) in DEFAULT_WORKSPACES.items()
    }
    return write_project(root, globs=DEFAULT_WORKSPACE_GLOBS, workspaces=workspaces)


@dataclass
class _FakeHandle:
    launcher: FakeLauncher
    command: ScriptCommand
    capture: bool

    def wait(self) -> CompletedCommand:
        name = self.command.cwd.name
        self.launcher.events.append(f"wait:{name}")
        code = self.launcher.exit_codes.get(name, 0)
        if not self.capture:
            return CompletedCommand(returncode=code)
        return CompletedCommand(
            returncode=code,
            stdout=self.launcher.stdout.get(name, ""),
            stderr=self.launcher.stderr.get(name, ""),
        )


@dataclass
class FakeLauncher:
    """Records launches; results are keyed by the workspace directory name."""

    exit_codes: dict[str, int] = field(default_factory=dict)
    stdout: dict[str, str] = field(default_factory=dict)
    stderr: dict[str, str] = field(default_factory=dict)
    fail_to_launch: set[str] = field(default_factory=set)
    commands: list[ScriptCommand] = field(default_factory=list)
    events: list[str] = field(default_factory=list)

    def launch(self, command: ScriptCommand, *, capture: bool) -> _FakeHandle:
        name = command.cwd.name
        if name in self.fail_to_launch:
            raise FileNotFoundError(f"No such file or directory: {command.display()!r}")
        self.commands.append(command)
        self.events.append(f"launch:{name}")
        return _FakeHandle(self, command, capture)
