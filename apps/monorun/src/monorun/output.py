from __future__ import annotations

import json
from collections.abc import Iterable
from typing import Any

from monorun_core import RunOutcome, RunResult, Script, Workspace


def workspace_to_dict(workspace: Workspace) -> dict[str, Any]:
    return {
        "name": workspace.name,
        "location": workspace.location,
        "match_pattern": workspace.match_pattern,
        "aliases": list(workspace.aliases),
        "version": workspace.manifest.version,
        "scripts": sorted(workspace.script_names),
    }


def script_to_dict(script: Script) -> dict[str, Any]:
    return {"name": script.name, "workspaces": list(script.workspace_names)}


def result_to_dict(result: RunResult) -> dict[str, Any]:
    return {
        "workspace": result.workspace.name,
        "location": result.workspace.location,
        "command": result.command,
        "exit_code": result.exit_code,
        "success": result.success,
        "skipped": result.skipped,
        "stdout": result.stdout,
        "stderr": result.stderr,
    }


def json_lines(items: Iterable[dict[str, Any]]) -> str:
    """One JSON object per line."""
    return "\n".join(json.dumps(item, ensure_ascii=False) for item in items)


def format_workspace(workspace: Workspace) -> str:
    lines = [f"Workspace: {workspace.name}"]
    if workspace.aliases:
        lines.append(f" - Aliases: {', '.join(workspace.aliases)}")
    lines.append(f" - Path: {workspace.location}")
    lines.append(f" - Glob Match: {workspace.match_pattern}")
    lines.append(f" - Scripts: {', '.join(sorted(workspace.script_names))}")
    return "\n".join(lines)


def format_workspaces(workspaces: list[Workspace], *, name_only: bool) -> str:
    if name_only:
        return "\n".join(ws.name for ws in workspaces)
    return "\n\n".join(format_workspace(ws) for ws in workspaces)


def format_script(script: Script) -> str:
    lines = [f"Script: {script.name}"]
    lines.extend(f" - {name}" for name in script.workspace_names)
    return "\n".join(lines)


def format_scripts(scripts: list[Script], *, name_only: bool) -> str:
    if name_only:
        return "\n".join(script.name for script in scripts)
    return "\n\n".join(format_script(script) for script in scripts)


def format_failures(outcome: RunOutcome) -> str:
    lines = ["Script failures:"]
    for result in outcome.failures:
        status = "skipped" if result.skipped else f"exit {result.exit_code}"
        lines.append(f"- {result.workspace.name}:{outcome.script_name} ({status})")
    return "\n".join(lines)
