from __future__ import annotations

from dataclasses import dataclass

from monorun_core.project import Project, Workspace


@dataclass(frozen=True)
class Script:
    name: str
    workspaces: tuple[Workspace, ...]

    @property
    def workspace_names(self) -> tuple[str, ...]:
        return tuple(ws.name for ws in self.workspaces)

    def command_for(self, workspace: Workspace) -> str:
        return workspace.manifest.scripts[self.name]


def _build_registry(project: Project) -> dict[str, list[Workspace]]:
    registry: dict[str, list[Workspace]] = {}
    for workspace in project.workspaces:
        for script_name in workspace.script_names:
            # Script names are mapping keys, so each workspace appears at most once per script.
            registry.setdefault(script_name, []).append(workspace)
    return registry


def list_scripts(project: Project) -> list[Script]:
    registry = _build_registry(project)
    return [Script(name=name, workspaces=tuple(registry[name])) for name in sorted(registry)]


def resolve_script(project: Project, name: str) -> Script | None:
    owners = _build_registry(project).get(name)
    if not owners:
        return None
    return Script(name=name, workspaces=tuple(owners))


describe_script = resolve_script
