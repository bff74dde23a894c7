from __future__ import annotations

from typing import Any


class MonorunError(RuntimeError):
    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.details = details or {}


class LoaderError(MonorunError):
    """Raised while reading the project manifests or config."""


class ManifestNotFoundError(LoaderError):
    pass


class ManifestParseError(LoaderError):
    pass


class DuplicateWorkspaceNameError(LoaderError):
    pass


class ConfigError(LoaderError):
    pass


class OrchestratorError(MonorunError):
    """Raised while resolving the workspaces a run request targets."""


class ScriptNotFoundError(OrchestratorError):
    def __init__(self, script_name: str) -> None:
        super().__init__(
            f'No workspaces found for script "{script_name}"',
            details={"script": script_name},
        )
        self.script_name = script_name


class WorkspaceNotFoundError(OrchestratorError):
    def __init__(self, workspace_name: str) -> None:
        super().__init__(
            f'Workspace not found: "{workspace_name}"',
            details={"workspace": workspace_name},
        )
        self.workspace_name = workspace_name


class NoMatchingWorkspacesError(OrchestratorError):
    def __init__(self, script_name: str, workspace_filter: tuple[str, ...]) -> None:
        super().__init__(
            f'No matching workspaces found for script "{script_name}"',
            details={"script": script_name, "filter": list(workspace_filter)},
        )
        self.script_name = script_name
        self.workspace_filter = workspace_filter
