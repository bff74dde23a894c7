from monorun_core.config import ProjectConfig, RunConfig, discover_project_config, load_project_config
from monorun_core.errors import (
    ConfigError,
    DuplicateWorkspaceNameError,
    LoaderError,
    ManifestNotFoundError,
    ManifestParseError,
    MonorunError,
    NoMatchingWorkspacesError,
    OrchestratorError,
    ScriptNotFoundError,
    WorkspaceNotFoundError,
)
from monorun_core.filesystem import FileSystem, LocalFileSystem
from monorun_core.manifest import PackageManifest
from monorun_core.orchestrator import (
    RunOutcome,
    RunRequest,
    RunResult,
    resolve_targets,
    run_script,
)
from monorun_core.pattern import matches
from monorun_core.process import CompletedCommand, ProcessLauncher, ScriptCommand, SubprocessLauncher
from monorun_core.project import (
    Project,
    Workspace,
    describe_workspace,
    list_workspaces,
    load_project,
)
from monorun_core.scripts import Script, describe_script, list_scripts, resolve_script

__all__ = [
    "CompletedCommand",
    "ConfigError",
    "DuplicateWorkspaceNameError",
    "FileSystem",
    "LoaderError",
    "LocalFileSystem",
    "ManifestNotFoundError",
    "ManifestParseError",
    "MonorunError",
    "NoMatchingWorkspacesError",
    "OrchestratorError",
    "PackageManifest",
    "ProcessLauncher",
    "Project",
    "ProjectConfig",
    "RunConfig",
    "RunOutcome",
    "RunRequest",
    "RunResult",
    "Script",
    "ScriptCommand",
    "ScriptNotFoundError",
    "SubprocessLauncher",
    "Workspace",
    "WorkspaceNotFoundError",
    "describe_script",
    "describe_workspace",
    "discover_project_config",
    "list_scripts",
    "list_workspaces",
    "load_project",
    "load_project_config",
    "matches",
    "resolve_script",
    "resolve_targets",
    "run_script",
]
