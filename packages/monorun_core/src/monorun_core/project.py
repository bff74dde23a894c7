from __future__ import annotations

from dataclasses import dataclass, field
from functools import cached_property
from pathlib import Path, PurePosixPath

from monorun_core.config import ProjectConfig, discover_project_config
from monorun_core.errors import (
    ConfigError,
    DuplicateWorkspaceNameError,
    LoaderError,
    ManifestNotFoundError,
    ManifestParseError,
)
from monorun_core.filesystem import FileSystem, LocalFileSystem
from monorun_core.manifest import (
    MANIFEST_FILENAME,
    PackageManifest,
    parse_root_manifest,
    parse_workspace_manifest,
)
from monorun_core.pattern import matches

_GLOB_CHARS = frozenset("*?[")


@dataclass(frozen=True)
class Workspace:
    name: str
    location: str
    match_pattern: str
    manifest: PackageManifest
    aliases: tuple[str, ...] = ()

    # Manifests hold read-only mappings; names and locations are unique per project.
    def __hash__(self) -> int:
        return hash((self.name, self.location))

    @property
    def script_names(self) -> tuple[str, ...]:
        return tuple(self.manifest.scripts)


@dataclass(frozen=True)
class Project:
    root: Path
    workspaces: tuple[Workspace, ...]
    config: ProjectConfig = field(default_factory=ProjectConfig)

    def __hash__(self) -> int:
        return hash((self.root, tuple(ws.name for ws in self.workspaces)))

    @cached_property
    def _by_name(self) -> dict[str, Workspace]:
        return {ws.name: ws for ws in self.workspaces}

    @cached_property
    def _by_alias(self) -> dict[str, Workspace]:
        return {alias: ws for ws in self.workspaces for alias in ws.aliases}

    def workspace(self, name: str) -> Workspace | None:
        return self._by_name.get(name)

    def workspace_by_alias(self, alias: str) -> Workspace | None:
        return self._by_alias.get(alias)

    def absolute_location(self, workspace: Workspace) -> Path:
        return self.root / workspace.location


def _normalize_glob(pattern: str) -> str:
    value = pattern.strip().replace("\\", "/")
    while value.startswith("./"):
        value = value[2:]
    return value.rstrip("/")


def _is_inside(root: Path, candidate: Path) -> bool:
    try:
        candidate.resolve().relative_to(root.resolve())
    except ValueError:
        return False
    return True


def _read_manifest(path: Path, *, fs: FileSystem) -> str:
    try:
        return fs.read_text(path)
    except UnicodeDecodeError as e:
        raise ManifestParseError(
            f"Expected package.json to be an object: {path} is not valid UTF-8 ({e.reason})",
            details={"path": str(path)},
        ) from e
    except OSError as e:
        raise LoaderError(f"Failed to read {path}: {e}", details={"path": str(path)}) from e


def _expand_glob(root: Path, pattern: str, *, fs: FileSystem) -> list[Path]:
    normalized = _normalize_glob(pattern)
    pure = PurePosixPath(normalized)
    if not normalized or pure.is_absolute() or ".." in pure.parts:
        raise ManifestParseError(
            f"Workspace pattern {pattern!r} must be a relative path inside {root}",
            details={"pattern": pattern},
        )

    if not any(ch in normalized for ch in _GLOB_CHARS):
        directory = root / normalized
        if not fs.is_file(directory / MANIFEST_FILENAME):
            raise ManifestNotFoundError(
                f"No package.json found at {directory} (workspace entry {pattern!r})",
                details={"path": str(directory), "pattern": pattern},
            )
        return [directory]

    return [d for d in fs.glob_dirs(root, normalized) if fs.is_file(d / MANIFEST_FILENAME)]


def _attach_aliases(workspaces: list[Workspace], config: ProjectConfig) -> list[Workspace]:
    names = {ws.name for ws in workspaces}
    aliases_by_name: dict[str, list[str]] = {}
    for alias, target in config.workspace_aliases.items():
        if alias in names:
            raise ConfigError(f"Alias {alias!r} collides with an existing workspace name")
        if target not in names:
            raise ConfigError(f"Alias {alias!r} points at unknown workspace {target!r}")
        aliases_by_name.setdefault(target, []).append(alias)
    if not aliases_by_name:
        return workspaces
    return [
        Workspace(
            name=ws.name,
            location=ws.location,
            match_pattern=ws.match_pattern,
            manifest=ws.manifest,
            aliases=tuple(aliases_by_name.get(ws.name, ())),
        )
        for ws in workspaces
    ]


def load_project(
    root: Path,
    *,
    fs: FileSystem | None = None,
    config: ProjectConfig | None = None,
) -> Project:
    """Read `<root>/package.json` and build the Project from its `workspaces` globs.

    Workspaces are ordered by glob list order, then by path within each glob.
    A directory matched by several globs is kept once, under the first glob.
    """
    fs = fs or LocalFileSystem()
    root = Path(root).absolute()
    root_manifest_path = root / MANIFEST_FILENAME
    if not fs.is_file(root_manifest_path):
        raise ManifestNotFoundError(
            f"No package.json found at {root_manifest_path}",
            details={"path": str(root_manifest_path)},
        )
    root_manifest = parse_root_manifest(_read_manifest(root_manifest_path, fs=fs), source=root_manifest_path)

    workspaces: list[Workspace] = []
    seen_locations: set[str] = set()
    locations_by_name: dict[str, str] = {}
    for pattern in root_manifest.workspace_globs:
        for directory in _expand_glob(root, pattern, fs=fs):
            if not _is_inside(root, directory):
                raise ManifestParseError(
                    f"Workspace directory {directory} from pattern {pattern!r} is outside {root}",
                    details={"pattern": pattern, "path": str(directory)},
                )
            location = directory.relative_to(root).as_posix()
            if location in seen_locations:
                continue
            seen_locations.add(location)

            manifest_path = directory / MANIFEST_FILENAME
            manifest = parse_workspace_manifest(_read_manifest(manifest_path, fs=fs), source=manifest_path)
            previous = locations_by_name.get(manifest.name)
            if previous is not None:
                raise DuplicateWorkspaceNameError(
                    f"Duplicate workspace name found: {manifest.name!r} ({previous} and {location})",
                    details={"name": manifest.name, "locations": [previous, location]},
                )
            locations_by_name[manifest.name] = location
            workspaces.append(
                Workspace(name=manifest.name, location=location, match_pattern=pattern, manifest=manifest)
            )

    if config is None:
        config = discover_project_config(root, fs=fs)
    return Project(root=root, workspaces=tuple(_attach_aliases(workspaces, config)), config=config)


def list_workspaces(project: Project, pattern: str | None = None) -> list[Workspace]:
    if pattern is None:
        return list(project.workspaces)
    return [ws for ws in project.workspaces if matches(pattern, ws.name)]


def describe_workspace(project: Project, name: str) -> Workspace | None:
    return project.workspace(name) or project.workspace_by_alias(name)
