from __future__ import annotations

from pathlib import Path

import pytest

from monorun_core import (
    ConfigError,
    DuplicateWorkspaceNameError,
    LoaderError,
    ManifestNotFoundError,
    ManifestParseError,
    ProjectConfig,
    describe_workspace,
    list_scripts,
    list_workspaces,
    load_project,
)
from monorun_core.testing import write_default_project, write_json, write_project


def test_load_default_project_order_and_locations(tmp_path: Path) -> None:
    project = load_project(write_default_project(tmp_path))

    assert [ws.name for ws in project.workspaces] == [
        "application-a",
        "application-b",
        "library-a",
        "library-b",
        "library-c",
    ]
    by_name = {ws.name: ws for ws in project.workspaces}
    assert by_name["application-a"].location == "applications/applicationA"
    assert by_name["application-a"].match_pattern == "applications/*"
    assert by_name["library-c"].location == "libraries/nested/libraryC"
    assert by_name["library-c"].match_pattern == "libraries/**/*"
    assert by_name["library-a"].manifest.version == "1.0.0"
    assert by_name["library-a"].script_names == ("a-workspaces", "all-workspaces", "library-a")
    assert project.absolute_location(by_name["library-a"]) == tmp_path.absolute() / "libraries" / "libraryA"


def test_list_workspaces_with_pattern(tmp_path: Path) -> None:
    project = load_project(write_default_project(tmp_path))

    assert [ws.name for ws in list_workspaces(project)] == [ws.name for ws in project.workspaces]
    assert [ws.name for ws in list_workspaces(project, "*-a")] == ["application-a", "library-a"]
    assert [ws.name for ws in list_workspaces(project, "**b*-***b**")] == ["library-b"]
    assert list_workspaces(project, "bad-wrong-stuff") == []


def test_list_workspaces_has_no_duplicate_names(tmp_path: Path) -> None:
    project = load_project(write_default_project(tmp_path))
    names = [ws.name for ws in list_workspaces(project)]
    assert len(names) == len(set(names)) == 5


def test_directory_matched_by_two_globs_is_loaded_once(tmp_path: Path) -> None:
    write_project(
        tmp_path,
        globs=["packages/*", "packages/a"],
        workspaces={"packages/a": {"name": "a"}, "packages/b": {"name": "b"}},
    )
    project = load_project(tmp_path)
    assert [(ws.name, ws.match_pattern) for ws in project.workspaces] == [
        ("a", "packages/*"),
        ("b", "packages/*"),
    ]


def test_glob_skips_directories_without_manifest_and_node_modules(tmp_path: Path) -> None:
    write_project(
        tmp_path,
        globs=["./packages/**/*"],
        workspaces={
            "packages/a": {"name": "a"},
            "packages/a/node_modules/dep": {"name": "dep"},
        },
    )
    (tmp_path / "packages" / "empty-dir").mkdir()
    project = load_project(tmp_path)
    assert [ws.name for ws in project.workspaces] == ["a"]


def test_empty_project_is_valid(tmp_path: Path) -> None:
    write_project(tmp_path, globs=None, workspaces={})
    project = load_project(tmp_path)
    assert list_workspaces(project) == []
    assert list_scripts(project) == []

    write_project(tmp_path, globs=["packages/*"], workspaces={})
    assert load_project(tmp_path).workspaces == ()


def test_missing_root_manifest(tmp_path: Path) -> None:
    with pytest.raises(ManifestNotFoundError, match="No package.json found"):
        load_project(tmp_path)


@pytest.mark.parametrize("content", ["{not json", "[]", '"text"', "42", "null"])
def test_root_manifest_must_be_an_object(tmp_path: Path, content: str) -> None:
    (tmp_path / "package.json").write_text(content, encoding="utf-8")
    with pytest.raises(ManifestParseError, match="package.json to be an object"):
        load_project(tmp_path)


def test_root_workspaces_must_be_a_list_of_strings(tmp_path: Path) -> None:
    write_json(tmp_path / "package.json", {"workspaces": {"packages": ["packages/*"]}})
    with pytest.raises(ManifestParseError, match=r"\$\.workspaces"):
        load_project(tmp_path)


def test_duplicate_workspace_name(tmp_path: Path) -> None:
    write_project(
        tmp_path,
        globs=["packages/*"],
        workspaces={"packages/one": {"name": "same"}, "packages/two": {"name": "same"}},
    )
    with pytest.raises(DuplicateWorkspaceNameError, match="Duplicate workspace") as exc_info:
        load_project(tmp_path)
    assert exc_info.value.details["locations"] == ["packages/one", "packages/two"]


def test_workspace_manifest_must_be_valid(tmp_path: Path) -> None:
    write_project(tmp_path, globs=["packages/*"], workspaces={"packages/a": {"name": "a"}})
    (tmp_path / "packages" / "a" / "package.json").write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ManifestParseError, match="to be an object"):
        load_project(tmp_path)


@pytest.mark.parametrize(
    ("manifest", "field"),
    [
        ({}, "name"),
        ({"name": ""}, "name"),
        ({"name": "a", "scripts": {"build": 1}}, "scripts.build"),
        ({"name": "a", "scripts": ["build"]}, "scripts"),
    ],
)
def test_workspace_manifest_schema_errors(tmp_path: Path, manifest: dict, field: str) -> None:
    write_project(tmp_path, globs=["packages/*"], workspaces={"packages/a": manifest})
    with pytest.raises(ManifestParseError) as exc_info:
        load_project(tmp_path)
    assert any(field in error for error in exc_info.value.details["errors"])


def test_explicit_workspace_entry_requires_manifest(tmp_path: Path) -> None:
    write_project(tmp_path, globs=["tools/cli"], workspaces={})
    (tmp_path / "tools" / "cli").mkdir(parents=True)
    with pytest.raises(ManifestNotFoundError, match="tools/cli"):
        load_project(tmp_path)


@pytest.mark.parametrize("glob", ["../outside/*", "/abs/*"])
def test_workspace_globs_must_stay_inside_root(tmp_path: Path, glob: str) -> None:
    root = tmp_path / "repo"
    write_project(root, globs=[glob], workspaces={})
    with pytest.raises(ManifestParseError, match="inside"):
        load_project(root)


def test_aliases_from_config(tmp_path: Path) -> None:
    write_default_project(tmp_path)
    (tmp_path / "monorun.yaml").write_text(
        "workspace_aliases:\n  appA: application-a\n  libA: library-a\n",
        encoding="utf-8",
    )
    project = load_project(tmp_path)

    app = describe_workspace(project, "appA")
    assert app is not None and app.name == "application-a"
    assert app.aliases == ("appA",)
    assert describe_workspace(project, "library-a") is not None
    assert describe_workspace(project, "nope") is None


def test_alias_must_point_at_existing_workspace(tmp_path: Path) -> None:
    write_default_project(tmp_path)
    config = ProjectConfig(workspace_aliases={"x": "missing"})
    with pytest.raises(ConfigError, match="unknown workspace"):
        load_project(tmp_path, config=config)

    config = ProjectConfig(workspace_aliases={"library-a": "application-a"})
    with pytest.raises(ConfigError, match="collides"):
        load_project(tmp_path, config=config)


class _MemoryFileSystem:
    def __init__(self, files: dict[str, str], dirs: dict[str, list[str]]) -> None:
        self.files = files
        self.dirs = dirs

    def glob_dirs(self, root: Path, pattern: str) -> list[Path]:
        return [root / rel for rel in self.dirs.get(pattern, [])]

    def is_file(self, path: Path) -> bool:
        return path.as_posix() in self.files

    def read_text(self, path: Path) -> str:
        return self.files[path.as_posix()]


def test_injected_filesystem_keeps_enumeration_order(tmp_path: Path) -> None:
    root = tmp_path / "virtual"
    files = {
        f"{root.as_posix()}/package.json": '{"workspaces": ["pkgs/*"]}',
        f"{root.as_posix()}/pkgs/z/package.json": '{"name": "zed"}',
        f"{root.as_posix()}/pkgs/a/package.json": '{"name": "ay", "scripts": {"t": "true"}}',
    }
    fs = _MemoryFileSystem(files, {"pkgs/*": ["pkgs/z", "pkgs/a"]})
    project = load_project(root, fs=fs, config=ProjectConfig())
    assert [ws.name for ws in project.workspaces] == ["zed", "ay"]


def test_workspace_manifest_that_is_not_utf8(tmp_path: Path) -> None:
    write_project(tmp_path, globs=["packages/*"], workspaces={"packages/ok": {"name": "ok"}})
    bad = tmp_path / "packages" / "bad" / "package.json"
    bad.parent.mkdir(parents=True)
    bad.write_bytes(b'{"name": "\xff\xfe"}')

    with pytest.raises(ManifestParseError, match="not valid UTF-8") as excinfo:
        load_project(tmp_path)
    assert excinfo.value.details["path"] == str(bad)


def test_unreadable_manifest_is_a_loader_error(tmp_path: Path) -> None:
    root = tmp_path / "virtual"

    class _DeniedFileSystem(_MemoryFileSystem):
        def read_text(self, path: Path) -> str:
            if path.parent.name == "locked":
                raise PermissionError(13, "Permission denied", str(path))
            return super().read_text(path)

    files = {
        f"{root.as_posix()}/package.json": '{"workspaces": ["pkgs/*"]}',
        f"{root.as_posix()}/pkgs/locked/package.json": "",
    }
    fs = _DeniedFileSystem(files, {"pkgs/*": ["pkgs/locked"]})
    with pytest.raises(LoaderError, match="Failed to read .*Permission denied"):
        load_project(root, fs=fs, config=ProjectConfig())


def test_config_is_read_through_injected_filesystem(tmp_path: Path) -> None:
    root = tmp_path / "virtual"
    files = {
        f"{root.as_posix()}/package.json": '{"workspaces": ["pkgs/*"]}',
        f"{root.as_posix()}/pkgs/a/package.json": '{"name": "ay"}',
        f"{root.as_posix()}/monorun.yaml": "workspace_aliases:\n  first: ay\nrun:\n  parallel: true\n",
    }
    fs = _MemoryFileSystem(files, {"pkgs/*": ["pkgs/a"]})
    project = load_project(root, fs=fs)

    assert not root.exists()
    assert project.config.source_path == root / "monorun.yaml"
    assert project.config.run.parallel is True
    assert describe_workspace(project, "first") is project.workspaces[0]


def test_loaded_models_are_hashable(tmp_path: Path) -> None:
    write_default_project(tmp_path)
    (tmp_path / "monorun.yaml").write_text("workspace_aliases:\n  appA: application-a\n", encoding="utf-8")
    project = load_project(tmp_path)

    by_workspace = {ws: ws.location for ws in project.workspaces}
    assert len(by_workspace) == len(project.workspaces)
    assert {ws.manifest for ws in project.workspaces} == {ws.manifest for ws in load_project(tmp_path).workspaces}
    assert hash(project) == hash(load_project(tmp_path))
    assert hash(project.config) == hash(load_project(tmp_path).config)
