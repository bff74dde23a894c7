from __future__ import annotations

import os
import shlex
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal, TextIO

from monorun_core.errors import (
    NoMatchingWorkspacesError,
    ScriptNotFoundError,
    WorkspaceNotFoundError,
)
from monorun_core.pattern import is_pattern, matches
from monorun_core.process import (
    CompletedCommand,
    ProcessHandle,
    ProcessLauncher,
    ScriptCommand,
    SubprocessLauncher,
)
from monorun_core.project import Project, Workspace
from monorun_core.scripts import Script, resolve_script

RunMode = Literal["sequential", "parallel"]

RUN_MODES: tuple[str, ...] = ("sequential", "parallel")
LAUNCH_FAILURE_EXIT_CODE = 127


@dataclass(frozen=True)
class RunRequest:
    script_name: str
    workspace_filter: tuple[str, ...] | None = None
    extra_args: tuple[str, ...] = ()
    mode: RunMode = "sequential"
    fail_fast: bool = False


@dataclass(frozen=True)
class RunResult:
    workspace: Workspace
    command: str
    exit_code: int | None
    stdout: str | None = None
    stderr: str | None = None
    skipped: bool = False

    @property
    def success(self) -> bool:
        return not self.skipped and self.exit_code == 0


@dataclass(frozen=True)
class RunOutcome:
    script_name: str
    mode: RunMode
    results: tuple[RunResult, ...]

    @property
    def success(self) -> bool:
        return all(result.success for result in self.results)

    @property
    def failures(self) -> tuple[RunResult, ...]:
        return tuple(result for result in self.results if not result.success)


def _resolve_filter_token(project: Project, token: str) -> list[Workspace]:
    if is_pattern(token):
        return [ws for ws in project.workspaces if matches(token, ws.name)]
    workspace = project.workspace(token) or project.workspace_by_alias(token)
    if workspace is None:
        raise WorkspaceNotFoundError(token)
    return [workspace]


def resolve_targets(project: Project, request: RunRequest) -> tuple[Workspace, ...]:
    """Resolve the ordered target set for a run request.

    Without a filter the targets are every workspace defining the script. With a
    filter, tokens are resolved against the whole project (exact names and aliases
    must exist) and the union is intersected with the workspaces defining the
    script, keeping script order.
    """
    return _resolve(project, request)[1]


def _resolve(project: Project, request: RunRequest) -> tuple[Script, tuple[Workspace, ...]]:
    script = resolve_script(project, request.script_name)
    if not request.workspace_filter:
        if script is None:
            raise ScriptNotFoundError(request.script_name)
        return script, script.workspaces

    selected: set[str] = set()
    for token in request.workspace_filter:
        selected.update(ws.name for ws in _resolve_filter_token(project, token))

    if script is None:
        raise NoMatchingWorkspacesError(request.script_name, tuple(request.workspace_filter))
    targets = tuple(ws for ws in script.workspaces if ws.name in selected)
    if not targets:
        raise NoMatchingWorkspacesError(request.script_name, tuple(request.workspace_filter))
    return script, targets


def _join_args(args: tuple[str, ...], *, windows: bool = os.name == "nt") -> str:
    if windows:
        return subprocess.list2cmdline(args)
    return shlex.join(args)


def _script_env(project: Project, workspace: Workspace) -> dict[str, str]:
    env = dict(os.environ)
    workspace_dir = project.absolute_location(workspace)
    bin_dirs = [str(workspace_dir / "node_modules" / ".bin"), str(project.root / "node_modules" / ".bin")]
    existing = env.get("PATH")
    env["PATH"] = os.pathsep.join([*bin_dirs, existing] if existing else bin_dirs)
    env["MONORUN_WORKSPACE_NAME"] = workspace.name
    env["MONORUN_WORKSPACE_PATH"] = str(workspace_dir)
    env["MONORUN_PROJECT_ROOT"] = str(project.root)
    return env


def build_command(
    project: Project,
    script: Script,
    workspace: Workspace,
    extra_args: tuple[str, ...] = (),
) -> ScriptCommand:
    runner = project.config.run.runner
    args: str | tuple[str, ...]
    if runner is not None:
        args = (*runner, script.name, *extra_args)
    else:
        args = script.command_for(workspace)
        if extra_args:
            args = f"{args} {_join_args(extra_args)}"
    return ScriptCommand(
        args=args,
        cwd=project.absolute_location(workspace),
        env=_script_env(project, workspace),
    )


def _emit_output(text: str | None, stream: TextIO, *, prefix: str) -> None:
    if not text:
        return
    for line in text.splitlines():
        stream.write(f"{prefix}{line}\n")
    stream.flush()


def _wait(launched: ProcessHandle | CompletedCommand) -> CompletedCommand:
    return launched if isinstance(launched, CompletedCommand) else launched.wait()


class _Runner:
    def __init__(
        self,
        project: Project,
        script: Script,
        request: RunRequest,
        *,
        launcher: ProcessLauncher,
        out: TextIO,
        err: TextIO,
        prefix_output: bool,
        echo: bool,
        capture: bool,
    ) -> None:
        self.project = project
        self.script = script
        self.request = request
        self.launcher = launcher
        self.out = out
        self.err = err
        self.prefix_output = prefix_output
        self.echo = echo
        self.capture = capture

    def _command(self, workspace: Workspace) -> ScriptCommand:
        return build_command(self.project, self.script, workspace, self.request.extra_args)

    def _echo(self, workspace: Workspace, command: ScriptCommand) -> None:
        if self.echo:
            self.err.write(f"+ ({workspace.location}) {command.display()}\n")
            self.err.flush()

    def _launch(
        self, workspace: Workspace, command: ScriptCommand, *, capture: bool
    ) -> ProcessHandle | CompletedCommand:
        self._echo(workspace, command)
        try:
            return self.launcher.launch(command, capture=capture)
        except OSError as exc:
            message = f"Failed to execute script {self.script.name!r} in {workspace.name}: {exc}"
            self.err.write(f"WARNING: {message}\n")
            self.err.flush()
            return CompletedCommand(returncode=LAUNCH_FAILURE_EXIT_CODE, stderr=message)

    def _emit(self, workspace: Workspace, done: CompletedCommand) -> None:
        prefix = f"[{workspace.name}] " if self.prefix_output else ""
        _emit_output(done.stdout, self.out, prefix=prefix)
        _emit_output(done.stderr, self.err, prefix=prefix)

    @staticmethod
    def _result(workspace: Workspace, command: ScriptCommand, done: CompletedCommand) -> RunResult:
        return RunResult(
            workspace=workspace,
            command=command.display(),
            exit_code=done.returncode,
            stdout=done.stdout,
            stderr=done.stderr,
        )

    def sequential(self, targets: tuple[Workspace, ...]) -> list[RunResult]:
        results: list[RunResult] = []
        failed = False
        for workspace in targets:
            command = self._command(workspace)
            if failed and self.request.fail_fast:
                results.append(
                    RunResult(workspace=workspace, command=command.display(), exit_code=None, skipped=True)
                )
                continue
            done = _wait(self._launch(workspace, command, capture=self.capture))
            if self.capture:
                self._emit(workspace, done)
            result = self._result(workspace, command, done)
            failed = failed or not result.success
            results.append(result)
        return results

    def parallel(self, targets: tuple[Workspace, ...]) -> list[RunResult]:
        # Every process starts before any is awaited.
        launched = []
        for workspace in targets:
            command = self._command(workspace)
            launched.append((workspace, command, self._launch(workspace, command, capture=True)))

        # Pipes are drained concurrently so a chatty child never waits on an earlier one.
        results: list[RunResult] = []
        with ThreadPoolExecutor(max_workers=max(1, len(launched))) as pool:
            futures = [pool.submit(_wait, handle) for _, _, handle in launched]
            for (workspace, command, _), future in zip(launched, futures):
                done = future.result()
                self._emit(workspace, done)
                results.append(self._result(workspace, command, done))
        return results


def run_script(
    project: Project,
    request: RunRequest,
    *,
    launcher: ProcessLauncher | None = None,
    out: TextIO | None = None,
    err: TextIO | None = None,
    prefix_output: bool | None = None,
    echo: bool = True,
    capture: bool = False,
) -> RunOutcome:
    """Run `request.script_name` in every target workspace and aggregate the results.

    Resolution errors are raised before any process starts. A non-zero exit is
    recorded in the matching `RunResult` and never raised.

    With `capture`, sequential children are captured like parallel ones and
    their output is written to `out`/`err` once each exits.
    """
    if request.mode not in RUN_MODES:
        raise ValueError(f"Unknown run mode: {request.mode!r}")
    script, targets = _resolve(project, request)

    runner = _Runner(
        project,
        script,
        request,
        launcher=launcher or SubprocessLauncher(),
        out=out or sys.stdout,
        err=err or sys.stderr,
        prefix_output=project.config.run.prefix_output if prefix_output is None else prefix_output,
        echo=echo,
        capture=capture,
    )
    results = runner.parallel(targets) if request.mode == "parallel" else runner.sequential(targets)
    return RunOutcome(script_name=request.script_name, mode=request.mode, results=tuple(results))
