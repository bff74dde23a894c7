from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class ScriptCommand:
    """One script invocation. A `str` runs through the shell; a tuple is an argv."""

    args: str | tuple[str, ...]
    cwd: Path
    env: Mapping[str, str] | None = None

    @property
    def shell(self) -> bool:
        return isinstance(self.args, str)

    def display(self) -> str:
        if isinstance(self.args, str):
            return self.args
        return shlex.join(self.args)


@dataclass(frozen=True)
class CompletedCommand:
    returncode: int
    stdout: str | None = None
    stderr: str | None = None


class ProcessHandle(Protocol):
    def wait(self) -> CompletedCommand: ...


class ProcessLauncher(Protocol):
    def launch(self, command: ScriptCommand, *, capture: bool) -> ProcessHandle: ...


def _resolve_argv(argv: tuple[str, ...]) -> list[str]:
    """Resolve argv[0] via PATH.

    On Windows, `npm`/`bun` entrypoints are often `.cmd` shims that `Popen` cannot
    execute directly, so they are invoked via `cmd.exe /c`.
    """
    cmd = argv[0]
    if any(sep and sep in cmd for sep in ("/", "\\", os.path.sep, os.path.altsep)):
        return list(argv)

    resolved = shutil.which(cmd)
    if resolved is None:
        return list(argv)

    if os.name == "nt" and Path(resolved).suffix.lower() in {".cmd", ".bat"}:
        comspec = os.environ.get("ComSpec", "cmd.exe")
        return [comspec, "/d", "/c", resolved, *argv[1:]]
    return [resolved, *argv[1:]]


class _PopenHandle:
    def __init__(self, proc: subprocess.Popen[str]) -> None:
        self._proc = proc

    def wait(self) -> CompletedCommand:
        stdout, stderr = self._proc.communicate()
        return CompletedCommand(returncode=int(self._proc.returncode), stdout=stdout, stderr=stderr)


class SubprocessLauncher:
    def launch(self, command: ScriptCommand, *, capture: bool) -> ProcessHandle:
        args: str | list[str]
        args = command.args if isinstance(command.args, str) else _resolve_argv(command.args)
        pipe = subprocess.PIPE if capture else None
        proc = subprocess.Popen(  # noqa: S603
            args,
            cwd=str(command.cwd),
            env=dict(command.env) if command.env is not None else None,
            shell=command.shell,  # noqa: S602
            stdout=pipe,
            stderr=pipe,
            text=True,
            errors="replace",
        )
        return _PopenHandle(proc)
