from __future__ import annotations

from pathlib import Path

import pytest

from monorun_core import orchestrator
from monorun_core.testing import FakeLauncher, write_default_project


@pytest.fixture()
def project_root(tmp_path: Path) -> Path:
    return write_default_project(tmp_path / "default")


@pytest.fixture()
def fake_launcher(monkeypatch: pytest.MonkeyPatch) -> FakeLauncher:
    """Keep CLI run tests from spawning real processes."""
    launcher = FakeLauncher()
    monkeypatch.setattr(orchestrator, "SubprocessLauncher", lambda: launcher)
    return launcher
