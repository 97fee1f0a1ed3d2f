"""Pytest configuration: makes the project root importable and provides fake process collaborators."""

import os
import sys
from typing import List, Tuple

import pytest

# Project root = parent directory of this tests/ folder
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from radar_panel.local.errors import SupervisorRestartFailure  # noqa: E402
from radar_panel.local.panel import ControlPanel  # noqa: E402
from radar_panel.local.workload import WorkloadState  # noqa: E402


class FakeLauncher:
    """Stands in for ProcessLauncher: 'runs' the workload by flipping a flag and writing to the log."""

    def __init__(self, log_path, output: str = "简体中文测试\n"):
        self.log_path = log_path
        self.output = output
        self.running = 0
        self.launches: List[Tuple[str, str]] = []
        self.terminate_calls = 0
        self.terminate_error = None

    def launch(self, credential: str, port: str) -> None:
        self.launches.append((credential, port))
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.log_path.write_bytes(self.output.encode("gbk"))
        self.running += 1

    def terminate(self) -> int:
        self.terminate_calls += 1
        if self.terminate_error is not None:
            raise self.terminate_error
        terminated, self.running = self.running, 0
        return terminated


class FakeProbe:
    def __init__(self, launcher: FakeLauncher):
        self.launcher = launcher
        self.calls = 0

    def status(self) -> WorkloadState:
        self.calls += 1
        return WorkloadState.RUNNING if self.launcher.running else WorkloadState.NOT_RUNNING


class FakeRestarter:
    def __init__(self):
        self.calls = 0
        self.fail = False

    def restart(self) -> None:
        self.calls += 1
        if self.fail:
            raise SupervisorRestartFailure("pm2 not found")


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "radar"
    path.mkdir()
    return path


@pytest.fixture
def artifact_path(workdir):
    return workdir / "RAY_DELTA_RADAR.exe"


@pytest.fixture
def log_path(workdir):
    return workdir / "radar.log"


@pytest.fixture
def config_path(workdir):
    return workdir / "radar_config.json"


@pytest.fixture
def launcher(log_path):
    return FakeLauncher(log_path)


@pytest.fixture
def probe(launcher):
    return FakeProbe(launcher)


@pytest.fixture
def restarter():
    return FakeRestarter()


@pytest.fixture
def panel(artifact_path, log_path, config_path, probe, launcher, restarter):
    return ControlPanel(
        artifact_path=artifact_path,
        log_path=log_path,
        config_path=config_path,
        probe=probe,
        launcher=launcher,
        restarter=restarter,
        grace_seconds=0,
    )
