import os
import subprocess
from types import SimpleNamespace

import psutil
import pytest

from radar_panel.local.errors import LaunchFailure
from radar_panel.local.workload import process_utils
from radar_panel.local.workload.process_utils import ProcessLauncher, ProcessProbe, WorkloadState


def _proc(pid, name, cmdline):
    return SimpleNamespace(pid=pid, info={"pid": pid, "name": name, "cmdline": cmdline})


@pytest.fixture
def process_table(monkeypatch):
    table = []
    monkeypatch.setattr(psutil, "process_iter", lambda attrs=None: iter(table))
    return table


def test_probe_matches_name_or_command_line(process_table):
    process_table.append(_proc(10, "wine-preloader", ["wine", "/srv/RAY_DELTA_RADAR.exe"]))
    assert ProcessProbe("RAY_DELTA_RADAR.exe").status() is WorkloadState.RUNNING


def test_probe_reports_not_running_when_nothing_matches(process_table):
    process_table.append(_proc(10, "bash", ["bash"]))
    process_table.append(_proc(11, "python", None))
    assert ProcessProbe("RAY_DELTA_RADAR.exe").status() is WorkloadState.NOT_RUNNING


def test_probe_ignores_own_process(process_table):
    process_table.append(_proc(os.getpid(), "python", ["python", "RAY_DELTA_RADAR.exe"]))
    assert ProcessProbe("RAY_DELTA_RADAR.exe").status() is WorkloadState.NOT_RUNNING


def test_probe_failure_reads_as_not_running(monkeypatch):
    def broken_iter(attrs=None):
        raise psutil.AccessDenied()

    monkeypatch.setattr(psutil, "process_iter", broken_iter)
    assert ProcessProbe("RAY_DELTA_RADAR.exe").status() is WorkloadState.NOT_RUNNING


class FakeProcess:
    def __init__(self, pid, gone=False):
        self.pid = pid
        self.gone = gone
        self.terminated = False
        self.killed = False

    def name(self):
        return "wine-preloader"

    def terminate(self):
        if self.gone:
            raise psutil.NoSuchProcess(self.pid)
        self.terminated = True

    def kill(self):
        self.killed = True


def test_terminate_kills_survivors(tmp_path, monkeypatch):
    stubborn, polite, vanished = FakeProcess(1), FakeProcess(2), FakeProcess(3, gone=True)
    monkeypatch.setattr(process_utils, "find_processes", lambda pattern: [stubborn, polite, vanished])
    monkeypatch.setattr(psutil, "wait_procs", lambda procs, timeout: ([polite], [stubborn]))

    launcher = ProcessLauncher(tmp_path / "RAY_DELTA_RADAR.exe", tmp_path / "radar.log", stop_timeout=0)

    assert launcher.terminate() == 2
    assert stubborn.killed and not polite.killed


def test_terminate_with_no_match_returns_zero(tmp_path, monkeypatch):
    monkeypatch.setattr(process_utils, "find_processes", lambda pattern: [])
    launcher = ProcessLauncher(tmp_path / "RAY_DELTA_RADAR.exe", tmp_path / "radar.log")
    assert launcher.terminate() == 0


class RecordingStdin:
    def __init__(self):
        self.data = b""
        self.closed = False

    def write(self, data):
        self.data += data

    def close(self):
        self.closed = True


class FakePopen:
    instances = []

    def __init__(self, args, **kwargs):
        self.args = args
        self.kwargs = kwargs
        self.stdin = RecordingStdin()
        self.pid = 4321
        FakePopen.instances.append(self)


@pytest.fixture
def fake_popen(monkeypatch):
    FakePopen.instances = []
    monkeypatch.setattr(subprocess, "Popen", FakePopen)
    return FakePopen


def test_launch_feeds_prompts_and_redirects_output(tmp_path, fake_popen):
    exe = tmp_path / "RAY_DELTA_RADAR.exe"
    log_file = tmp_path / "logs" / "radar.log"
    log_file.parent.mkdir()
    log_file.write_bytes(b"previous run")
    launcher = ProcessLauncher(exe, log_file, wine_command="wine", firewall_command=None)

    launcher.launch("admin666", "8080")

    proc = fake_popen.instances[0]
    assert proc.args == ["wine", str(exe)]
    assert proc.stdin.data == b"admin666\n8080\n"
    assert proc.stdin.closed
    assert proc.kwargs["stderr"] is subprocess.STDOUT
    assert proc.kwargs["cwd"] == str(tmp_path)
    assert log_file.read_bytes() == b""


def test_launch_opens_firewall_port_first(tmp_path, fake_popen, monkeypatch):
    commands = []
    monkeypatch.setattr(subprocess, "run", lambda args, **kwargs: commands.append(args))
    launcher = ProcessLauncher(tmp_path / "RAY_DELTA_RADAR.exe", tmp_path / "radar.log",
                               firewall_command="ufw allow {port}/tcp")

    launcher.launch("admin666", "8080")

    assert commands == [["ufw", "allow", "8080/tcp"]]
    assert len(fake_popen.instances) == 1


def test_firewall_failure_is_a_launch_failure(tmp_path, fake_popen, monkeypatch):
    def failing_run(args, **kwargs):
        raise subprocess.CalledProcessError(1, args, stderr=b"ERROR: You need to be root")

    monkeypatch.setattr(subprocess, "run", failing_run)
    launcher = ProcessLauncher(tmp_path / "RAY_DELTA_RADAR.exe", tmp_path / "radar.log",
                               firewall_command="ufw allow {port}/tcp")

    with pytest.raises(LaunchFailure, match="You need to be root"):
        launcher.launch("admin666", "8080")
    assert fake_popen.instances == []


def test_missing_compatibility_layer_is_a_launch_failure(tmp_path, monkeypatch):
    def missing(args, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", args[0])

    monkeypatch.setattr(subprocess, "Popen", missing)
    launcher = ProcessLauncher(tmp_path / "RAY_DELTA_RADAR.exe", tmp_path / "radar.log",
                               wine_command="wine64", firewall_command=None)

    with pytest.raises(LaunchFailure):
        launcher.launch("admin666", "8080")
