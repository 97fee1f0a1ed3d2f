import threading

import psutil
import pytest

from radar_panel.local.errors import ArtifactNotFound
from radar_panel.local.workload import WorkloadState


def test_start_without_artifact_never_launches(panel, launcher):
    with pytest.raises(ArtifactNotFound):
        panel.workload.start()
    assert launcher.launches == []


def test_status_without_artifact_never_probes(panel, probe):
    with pytest.raises(ArtifactNotFound):
        panel.workload.status()
    assert probe.calls == 0


def test_start_feeds_current_config(panel, artifact_path, launcher):
    artifact_path.write_bytes(b"build")
    panel.config_store.save({"credential": "radar123", "port": "9000"})

    panel.workload.start()

    assert launcher.launches == [("radar123", "9000")]
    assert panel.workload.status() is WorkloadState.RUNNING


def test_stop_after_any_number_of_starts_reports_not_running(panel, artifact_path):
    artifact_path.write_bytes(b"build")
    for _ in range(3):
        panel.workload.start()

    result = panel.workload.stop()

    assert result.terminated == 3
    assert panel.workload.status() is WorkloadState.NOT_RUNNING


def test_stop_clears_log_even_when_nothing_runs(panel, log_path):
    log_path.write_bytes("残留输出".encode("gbk"))

    result = panel.workload.stop()

    assert result.terminated == 0
    assert log_path.read_bytes() == b""


def test_stop_absorbs_termination_errors(panel, log_path, launcher):
    log_path.write_bytes(b"output")
    launcher.terminate_error = psutil.NoSuchProcess(pid=99)

    result = panel.workload.stop()

    assert result.terminated == 0
    assert log_path.read_bytes() == b""


def test_start_waits_for_artifact_lock(panel, artifact_path, launcher):
    artifact_path.write_bytes(b"build")
    started = threading.Event()

    def run_start():
        panel.workload.start()
        started.set()

    with panel.artifacts.lock:
        worker = threading.Thread(target=run_start)
        worker.start()
        assert not started.wait(0.2)
        assert launcher.launches == []

    worker.join(timeout=5)
    assert started.is_set()
    assert len(launcher.launches) == 1
