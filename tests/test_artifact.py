import io
import os

import psutil
import pytest

from radar_panel.local.artifact import ArtifactManager
from radar_panel.local.errors import ArtifactNotFound, RenameFailure


@pytest.fixture
def manager(artifact_path, log_path, launcher):
    return ArtifactManager(artifact_path, log_path, launcher)


def test_exists_is_false_when_absent(manager):
    assert manager.exists() is False
    info = manager.info()
    assert info.exists is False and info.mtime is None


def test_upload_installs_artifact(manager, artifact_path):
    mtime = manager.upload(io.BytesIO(b"MZ\x90\x00payload"))

    assert manager.exists()
    assert artifact_path.read_bytes() == b"MZ\x90\x00payload"
    assert mtime == artifact_path.stat().st_mtime
    assert os.access(artifact_path, os.X_OK)


def test_upload_replaces_and_updates_mtime(manager, artifact_path):
    artifact_path.write_bytes(b"old")
    os.utime(artifact_path, (1_000_000, 1_000_000))

    mtime = manager.upload(io.BytesIO(b"new build"))

    assert artifact_path.read_bytes() == b"new build"
    assert mtime > 1_000_000
    # Only the canonical file remains, no staging leftovers.
    assert [p.name for p in artifact_path.parent.iterdir()] == [artifact_path.name]


def test_failed_rename_keeps_old_artifact(manager, artifact_path, monkeypatch):
    artifact_path.write_bytes(b"old build")

    def broken_replace(src, dst):
        raise OSError("Invalid cross-device link")

    monkeypatch.setattr(os, "replace", broken_replace)
    with pytest.raises(RenameFailure):
        manager.upload(io.BytesIO(b"new build"))

    assert artifact_path.read_bytes() == b"old build"


def test_canonical_path_never_holds_partial_content(manager, artifact_path):
    artifact_path.write_bytes(b"old build")
    observed = []

    class SlowSource(io.RawIOBase):
        """Yields content in chunks and samples the canonical file between them."""
        def __init__(self):
            self.chunks = [b"new-", b"build-", b"complete"]

        def readable(self):
            return True

        def readinto(self, buffer):
            observed.append(artifact_path.read_bytes())
            if not self.chunks:
                return 0
            chunk = self.chunks.pop(0)
            buffer[:len(chunk)] = chunk
            return len(chunk)

    manager.upload(SlowSource())

    assert set(observed) == {b"old build"}
    assert artifact_path.read_bytes() == b"new-build-complete"


def test_delete_absent_fails_without_side_effects(manager, log_path, launcher):
    log_path.write_bytes(b"existing output")

    with pytest.raises(ArtifactNotFound):
        manager.delete()

    assert log_path.read_bytes() == b"existing output"
    assert launcher.terminate_calls == 0


def test_delete_stops_workload_and_clears_log(manager, artifact_path, log_path, launcher):
    artifact_path.write_bytes(b"build")
    launcher.launch("admin666", "8080")

    manager.delete()

    assert manager.exists() is False
    assert launcher.running == 0
    assert log_path.read_bytes() == b""


def test_delete_tolerates_termination_failure(manager, artifact_path, launcher):
    artifact_path.write_bytes(b"build")
    launcher.terminate_error = psutil.AccessDenied(pid=42)

    manager.delete()

    assert manager.exists() is False


def test_delete_absorbs_log_clear_failure(manager, artifact_path, monkeypatch):
    artifact_path.write_bytes(b"build")

    def broken_clear(path):
        raise PermissionError("read-only")

    monkeypatch.setattr("radar_panel.local.artifact.clear_log", broken_clear)
    manager.delete()

    assert manager.exists() is False
