import os
import shutil
import psutil
import logging
import tempfile
import threading
from pathlib import Path
from typing import TYPE_CHECKING, BinaryIO, NamedTuple, Optional

from radar_panel.local.errors import ArtifactNotFound, RenameFailure
from radar_panel.local.logbuffer import clear_log

if TYPE_CHECKING:
    from radar_panel.local.workload.process_utils import ProcessLauncher

log = logging.getLogger(__name__)


class ArtifactInfo(NamedTuple):
    path: Path
    exists: bool
    mtime: Optional[float]
    size: Optional[int]


class ArtifactManager:
    """
    Owns the managed executable at its fixed path.

    Upload and delete run under `lock`; the workload controller takes the same
    lock for start so a half-written binary is never launched.
    """

    def __init__(self, path: Path, log_path: Path, launcher: "ProcessLauncher") -> None:
        """
        :param path: The canonical artifact path.
        :param log_path: The workload log, cleared on delete.
        :param launcher: Used to terminate the workload before deletion.
        """
        self.path = Path(path)
        self.log_path = Path(log_path)
        self.launcher = launcher
        self.lock = threading.RLock()

    def exists(self) -> bool:
        try:
            return self.path.is_file()
        except OSError:
            return False

    def info(self) -> ArtifactInfo:
        try:
            stat = self.path.stat()
        except OSError:
            return ArtifactInfo(self.path, False, None, None)
        return ArtifactInfo(self.path, True, stat.st_mtime, stat.st_size)

    def upload(self, source: BinaryIO) -> float:
        """
        Atomically installs new artifact content.

        The content is written to a temp file beside the canonical path and
        renamed over it, so readers see either the old or the new file, never
        a partial one.

        :param source: A readable binary stream with the new executable.
        :return: The modification time of the installed artifact.
        :raises RenameFailure: If the content cannot be staged or renamed. The old artifact is untouched.
        """
        with self.lock:
            temp_path: Optional[Path] = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".part")
                temp_path = Path(temp_name)
                with os.fdopen(fd, "wb") as f:
                    shutil.copyfileobj(source, f)
                    f.flush()
                    os.fsync(f.fileno())
                temp_path.chmod(0o755)
                os.replace(temp_path, self.path)
                temp_path = None
            except OSError as e:
                log.error(f"Failed to install artifact at '{self.path}': {e}")
                raise RenameFailure(f"Could not install '{self.path.name}': {e}") from e
            finally:
                if temp_path is not None:
                    try:
                        temp_path.unlink(missing_ok=True)
                    except OSError as e:
                        log.warning(f"Could not remove staging file '{temp_path}': {e}")

            mtime = self.path.stat().st_mtime
            log.info(f"Artifact '{self.path.name}' installed ({self.path.stat().st_size} bytes).")
            return mtime

    def delete(self) -> None:
        """
        Stops the workload, removes the artifact and clears the log.

        :raises ArtifactNotFound: If there is nothing to delete. Nothing is touched.
        """
        with self.lock:
            if not self.exists():
                raise ArtifactNotFound(f"Artifact '{self.path.name}' does not exist.")

            try:
                stopped = self.launcher.terminate()
                log.info(f"Terminated {stopped} workload process(es) before deletion.")
            except (psutil.Error, OSError) as e:
                log.warning(f"Could not stop workload before deletion: {e}")

            try:
                self.path.unlink()
            except FileNotFoundError:
                pass
            log.info(f"Artifact '{self.path.name}' deleted.")

            try:
                clear_log(self.log_path)
            except OSError as e:
                log.error(f"Artifact deleted but the log '{self.log_path}' could not be cleared: {e}")
