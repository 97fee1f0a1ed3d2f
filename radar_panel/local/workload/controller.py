import psutil
import logging
from pathlib import Path
from typing import NamedTuple

from radar_panel.local.artifact import ArtifactManager
from radar_panel.local.config import ConfigStore
from radar_panel.local.errors import ArtifactNotFound
from radar_panel.local.logbuffer import clear_log
from radar_panel.local.workload.process_utils import ProcessLauncher, ProcessProbe, WorkloadState

log = logging.getLogger(__name__)


class StopResult(NamedTuple):
    terminated: int


class WorkloadController:
    """
    Drives the workload through its states: Absent, Stopped and Running.

    No state is stored. Every query goes to the process table through the
    probe, so a workload that died on its own is reported correctly.
    """

    def __init__(
        self,
        artifacts: ArtifactManager,
        config_store: ConfigStore,
        probe: ProcessProbe,
        launcher: ProcessLauncher,
        log_path: Path,
    ) -> None:
        self.artifacts = artifacts
        self.config_store = config_store
        self.probe = probe
        self.launcher = launcher
        self.log_path = Path(log_path)

    def _require_artifact(self) -> None:
        if not self.artifacts.exists():
            raise ArtifactNotFound(f"Artifact '{self.artifacts.path.name}' has not been uploaded.")

    def start(self) -> None:
        """
        Launches the workload with the current credential and port.

        :raises ArtifactNotFound: If no artifact is installed. The launcher is not called.
        :raises LaunchFailure: If the launch itself fails.
        """
        # Holding the artifact lock keeps uploads and deletes out while launching.
        with self.artifacts.lock:
            self._require_artifact()
            config = self.config_store.get()
            self.launcher.launch(config["credential"], config["port"])

    def stop(self) -> StopResult:
        """
        Terminates the workload by name and clears the log.
        Finding nothing to terminate is a normal outcome, not an error.
        """
        terminated = 0
        try:
            terminated = self.launcher.terminate()
        except (psutil.Error, OSError) as e:
            log.debug(f"Termination request failed, treating workload as stopped: {e}")
        finally:
            clear_log(self.log_path)

        if terminated:
            log.info(f"Stopped {terminated} workload process(es).")
        else:
            log.info("Stop requested but no workload process was running.")
        return StopResult(terminated)

    def status(self) -> WorkloadState:
        """
        :raises ArtifactNotFound: If no artifact is installed. The probe is not called.
        """
        self._require_artifact()
        return self.probe.status()
