import logging
from pathlib import Path
from typing import Optional

from radar_panel import settings
from radar_panel.local.artifact import ArtifactManager
from radar_panel.local.config import ConfigStore
from radar_panel.local.logbuffer import LogTranscoder
from radar_panel.local.orchestrator import RestartOrchestrator, SupervisorRestarter
from radar_panel.local.workload import ProcessLauncher, ProcessProbe, WorkloadController

log = logging.getLogger(__name__)


class ControlPanel:
    """
    Wires the control components for the single managed workload.

    Every collaborator can be passed in; anything omitted is built from
    `settings`.
    """

    def __init__(
        self,
        artifact_path: Path = settings.ARTIFACT_PATH,
        log_path: Path = settings.WORKLOAD_LOG_PATH,
        config_path: Path = settings.CONFIG_PATH,
        config_store: Optional[ConfigStore] = None,
        probe: Optional[ProcessProbe] = None,
        launcher: Optional[ProcessLauncher] = None,
        restarter: Optional[SupervisorRestarter] = None,
        grace_seconds: float = settings.RESTART_GRACE_SECONDS,
    ) -> None:
        self.artifact_path = Path(artifact_path)
        self.log_path = Path(log_path)

        self.config_store = config_store or ConfigStore(config_path)
        self.config_store.load()

        self.probe = probe or ProcessProbe(self.artifact_path.name)
        self.launcher = launcher or ProcessLauncher(
            self.artifact_path,
            self.log_path,
            firewall_command=settings.FIREWALL_COMMAND if settings.FIREWALL_ENABLED else None,
        )
        self.artifacts = ArtifactManager(self.artifact_path, self.log_path, self.launcher)
        self.workload = WorkloadController(
            self.artifacts, self.config_store, self.probe, self.launcher, self.log_path
        )
        self.transcoder = LogTranscoder(self.log_path)
        self.orchestrator = RestartOrchestrator(
            self.config_store, self.probe, restarter or SupervisorRestarter(), grace_seconds
        )
        log.debug(f"Control panel ready for artifact '{self.artifact_path}'.")
