import time
import shlex
import logging
import threading
import subprocess
from typing import Any, Callable, Mapping, NamedTuple

from radar_panel import settings
from radar_panel.local.config import Config, ConfigStore
from radar_panel.local.errors import SupervisorRestartFailure
from radar_panel.local.workload.process_utils import ProcessProbe, WorkloadState

log = logging.getLogger(__name__)


class SupervisorRestarter:
    """Runs the external command that restarts the hosting service, with retries."""

    def __init__(
        self,
        command: str = settings.SUPERVISOR_RESTART_COMMAND,
        max_attempts: int = settings.RESTART_MAX_ATTEMPTS,
        retry_delay: float = settings.RESTART_RETRY_DELAY,
        timeout: float = settings.COMMAND_TIMEOUT,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.command = command
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self.timeout = timeout
        self._sleep = sleep

    def restart(self) -> None:
        """
        Invokes the supervisor restart command until it succeeds.

        :raises SupervisorRestartFailure: If every attempt fails.
        """
        args = shlex.split(self.command)
        last_error = ""
        for attempt in range(1, self.max_attempts + 1):
            try:
                subprocess.run(args, check=True, capture_output=True, timeout=self.timeout)
                log.info(f"Supervisor restart command succeeded on attempt {attempt}.")
                return
            except subprocess.CalledProcessError as e:
                last_error = (e.stderr or b"").decode("utf-8", errors="replace").strip() or str(e)
            except (OSError, subprocess.TimeoutExpired) as e:
                last_error = str(e)

            log.warning(f"Supervisor restart attempt {attempt}/{self.max_attempts} failed: {last_error}")
            if attempt < self.max_attempts:
                self._sleep(self.retry_delay)

        raise SupervisorRestartFailure(
            f"Supervisor restart failed after {self.max_attempts} attempts: {last_error}"
        )


class ConfigSaveResult(NamedTuple):
    config: Config
    restart_required: bool


class RestartOrchestrator:
    """
    Sequences operations that end in restarting the hosting service.

    The restart may kill the process serving the request, so callers respond
    first and run `restart_after_response` once the response has been sent.
    """

    def __init__(
        self,
        config_store: ConfigStore,
        probe: ProcessProbe,
        restarter: SupervisorRestarter,
        grace_seconds: float = settings.RESTART_GRACE_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config_store = config_store
        self.probe = probe
        self.restarter = restarter
        self.grace_seconds = grace_seconds
        self._sleep = sleep
        self._restart_lock = threading.Lock()

    @property
    def restart_pending(self) -> bool:
        return self._restart_lock.locked()

    def save_config(self, candidate: Mapping[str, Any]) -> ConfigSaveResult:
        """
        Saves a configuration and decides whether the service must restart.
        A restart is only required while the workload is running.

        :raises ConfigValidationError: If the candidate is rejected.
        :raises PersistenceError: If the record cannot be written.
        """
        with self.config_store.lock:
            saved = self.config_store.save(candidate)
            state = self.probe.status()

        restart_required = state is WorkloadState.RUNNING
        if restart_required:
            log.info("Configuration saved while the workload is running. Restart required.")
        else:
            log.info("Configuration saved. It will apply on the next launch.")
        return ConfigSaveResult(saved, restart_required)

    def restart_after_response(self) -> None:
        """
        Waits for the response to flush, then restarts the hosting service.
        Never raises: a failure here can only be reported through the log.
        Concurrent requests while a restart is pending are coalesced.
        """
        if not self._restart_lock.acquire(blocking=False):
            log.info("Supervisor restart already pending. Ignoring duplicate request.")
            return
        try:
            self._sleep(self.grace_seconds)
            self.restarter.restart()
        except SupervisorRestartFailure as e:
            log.error(f"Post-response restart failed: {e.message}")
        finally:
            self._restart_lock.release()
