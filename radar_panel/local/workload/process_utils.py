import os
import enum
import shlex
import psutil
import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Sequence

from radar_panel import settings
from radar_panel.local.errors import LaunchFailure

log = logging.getLogger(__name__)


class WorkloadState(str, enum.Enum):
    """Live state of the workload. A failed probe is indistinguishable from NOT_RUNNING."""
    RUNNING = "running"
    NOT_RUNNING = "not_running"


#* --- Process Status & Monitoring ---
def _matches(proc: psutil.Process, pattern: str) -> bool:
    """Checks the process name and full command line for the pattern, like `pkill -f`."""
    info = getattr(proc, "info", None) or {}
    name = info.get("name") or ""
    cmdline = info.get("cmdline") or []
    return pattern in name or pattern in " ".join(cmdline)


def find_processes(pattern: str) -> List[psutil.Process]:
    """
    Scans the process table for processes whose name or command line contains `pattern`.
    The calling process is never included.
    """
    own_pid = os.getpid()
    matches = []
    for proc in psutil.process_iter(["pid", "name", "cmdline"]):
        try:
            if proc.pid != own_pid and _matches(proc, pattern):
                matches.append(proc)
        except psutil.Error:
            continue
    return matches


class ProcessProbe:
    """Answers whether the workload is running by querying the live process table."""

    def __init__(self, pattern: str = settings.ARTIFACT_NAME) -> None:
        self.pattern = pattern

    def status(self) -> WorkloadState:
        try:
            found = find_processes(self.pattern)
        except (psutil.Error, OSError) as e:
            log.debug(f"Process probe for '{self.pattern}' failed: {e}")
            return WorkloadState.NOT_RUNNING
        return WorkloadState.RUNNING if found else WorkloadState.NOT_RUNNING


#* --- Process Creation & Termination ---
def _popen_kwargs() -> dict:
    """Detaches the child from the panel's session so it survives panel restarts."""
    if os.name == "nt":
        return {"creationflags": subprocess.DETACHED_PROCESS | subprocess.CREATE_NO_WINDOW}
    return {"start_new_session": True}


def _terminate(processes: Sequence[psutil.Process], timeout: float) -> int:
    """Sends SIGTERM, waits, then kills whatever is still alive. Returns how many were signalled."""
    signalled = []
    for proc in processes:
        try:
            log.debug(f"Sending SIGTERM to {proc.name()} (PID {proc.pid})")
            proc.terminate()
            signalled.append(proc)
        except psutil.NoSuchProcess:
            continue

    if not signalled:
        return 0

    _, alive = psutil.wait_procs(signalled, timeout=timeout)
    for proc in alive:
        try:
            log.warning(f"Killing stubborn process {proc.name()} (PID {proc.pid}).")
            proc.kill()
        except psutil.NoSuchProcess:
            continue
    return len(signalled)


class ProcessLauncher:
    """
    Starts the workload through the compatibility layer and terminates it by name.

    No handle is kept after launch; liveness is tracked exclusively through
    ProcessProbe, which finds the workload again by its binary name.
    """

    def __init__(
        self,
        artifact_path: Path,
        log_path: Path,
        wine_command: str = settings.WINE_COMMAND,
        firewall_command: Optional[str] = settings.FIREWALL_COMMAND,
        stop_timeout: float = settings.STOP_TIMEOUT,
        command_timeout: float = settings.COMMAND_TIMEOUT,
    ) -> None:
        """
        :param artifact_path: The Windows executable to run.
        :param log_path: File receiving the workload's stdout and stderr.
        :param wine_command: The compatibility layer command line.
        :param firewall_command: Template with a '{port}' placeholder, or None to skip.
        :param stop_timeout: Seconds to wait after SIGTERM before killing.
        :param command_timeout: Upper bound for the firewall command.
        """
        self.artifact_path = Path(artifact_path)
        self.log_path = Path(log_path)
        self.wine_command = wine_command
        self.firewall_command = firewall_command
        self.stop_timeout = stop_timeout
        self.command_timeout = command_timeout

    @property
    def pattern(self) -> str:
        return self.artifact_path.name

    def open_port(self, port: str) -> None:
        """Opens the workload port through the configured firewall command."""
        if not self.firewall_command:
            log.debug("Firewall command disabled. Skipping port opening.")
            return

        args = shlex.split(self.firewall_command.format(port=port))
        try:
            subprocess.run(args, check=True, capture_output=True, timeout=self.command_timeout)
            log.info(f"Opened firewall port {port}.")
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or b"").decode("utf-8", errors="replace").strip()
            raise LaunchFailure(f"Firewall command failed for port {port}: {detail or e}") from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise LaunchFailure(f"Firewall command failed for port {port}: {e}") from e

    def launch(self, credential: str, port: str) -> None:
        """
        Launches the workload detached, feeding the credential and port to its prompts.

        :raises LaunchFailure: If the port cannot be opened or the process cannot be spawned.
        """
        self.open_port(port)

        args = shlex.split(self.wine_command) + [str(self.artifact_path)]
        log.info(f"Starting workload: {' '.join(args)}")
        try:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)
            # The log is truncated on each launch, like a shell '>' redirect.
            with self.log_path.open("wb") as log_file:
                proc = subprocess.Popen(
                    args,
                    stdin=subprocess.PIPE,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    cwd=str(self.artifact_path.parent),
                    **_popen_kwargs(),
                )
        except OSError as e:
            log.error(f"Failed to start workload '{self.artifact_path}': {e}")
            raise LaunchFailure(f"Could not launch '{self.artifact_path.name}': {e}") from e

        try:
            proc.stdin.write(f"{credential}\n{port}\n".encode("ascii"))
            proc.stdin.close()
        except OSError as e:
            # The workload exited before reading its prompts; its output is in the log.
            log.warning(f"Workload closed its input before receiving credentials: {e}")
        log.info(f"Workload launched with PID {proc.pid}.")

    def terminate(self) -> int:
        """Terminates every process matching the workload name. Returns the number terminated."""
        return _terminate(find_processes(self.pattern), self.stop_timeout)
