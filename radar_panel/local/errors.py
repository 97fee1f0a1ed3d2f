"""Exceptions raised by the workload control core."""


class PanelError(Exception):
    """Base class for all control panel errors. The message is shown to callers verbatim."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ArtifactNotFound(PanelError):
    """The managed executable does not exist at its fixed path."""


class RenameFailure(PanelError):
    """An uploaded artifact could not be moved onto the canonical path."""


class LaunchFailure(PanelError):
    """The workload could not be launched through the compatibility layer."""


class ConfigValidationError(PanelError):
    """A candidate configuration was rejected."""


class PersistenceError(PanelError):
    """The configuration record could not be written to disk."""


class SupervisorRestartFailure(PanelError):
    """The external supervisor restart command failed on every attempt."""


class LogUnavailable(PanelError):
    """The workload log file has not been created yet."""
