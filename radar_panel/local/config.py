import os
import json
import logging
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from radar_panel import settings
from radar_panel.local.errors import ConfigValidationError, PersistenceError

log = logging.getLogger(__name__)

Config = Dict[str, str]


def default_config() -> Config:
    """Returns the hardcoded fallback configuration."""
    return {"credential": settings.DEFAULT_CREDENTIAL, "port": settings.DEFAULT_APP_PORT}


def validate_config(candidate: Mapping[str, Any], credential_length: int = settings.CREDENTIAL_LENGTH) -> Config:
    """
    Validates a candidate configuration and returns its normalized form.

    :param candidate: A mapping holding at least 'credential' and 'port'.
    :param credential_length: The exact length the credential must have.
    :return: A new dict with string 'credential' and 'port' values.
    :raises ConfigValidationError: If a field is missing or malformed.
    """
    if not isinstance(candidate, Mapping):
        raise ConfigValidationError("Configuration must be an object with 'credential' and 'port'.")

    credential = candidate.get("credential")
    port = candidate.get("port")
    if credential is None or credential == "" or port is None or port == "":
        raise ConfigValidationError("Both 'credential' and 'port' are required.")

    credential = str(credential)
    if len(credential) != credential_length:
        raise ConfigValidationError(f"Credential must be exactly {credential_length} characters long.")

    port = str(port).strip()
    if not (port.isascii() and port.isdecimal()) or not 1 <= int(port) <= 65535:
        raise ConfigValidationError(f"Port '{port}' is not a valid TCP port number.")

    return {"credential": credential, "port": str(int(port))}


class ConfigStore:
    """
    Holds the workload configuration (credential and port).

    The in-memory copy is the authoritative read path. Writers persist to disk
    first and only then swap the in-memory copy, so a failed write never
    changes what is served.
    """

    def __init__(self, path: Path, credential_length: int = settings.CREDENTIAL_LENGTH) -> None:
        """
        :param path: Location of the persisted JSON record.
        :param credential_length: The exact credential length enforced on save.
        """
        self.path = Path(path)
        self.credential_length = credential_length
        # Re-entrant so callers can hold it across a save and a follow-up read.
        self.lock = threading.RLock()
        self._config: Config = default_config()

    def load(self) -> Config:
        """
        Loads the persisted record into memory. Never raises; any failure
        falls back to the default configuration.
        """
        with self.lock:
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    loaded = validate_config(json.load(f), self.credential_length)
            except FileNotFoundError:
                log.info(f"No configuration found at '{self.path}'. Using defaults.")
                loaded = default_config()
            except (OSError, ValueError, ConfigValidationError) as e:
                # json.JSONDecodeError is a ValueError.
                log.warning(f"Failed to load configuration from '{self.path}': {e}. Falling back to defaults.")
                loaded = default_config()
            self._config = loaded
            return dict(self._config)

    def get(self) -> Config:
        """Returns a copy of the in-memory configuration."""
        with self.lock:
            return dict(self._config)

    def save(self, candidate: Mapping[str, Any]) -> Config:
        """
        Validates and persists a new configuration.

        :param candidate: The proposed configuration.
        :return: The saved configuration.
        :raises ConfigValidationError: If validation fails. Nothing changes.
        :raises PersistenceError: If the record cannot be written. Nothing changes.
        """
        new_config = validate_config(candidate, self.credential_length)
        with self.lock:
            self._write(new_config)
            self._config = new_config
            log.info(f"Configuration saved to '{self.path}' (port {new_config['port']}).")
            return dict(new_config)

    def _write(self, config: Config) -> None:
        """Atomically writes the record using a temp file and a rename."""
        temp_path: Optional[Path] = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            temp_path = Path(temp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(config, f, indent=4)
                f.flush()
                os.fsync(f.fileno())
            os.replace(temp_path, self.path)
            temp_path = None
        except OSError as e:
            log.error(f"Failed to write configuration to '{self.path}': {e}")
            raise PersistenceError(f"Could not save configuration: {e}") from e
        finally:
            if temp_path is not None:
                temp_path.unlink(missing_ok=True)
