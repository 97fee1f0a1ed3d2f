"""
This module contains the configuration settings for the RAY Radar control panel.
It defines the workload paths, process control parameters, the panel's own web
server settings and logging options. Values can be overridden from a `.env`
file or the environment.
"""

import os
import pathlib
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(override=True)


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ('true', '1', 't', 'yes', 'y')


#* --- Core Paths ---
BASE_DIR = pathlib.Path(__file__).resolve().parent.parent  # Project Root
LOGS_DIR = BASE_DIR / "logs"

#* --- Managed Workload ---
WORKLOAD_DIR = pathlib.Path(os.getenv("RADAR_WORKLOAD_DIR", "/root/Dma_RAY_RADAR_Service"))
ARTIFACT_NAME = os.getenv("RADAR_ARTIFACT_NAME", "RAY_DELTA_RADAR.exe")
ARTIFACT_PATH = WORKLOAD_DIR / ARTIFACT_NAME
WORKLOAD_LOG_PATH = pathlib.Path(os.getenv("RADAR_LOG_PATH", str(WORKLOAD_DIR / "radar.log")))
CONFIG_PATH = pathlib.Path(os.getenv("RADAR_CONFIG_PATH", str(WORKLOAD_DIR / "radar_config.json")))

# Compatibility layer used to run the Windows binary.
WINE_COMMAND = os.getenv("WINE_COMMAND", "wine")

#* --- Workload Config Defaults ---
DEFAULT_CREDENTIAL = "admin666"
DEFAULT_APP_PORT = "8080"
CREDENTIAL_LENGTH = 8

#* --- Firewall ---
FIREWALL_ENABLED = _env_flag("FIREWALL_ENABLED", "True")
# '{port}' is replaced with the validated workload port.
FIREWALL_COMMAND = os.getenv("FIREWALL_COMMAND", "ufw allow {port}/tcp")

#* --- Process Control ---
STOP_TIMEOUT = float(os.getenv("STOP_TIMEOUT", "5"))        # seconds before force-killing
COMMAND_TIMEOUT = float(os.getenv("COMMAND_TIMEOUT", "30"))  # external commands (firewall, supervisor)

#* --- Supervisor Restart ---
SUPERVISOR_RESTART_COMMAND = os.getenv("SUPERVISOR_RESTART_COMMAND", "pm2 restart radar-panel")
RESTART_GRACE_SECONDS = float(os.getenv("RESTART_GRACE_SECONDS", "1"))
RESTART_MAX_ATTEMPTS = int(os.getenv("RESTART_MAX_ATTEMPTS", "3"))
RESTART_RETRY_DELAY = float(os.getenv("RESTART_RETRY_DELAY", "2"))

#* --- Log Transcoding ---
LOG_ENCODING = "gbk"
LOG_NOT_STARTED_MESSAGE = "RAY Radar 尚未啟動"
LOG_NOT_CREATED_MESSAGE = "RAY Radar log not yet created."
DEFAULT_SCRIPT_VARIANT = "zh-cn"

#* --- Web Server Settings ---
PANEL_PROCESS_TITLE = "RAY Radar Panel - Server"
PANEL_HOST = os.getenv("PANEL_HOST", "0.0.0.0")
PANEL_PORT = int(os.getenv("PANEL_PORT", "3000"))
# Base URL the console uses to reach a running panel.
PANEL_URL = os.getenv("PANEL_URL", f"http://127.0.0.1:{PANEL_PORT}")

#* --- Logging ---
LOG_DB_PATH = LOGS_DIR / "panel_logs.db"
LOG_BUFFER_SIZE = 100
LOG_BUFFER_FLUSH_INTERVAL = 10
SQLITE_LOGGING_ENABLED = _env_flag("SQLITE_LOGGING_ENABLED", "True")
