import logging
from datetime import datetime
from pathlib import Path
from typing import List

from radar_panel.local.panel_client import PanelClient, PanelClientError

log = logging.getLogger(__name__)
client = PanelClient()
VERBOSE_LOGGING = False


def _report_error(e: PanelClientError) -> None:
    print(f"\nERROR: {e}\n")


def handle_action_command(action: str) -> None:
    """Runs start, stop or status on the running panel and prints its answer."""
    try:
        result = client.action(action)
    except PanelClientError as e:
        _report_error(e)
        return
    print(result.get("message", result))


def handle_log_command(args: List[str]) -> None:
    """Prints the workload log, optionally in a script variant ('zh-cn' or 'zh-tw')."""
    lang = args[0] if args else None
    try:
        print(client.read_log(lang))
    except PanelClientError as e:
        _report_error(e)


def handle_info_command() -> None:
    """Prints whether the executable is installed, with its modification time and size."""
    try:
        info = client.artifact_info()
    except PanelClientError as e:
        _report_error(e)
        return

    if not info.get("exists"):
        print(f"{info.get('name')}: not installed.")
        return
    modified = datetime.fromtimestamp(info["mtime"]).strftime("%Y-%m-%d %H:%M:%S")
    print(f"{info.get('name')}: installed, modified {modified}, {info['size']} bytes.")


def handle_upload_command(args: List[str]) -> None:
    if not args:
        print("Usage: upload <path-to-executable>")
        return

    path = Path(args[0])
    if not path.is_file():
        print(f"Error: '{path}' is not a file.")
        return

    try:
        result = client.upload(path)
    except PanelClientError as e:
        _report_error(e)
        return
    print(result.get("message"))
    print("Use 'restart' to restart the panel service.")


def handle_delete_command() -> None:
    answer = input("This stops the workload and deletes the executable. Continue? [y/N] ")
    if answer.strip().lower() not in ("y", "yes"):
        print("Aborted.")
        return
    try:
        print(client.delete().get("message"))
    except PanelClientError as e:
        _report_error(e)


def handle_restart_command() -> None:
    try:
        print(client.restart().get("message"))
    except PanelClientError as e:
        _report_error(e)


def _config_show() -> None:
    try:
        config = client.get_config()
    except PanelClientError as e:
        _report_error(e)
        return
    print("\n--- Current Workload Configuration ---")
    for key in sorted(config):
        print(f"  {key} = {config[key]}")
    print("--------------------------------------\n")


def _config_set(args: List[str]) -> None:
    if len(args) != 2:
        print("Usage: config set <CREDENTIAL> <PORT>")
        return
    try:
        result = client.save_config(args[0], args[1])
    except PanelClientError as e:
        _report_error(e)
        return
    print(result.get("message"))


def _config_help() -> None:
    print("\nConfig Command Help:")
    print("  config show                - Display the workload credential and port.")
    print("  config set CRED PORT       - Save a new credential (8 characters) and port.")
    print("  config help                - Show this help message.")
    print("If the workload is running, saving restarts the panel service to apply the change.")


def handle_config_command(args: List[str]) -> None:
    """
    Handles all sub-commands for the 'config' command-line interface.

    :param args: A list of string arguments following the 'config' command.
    """
    sub_command = args[0].lower() if args else "show"

    if sub_command == "show":
        _config_show()
    elif sub_command == "set":
        _config_set(args[1:])
    elif sub_command == "help":
        _config_help()
    else:
        print(f"Unknown config sub-command: '{sub_command}'. Type 'config help' for available commands.")


def toggle_verbose_logging() -> None:
    """Toggles verbose (DEBUG level) logging for the console handler."""
    global VERBOSE_LOGGING
    VERBOSE_LOGGING = not VERBOSE_LOGGING
    new_level = logging.DEBUG if VERBOSE_LOGGING else logging.INFO

    for handler in logging.getLogger().handlers:
        if type(handler) is logging.StreamHandler:
            handler.setLevel(new_level)
            break
    print(f"Verbose console logging is now {'ON' if VERBOSE_LOGGING else 'OFF'}.")


def print_help() -> None:
    """Prints the main help text for the console."""
    print("\nAvailable commands:")
    print("  serve                  - Run the control panel web server in the foreground.")
    print("  start                  - Launch the radar workload.")
    print("  stop                   - Stop the radar workload and clear its log.")
    print("  status                 - Show whether the radar workload is running.")
    print("  log [zh-cn|zh-tw]      - Print the workload log in simplified or traditional script.")
    print("  info                   - Show whether the radar executable is installed.")
    print("  upload <file>          - Install a new radar executable.")
    print("  delete                 - Stop the workload and delete the executable.")
    print("  restart                - Restart the panel service through its supervisor.")
    print("  config <cmd>           - Manage the workload configuration. Use 'config help' for more details.")
    print("  verbose                - Toggle detailed DEBUG log output in the console.")
    print("  exit                   - Exit the management console.")
    print()
