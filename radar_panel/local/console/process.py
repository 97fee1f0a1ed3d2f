import logging
from typing import List

from radar_panel.local.console.handler import (handle_action_command, handle_config_command, handle_info_command,
                                               handle_delete_command, handle_log_command,
                                               handle_restart_command, handle_upload_command,
                                               print_help, toggle_verbose_logging)

log = logging.getLogger(__name__)


def _serve() -> None:
    # Imported lazily so console commands don't pay for the ASGI stack.
    from radar_panel.web.server import serve
    serve()


def execute_command(command: str, args: List[str]) -> bool:
    """
    Executes a single command from the user.

    :param command: The main command string (e.g., 'start', 'config').
    :param args: A list of arguments for the command.
    :return bool: True if the console should exit, False otherwise.
    """
    log.debug(f"Executing command: {command}, args: {args}")
    command_map = {
        "serve": _serve,
        "start": lambda: handle_action_command("start"),
        "stop": lambda: handle_action_command("stop"),
        "status": lambda: handle_action_command("status"),
        "log": lambda: handle_log_command(args),
        "info": handle_info_command,
        "upload": lambda: handle_upload_command(args),
        "delete": handle_delete_command,
        "restart": handle_restart_command,
        "config": lambda: handle_config_command(args),
        "verbose": toggle_verbose_logging,
        "help": print_help,
    }

    if command == "exit":
        return True

    if command in command_map:
        command_map[command]()
    else:
        print(f"Unknown command: '{command}'. Type 'help' for a list of commands.")
    return False
