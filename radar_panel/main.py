import sys
import logging
import threading

import radar_panel.local.console as console
from radar_panel.log.setup import setup_logging

log = logging.getLogger("console")
CONSOLE_LOCK = threading.Lock()


def main() -> None:
    """The main entry point for the console application."""
    setup_logging(logging.INFO)

    # Non-interactive mode for one-off commands
    if len(sys.argv) > 1:
        command, args = sys.argv[1].lower(), sys.argv[2:]
        if "--verbose" in args:
            console.toggle_verbose_logging()
            args.remove("--verbose")

        console.execute_command(command, args)
        return

    # Interactive mode
    print("--- RAY Radar Management Console ---")
    print("Type 'help' for a list of commands.")

    while True:
        try:
            # The input prompt must be outside the lock to not block background threads
            command_line_str = input("> ")
            with CONSOLE_LOCK:
                command_line = command_line_str.strip().split()
                if not command_line:
                    continue

                command, args = command_line[0].lower(), command_line[1:]
                log.debug(f"Received command: {command}, args: {args}")

                if console.execute_command(command, args):
                    break

        except (KeyboardInterrupt, EOFError):
            log.warning("\nExiting console.")
            break
        except Exception as e:
            log.error(f"An unexpected error occurred in the console: {e}", exc_info=True)


if __name__ == "__main__":
    main()
