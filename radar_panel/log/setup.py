import sys
import logging
import threading
from pathlib import Path
from typing import Optional

from radar_panel import settings
from radar_panel.log.handler import SQLiteHandler

LOG_FORMAT = '%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s'


class MainFormatter(logging.Formatter):
    """Console formatter. Hypercorn's access lines are printed as they are."""

    def __init__(self) -> None:
        super().__init__(LOG_FORMAT)

    def format(self, record: logging.LogRecord) -> str:
        if record.name == "hypercorn.access":
            return record.getMessage()
        return super().format(record)


def _log_uncaught(exc_type, exc_value, exc_traceback) -> None:
    if issubclass(exc_type, KeyboardInterrupt):
        sys.__excepthook__(exc_type, exc_value, exc_traceback)
        return
    logging.getLogger("uncaught").critical(
        "Uncaught exception", exc_info=(exc_type, exc_value, exc_traceback)
    )


def _log_uncaught_thread(args: threading.ExceptHookArgs) -> None:
    if args.exc_type is SystemExit:
        return
    thread_name = args.thread.name if args.thread else "unknown"
    logging.getLogger("uncaught").critical(
        f"Uncaught exception in thread '{thread_name}'",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def install_excepthooks() -> None:
    """Routes uncaught exceptions from the main thread and worker threads into the log."""
    sys.excepthook = _log_uncaught
    threading.excepthook = _log_uncaught_thread


def setup_logging(console_level: int = logging.INFO, db_path: Optional[Path] = None) -> None:
    """
    Configures the root logger for the panel.
    This sets up handlers for the console and SQLite, clearing any previously
    configured handlers to prevent duplication.

    :param console_level: The logging level for the console output (e.g., logging.INFO).
    :param db_path: Overrides the SQLite log database location.
    """
    root_logger = logging.getLogger()
    # Set root level to lowest to capture all messages for handler filtering
    root_logger.setLevel(logging.DEBUG)

    # Clear any existing handlers to prevent re-adding them on re-runs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()

    # --- Console Handler ---
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(MainFormatter())
    root_logger.addHandler(console_handler)

    # --- SQLite Handler ---
    if settings.SQLITE_LOGGING_ENABLED:
        try:
            sqlite_handler = SQLiteHandler(db_path=db_path or settings.LOG_DB_PATH)
            sqlite_handler.setLevel(logging.DEBUG)
            root_logger.addHandler(sqlite_handler)
        except Exception as e:
            root_logger.error(f"Failed to initialize SQLite logging handler: {e}. Logging to DB will be disabled.")

    install_excepthooks()
