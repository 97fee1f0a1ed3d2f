import sys
import sqlite3
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from radar_panel import settings


class SQLiteHandler(logging.Handler):
    """
    A logging handler that writes records to a SQLite database
    in batches using a background thread.
    """
    def __init__(
        self,
        db_path: Path,
        buffer_size: int = settings.LOG_BUFFER_SIZE,
        flush_interval: float = settings.LOG_BUFFER_FLUSH_INTERVAL,
    ):
        """
        :param db_path: The path to the SQLite database file.
        :param buffer_size: Flush as soon as this many records are buffered.
        :param flush_interval: Seconds between periodic flushes.
        """
        super().__init__()
        self.db_path = Path(db_path)
        self.buffer_size = buffer_size
        self.flush_interval = flush_interval
        self.log_buffer: List[Dict[str, Any]] = []
        self.buffer_lock = threading.Lock()
        self.write_lock = threading.Lock()
        self.stop_event = threading.Event()
        self._initialize_database()
        self.flush_thread: Optional[threading.Thread] = threading.Thread(
            target=self._periodic_flush, daemon=True, name="SQLiteFlushThread"
        )
        self.flush_thread.start()

    def _initialize_database(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        with sqlite3.connect(self.db_path, timeout=10) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS logs (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    timestamp REAL,
                    level TEXT,
                    logger TEXT,
                    funcName TEXT,
                    lineno INTEGER,
                    message TEXT
                )
            ''')
        conn.close()

    def _periodic_flush(self) -> None:
        while not self.stop_event.wait(self.flush_interval):
            self.flush()

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = record.getMessage()
            if record.exc_info:
                message = f"{message}\n{logging.Formatter().formatException(record.exc_info)}"
            entry = {
                "timestamp": record.created,
                "level": record.levelname,
                "logger": record.name,
                "funcName": record.funcName,
                "lineno": record.lineno,
                "message": message,
            }
        except Exception:
            self.handleError(record)
            return

        with self.buffer_lock:
            self.log_buffer.append(entry)
            full = len(self.log_buffer) >= self.buffer_size
        if full:
            self.flush()

    def flush(self) -> None:
        """Writes all buffered records to the database."""
        with self.buffer_lock:
            if not self.log_buffer:
                return
            entries = list(self.log_buffer)
            self.log_buffer.clear()

        # The buffer lock is not held during the write so emit() never waits on disk.
        with self.write_lock:
            try:
                with sqlite3.connect(self.db_path, timeout=10) as conn:
                    conn.executemany(
                        "INSERT INTO logs (timestamp, level, logger, funcName, lineno, message) "
                        "VALUES (:timestamp, :level, :logger, :funcName, :lineno, :message)",
                        entries,
                    )
                conn.close()
            except sqlite3.Error as e:
                print(f"Error writing logs to DB: {e}. Log entries: {len(entries)}", file=sys.stderr)

    def close(self) -> None:
        """Stops the flush thread and writes whatever is left in the buffer."""
        self.stop_event.set()
        if self.flush_thread and self.flush_thread.is_alive():
            self.flush_thread.join(timeout=self.flush_interval + 2)
        self.flush()
        super().close()
