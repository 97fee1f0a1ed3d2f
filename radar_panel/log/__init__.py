"""
Logging module for the control panel.
This module provides functionality to set up console and SQLite logging.
"""

from .setup import setup_logging
from .handler import SQLiteHandler

__all__ = ["setup_logging", "SQLiteHandler"]
