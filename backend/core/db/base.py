"""
Base repository class for database operations
Provides common database connection and utility methods
"""

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from core.logger import get_logger

logger = get_logger(__name__)


class BaseRepository:
    """
    Base repository class providing common database operations

    All repository classes should inherit from this base class
    to ensure consistent database connection handling.
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        logger.debug(f"Initialized {self.__class__.__name__} with db_path: {db_path}")

    @contextmanager
    def _get_conn(self) -> Generator[sqlite3.Connection, None, None]:
        """
        Get database connection with Row factory for dict-like access

        Example:
            with self._get_conn() as conn:
                cursor = conn.execute("SELECT * FROM timers")
                rows = cursor.fetchall()
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=30.0,
            check_same_thread=False,
        )
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()
