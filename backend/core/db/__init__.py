"""
Database module - Repository pattern implementation

This module provides:
1. Repository classes for each stored record type (Timers)
2. Unified DatabaseManager that aggregates all repositories
3. Global get_db() and switch_database() functions for easy access
"""

import sqlite3
from pathlib import Path
from typing import Dict, Optional

from core.logger import get_logger

from . import schema
from .base import BaseRepository
from .timers import TimersRepository

logger = get_logger(__name__)

DEFAULT_DB_PATH = "~/.config/blocktimer/timers.db"


class DatabaseManager:
    """
    Unified database manager that provides access to all repositories

    Example:
        db = get_db()
        timers = db.timers.load_all()
        db.timers.save(timer)
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path

        # Ensure database tables exist
        self._initialize_database()

        self.timers = TimersRepository(db_path)

        logger.debug(f"✓ DatabaseManager initialized with path: {db_path}")

    def _initialize_database(self):
        """
        Initialize database schema - create all tables and indexes

        Called automatically when DatabaseManager is instantiated.
        """
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self.db_path))
            try:
                cursor = conn.cursor()
                for table_sql in schema.ALL_TABLES:
                    cursor.execute(table_sql)
                for index_sql in schema.ALL_INDEXES:
                    cursor.execute(index_sql)
                conn.commit()
            finally:
                conn.close()

            logger.debug(
                f"✓ Database schema initialized: {len(schema.ALL_TABLES)} tables, {len(schema.ALL_INDEXES)} indexes"
            )

        except Exception as e:
            logger.error(f"Failed to initialize database schema: {e}", exc_info=True)
            raise

    def get_table_counts(self) -> Dict[str, int]:
        """Return row counts for key tables"""
        try:
            return {"timers": self.timers.count()}
        except Exception as exc:
            logger.error(f"Failed to compute table counts: {exc}", exc_info=True)
            return {}


# Global database manager instance
_db_manager: Optional[DatabaseManager] = None


def resolve_db_path(configured_path: Optional[str]) -> Path:
    """Configured database path with ~ expanded, or the default location"""
    if configured_path and configured_path.strip():
        return Path(configured_path).expanduser()
    return Path(DEFAULT_DB_PATH).expanduser()


def get_db() -> DatabaseManager:
    """
    Get global DatabaseManager instance

    The database path is read from config.toml (database.path),
    or defaults to ~/.config/blocktimer/timers.db
    """
    global _db_manager

    if _db_manager is None:
        from config.loader import get_config

        db_path = resolve_db_path(get_config().get("database.path", ""))
        _db_manager = DatabaseManager(db_path)
        logger.debug(f"✓ Global DatabaseManager initialized: {db_path}")

    return _db_manager


def switch_database(new_db_path: str) -> bool:
    """
    Switch database to a new path at runtime

    Returns:
        True if switch successful, False otherwise
    """
    global _db_manager

    try:
        new_path = Path(new_db_path).expanduser()

        if _db_manager is not None and _db_manager.db_path.resolve() == new_path.resolve():
            logger.debug(f"New path is same as current, no switch needed: {new_db_path}")
            return True

        _db_manager = DatabaseManager(new_path)
        logger.debug(f"✓ Database switched to: {new_db_path}")
        return True

    except Exception as e:
        logger.error(f"Failed to switch database: {e}", exc_info=True)
        return False


def reset_db() -> None:
    """Forget the global instance; the next get_db() reopens from config"""
    global _db_manager
    _db_manager = None


__all__ = [
    # Repository classes
    "BaseRepository",
    "TimersRepository",
    # Unified manager
    "DatabaseManager",
    # Global access functions
    "get_db",
    "switch_database",
    "reset_db",
    "resolve_db_path",
]
