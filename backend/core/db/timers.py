"""
Timers Repository - Handles persistence of timer definitions

Each row keeps a few columns for listing (name, mode, locked, position) and
the full camelCase JSON of the timer in ``payload``.
"""

from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from core.logger import get_logger
from models.timers import Timer, normalize_timer

from .base import BaseRepository

logger = get_logger(__name__)


class TimersRepository(BaseRepository):
    """Repository for managing timers in the database"""

    def __init__(self, db_path: Path):
        super().__init__(db_path)

    def _parse_payload(self, timer_id: str, payload: str) -> Optional[Timer]:
        try:
            return normalize_timer(Timer.model_validate_json(payload))
        except ValidationError as e:
            logger.warning(f"Skipping invalid stored timer {timer_id}: {e.error_count()} error(s)")
            logger.debug(f"Validation errors for timer {timer_id}: {e}")
            return None

    def save(self, timer: Timer, position: Optional[int] = None) -> None:
        """Insert or update a timer; new timers go to the end of the list"""
        try:
            with self._get_conn() as conn:
                if position is None:
                    row = conn.execute(
                        "SELECT position FROM timers WHERE id = ?", (timer.id,)
                    ).fetchone()
                    if row is not None:
                        position = row["position"]
                    else:
                        row = conn.execute(
                            "SELECT COALESCE(MAX(position), -1) + 1 AS next FROM timers"
                        ).fetchone()
                        position = row["next"]

                conn.execute(
                    """
                    INSERT INTO timers (id, name, mode, locked, position, payload)
                    VALUES (?, ?, ?, ?, ?, ?)
                    ON CONFLICT(id) DO UPDATE SET
                        name = excluded.name,
                        mode = excluded.mode,
                        locked = excluded.locked,
                        position = excluded.position,
                        payload = excluded.payload,
                        updated_at = CURRENT_TIMESTAMP
                    """,
                    (
                        timer.id,
                        timer.name,
                        timer.mode.value,
                        int(timer.locked),
                        position,
                        timer.model_dump_json(),
                    ),
                )
                conn.commit()
                logger.debug(f"Saved timer: {timer.id} ('{timer.name}')")
        except Exception as e:
            logger.error(f"Failed to save timer {timer.id}: {e}", exc_info=True)
            raise

    def save_all(self, timers: List[Timer]) -> None:
        """Replace the stored list with timers, in order"""
        try:
            with self._get_conn() as conn:
                conn.execute("DELETE FROM timers")
                conn.executemany(
                    """
                    INSERT INTO timers (id, name, mode, locked, position, payload)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    [
                        (
                            timer.id,
                            timer.name,
                            timer.mode.value,
                            int(timer.locked),
                            position,
                            timer.model_dump_json(),
                        )
                        for position, timer in enumerate(timers)
                    ],
                )
                conn.commit()
                logger.debug(f"Saved {len(timers)} timers")
        except Exception as e:
            logger.error(f"Failed to save timers: {e}", exc_info=True)
            raise

    def get(self, timer_id: str) -> Optional[Timer]:
        """Get timer by id, or None if missing or unreadable"""
        try:
            with self._get_conn() as conn:
                row = conn.execute(
                    "SELECT id, payload FROM timers WHERE id = ?", (timer_id,)
                ).fetchone()
        except Exception as e:
            logger.error(f"Failed to get timer {timer_id}: {e}", exc_info=True)
            raise

        if row is None:
            return None
        return self._parse_payload(row["id"], row["payload"])

    def load_all(self) -> List[Timer]:
        """Load every readable timer in list order"""
        try:
            with self._get_conn() as conn:
                rows = conn.execute(
                    "SELECT id, payload FROM timers ORDER BY position, created_at"
                ).fetchall()
        except Exception as e:
            logger.error(f"Failed to load timers: {e}", exc_info=True)
            raise

        timers = []
        for row in rows:
            timer = self._parse_payload(row["id"], row["payload"])
            if timer is not None:
                timers.append(timer)
        return timers

    def delete(self, timer_id: str) -> bool:
        """Delete a timer; returns False if it did not exist"""
        try:
            with self._get_conn() as conn:
                cursor = conn.execute("DELETE FROM timers WHERE id = ?", (timer_id,))
                conn.commit()
                deleted = cursor.rowcount > 0
            if deleted:
                logger.debug(f"Deleted timer: {timer_id}")
            return deleted
        except Exception as e:
            logger.error(f"Failed to delete timer {timer_id}: {e}", exc_info=True)
            raise

    def count(self) -> int:
        with self._get_conn() as conn:
            row = conn.execute("SELECT COUNT(*) AS count FROM timers").fetchone()
        return row["count"] if row else 0
