"""
Database schema definitions
"""

CREATE_TIMERS_TABLE = """
    CREATE TABLE IF NOT EXISTS timers (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        mode TEXT NOT NULL DEFAULT 'sequence',
        locked INTEGER NOT NULL DEFAULT 0,
        position INTEGER NOT NULL DEFAULT 0,
        payload TEXT NOT NULL,
        created_at TEXT DEFAULT CURRENT_TIMESTAMP,
        updated_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_TIMERS_POSITION_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_timers_position ON timers(position)
"""

ALL_TABLES = [CREATE_TIMERS_TABLE]

ALL_INDEXES = [CREATE_TIMERS_POSITION_INDEX]
