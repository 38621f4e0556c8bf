"""
PulseFeed Database Schema
=========================

SQLite schema for the live record store:
- records: one row per record, keyed by the record id
- record_categories: category tags per record, in display order
"""

import sqlite3
import logging
from pathlib import Path
from typing import Set

logger = logging.getLogger(__name__)

TABLES = ("records", "record_categories")

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS records (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT NOT NULL DEFAULT '',
        link TEXT NOT NULL,
        published_at TEXT NOT NULL,
        source TEXT NOT NULL,
        kind TEXT NOT NULL CHECK (kind IN ('update', 'blog', 'video')),
        author TEXT NOT NULL DEFAULT '',
        updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS record_categories (
        record_id TEXT NOT NULL REFERENCES records(id) ON DELETE CASCADE,
        category TEXT NOT NULL,
        position INTEGER NOT NULL,
        PRIMARY KEY (record_id, category)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_records_published ON records(published_at)",
    "CREATE INDEX IF NOT EXISTS idx_records_kind ON records(kind)",
    "CREATE INDEX IF NOT EXISTS idx_record_categories_category ON record_categories(category)",
)


class DatabaseSchema:
    """Creates, checks and drops the record store tables."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        return sqlite3.connect(self.db_path)

    def create_tables(self) -> None:
        """Idempotent; safe to run on every startup."""
        conn = self._connect()
        try:
            with conn:
                for statement in SCHEMA_STATEMENTS:
                    conn.execute(statement)
        finally:
            conn.close()
        logger.info(f"Schema ready in {self.db_path}")

    def existing_tables(self) -> Set[str]:
        conn = self._connect()
        try:
            rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()
        finally:
            conn.close()
        return {name for (name,) in rows}

    def drop_tables(self) -> None:
        """Drop every record store table. Used by tests and resets."""
        conn = self._connect()
        try:
            with conn:
                # Children first
                for table in reversed(TABLES):
                    conn.execute(f"DROP TABLE IF EXISTS {table}")
        finally:
            conn.close()
        logger.warning(f"Dropped record store tables in {self.db_path}")

    def verify_schema(self) -> bool:
        """True when every record store table exists."""
        try:
            missing = set(TABLES) - self.existing_tables()
        except sqlite3.Error as e:
            logger.error(f"Could not inspect schema: {e}")
            return False

        if missing:
            logger.error(f"Missing tables: {sorted(missing)}")
            return False
        return True
