"""
SQLite Record Store
===================

Live backend for records. Writes are upserts keyed by record id;
category tags live in their own table so category queries stay indexed.
Blocking sqlite calls run in worker threads.
"""

import asyncio
import sqlite3
from datetime import datetime, timezone
from typing import Dict, List, Optional

from ..database.connection import ConnectionPool
from ..database.models import Record
from ..database.schema import DatabaseSchema
from ..utils.exceptions import ErrorCode, StoreError, StoreWriteError
from ..utils.logging import get_store_logger
from .base import QueryKind, QueryResult, RecordQuery, RecordStore

UPSERT_RECORD_SQL = """
    INSERT INTO records (id, title, description, link, published_at, source, kind, author, updated_at)
    VALUES (?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
    ON CONFLICT(id) DO UPDATE SET
        title = excluded.title,
        description = excluded.description,
        link = excluded.link,
        published_at = excluded.published_at,
        source = excluded.source,
        kind = excluded.kind,
        author = excluded.author,
        updated_at = CURRENT_TIMESTAMP
"""


def _format_timestamp(value: datetime) -> str:
    # Fixed width so lexical order equals chronological order
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")


class SQLiteRecordStore(RecordStore):
    """Record store persisted in SQLite."""

    def __init__(self, db_path: str, pool_size: int = 5, max_items: int = 100):
        """Initialize SQLite store.

        Args:
            db_path: Path to SQLite database file
            pool_size: Connection pool size
            max_items: Default query result cap
        """
        self.db_path = db_path
        self.default_max_items = max_items
        self.logger = get_store_logger().bind(store="sqlite")

        DatabaseSchema(db_path).create_tables()
        self.db = ConnectionPool(db_path, pool_size=pool_size)

    @property
    def mode(self) -> str:
        return "live"

    # Synchronous operations

    def upsert_sync(self, record: Record) -> Record:
        """Insert or overwrite a record and its categories.

        Raises:
            StoreWriteError: If the write fails
        """
        try:
            with self.db.transaction() as conn:
                conn.execute(
                    UPSERT_RECORD_SQL,
                    (
                        record.id, record.title, record.description, record.link,
                        _format_timestamp(record.published_at), record.source,
                        record.kind.value, record.author,
                    ),
                )
                conn.execute("DELETE FROM record_categories WHERE record_id = ?", (record.id,))
                conn.executemany(
                    "INSERT INTO record_categories (record_id, category, position) VALUES (?, ?, ?)",
                    [(record.id, category, position) for position, category in enumerate(record.categories)],
                )

            self.logger.debug(f"Upserted record: {record.id}")
            return record

        except sqlite3.Error as e:
            raise StoreWriteError(f"Failed to upsert record: {e}", record_id=record.id) from e

    def query_sync(self, query: RecordQuery, max_items: Optional[int] = None) -> QueryResult:
        """Run a query against the database.

        Raises:
            StoreError: If the query fails
        """
        limit = self.resolve_limit(max_items)

        try:
            if query.kind == QueryKind.DISTINCT_CATEGORIES:
                rows = self.db.fetch_all(
                    "SELECT DISTINCT category FROM record_categories ORDER BY category LIMIT ?",
                    (limit,),
                )
                return [row["category"] for row in rows]

            if query.kind == QueryKind.BY_CATEGORY:
                rows = self.db.fetch_all(
                    """
                    SELECT r.* FROM records r
                    JOIN record_categories rc ON rc.record_id = r.id
                    WHERE rc.category = ?
                    ORDER BY r.published_at DESC
                    LIMIT ?
                    """,
                    (query.category, limit),
                )
            else:
                rows = self.db.fetch_all(
                    "SELECT * FROM records ORDER BY published_at DESC LIMIT ?",
                    (limit,),
                )

            return self._rows_to_records(rows)

        except sqlite3.Error as e:
            raise StoreError(
                f"Query failed: {e}",
                error_code=ErrorCode.STORE_QUERY_FAILED,
                context={"query": query.kind.value},
            ) from e

    def count_sync(self) -> int:
        row = self.db.fetch_one("SELECT COUNT(*) AS total FROM records")
        return row["total"] if row else 0

    def _rows_to_records(self, rows: List[sqlite3.Row]) -> List[Record]:
        if not rows:
            return []

        ids = [row["id"] for row in rows]
        placeholders = ",".join("?" for _ in ids)
        category_rows = self.db.fetch_all(
            f"""
            SELECT record_id, category FROM record_categories
            WHERE record_id IN ({placeholders})
            ORDER BY record_id, position
            """,
            tuple(ids),
        )

        categories: Dict[str, List[str]] = {}
        for row in category_rows:
            categories.setdefault(row["record_id"], []).append(row["category"])

        return [
            Record(
                id=row["id"],
                title=row["title"],
                description=row["description"],
                link=row["link"],
                published_at=datetime.fromisoformat(row["published_at"]),
                source=row["source"],
                kind=row["kind"],
                author=row["author"],
                categories=categories.get(row["id"], []),
            )
            for row in rows
        ]

    # RecordStore interface

    async def upsert(self, record: Record) -> Record:
        return await asyncio.to_thread(self.upsert_sync, record)

    async def query(self, query: RecordQuery, max_items: Optional[int] = None) -> QueryResult:
        return await asyncio.to_thread(self.query_sync, query, max_items)

    async def is_first_run(self) -> bool:
        try:
            return await asyncio.to_thread(self.count_sync) == 0
        except sqlite3.Error as e:
            self.logger.error(f"Failed to check if first run: {e}")
            return False

    async def close(self) -> None:
        self.db.close()
