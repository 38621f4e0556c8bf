"""
PulseFeed Database Connection Pool
==================================

SQLite connections for the live record store. Store calls run in worker
threads, so connections are shared across threads and handed out from a
bounded pool.
"""

import sqlite3
import threading
import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator, List, Optional
from queue import Queue, Empty, Full

logger = logging.getLogger(__name__)

PRAGMAS = (
    "PRAGMA foreign_keys = ON",
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
)


class ConnectionPool:
    """Bounded pool of SQLite connections to a single database file."""

    def __init__(self, db_path: str, pool_size: int = 5, busy_timeout: float = 30.0):
        """
        Args:
            db_path: Path to SQLite database file
            pool_size: Idle connections kept for reuse
            busy_timeout: Seconds a writer waits on a locked database
        """
        self.db_path = Path(db_path)
        self.pool_size = pool_size
        self.busy_timeout = busy_timeout
        self._idle: Queue = Queue(maxsize=pool_size)
        self._lock = threading.Lock()
        self._opened = 0
        self._closed = False

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _open(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, check_same_thread=False, timeout=self.busy_timeout)
        conn.row_factory = sqlite3.Row
        for pragma in PRAGMAS:
            conn.execute(pragma)

        with self._lock:
            self._opened += 1
            opened = self._opened
        logger.debug(f"Opened connection to {self.db_path.name} ({opened} open)")
        return conn

    def _discard(self, conn: sqlite3.Connection) -> None:
        conn.close()
        with self._lock:
            self._opened -= 1

    @contextmanager
    def connection(self) -> Generator[sqlite3.Connection, None, None]:
        """Borrow a connection for the duration of the block."""
        if self._closed:
            raise sqlite3.ProgrammingError("Connection pool is closed")

        try:
            conn = self._idle.get_nowait()
        except Empty:
            conn = self._open()

        try:
            yield conn
        except sqlite3.Error:
            # Leave no half-finished transaction on a pooled connection
            if conn.in_transaction:
                conn.rollback()
            raise
        finally:
            if self._closed:
                self._discard(conn)
            else:
                try:
                    self._idle.put_nowait(conn)
                except Full:
                    self._discard(conn)

    @contextmanager
    def transaction(self) -> Generator[sqlite3.Connection, None, None]:
        """Write block: commits on success, rolls back on any error."""
        with self.connection() as conn:
            conn.execute("BEGIN IMMEDIATE")
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    def fetch_all(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        with self.connection() as conn:
            return conn.execute(sql, params).fetchall()

    def fetch_one(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Row]:
        with self.connection() as conn:
            return conn.execute(sql, params).fetchone()

    def close(self) -> None:
        """Close idle connections; borrowed ones close when returned."""
        self._closed = True
        while True:
            try:
                conn = self._idle.get_nowait()
            except Empty:
                break
            self._discard(conn)
        logger.info(f"Connection pool for {self.db_path.name} closed")
