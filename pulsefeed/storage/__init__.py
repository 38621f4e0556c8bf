"""
PulseFeed Storage Layer
=======================

Record stores behind a single interface:
- InMemoryRecordStore for the mock and snapshot data modes
- SQLiteRecordStore for live mode
- ResilientRecordStore, the circuit breaker around the live backend
"""

from .base import RecordQuery, RecordStore
from .memory_store import InMemoryRecordStore
from .sqlite_store import SQLiteRecordStore
from .resilient_store import ResilientRecordStore, StoreState
from .factory import create_store

__all__ = [
    "RecordQuery",
    "RecordStore",
    "InMemoryRecordStore",
    "SQLiteRecordStore",
    "ResilientRecordStore",
    "StoreState",
    "create_store",
]
