"""
In-memory record store used by the mock and snapshot data modes.
"""

from typing import Dict, Iterable, Optional

from ..database.models import Record
from ..utils.logging import get_store_logger
from .base import QueryResult, RecordQuery, RecordStore, apply_query


class InMemoryRecordStore(RecordStore):
    """Dictionary-backed store keyed by record id."""

    def __init__(
        self,
        records: Optional[Iterable[Record]] = None,
        max_items: int = 100,
        mode_name: str = "memory",
    ):
        self._records: Dict[str, Record] = {}
        self.default_max_items = max_items
        self._mode_name = mode_name
        self.logger = get_store_logger().bind(store=mode_name)

        for record in records or []:
            self._records[record.id] = record

    @property
    def mode(self) -> str:
        return self._mode_name

    def __len__(self) -> int:
        return len(self._records)

    async def upsert(self, record: Record) -> Record:
        self._records[record.id] = record.model_copy(deep=True)
        self.logger.debug(f"Upserted {record.id}")
        return record

    async def query(self, query: RecordQuery, max_items: Optional[int] = None) -> QueryResult:
        return apply_query(self._records.values(), query, self.resolve_limit(max_items))

    async def is_first_run(self) -> bool:
        return not self._records

    async def get(self, record_id: str) -> Optional[Record]:
        return self._records.get(record_id)
