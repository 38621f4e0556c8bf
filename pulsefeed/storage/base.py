"""
Record Store Interface
======================

Every store mode (mock, snapshot, live) implements RecordStore, so the
ingestion core and the read API never know which mode is active.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Union

from ..database.models import Record


class QueryKind(str, Enum):
    ALL = "all"
    BY_CATEGORY = "by_category"
    DISTINCT_CATEGORIES = "distinct_categories"


@dataclass(frozen=True)
class RecordQuery:
    """A store query predicate."""

    kind: QueryKind = QueryKind.ALL
    category: Optional[str] = None

    @classmethod
    def all(cls) -> "RecordQuery":
        return cls(QueryKind.ALL)

    @classmethod
    def by_category(cls, category: str) -> "RecordQuery":
        return cls(QueryKind.BY_CATEGORY, category)

    @classmethod
    def distinct_categories(cls) -> "RecordQuery":
        return cls(QueryKind.DISTINCT_CATEGORIES)


QueryResult = Union[List[Record], List[str]]


def apply_query(records: Iterable[Record], query: RecordQuery, max_items: int) -> QueryResult:
    """Evaluate a query over records held in memory.

    Records come back newest first; distinct categories alphabetically.
    Both are truncated to max_items.
    """
    if query.kind == QueryKind.DISTINCT_CATEGORIES:
        categories = {category for record in records for category in record.categories}
        return sorted(categories)[:max_items]

    if query.kind == QueryKind.BY_CATEGORY:
        records = [r for r in records if query.category in r.categories]

    ordered = sorted(records, key=lambda r: r.published_at, reverse=True)
    return ordered[:max_items]


class RecordStore(ABC):
    """Abstract record store."""

    default_max_items: int = 100

    @abstractmethod
    async def upsert(self, record: Record) -> Record:
        """Insert or overwrite the record with the same id.

        Raises:
            StoreWriteError: If the backend rejects the write
        """

    @abstractmethod
    async def query(self, query: RecordQuery, max_items: Optional[int] = None) -> QueryResult:
        """Run a query.

        Raises:
            StoreError: If the backend cannot answer
        """

    @abstractmethod
    async def is_first_run(self) -> bool:
        """True when the store holds no records. Never raises."""

    async def close(self) -> None:
        """Release backend resources."""
        return None

    @property
    def mode(self) -> str:
        return type(self).__name__

    def resolve_limit(self, max_items: Optional[int]) -> int:
        """Result cap for a query; missing or non-positive values use the default."""
        if max_items is None or max_items < 1:
            return self.default_max_items
        return max_items

    # Convenience wrappers used by the read API and CLI

    async def list_records(self, category: Optional[str] = None, limit: Optional[int] = None) -> List[Record]:
        query = RecordQuery.by_category(category) if category else RecordQuery.all()
        return await self.query(query, limit)

    async def list_categories(self, limit: Optional[int] = None) -> List[str]:
        return await self.query(RecordQuery.distinct_categories(), limit)
