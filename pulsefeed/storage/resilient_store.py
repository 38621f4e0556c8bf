"""
Resilient Record Store
======================

Circuit breaker around the live backend.

States:
    LIVE      queries go to the backend
    DEGRADED  queries are answered from the fallback (demo) store

A failed backend query moves LIVE -> DEGRADED. Once the recovery timeout
has elapsed, the next query tries the backend again; success moves
DEGRADED -> LIVE. Every transition is logged with its reason.

Writes are never redirected: upserts always target the backend and
surface StoreWriteError when it rejects them.
"""

import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

from ..database.models import Record
from ..utils.exceptions import ConfigurationError, StoreWriteError
from ..utils.logging import get_store_logger
from .base import QueryResult, RecordQuery, RecordStore
from .memory_store import InMemoryRecordStore
from .mock_data import build_mock_records


class StoreState(Enum):
    """Circuit states of the resilient store."""
    LIVE = "live"
    DEGRADED = "degraded"


class ResilientRecordStore(RecordStore):
    """Live store with an explicit fallback state."""

    def __init__(
        self,
        backend: RecordStore,
        fallback: Optional[RecordStore] = None,
        recovery_timeout: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize resilient store.

        Args:
            backend: Live backend store
            fallback: Store answering queries while degraded (default: demo records)
            recovery_timeout: Seconds to stay degraded before probing the backend
            clock: Monotonic time source
        """
        self.backend = backend
        self.fallback = fallback or InMemoryRecordStore(build_mock_records(), mode_name="mock")
        self.recovery_timeout = recovery_timeout
        self.default_max_items = backend.default_max_items
        self._clock = clock
        self.logger = get_store_logger().bind(store="resilient")

        self.state = StoreState.LIVE
        self.degraded_reason: Optional[str] = None
        self._degraded_at: Optional[float] = None

    @property
    def mode(self) -> str:
        return self.backend.mode

    @property
    def is_degraded(self) -> bool:
        return self.state == StoreState.DEGRADED

    def _should_retry_backend(self) -> bool:
        if self.state == StoreState.LIVE:
            return True
        return self._clock() - self._degraded_at >= self.recovery_timeout

    def _degrade(self, reason: str) -> None:
        if self.state == StoreState.LIVE:
            self.logger.warning(f"Live store degraded, serving fallback data: {reason}")
        else:
            self.logger.warning(f"Live store retry failed, staying degraded: {reason}")
        self.state = StoreState.DEGRADED
        self.degraded_reason = reason
        self._degraded_at = self._clock()

    def _recover(self) -> None:
        if self.state == StoreState.DEGRADED:
            self.logger.info(f"Live store recovered after: {self.degraded_reason}")
        self.state = StoreState.LIVE
        self.degraded_reason = None
        self._degraded_at = None

    async def query(self, query: RecordQuery, max_items: Optional[int] = None) -> QueryResult:
        if not self._should_retry_backend():
            return await self.fallback.query(query, max_items)

        try:
            result = await self.backend.query(query, max_items)
        except ConfigurationError:
            raise
        except Exception as e:
            self._degrade(str(e))
            return await self.fallback.query(query, max_items)

        self._recover()
        return result

    async def upsert(self, record: Record) -> Record:
        try:
            return await self.backend.upsert(record)
        except (StoreWriteError, ConfigurationError):
            raise
        except Exception as e:
            raise StoreWriteError(f"Failed to upsert record: {e}", record_id=record.id) from e

    async def is_first_run(self) -> bool:
        if self.is_degraded:
            return False
        try:
            return await self.backend.is_first_run()
        except Exception as e:
            self.logger.error(f"Failed to check if first run: {e}")
            return False

    async def close(self) -> None:
        await self.backend.close()

    def get_state_info(self) -> Dict[str, Any]:
        """Current circuit state for diagnostics."""
        return {
            "state": self.state.value,
            "reason": self.degraded_reason,
            "recovery_timeout": self.recovery_timeout,
        }
