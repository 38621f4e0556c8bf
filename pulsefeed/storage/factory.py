"""
Store construction for the configured data mode.
"""

from typing import Optional

from ..config.settings import DataMode, PulseFeedSettings, get_settings
from ..utils.exceptions import ConfigurationError, ErrorCode
from ..utils.logging import get_store_logger
from .base import RecordStore
from .memory_store import InMemoryRecordStore
from .mock_data import build_mock_records
from .resilient_store import ResilientRecordStore
from .snapshot import load_snapshot, snapshot_records
from .sqlite_store import SQLiteRecordStore

logger = get_store_logger()


def create_store(settings: Optional[PulseFeedSettings] = None) -> RecordStore:
    """Build the record store for `settings.store.data_mode`.

    Raises:
        ConfigurationError: For live mode without a usable database path, or
            snapshot mode without a readable snapshot file
    """
    settings = settings or get_settings()
    store_settings = settings.store
    mode = store_settings.data_mode

    if mode == DataMode.LIVE:
        path = (store_settings.database_path or "").strip()
        if not path or path == ":memory:":
            raise ConfigurationError(
                "data_mode=live requires a valid database_path",
                config_key="store.database_path",
                error_code=ErrorCode.CONFIG_MISSING,
            )
        logger.info(f"Using live store at {path}")
        backend = SQLiteRecordStore(path, pool_size=store_settings.pool_size, max_items=store_settings.max_query_items)
        return ResilientRecordStore(
            backend,
            fallback=InMemoryRecordStore(build_mock_records(), store_settings.max_query_items, mode_name="mock"),
            recovery_timeout=store_settings.recovery_timeout_seconds,
        )

    if mode == DataMode.SNAPSHOT:
        snapshot = load_snapshot(store_settings.snapshot_path)
        records = snapshot_records(snapshot, settings.feeds, settings.ingestion)
        logger.info(f"Using snapshot store ({len(records)} records)")
        return InMemoryRecordStore(records, store_settings.max_query_items, mode_name="snapshot")

    logger.info("Using mock store")
    return InMemoryRecordStore(build_mock_records(), store_settings.max_query_items, mode_name="mock")
