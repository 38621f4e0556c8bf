"""
Feed Snapshots
==============

A snapshot is a JSON capture of the first few raw entries of every
configured feed:

    {
      "generatedAt": "<ISO 8601>",
      "feeds": {
        "updates": [{"feedUrl", "feedName", "type", "fetchedAt", "itemCount",
                     "items": [{"title", "description", "link", "pubDate",
                                "author", "categories", "videoId", "guid"}]}],
        "blogs": [...],
        "videos": [...]
      }
    }

Snapshot mode turns it into Records through the regular source adapters,
using `generatedAt` as the ingestion time so results are deterministic.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config.settings import FeedsSettings, IngestionSettings
from ..database.models import FeedSource, IngestOptions, RawEntry, Record
from ..ingestion.adapters import get_adapter, parse_timestamp
from ..ingestion.feed_parser import FeedParser, get_parser
from ..utils.exceptions import ConfigurationError, ErrorCode, FeedFetchError
from ..utils.logging import get_logger_for_component

logger = get_logger_for_component("snapshot")


def load_snapshot(path: str) -> Dict[str, Any]:
    """Read a snapshot file.

    Raises:
        ConfigurationError: If the file is missing or not a snapshot
    """
    snapshot_path = Path(path)
    try:
        with open(snapshot_path, "r", encoding="utf-8") as f:
            snapshot = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(
            f"Snapshot file not found: {snapshot_path}",
            config_key="store.snapshot_path",
            error_code=ErrorCode.CONFIG_MISSING,
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Snapshot file is unreadable: {e}",
            config_key="store.snapshot_path",
        ) from e

    if not isinstance(snapshot, dict) or not isinstance(snapshot.get("feeds"), dict):
        raise ConfigurationError(
            "Snapshot file has no 'feeds' section",
            config_key="store.snapshot_path",
        )
    return snapshot


def _configured_source(feeds: FeedsSettings, family_name: str, url: str, name: str) -> FeedSource:
    try:
        family = feeds.get_family(family_name)
    except ConfigurationError:
        family = None

    if family is not None:
        for source in family.sources:
            if source.url == url or source.name == name:
                return FeedSource(name=name or source.name, url=url or source.url, categories=source.categories)

    return FeedSource(name=name or family_name, url=url or "snapshot")


def snapshot_records(
    snapshot: Dict[str, Any],
    feeds: Optional[FeedsSettings] = None,
    ingestion: Optional[IngestionSettings] = None,
) -> List[Record]:
    """Adapt every snapshot item into a Record. Unusable items are dropped."""
    feeds = feeds or FeedsSettings()
    now = parse_timestamp(snapshot.get("generatedAt")) or datetime.now(timezone.utc)

    records: List[Record] = []
    for family in feeds.families():
        adapter = get_adapter(family.kind, ingestion)
        for feed in snapshot["feeds"].get(family.name) or []:
            source = _configured_source(feeds, family.name, feed.get("feedUrl", ""), feed.get("feedName", ""))
            entries = [
                RawEntry.from_snapshot_item(item)
                for item in feed.get("items") or []
                if isinstance(item, dict)
            ]
            records.extend(adapter.adapt_all(entries, source, now, IngestOptions()))

    logger.info(f"Loaded {len(records)} records from snapshot generated {now.isoformat()}")
    return records


async def capture_snapshot(
    fetcher,
    feeds: Optional[FeedsSettings] = None,
    parser: Optional[FeedParser] = None,
    per_feed: int = 5,
) -> Dict[str, Any]:
    """Fetch every configured feed and keep its first `per_feed` raw entries.

    Feeds that fail to fetch are logged and left out.
    """
    feeds = feeds or FeedsSettings()
    parser = parser or get_parser()

    snapshot: Dict[str, Any] = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "feeds": {},
    }

    for family in feeds.families():
        captured = []
        for source in family.sources:
            try:
                content = await fetcher.fetch(source.url)
            except FeedFetchError as e:
                logger.warning(f"Skipping {source.name} in snapshot: {e}")
                continue

            items = [entry.to_snapshot_item() for entry in parser.parse(content, family.format_hint)[:per_feed]]
            captured.append({
                "feedUrl": source.url,
                "feedName": source.name,
                "type": family.kind.value,
                "fetchedAt": datetime.now(timezone.utc).isoformat(),
                "itemCount": len(items),
                "items": items,
            })
            logger.info(f"Captured {len(items)} items from {source.name}")

        snapshot["feeds"][family.name] = captured

    return snapshot


def write_snapshot(snapshot: Dict[str, Any], path: str) -> Path:
    """Write a snapshot as indented JSON, creating parent directories."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        json.dump(snapshot, f, indent=2, ensure_ascii=False)
    return output
