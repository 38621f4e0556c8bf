"""
PyTest Configuration and Fixtures
=================================

Shared fixtures and configuration for PulseFeed tests.
"""

import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Union

import pytest

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent.parent))

# Set test environment variables before any imports
os.environ["PULSEFEED_STORE__DATA_MODE"] = "mock"
os.environ["PULSEFEED_LOGGING__CONSOLE_LOGGING"] = "false"
os.environ.pop("PULSEFEED_STORE__DATABASE_PATH", None)

FIXTURES_DIR = Path(__file__).parent / "fixtures"

# Reference "now" for feed fixtures
FIXED_NOW = datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def read_fixture(name: str) -> str:
    return (FIXTURES_DIR / name).read_text(encoding="utf-8")


class FakeFetcher:
    """Feed fetcher stand-in: URL -> content, or an exception to raise."""

    def __init__(self, responses: Dict[str, Union[str, Exception]]):
        self.responses = responses
        self.requested: List[str] = []

    async def fetch(self, url: str) -> str:
        self.requested.append(url)
        response = self.responses.get(url)
        if isinstance(response, Exception):
            raise response
        if response is None:
            from pulsefeed.utils.exceptions import FeedFetchError
            raise FeedFetchError("HTTP 404: Not Found", feed_url=url)
        return response


# ============================================================================
# Feed Fixtures
# ============================================================================


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def updates_rss():
    return read_fixture("updates_rss.xml")


@pytest.fixture
def blog_rss():
    return read_fixture("blog_rss.xml")


@pytest.fixture
def youtube_atom():
    return read_fixture("youtube_atom.xml")


@pytest.fixture
def malformed_rss():
    return read_fixture("malformed.xml")


# ============================================================================
# Settings and Store Fixtures
# ============================================================================


@pytest.fixture
def test_settings(tmp_path):
    """Settings with one source per family and no log file."""
    from pulsefeed.config.settings import FeedsSettings, LoggingSettings, PulseFeedSettings
    from pulsefeed.database.models import FamilyConfig, FeedFormat, FeedSource, RecordKind

    feeds = FeedsSettings(
        updates=FamilyConfig(
            name="updates",
            kind=RecordKind.UPDATE,
            format_hint=FeedFormat.RSS,
            sources=[FeedSource(name="Azure Updates", url="https://feeds.example.com/updates")],
        ),
        blogs=FamilyConfig(
            name="blogs",
            kind=RecordKind.BLOG,
            format_hint=FeedFormat.RSS,
            sources=[
                FeedSource(
                    name="Azure SDK Blog",
                    url="https://feeds.example.com/sdk-blog",
                    categories=["Azure", "SDK"],
                ),
            ],
        ),
        videos=FamilyConfig(
            name="videos",
            kind=RecordKind.VIDEO,
            format_hint=FeedFormat.ATOM,
            sources=[
                FeedSource(
                    name="Microsoft Developer",
                    url="https://feeds.example.com/videos",
                    categories=["Video", "Azure"],
                ),
            ],
        ),
    )

    return PulseFeedSettings(
        feeds=feeds,
        logging=LoggingSettings(file_path=None, console_logging=False),
    )


@pytest.fixture
def make_fetcher():
    """Factory for fetchers with custom URL -> response maps."""
    return FakeFetcher


@pytest.fixture
def fake_fetcher(updates_rss, blog_rss, youtube_atom):
    """Fetcher serving the fixture feeds at the test_settings URLs."""
    return FakeFetcher({
        "https://feeds.example.com/updates": updates_rss,
        "https://feeds.example.com/sdk-blog": blog_rss,
        "https://feeds.example.com/videos": youtube_atom,
    })


@pytest.fixture
def memory_store():
    from pulsefeed.storage.memory_store import InMemoryRecordStore
    return InMemoryRecordStore()


@pytest.fixture
def sqlite_store(tmp_path):
    from pulsefeed.storage.sqlite_store import SQLiteRecordStore

    store = SQLiteRecordStore(str(tmp_path / "records.db"), pool_size=2)
    yield store
    store.db.close()


@pytest.fixture
def sample_records():
    from pulsefeed.database.models import Record, RecordKind

    return [
        Record(
            id="rec-1",
            title="Container Apps GPUs",
            link="https://example.com/1",
            published_at=datetime(2025, 1, 14, tzinfo=timezone.utc),
            source="Azure Updates",
            kind=RecordKind.UPDATE,
            categories=["Compute", "Azure"],
        ),
        Record(
            id="rec-2",
            title="SDK release notes",
            link="https://example.com/2",
            published_at=datetime(2025, 1, 10, tzinfo=timezone.utc),
            source="Azure SDK Blog",
            kind=RecordKind.BLOG,
            author="Jane Doe",
            categories=["SDK", "Azure"],
        ),
        Record(
            id="rec-3",
            title="AI Foundry deep dive",
            link="https://example.com/3",
            published_at=datetime(2025, 1, 12, tzinfo=timezone.utc),
            source="Microsoft Developer",
            kind=RecordKind.VIDEO,
            author="Microsoft",
            categories=["AI"],
        ),
    ]
