"""
Unit Tests for Source Adapters
==============================

Tests for RawEntry -> Record mapping: per-family defaults, id precedence,
timestamps, recency cutoffs and discards.
"""

from datetime import datetime, timedelta, timezone

import pytest

from pulsefeed.config.settings import IngestionSettings
from pulsefeed.database.models import FeedFormat, FeedSource, IngestOptions, RawEntry, RecordKind
from pulsefeed.ingestion.adapters import (
    BlogsAdapter,
    UpdatesAdapter,
    VideosAdapter,
    get_adapter,
    parse_timestamp,
)
from pulsefeed.ingestion.feed_parser import parse


@pytest.fixture
def updates_source():
    return FeedSource(name="Azure Updates", url="https://feeds.example.com/updates")


@pytest.fixture
def blog_source():
    return FeedSource(name="Azure SDK Blog", url="https://feeds.example.com/sdk-blog", categories=["Azure", "SDK"])


@pytest.fixture
def video_source():
    return FeedSource(name="Microsoft Developer", url="https://feeds.example.com/videos", categories=["Video", "Azure"])


class TestParseTimestamp:
    """Test feed timestamp parsing."""

    def test_rfc822(self):
        assert parse_timestamp("Mon, 13 Jan 2025 09:30:00 +0000") == datetime(2025, 1, 13, 9, 30, tzinfo=timezone.utc)

    def test_rfc822_zulu(self):
        assert parse_timestamp("Tue, 14 Jan 2025 17:00:00 Z") == datetime(2025, 1, 14, 17, 0, tzinfo=timezone.utc)

    def test_iso8601_zulu(self):
        assert parse_timestamp("2025-01-05T16:00:00Z") == datetime(2025, 1, 5, 16, 0, tzinfo=timezone.utc)

    def test_iso8601_offset_converted_to_utc(self):
        parsed = parse_timestamp("2025-01-05T18:00:00+02:00")
        assert parsed == datetime(2025, 1, 5, 16, 0, tzinfo=timezone.utc)
        assert parsed.utcoffset() == timedelta(0)

    def test_naive_value_is_utc(self):
        assert parse_timestamp("2025-01-05T16:00:00") == datetime(2025, 1, 5, 16, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday", "2025-13-45"])
    def test_unparseable_gives_none(self, value):
        assert parse_timestamp(value) is None

    @pytest.mark.parametrize("value", ["0001-01-01T00:00:00+01:00", "9999-12-31T23:30:00-01:00"])
    def test_out_of_range_after_utc_conversion_gives_none(self, value):
        assert parse_timestamp(value) is None


class TestUpdatesAdapter:
    """Azure updates feed mapping."""

    def test_maps_fixture_feed(self, updates_rss, updates_source, fixed_now):
        records = UpdatesAdapter().adapt_all(parse(updates_rss, FeedFormat.RSS), updates_source, fixed_now)

        assert len(records) == 3
        first = records[0]
        assert first.id == "update-1001"
        assert first.title == "Generally available: Container Apps GPU profiles"
        assert first.description == "Run GPU workloads & more."
        assert first.link == "https://azure.microsoft.com/updates/1001/"
        assert first.published_at == datetime(2025, 1, 14, 17, 0, tzinfo=timezone.utc)
        assert first.source == "Azure Updates"
        assert first.kind == RecordKind.UPDATE
        assert first.categories == ["Compute", "Containers"]

    def test_missing_categories_default_to_general(self, updates_rss, updates_source, fixed_now):
        records = UpdatesAdapter().adapt_all(parse(updates_rss, FeedFormat.RSS), updates_source, fixed_now)
        assert records[2].categories == ["General"]

    def test_source_categories_follow_feed_categories(self, fixed_now):
        source = FeedSource(name="Updates", url="https://feeds.example.com/u", categories=["Azure", "Compute"])
        raw = RawEntry(title="T", link="https://example.com/t", categories=["Compute", "AI"])
        record = UpdatesAdapter().adapt(raw, source, fixed_now)
        assert record.categories == ["Compute", "AI", "Azure"]

    def test_no_default_cutoff(self, updates_source, fixed_now):
        raw = RawEntry(title="Old", link="https://example.com/old", published_at="Mon, 01 Jan 2018 00:00:00 +0000")
        assert UpdatesAdapter().adapt(raw, updates_source, fixed_now) is not None


class TestBlogsAdapter:
    """Blog feed mapping."""

    def test_maps_fixture_feed(self, blog_rss, blog_source, fixed_now):
        records = BlogsAdapter().adapt_all(parse(blog_rss, FeedFormat.RSS), blog_source, fixed_now)

        # Third item has a blank title
        assert len(records) == 2
        first, second = records
        assert first.id == "https://devblogs.microsoft.com/azure-sdk/?p=3301"
        assert first.author == "Jane Doe"
        assert first.description == "Release notes for the January release."
        assert first.categories == ["Release", "Azure", "SDK"]
        assert first.kind == RecordKind.BLOG

        assert second.author == "sdk-team@example.com"
        assert second.description == "Patterns for using the aio clients."
        assert second.categories == ["Python", "Azure", "SDK"]

    def test_creator_wins_over_author(self, blog_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", author="a@example.com", creator="Jane")
        assert BlogsAdapter().adapt(raw, blog_source, fixed_now).author == "Jane"


class TestVideosAdapter:
    """YouTube feed mapping."""

    def test_default_cutoff_drops_old_videos(self, youtube_atom, video_source, fixed_now):
        records = VideosAdapter().adapt_all(parse(youtube_atom, FeedFormat.ATOM), video_source, fixed_now)
        assert [r.id for r in records] == ["yt:video:abc123XYZ01", "yt:video:new789XYZ03"]

    def test_days_back_overrides_default_cutoff(self, youtube_atom, video_source, fixed_now):
        entries = parse(youtube_atom, FeedFormat.ATOM)

        wide = VideosAdapter().adapt_all(entries, video_source, fixed_now, IngestOptions(days_back=450))
        assert len(wide) == 3

        narrow = VideosAdapter().adapt_all(entries, video_source, fixed_now, IngestOptions(days_back=7))
        assert [r.id for r in narrow] == ["yt:video:new789XYZ03"]

    def test_video_fields(self, youtube_atom, video_source, fixed_now):
        first = VideosAdapter().adapt_all(parse(youtube_atom, FeedFormat.ATOM), video_source, fixed_now)[0]
        assert first.link == "https://www.youtube.com/watch?v=abc123XYZ01"
        assert first.author == "Microsoft Developer"
        assert first.description == "Learn how to build & ship agents with Azure AI Foundry."
        assert first.published_at == datetime(2025, 1, 5, 16, 0, tzinfo=timezone.utc)
        assert first.categories == ["Video", "Azure"]
        assert first.kind == RecordKind.VIDEO

    def test_missing_author_defaults(self, youtube_atom, video_source, fixed_now):
        records = VideosAdapter().adapt_all(parse(youtube_atom, FeedFormat.ATOM), video_source, fixed_now)
        assert records[1].author == "Microsoft"

    def test_link_built_from_video_host(self, video_source, fixed_now):
        adapter = VideosAdapter(IngestionSettings(video_host="youtube.example.com"))
        raw = RawEntry(title="T", link="https://elsewhere.example.com/x", video_id="vid42", identifier="yt:video:vid42")
        assert adapter.adapt(raw, video_source, fixed_now).link == "https://youtube.example.com/watch?v=vid42"

    def test_id_synthesized_from_video_id(self, video_source, fixed_now):
        raw = RawEntry(title="T", video_id="vid42")
        record = VideosAdapter().adapt(raw, video_source, fixed_now)
        assert record.id == "video-vid42"
        assert record.link == "https://www.youtube.com/watch?v=vid42"


class TestSharedBehavior:
    """Behavior common to every adapter."""

    @pytest.mark.parametrize("raw", [
        RawEntry(title="", link="https://example.com/a"),
        RawEntry(title="<![CDATA[   ]]>", link="https://example.com/a"),
        RawEntry(title="Title", link=""),
    ])
    def test_discards_entries_without_title_or_link(self, raw, updates_source, fixed_now):
        assert UpdatesAdapter().adapt(raw, updates_source, fixed_now) is None

    def test_id_precedence(self, updates_source, fixed_now):
        adapter = UpdatesAdapter()
        with_guid = RawEntry(title="T", link="https://example.com/t", identifier="guid-1")
        without_guid = RawEntry(title="T", link="https://example.com/t")
        assert adapter.adapt(with_guid, updates_source, fixed_now).id == "guid-1"
        assert adapter.adapt(without_guid, updates_source, fixed_now).id == "https://example.com/t"

    def test_same_entry_same_id(self, updates_rss, updates_source, fixed_now):
        adapter = UpdatesAdapter()
        first = [r.id for r in adapter.adapt_all(parse(updates_rss), updates_source, fixed_now)]
        second = [r.id for r in adapter.adapt_all(parse(updates_rss), updates_source, fixed_now)]
        assert first == second

    def test_missing_timestamp_defaults_to_now(self, updates_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", published_at="not a date")
        assert UpdatesAdapter().adapt(raw, updates_source, fixed_now).published_at == fixed_now

    def test_updated_used_when_published_missing(self, updates_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", updated_at="2025-01-02T00:00:00Z")
        record = UpdatesAdapter().adapt(raw, updates_source, fixed_now)
        assert record.published_at == datetime(2025, 1, 2, tzinfo=timezone.utc)

    def test_description_falls_back_to_content(self, updates_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", content="<p>Full   body\n text</p>")
        assert UpdatesAdapter().adapt(raw, updates_source, fixed_now).description == "Full body text"

    def test_description_truncated(self, updates_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", description="x" * 800)
        assert len(UpdatesAdapter().adapt(raw, updates_source, fixed_now).description) == 500

    def test_truncation_length_configurable(self, updates_source, fixed_now):
        adapter = UpdatesAdapter(IngestionSettings(description_max_length=100))
        raw = RawEntry(title="T", link="https://example.com/t", description="word " * 100)
        assert len(adapter.adapt(raw, updates_source, fixed_now).description) == 100

    def test_days_back_zero_keeps_only_now(self, updates_source, fixed_now):
        older = RawEntry(title="T", link="https://example.com/t", published_at="2025-01-15T11:00:00Z")
        assert UpdatesAdapter().adapt(older, updates_source, fixed_now, IngestOptions(days_back=0)) is None

    def test_out_of_range_timestamp_defaults_to_now(self, updates_source, fixed_now):
        raw = RawEntry(title="T", link="https://example.com/t", published_at="0001-01-01T00:00:00+01:00")
        assert UpdatesAdapter().adapt(raw, updates_source, fixed_now).published_at == fixed_now

    def test_naive_now_is_treated_as_utc(self, youtube_atom, video_source, fixed_now):
        naive_now = fixed_now.replace(tzinfo=None)
        records = VideosAdapter().adapt_all(parse(youtube_atom, FeedFormat.ATOM), video_source, naive_now)

        assert len(records) == 2
        raw = RawEntry(title="T", link="https://example.com/t")
        assert UpdatesAdapter().adapt(raw, video_source, naive_now).published_at == fixed_now

    def test_enormous_days_back_keeps_everything(self, updates_source, fixed_now):
        ancient = RawEntry(title="T", link="https://example.com/t", published_at="1990-01-01T00:00:00Z")
        record = UpdatesAdapter().adapt(ancient, updates_source, fixed_now, IngestOptions(days_back=1_000_000))
        assert record.published_at == datetime(1990, 1, 1, tzinfo=timezone.utc)

    def test_adapt_all_drops_only_the_failing_entry(self, updates_source, fixed_now):
        class FussyAdapter(UpdatesAdapter):
            def _author(self, raw):
                if raw.identifier == "bad":
                    raise RuntimeError("unexpected entry shape")
                return super()._author(raw)

        entries = [
            RawEntry(title="First", link="https://example.com/1", identifier="one"),
            RawEntry(title="Broken", link="https://example.com/2", identifier="bad"),
            RawEntry(title="Third", link="https://example.com/3", identifier="three"),
        ]

        records = FussyAdapter().adapt_all(entries, updates_source, fixed_now)
        assert [r.id for r in records] == ["one", "three"]

    def test_get_adapter(self):
        assert isinstance(get_adapter(RecordKind.UPDATE), UpdatesAdapter)
        assert isinstance(get_adapter("blog"), BlogsAdapter)
        assert isinstance(get_adapter(RecordKind.VIDEO), VideosAdapter)
