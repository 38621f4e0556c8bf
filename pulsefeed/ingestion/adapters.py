"""
Source Adapters
===============

Map RawEntry objects from the feed parser onto the canonical Record shape.
One adapter per feed family; each applies its family's defaults
(category fallbacks, id synthesis, link building, recency cutoff).

An entry whose title or link is empty after cleaning produces no Record.
"""

from datetime import datetime, timedelta, timezone
from email.utils import parsedate_to_datetime
from typing import Iterable, List, Optional

from pydantic import ValidationError as PydanticValidationError

from ..config.settings import IngestionSettings
from ..database.models import (
    FeedSource,
    IngestOptions,
    RawEntry,
    Record,
    RecordKind,
    dedupe_preserving_order,
    to_utc,
)
from ..utils.logging import get_logger_for_component
from .text_normalizer import clean, collapse_whitespace, truncate

logger = get_logger_for_component("adapters")

DEFAULT_UPDATE_CATEGORIES = ["General"]


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an RFC 822 or ISO 8601 feed timestamp into an aware UTC datetime.

    Returns None when the value is empty, unparseable or outside the
    representable range once converted to UTC.
    """
    if not value:
        return None

    value = value.strip()
    parsed = None

    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError, OverflowError):
        parsed = None

    if parsed is None:
        iso_value = value[:-1] + "+00:00" if value.endswith(("Z", "z")) else value
        try:
            parsed = datetime.fromisoformat(iso_value)
        except ValueError:
            return None

    try:
        return to_utc(parsed)
    except (OverflowError, ValueError):
        return None


class SourceAdapter:
    """Base adapter with the behavior shared by every family.

    Subclasses override the hooks (_link, _author, _categories, _fallback_id,
    _default_max_age_days) to apply their own defaults.
    """

    kind: RecordKind = RecordKind.UPDATE

    def __init__(self, settings: Optional[IngestionSettings] = None):
        self.settings = settings or IngestionSettings()

    def adapt(
        self,
        raw: RawEntry,
        source: FeedSource,
        now: Optional[datetime] = None,
        options: Optional[IngestOptions] = None,
    ) -> Optional[Record]:
        """Convert one raw entry into a Record.

        Args:
            raw: Entry produced by the feed parser
            source: Configured feed the entry came from
            now: Ingestion time; used as the default publish time and as the
                reference point of the recency cutoff
            options: Per-run options (days_back)

        Returns:
            Record, or None when the entry is discarded
        """
        now = to_utc(now) if now else datetime.now(timezone.utc)
        options = options or IngestOptions()

        title = clean(raw.title)
        link = self._link(raw)
        if not title or not link:
            logger.debug(f"Discarding entry without title or link from {source.name}")
            return None

        published_at = (
            parse_timestamp(raw.published_at)
            or parse_timestamp(raw.updated_at)
            or now
        )

        cutoff = self._cutoff(now, options)
        if cutoff is not None and published_at < cutoff:
            logger.debug(
                f"Discarding '{title}' from {source.name}: published "
                f"{published_at.date()} is older than {cutoff.date()}"
            )
            return None

        record_id = clean(raw.identifier) or clean(raw.link) or self._fallback_id(raw)
        if not record_id:
            return None

        try:
            return Record(
                id=record_id,
                title=title,
                description=self._description(raw),
                link=link,
                published_at=published_at,
                source=source.name,
                kind=self.kind,
                author=self._author(raw),
                categories=self._categories(raw, source),
            )
        except PydanticValidationError as e:
            logger.debug(f"Discarding invalid entry '{title}' from {source.name}: {e}")
            return None

    def adapt_all(
        self,
        entries: Iterable[RawEntry],
        source: FeedSource,
        now: Optional[datetime] = None,
        options: Optional[IngestOptions] = None,
    ) -> List[Record]:
        """Adapt a batch, dropping discards.

        An entry that fails to adapt is dropped on its own; the rest of the
        batch is still returned.
        """
        now = to_utc(now) if now else datetime.now(timezone.utc)
        records = []
        for raw in entries:
            try:
                record = self.adapt(raw, source, now, options)
            except Exception as e:
                logger.debug(f"Discarding unadaptable entry from {source.name}: {e}")
                continue
            if record is not None:
                records.append(record)
        return records

    def _description(self, raw: RawEntry) -> str:
        text = clean(raw.description) or clean(raw.content)
        return truncate(collapse_whitespace(text), self.settings.description_max_length)

    def _link(self, raw: RawEntry) -> str:
        return clean(raw.link)

    def _author(self, raw: RawEntry) -> str:
        return clean(raw.author) or clean(raw.creator)

    def _categories(self, raw: RawEntry, source: FeedSource) -> List[str]:
        return dedupe_preserving_order(list(raw.categories) + list(source.categories))

    def _fallback_id(self, raw: RawEntry) -> str:
        return ""

    def _default_max_age_days(self) -> Optional[int]:
        return None

    def _cutoff(self, now: datetime, options: IngestOptions) -> Optional[datetime]:
        days = options.days_back if options.days_back is not None else self._default_max_age_days()
        if days is None:
            return None
        try:
            return now - timedelta(days=days)
        except OverflowError:
            # Window reaches past datetime.min: nothing is too old
            return None


class UpdatesAdapter(SourceAdapter):
    """Product update announcements."""

    kind = RecordKind.UPDATE

    def _categories(self, raw: RawEntry, source: FeedSource) -> List[str]:
        feed_categories = dedupe_preserving_order(raw.categories) or DEFAULT_UPDATE_CATEGORIES
        return dedupe_preserving_order(feed_categories + list(source.categories))


class BlogsAdapter(SourceAdapter):
    """Blog posts. Creator-style author fields win over generic ones."""

    kind = RecordKind.BLOG

    def _author(self, raw: RawEntry) -> str:
        return clean(raw.creator) or clean(raw.author)


class VideosAdapter(SourceAdapter):
    """Video listings (YouTube Atom feeds)."""

    kind = RecordKind.VIDEO

    def _link(self, raw: RawEntry) -> str:
        video_id = clean(raw.video_id)
        if video_id:
            return f"https://{self.settings.video_host}/watch?v={video_id}"
        return clean(raw.link)

    def _author(self, raw: RawEntry) -> str:
        return super()._author(raw) or self.settings.video_default_author

    def _fallback_id(self, raw: RawEntry) -> str:
        video_id = clean(raw.video_id)
        return f"video-{video_id}" if video_id else ""

    def _default_max_age_days(self) -> Optional[int]:
        return self.settings.video_max_age_days


_ADAPTERS = {
    RecordKind.UPDATE: UpdatesAdapter,
    RecordKind.BLOG: BlogsAdapter,
    RecordKind.VIDEO: VideosAdapter,
}


def get_adapter(kind: RecordKind, settings: Optional[IngestionSettings] = None) -> SourceAdapter:
    """Build the adapter for a record kind."""
    return _ADAPTERS[RecordKind(kind)](settings)
