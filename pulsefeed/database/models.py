"""
PulseFeed Data Models
=====================

Pydantic models for persisted records and feed configuration, plus the
ephemeral RawEntry produced by the feed parsers.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Dict, Any

from pydantic import BaseModel, Field, field_validator


def to_utc(value: datetime) -> datetime:
    """Aware UTC datetime; naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class RecordKind(str, Enum):
    """Kind of record, set by the source adapter."""
    UPDATE = "update"
    BLOG = "blog"
    VIDEO = "video"


class FeedFormat(str, Enum):
    """Format hint handed to the feed parser."""
    RSS = "rss"
    ATOM = "atom"
    AUTO = "auto"


def dedupe_preserving_order(values) -> List[str]:
    """Drop blanks and repeats, keeping the first occurrence of each value."""
    seen = set()
    result = []
    for value in values or []:
        if not isinstance(value, str):
            continue
        value = value.strip()
        if value and value not in seen:
            seen.add(value)
            result.append(value)
    return result


@dataclass
class RawEntry:
    """One feed entry in source-native shape.

    Every field degrades to an empty value; the parser never raises for a
    missing field.
    """

    title: str = ""
    link: str = ""
    description: str = ""
    content: str = ""
    published_at: str = ""
    updated_at: str = ""
    identifier: str = ""
    author: str = ""
    creator: str = ""
    categories: List[str] = field(default_factory=list)
    video_id: str = ""

    def to_snapshot_item(self) -> Dict[str, Any]:
        """Serialize into the snapshot fixture item shape."""
        return {
            "title": self.title,
            "description": self.description or self.content,
            "link": self.link,
            "pubDate": self.published_at or self.updated_at,
            "author": self.creator or self.author,
            "categories": list(self.categories),
            "videoId": self.video_id or None,
            "guid": self.identifier or self.link,
        }

    @classmethod
    def from_snapshot_item(cls, item: Dict[str, Any]) -> "RawEntry":
        """Build a RawEntry from a snapshot fixture item."""
        return cls(
            title=item.get("title") or "",
            link=item.get("link") or "",
            description=item.get("description") or "",
            published_at=item.get("pubDate") or "",
            identifier=item.get("guid") or "",
            author=item.get("author") or "",
            categories=[c for c in item.get("categories") or [] if isinstance(c, str)],
            video_id=item.get("videoId") or "",
        )


class Record(BaseModel):
    """Canonical, persisted representation of one feed entry.

    `id` is the idempotency key: re-ingesting the same entry produces the
    same id and overwrites the earlier record.
    """
    id: str = Field(..., min_length=1, description="Stable record identity")
    title: str = Field(..., min_length=1, description="Entry title")
    description: str = Field(default="", description="Plain-text description")
    link: str = Field(..., min_length=1, description="Canonical URL")
    published_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="Publication time (UTC)",
    )
    source: str = Field(..., description="Human-readable source name")
    kind: RecordKind = Field(..., description="Record kind")
    author: str = Field(default="", description="Author name")
    categories: List[str] = Field(default_factory=list, description="Category tags")

    @field_validator("categories", mode="before")
    @classmethod
    def normalize_categories(cls, v):
        """Never null, no duplicates, first-seen order kept."""
        return dedupe_preserving_order(v)

    @field_validator("published_at")
    @classmethod
    def ensure_timezone(cls, v: datetime) -> datetime:
        """Store naive timestamps as UTC."""
        return to_utc(v)

    def to_document(self) -> Dict[str, Any]:
        """JSON-ready document as served by the read API."""
        return self.model_dump(mode="json")

    def __str__(self) -> str:
        return f"Record({self.kind.value}:{self.id})"


class FeedSource(BaseModel):
    """A single configured feed."""
    name: str = Field(..., min_length=1, description="Human-readable source name")
    url: str = Field(..., min_length=1, description="Feed URL")
    categories: List[str] = Field(default_factory=list, description="Default category tags")

    @field_validator("categories", mode="before")
    @classmethod
    def normalize_categories(cls, v):
        return dedupe_preserving_order(v)

    def __str__(self) -> str:
        return f"FeedSource({self.name})"


class FamilyConfig(BaseModel):
    """A group of feeds sharing one source adapter."""
    name: str = Field(..., min_length=1, description="Family name (updates, blogs, videos)")
    kind: RecordKind = Field(..., description="Kind assigned to every record of this family")
    format_hint: FeedFormat = Field(default=FeedFormat.RSS, description="Feed format hint")
    sources: List[FeedSource] = Field(default_factory=list)


class IngestOptions(BaseModel):
    """Per-run ingestion options.

    `days_back` overrides the adapter's default recency cutoff with
    "now minus days_back days".
    """
    days_back: Optional[int] = Field(default=None, ge=0, description="Recency window in days")


@dataclass
class IngestionReport:
    """Outcome of one family run."""
    family: str
    sources_total: int = 0
    sources_failed: int = 0
    entries_parsed: int = 0
    entries_discarded: int = 0
    records_saved: int = 0
    records_failed: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def sources_succeeded(self) -> int:
        return self.sources_total - self.sources_failed
