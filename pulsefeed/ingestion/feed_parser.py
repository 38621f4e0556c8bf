"""
Feed Parser
===========

Extracts raw entries from RSS 2.0 and Atom (YouTube) feed content.

Two implementations share the FeedParser interface:
- TagScanFeedParser: tolerant, first-match-wins tag search. Works on
  truncated or malformed markup; a broken entry never hides its siblings.
- FeedparserFeedParser: backed by the feedparser library.

Neither raises for bad input. Content with no recognizable entry blocks
yields an empty list.
"""

import re
from abc import ABC, abstractmethod
from functools import lru_cache
from typing import Iterator, List, Optional

import feedparser

from ..database.models import FeedFormat, RawEntry, dedupe_preserving_order
from ..utils.logging import get_logger_for_component
from .text_normalizer import clean, unwrap_cdata

logger = get_logger_for_component("feed_parser")

RSS_ENTRY_TAG = "item"
ATOM_ENTRY_TAG = "entry"

# Candidate fields in priority order
RSS_DATE_FIELDS = ("pubDate", "published", "dc:date")
ATOM_DATE_FIELDS = ("published", "updated")

LINK_TAG_PATTERN = re.compile(r"<link\b[^>]*>", re.IGNORECASE)
HREF_PATTERN = re.compile(r"""\bhref\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
REL_PATTERN = re.compile(r"""\brel\s*=\s*["']([^"']+)["']""", re.IGNORECASE)


@lru_cache(maxsize=64)
def _element_pattern(tag: str) -> re.Pattern:
    # Opening tag may carry attributes but must not be self-closing.
    return re.compile(
        rf"<{re.escape(tag)}(?:\s[^>]*)?(?<!/)>(.*?)</{re.escape(tag)}\s*>",
        re.IGNORECASE | re.DOTALL,
    )


@lru_cache(maxsize=64)
def _opening_pattern(tag: str) -> re.Pattern:
    return re.compile(rf"<{re.escape(tag)}(?=[\s>/])", re.IGNORECASE)


@lru_cache(maxsize=64)
def _closing_pattern(tag: str) -> re.Pattern:
    return re.compile(rf"</{re.escape(tag)}\s*>", re.IGNORECASE)


@lru_cache(maxsize=64)
def _attribute_pattern(tag: str, attribute: str) -> re.Pattern:
    return re.compile(
        rf"""<{re.escape(tag)}\b[^>]*?\b{re.escape(attribute)}\s*=\s*["']([^"']*)["']""",
        re.IGNORECASE,
    )


def extract_tag(text: str, tag: str) -> str:
    """Return the trimmed inner text of the first `tag` element.

    `link` is special-cased through extract_link. Missing elements give "".
    """
    if not text:
        return ""
    if tag.lower() == "link":
        return extract_link(text)

    match = _element_pattern(tag).search(text)
    return match.group(1).strip() if match else ""


def extract_all(text: str, tag: str) -> List[str]:
    """Inner text of every `tag` element, in document order."""
    if not text:
        return []
    return [m.group(1).strip() for m in _element_pattern(tag).finditer(text)]


def extract_attribute_values(text: str, tag: str, attribute: str) -> List[str]:
    """Values of `attribute` on every `tag` opening tag."""
    if not text:
        return []
    return [m.group(1).strip() for m in _attribute_pattern(tag, attribute).finditer(text)]


def extract_link(text: str) -> str:
    """Extract an entry link.

    Attribute style (`<link href="U" .../>`) wins over enclosed text
    (`<link>U</link>`). Among attribute links, `rel="alternate"` or no rel
    is preferred; other rels (self, replies, enclosure) are a last resort.
    """
    if not text:
        return ""

    fallback_href = ""
    for tag_match in LINK_TAG_PATTERN.finditer(text):
        opening = tag_match.group(0)
        href = HREF_PATTERN.search(opening)
        if not href:
            continue
        rel = REL_PATTERN.search(opening)
        if rel is None or rel.group(1).strip().lower() == "alternate":
            return href.group(1).strip()
        if not fallback_href:
            fallback_href = href.group(1).strip()

    match = _element_pattern("link").search(text)
    if match:
        enclosed = unwrap_cdata(match.group(1)).strip()
        if enclosed:
            return enclosed

    return fallback_href


def iter_blocks(content: str, tag: str) -> Iterator[str]:
    """Yield each `<tag ...>...</tag>` block in `content`.

    A block without its closing tag ends where the next block opens, so one
    truncated entry does not swallow the entries after it.
    """
    openings = [m.start() for m in _opening_pattern(tag).finditer(content)]
    closing = _closing_pattern(tag)

    for index, start in enumerate(openings):
        limit = openings[index + 1] if index + 1 < len(openings) else len(content)
        close = closing.search(content, start, limit)
        yield content[start:close.start()] if close else content[start:limit]


def _first_of(block: str, tags) -> str:
    for tag in tags:
        value = unwrap_cdata(extract_tag(block, tag)).strip()
        if value:
            return value
    return ""


def _scalar(block: str, tag: str) -> str:
    return unwrap_cdata(extract_tag(block, tag)).strip()


def _author_name(block: str) -> str:
    raw = extract_tag(block, "author")
    if "<name" in raw.lower():
        raw = extract_tag(raw, "name")
    return clean(raw)


def _categories(block: str) -> List[str]:
    enclosed = [clean(value) for value in extract_all(block, "category")]
    terms = [clean(value) for value in extract_attribute_values(block, "category", "term")]
    return dedupe_preserving_order(enclosed + terms)


class FeedParser(ABC):
    """Interface shared by all feed parser implementations."""

    @abstractmethod
    def parse(self, raw_content: str, format_hint: FeedFormat = FeedFormat.AUTO) -> List[RawEntry]:
        """Extract raw entries from feed content. Never raises."""


class TagScanFeedParser(FeedParser):
    """Tolerant tag-search parser for RSS 2.0 and Atom."""

    def parse(self, raw_content: str, format_hint: FeedFormat = FeedFormat.AUTO) -> List[RawEntry]:
        if not raw_content:
            return []
        if isinstance(raw_content, bytes):
            raw_content = raw_content.decode("utf-8", errors="replace")

        fmt = self._resolve_format(raw_content, format_hint)

        if fmt == FeedFormat.ATOM:
            entry_tag, extract = ATOM_ENTRY_TAG, self._atom_entry
        else:
            entry_tag, extract = RSS_ENTRY_TAG, self._rss_entry
            # Atom-flavored feeds served as RSS carry <entry> blocks
            if not _opening_pattern(RSS_ENTRY_TAG).search(raw_content):
                entry_tag = ATOM_ENTRY_TAG

        entries = []
        for block in iter_blocks(raw_content, entry_tag):
            try:
                entries.append(extract(block))
            except Exception as e:
                logger.warning(f"Skipping unreadable {entry_tag} block: {e}")
                continue

        logger.debug(f"Parsed {len(entries)} {fmt.value} entries")
        return entries

    @staticmethod
    def _resolve_format(content: str, hint: FeedFormat) -> FeedFormat:
        if hint != FeedFormat.AUTO:
            return hint
        has_items = _opening_pattern(RSS_ENTRY_TAG).search(content) is not None
        has_entries = _opening_pattern(ATOM_ENTRY_TAG).search(content) is not None
        return FeedFormat.ATOM if has_entries and not has_items else FeedFormat.RSS

    def _rss_entry(self, block: str) -> RawEntry:
        return RawEntry(
            title=extract_tag(block, "title"),
            link=extract_link(block),
            description=extract_tag(block, "description") or extract_tag(block, "summary"),
            content=extract_tag(block, "content:encoded") or extract_tag(block, "content"),
            published_at=_first_of(block, RSS_DATE_FIELDS),
            updated_at=_scalar(block, "updated"),
            identifier=_scalar(block, "guid") or _scalar(block, "id"),
            author=_author_name(block),
            creator=clean(extract_tag(block, "dc:creator")),
            categories=_categories(block),
            video_id=_scalar(block, "yt:videoId"),
        )

    def _atom_entry(self, block: str) -> RawEntry:
        media_group = extract_tag(block, "media:group")
        description = (
            extract_tag(media_group, "media:description")
            or extract_tag(block, "media:description")
            or extract_tag(block, "summary")
        )
        return RawEntry(
            title=extract_tag(block, "title"),
            link=extract_link(block),
            description=description,
            content=extract_tag(block, "content"),
            published_at=_first_of(block, ATOM_DATE_FIELDS),
            updated_at=_scalar(block, "updated"),
            identifier=_scalar(block, "id"),
            author=_author_name(block),
            categories=_categories(block),
            video_id=_scalar(block, "yt:videoId"),
        )


class FeedparserFeedParser(FeedParser):
    """Parser backed by feedparser; same RawEntry output as the tag scanner."""

    def parse(self, raw_content: str, format_hint: FeedFormat = FeedFormat.AUTO) -> List[RawEntry]:
        if not raw_content:
            return []

        try:
            parsed = feedparser.parse(raw_content)
        except Exception as e:
            logger.warning(f"feedparser failed on feed content: {e}")
            return []

        if parsed.bozo:
            # Many feeds have minor formatting issues; keep whatever parsed.
            logger.debug(f"Feed parsing warning: {parsed.get('bozo_exception')}")

        entries = []
        for entry in parsed.entries:
            try:
                entries.append(self._to_raw_entry(entry))
            except Exception as e:
                logger.warning(f"Skipping unreadable entry: {e}")
                continue
        return entries

    @staticmethod
    def _to_raw_entry(entry) -> RawEntry:
        content = ""
        if entry.get("content"):
            content = entry.content[0].get("value", "")

        categories = []
        for tag in entry.get("tags") or []:
            term = tag.get("term") if isinstance(tag, dict) else str(tag)
            if term:
                categories.append(term)

        return RawEntry(
            title=entry.get("title", ""),
            link=entry.get("link", ""),
            description=entry.get("summary", ""),
            content=content,
            published_at=entry.get("published", ""),
            updated_at=entry.get("updated", ""),
            identifier=entry.get("id", ""),
            author=entry.get("author", ""),
            categories=dedupe_preserving_order(categories),
            video_id=entry.get("yt_videoid", ""),
        )


_PARSERS = {
    "tag_scan": TagScanFeedParser,
    "feedparser": FeedparserFeedParser,
}


def get_parser(strategy: Optional[str] = None) -> FeedParser:
    """Build the parser for a strategy name (default: tag_scan)."""
    key = getattr(strategy, "value", strategy) or "tag_scan"
    return _PARSERS.get(key, TagScanFeedParser)()


_default_parser = TagScanFeedParser()


def parse(raw_content: str, format_hint: FeedFormat = FeedFormat.AUTO) -> List[RawEntry]:
    """Parse feed content with the default tag-scan parser."""
    return _default_parser.parse(raw_content, format_hint)
