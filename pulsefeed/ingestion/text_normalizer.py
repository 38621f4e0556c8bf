"""
Text Normalizer
===============

Turns raw feed text into plain text: unwraps CDATA sections, extracts the
text content of any markup (decoding entities on the way) and trims
surrounding whitespace. Escaped HTML such as ``&lt;p&gt;`` is unescaped
and stripped too. Never raises.
"""

import re
import html
from typing import Optional

from bs4 import BeautifulSoup

from ..utils.logging import get_logger_for_component

CDATA_PATTERN = re.compile(r"<!\[CDATA\[(.*?)\]\]>", re.DOTALL)
TAG_PATTERN = re.compile(r"<[^>]+>")
SCRIPT_STYLE_PATTERN = re.compile(r"<(script|style)[^>]*>.*?</\1>", re.IGNORECASE | re.DOTALL)
# Markup that only shows up once entities are decoded (escaped HTML).
DECODED_TAG_PATTERN = re.compile(r"</?[a-zA-Z][^<>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")

NON_CONTENT_ELEMENTS = ["script", "style"]
HTML_PARSER = "html.parser"

logger = get_logger_for_component("normalizer")


def unwrap_cdata(text: str) -> str:
    """Replace every CDATA section with its contents."""
    return CDATA_PATTERN.sub(lambda m: m.group(1), text)


def extract_text(markup: str) -> str:
    """Text content of an HTML fragment, entities decoded."""
    soup = BeautifulSoup(markup, HTML_PARSER)
    for element in soup(NON_CONTENT_ELEMENTS):
        element.decompose()
    return soup.get_text().replace("\xa0", " ")


def _extract_text_fallback(markup: str) -> str:
    """Regex extraction for markup BeautifulSoup could not handle."""
    text = SCRIPT_STYLE_PATTERN.sub("", markup)
    text = TAG_PATTERN.sub("", text)
    text = html.unescape(text).replace("\xa0", " ")
    return DECODED_TAG_PATTERN.sub("", text)


def clean(text: Optional[str]) -> str:
    """Normalize raw feed text to plain text.

    Args:
        text: Raw text, possibly wrapped in CDATA and containing markup

    Returns:
        Plain text, stripped of surrounding whitespace. Empty string for
        empty or None input.
    """
    if not text or not text.strip():
        return ""

    text = unwrap_cdata(text)
    try:
        text = extract_text(text)
        # Escaped HTML decodes into real tags; one more pass removes them
        if DECODED_TAG_PATTERN.search(text):
            text = extract_text(text)
    except Exception as e:
        logger.warning(f"Failed to extract text, using fallback: {e}")
        text = _extract_text_fallback(text)

    return text.strip()


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace into single spaces."""
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def truncate(text: str, max_length: int) -> str:
    """Cut text to at most `max_length` characters."""
    if max_length <= 0:
        return ""
    return text[:max_length]
