"""
PulseFeed Input Validators
==========================

Feed URLs are checked before any network call; read API parameters are
clamped or sanitized before they reach the store.
"""

import re
from urllib.parse import urlparse, urlunparse
from typing import Optional

from .exceptions import ValidationError, ErrorCode

FEED_URL_SCHEMES = ("http", "https")

CATEGORY_MAX_LENGTH = 100
_CATEGORY_DISALLOWED = re.compile(r"[^a-zA-Z0-9\s\-_]")


def normalize_feed_url(url: str) -> str:
    """Return the canonical form of an http(s) feed URL.

    Scheme and host are lower-cased, the fragment is dropped and an empty
    path becomes ``/``.

    Raises:
        ValidationError: missing URL, unsupported scheme or no hostname
    """
    if not isinstance(url, str) or not url.strip():
        raise ValidationError("Feed URL is required", error_code=ErrorCode.VALIDATION_REQUIRED_FIELD, field_name="url")

    try:
        parts = urlparse(url.strip())
    except ValueError as e:
        raise ValidationError(f"Unparseable URL: {e}", field_name="url") from e

    scheme = parts.scheme.lower()
    if scheme not in FEED_URL_SCHEMES:
        raise ValidationError(f"Unsupported URL scheme '{parts.scheme}'", field_name="url")
    if not parts.hostname:
        raise ValidationError("Feed URL has no hostname", field_name="url")

    return urlunparse(parts._replace(scheme=scheme, netloc=parts.netloc.lower(), path=parts.path or "/", fragment=""))


def validate_limit(value: Optional[str], default: int = 50, maximum: int = 1000) -> int:
    """Parse a `limit` query parameter.

    Non-numeric or non-positive values fall back to `default`; values above
    `maximum` are capped.
    """
    try:
        limit = int(value) if value is not None else default
    except (TypeError, ValueError):
        return default

    if limit < 1:
        return default
    return min(limit, maximum)


def validate_category(category: Optional[str]) -> Optional[str]:
    """Sanitize a category parameter.

    Keeps letters, digits, whitespace, hyphens and underscores. Returns None
    when nothing usable remains or the value exceeds 100 characters.
    """
    if not category or not isinstance(category, str):
        return None

    sanitized = _CATEGORY_DISALLOWED.sub("", category.strip())
    if not sanitized or len(sanitized) > CATEGORY_MAX_LENGTH:
        return None
    return sanitized
