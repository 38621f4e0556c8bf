"""
PulseFeed - Feed Ingestion and Normalization
============================================

Ingests RSS/Atom feeds (product updates, blog posts, video listings),
normalizes every entry into a common record shape, upserts records into a
store and serves them through a small read API.

Main Components:
- Ingestion: tolerant feed parsing, per-family source adapters, orchestrator, warmup
- Storage: mock, snapshot and live (SQLite) record stores behind one interface
- API: read-only aiohttp endpoints filterable by category
- Scheduler: per-family recurring refresh
"""

__version__ = "1.0.0"
__author__ = "PulseFeed Development Team"
__description__ = "Feed ingestion and normalization pipeline"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import PulseFeedError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "PulseFeedError",
]
