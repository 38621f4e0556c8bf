"""
PulseFeed Ingestion Module
==========================

Feed fetching, parsing, normalization and ingestion into the record store.

This module handles:
- Text normalization and tolerant RSS/Atom parsing
- Per-family source adapters (updates, blogs, videos)
- Per-family ingestion runs with failure isolation
- Cold-start warmup
"""
