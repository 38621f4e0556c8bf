"""
PulseFeed Read API
==================

Read-only HTTP endpoints over the record store.
"""

from .app import create_app

__all__ = ["create_app"]
