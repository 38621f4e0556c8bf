"""
PulseFeed Scheduler
===================

Recurring per-family refresh.
"""

from .refresh_scheduler import RefreshScheduler

__all__ = ["RefreshScheduler"]
