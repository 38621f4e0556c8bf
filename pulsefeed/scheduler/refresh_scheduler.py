"""
PulseFeed Refresh Scheduler
===========================

Runs recurring ingestion: an optional warmup at startup, then one asyncio
task per feed family, each on its own interval. A failing cycle is logged
and the family loop carries on; a configuration error stops that family.
"""

import asyncio
from typing import Awaitable, Callable, Dict, List, Optional

from ..config.settings import PulseFeedSettings
from ..ingestion.orchestrator import IngestionOrchestrator
from ..ingestion.warmup import WarmupCoordinator
from ..utils.exceptions import ConfigurationError
from ..utils.logging import get_logger_for_component


class RefreshScheduler:
    """Keeps every feed family refreshed on its configured cadence."""

    def __init__(
        self,
        orchestrator: IngestionOrchestrator,
        warmup: Optional[WarmupCoordinator] = None,
        settings: Optional[PulseFeedSettings] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.orchestrator = orchestrator
        self.settings = settings or orchestrator.settings
        self.warmup = warmup or WarmupCoordinator(orchestrator)
        self.logger = get_logger_for_component("scheduler")
        self._sleep = sleep
        self._tasks: List[asyncio.Task] = []
        self.running = False

        # Execution tracking
        self.cycles_completed: Dict[str, int] = {}
        self.cycle_failures: Dict[str, int] = {}

    async def run_cycle(self, family_name: str) -> int:
        """Run one refresh of a family.

        Returns:
            Records saved (0 when the cycle failed)

        Raises:
            ConfigurationError: If the family or store is misconfigured
        """
        try:
            saved = await self.orchestrator.run_family(family_name)
        except ConfigurationError:
            raise
        except Exception as e:
            self.cycle_failures[family_name] = self.cycle_failures.get(family_name, 0) + 1
            self.logger.error(f"Refresh of {family_name} failed: {e}", exc_info=True)
            return 0

        self.cycles_completed[family_name] = self.cycles_completed.get(family_name, 0) + 1
        return saved

    async def _family_loop(self, family_name: str, interval_seconds: float, run_immediately: bool) -> None:
        if not run_immediately:
            await self._sleep(interval_seconds)

        while self.running:
            try:
                saved = await self.run_cycle(family_name)
            except ConfigurationError as e:
                self.logger.critical(f"Stopping {family_name} refresh: {e}")
                return

            self.logger.info(
                f"{family_name} refresh saved {saved} records; next in {interval_seconds / 3600:.1f}h"
            )
            await self._sleep(interval_seconds)

    async def start(self) -> None:
        """Warm up (if configured) and launch one task per family."""
        if self.running:
            return
        self.running = True

        warmed_up = False
        if self.settings.scheduler.warmup_on_start:
            await self.warmup.warmup()
            warmed_up = True

        for family in self.settings.feeds.families():
            interval = self.settings.scheduler.interval_for(family.name) * 3600
            self.logger.info(f"Scheduling {family.name} every {interval / 3600:.1f}h")
            task = asyncio.create_task(
                self._family_loop(family.name, interval, run_immediately=not warmed_up),
                name=f"refresh-{family.name}",
            )
            self._tasks.append(task)

    async def run_forever(self) -> None:
        """Start and wait until every family loop ends or stop() is called."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        except asyncio.CancelledError:
            self.logger.info("Refresh scheduler cancelled")
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Cancel all family loops."""
        self.running = False
        for task in self._tasks:
            task.cancel()
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.logger.info("Refresh scheduler stopped")
