"""
Warmup Coordinator
==================

Cold-start ingestion. An empty store gets a wide historical backfill; a
populated store gets a regular refresh. All families run concurrently.
Warmup is best-effort and never raises.
"""

import asyncio
from typing import Dict, Optional

from ..database.models import IngestOptions
from ..utils.exceptions import handle_exception
from ..utils.logging import PerformanceLogger, get_logger_for_component
from .orchestrator import IngestionOrchestrator


class WarmupCoordinator:
    """Decides between backfill and refresh at startup."""

    def __init__(self, orchestrator: IngestionOrchestrator, store=None, backfill_days: Optional[int] = None):
        self.orchestrator = orchestrator
        self.store = store if store is not None else orchestrator.store
        self.backfill_days = (
            backfill_days
            if backfill_days is not None
            else orchestrator.settings.ingestion.warmup_days_back
        )
        self.logger = get_logger_for_component("warmup")

    async def _is_first_run(self) -> bool:
        try:
            return bool(await self.store.is_first_run())
        except Exception as e:
            self.logger.warning(f"First-run check failed, assuming populated store: {e}")
            return False

    async def warmup(self) -> Dict[str, int]:
        """Run every family once.

        Returns:
            Records saved per family (families that failed are omitted)
        """
        results: Dict[str, int] = {}
        try:
            first_run = await self._is_first_run()
            options = IngestOptions(days_back=self.backfill_days) if first_run else IngestOptions()

            if first_run:
                self.logger.info(f"Empty store, backfilling {self.backfill_days} days")
            else:
                self.logger.info("Store populated, running regular refresh")

            families = self.orchestrator.settings.feeds.families()
            with PerformanceLogger(self.logger, "warmup", first_run=first_run):
                outcomes = await asyncio.gather(
                    *(self.orchestrator.run(family, options) for family in families),
                    return_exceptions=True,
                )

            for family, outcome in zip(families, outcomes):
                if isinstance(outcome, BaseException):
                    handle_exception(outcome, self.logger, f"warmup of {family.name}", {"family": family.name})
                else:
                    results[family.name] = outcome

        except Exception as e:
            self.logger.error(f"Warmup failed: {e}", exc_info=True)

        return results
