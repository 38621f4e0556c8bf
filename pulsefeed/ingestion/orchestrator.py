"""
Ingestion Orchestrator
======================

Runs one feed family end to end: fetch each configured source, parse,
adapt, and upsert records one at a time.

Failures are isolated. A source that cannot be fetched or processed is
logged and skipped; a record that cannot be written is logged and
skipped. Only ConfigurationError propagates.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from ..config.settings import PulseFeedSettings, get_settings
from ..database.models import FamilyConfig, FeedSource, IngestOptions, IngestionReport
from ..utils.exceptions import ConfigurationError, FeedFetchError
from ..utils.logging import PerformanceLogger, get_ingestion_logger
from .adapters import SourceAdapter, get_adapter
from .feed_fetcher import FeedFetcher
from .feed_parser import FeedParser, get_parser


class IngestionOrchestrator:
    """Drives ingestion of feed families into a record store."""

    def __init__(
        self,
        store,
        fetcher: Optional[FeedFetcher] = None,
        settings: Optional[PulseFeedSettings] = None,
        parser: Optional[FeedParser] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize orchestrator.

        Args:
            store: Record store receiving upserts
            fetcher: Feed fetcher (default: FeedFetcher from settings)
            settings: Application settings (default: global settings)
            parser: Feed parser (default: configured parser strategy)
            clock: Source of the ingestion time (default: current UTC time)
        """
        self.settings = settings or get_settings()
        self.store = store
        self.fetcher = fetcher or FeedFetcher(self.settings.ingestion)
        self.parser = parser or get_parser(self.settings.ingestion.parser_strategy)
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        self.logger = get_ingestion_logger()

    async def run_family(self, family_name: str, options: Optional[IngestOptions] = None) -> int:
        """Run a configured family by name.

        Raises:
            ConfigurationError: If the family is not configured
        """
        family = self.settings.feeds.get_family(family_name)
        return await self.run(family, options)

    async def run(self, family: FamilyConfig, options: Optional[IngestOptions] = None) -> int:
        """Ingest every source of a family.

        Returns:
            Number of records successfully upserted
        """
        report = await self.run_with_report(family, options)
        return report.records_saved

    async def run_with_report(
        self, family: FamilyConfig, options: Optional[IngestOptions] = None
    ) -> IngestionReport:
        """Ingest every source of a family and return detailed counts."""
        options = options or IngestOptions()
        adapter = get_adapter(family.kind, self.settings.ingestion)
        report = IngestionReport(family=family.name, sources_total=len(family.sources))
        now = self.clock()
        family_logger = self.logger.bind(family=family.name)

        with PerformanceLogger(family_logger, f"{family.name} ingestion", days_back=options.days_back):
            for source in family.sources:
                await self._ingest_source(family, source, adapter, options, now, report)

        family_logger.info(
            f"{family.name}: saved {report.records_saved} records from "
            f"{report.sources_succeeded}/{report.sources_total} sources "
            f"({report.records_failed} write failures)"
        )
        return report

    async def _ingest_source(
        self,
        family: FamilyConfig,
        source: FeedSource,
        adapter: SourceAdapter,
        options: IngestOptions,
        now: datetime,
        report: IngestionReport,
    ) -> None:
        source_logger = self.logger.bind(family=family.name, source=source.name)

        try:
            content = await self.fetcher.fetch(source.url)
            entries = self.parser.parse(content, family.format_hint)
            records = adapter.adapt_all(entries, source, now, options)
        except FeedFetchError as e:
            report.sources_failed += 1
            report.errors.append(f"{source.name}: {e}")
            source_logger.warning(f"Skipping {source.name}: {e}")
            return
        except ConfigurationError:
            raise
        except Exception as e:
            report.sources_failed += 1
            report.errors.append(f"{source.name}: {e}")
            source_logger.error(f"Failed to process {source.name}: {e}", exc_info=True)
            return

        report.entries_parsed += len(entries)
        report.entries_discarded += len(entries) - len(records)
        source_logger.debug(
            f"{source.name}: {len(entries)} entries parsed, {len(records)} records adapted"
        )

        for record in records:
            try:
                await self.store.upsert(record)
                report.records_saved += 1
            except ConfigurationError:
                raise
            except Exception as e:
                report.records_failed += 1
                source_logger.warning(f"Failed to save record {record.id}: {e}")
