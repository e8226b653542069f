from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from typing import Any, Sequence

from grantscraper.config import IngestSettings
from grantscraper.ingest.base import BaseSource
from grantscraper.ingest.http import PoliteHttpClient
from grantscraper.ingest.orchestrator import ClientFactory, SourceOutcome, run_all
from grantscraper.ingest.registry import register_sources
from grantscraper.io.corpus import CorpusGateway
from grantscraper.reconcile.engine import RetireReason, find_expired, reconcile

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class IngestionSummary:
    inserted: int = 0
    retired: int = 0
    unchanged: int = 0
    expired: int = 0
    rejected: int = 0
    duplicates: int = 0
    dry_run: bool = False
    sources: list[SourceOutcome] = field(default_factory=list)
    retire_reasons: dict[str, int] = field(default_factory=dict)

    @property
    def failed_sources(self) -> list[str]:
        return [outcome.source for outcome in self.sources if not outcome.ok]

    def to_dict(self) -> dict[str, Any]:
        return {
            "inserted": self.inserted,
            "retired": self.retired,
            "unchanged": self.unchanged,
            "expired": self.expired,
            "rejected": self.rejected,
            "duplicates": self.duplicates,
            "dry_run": self.dry_run,
            "retire_reasons": dict(self.retire_reasons),
            "sources": [outcome.to_dict() for outcome in self.sources],
        }


def default_client_factory(settings: IngestSettings) -> ClientFactory:
    def _factory(source: BaseSource) -> PoliteHttpClient:
        return PoliteHttpClient(
            request_delay_seconds=settings.request_delay_seconds,
            timeout_seconds=settings.request_timeout_seconds,
            user_agent=settings.user_agent,
            max_retries=settings.max_retries,
            verify_tls=source.verify_tls,
        )

    return _factory


def run_ingestion(
    gateway: CorpusGateway,
    *,
    sources: Sequence[BaseSource] | None = None,
    settings: IngestSettings | None = None,
    today: date | None = None,
    now: datetime | None = None,
    client_factory: ClientFactory | None = None,
    dry_run: bool = False,
) -> IngestionSummary:
    """Extract every source, reconcile against the live corpus and apply the plan.

    Retirements are written before inserts so a superseded record is never live
    alongside its replacement. Only CorpusUnavailableError escapes.
    """

    resolved_settings = settings or IngestSettings()
    resolved_sources = (
        list(sources)
        if sources is not None
        else register_sources(max_listing_pages=resolved_settings.max_listing_pages)
    )
    effective_today = today or resolved_settings.today()
    applied_at = now or datetime.now(tz=UTC)

    batch = run_all(
        resolved_sources,
        client_factory=client_factory or default_client_factory(resolved_settings),
        max_workers=resolved_settings.max_concurrent_sources,
    )
    if batch.failed_sources:
        logger.warning("Sources failed this run: %s", ", ".join(batch.failed_sources))

    live = gateway.load_live()
    plan = reconcile(
        batch.records,
        live,
        today=effective_today,
        scope_sites=batch.succeeded_sites,
        keep_links=batch.failed_links,
    )

    summary = IngestionSummary(
        unchanged=len(plan.unchanged),
        expired=len(plan.expired),
        rejected=len(plan.rejected),
        duplicates=len(plan.duplicates),
        dry_run=dry_run,
        sources=batch.outcomes,
        retire_reasons=plan.reason_counts(),
    )
    if dry_run:
        summary.retired = len(plan.to_retire)
        summary.inserted = len(plan.to_insert)
        logger.info("Dry run plan: %s", plan.counts())
        return summary

    summary.retired = gateway.retire_many(plan.to_retire, at=applied_at)
    summary.inserted = len(gateway.insert_many(plan.to_insert, at=applied_at))
    logger.info(
        "Ingestion applied: inserted=%d retired=%d unchanged=%d",
        summary.inserted,
        summary.retired,
        summary.unchanged,
    )
    return summary


def retire_outdated(gateway: CorpusGateway, *, today: date, now: datetime | None = None) -> int:
    """Retire every live record whose deadline has passed, independent of scraping."""

    expired = find_expired(gateway.load_live(), today)
    if not expired:
        return 0
    retired = gateway.retire_many([record.id for record in expired], at=now or datetime.now(tz=UTC))
    logger.info("Retired %d outdated records (%s).", retired, RetireReason.EXPIRED.value)
    return retired
