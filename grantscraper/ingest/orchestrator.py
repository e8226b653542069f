from __future__ import annotations

import concurrent.futures
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Sequence

from grantscraper.normalize.schema import CanonicalRecord

from .base import BaseSource

logger = logging.getLogger(__name__)

ClientFactory = Callable[[BaseSource], Any]


def _exception_summary(exc: BaseException) -> dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}


@dataclass(slots=True)
class SourceOutcome:
    source: str
    site: str
    records: list[CanonicalRecord] = field(default_factory=list)
    error: dict[str, str] | None = None
    duration_seconds: float = 0.0
    stats: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def status(self) -> str:
        if not self.ok:
            return "failed"
        if self.stats.get("details_failed"):
            return "partial"
        return "succeeded"

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "site": self.site,
            "status": self.status,
            "records": len(self.records),
            "duration_seconds": round(self.duration_seconds, 3),
            "error": self.error,
            **self.stats,
        }


@dataclass(slots=True)
class ExtractionBatch:
    outcomes: list[SourceOutcome]

    @property
    def records(self) -> list[CanonicalRecord]:
        return [record for outcome in self.outcomes if outcome.ok for record in outcome.records]

    @property
    def succeeded_sites(self) -> list[str]:
        return [outcome.site for outcome in self.outcomes if outcome.ok]

    @property
    def failed_links(self) -> list[str]:
        """Listing links that failed inside sources which otherwise succeeded."""
        return [
            failure["url"]
            for outcome in self.outcomes
            if outcome.ok
            for failure in outcome.stats.get("failures", [])
        ]

    @property
    def failed_sources(self) -> list[str]:
        return [outcome.source for outcome in self.outcomes if not outcome.ok]


def _run_source(source: BaseSource, client_factory: ClientFactory) -> SourceOutcome:
    started_at = time.monotonic()
    outcome = SourceOutcome(source=source.name, site=source.site)
    client = None
    try:
        client = client_factory(source)
        outcome.records = list(source.run(client))
        logger.info("Source=%s records=%d", source.name, len(outcome.records))
    except Exception as exc:
        outcome.records = []
        outcome.error = _exception_summary(exc)
        logger.exception("Source %s failed. Continuing with remaining sources.", source.name)
    finally:
        close = getattr(client, "close", None)
        if callable(close):
            close()
        outcome.duration_seconds = time.monotonic() - started_at
        outcome.stats = source.stats.to_dict()
    return outcome


def run_all(
    sources: Sequence[BaseSource],
    *,
    client_factory: ClientFactory,
    max_workers: int | None = None,
) -> ExtractionBatch:
    """Run every source on its own worker thread and gather per-source outcomes.

    A failing source yields a failed outcome; it never aborts the others. Outcomes,
    and therefore batch records, keep the order of `sources`.
    """

    if not sources:
        return ExtractionBatch(outcomes=[])

    workers = max(1, max_workers or len(sources))
    with concurrent.futures.ThreadPoolExecutor(max_workers=workers, thread_name_prefix="source") as executor:
        futures = [executor.submit(_run_source, source, client_factory) for source in sources]
        outcomes = [future.result() for future in futures]
    return ExtractionBatch(outcomes=outcomes)
