from __future__ import annotations

import argparse
import logging
import sys
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from grantscraper.config import IngestSettings
from grantscraper.ingest.registry import register_sources
from grantscraper.io.artifacts import write_json_atomic
from grantscraper.io.corpus import ParquetCorpusGateway
from grantscraper.pipeline import IngestionSummary, run_ingestion

logger = logging.getLogger("run_ingest")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Scrape every scholarship source and reconcile the results into the corpus."
    )
    parser.add_argument("--corpus-path", type=Path, default=None)
    parser.add_argument("--report-dir", type=Path, default=None)
    parser.add_argument(
        "--date",
        type=str,
        default=None,
        help="Run date in YYYYMMDD format, used for deadline expiry. Defaults to today in the configured timezone.",
    )
    parser.add_argument("--request-delay-seconds", type=float, default=None)
    parser.add_argument("--request-timeout-seconds", type=float, default=None)
    parser.add_argument("--max-listing-pages", type=int, default=None)
    parser.add_argument("--max-concurrent-sources", type=int, default=None)
    parser.add_argument("--dry-run", action="store_true", help="Compute the plan without writing the corpus.")
    return parser.parse_args(argv)


def _resolve_repo_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return ROOT_DIR / path


def _coerce_run_date(run_date: str | None) -> date | None:
    if run_date is None:
        return None
    return datetime.strptime(run_date, "%Y%m%d").date()


def _exception_summary(exc: Exception) -> dict[str, str]:
    return {"type": type(exc).__name__, "message": str(exc)}


def _run_status(summary: IngestionSummary | None, run_exception: dict[str, str] | None) -> str:
    if run_exception is not None or summary is None:
        return "failed"
    if not summary.sources:
        return "success"
    failed = summary.failed_sources
    if len(failed) == len(summary.sources):
        return "failed"
    partial = [outcome for outcome in summary.sources if outcome.status == "partial"]
    if failed or partial:
        return "partial"
    return "success"


def run_ingest(
    *,
    settings: IngestSettings | None = None,
    run_date: date | None = None,
    dry_run: bool = False,
) -> dict[str, Any]:
    resolved = settings or IngestSettings.from_env()
    resolved = resolved.with_overrides(
        corpus_path=_resolve_repo_path(resolved.corpus_path),
        report_dir=_resolve_repo_path(resolved.report_dir),
    )
    started_at = datetime.now(tz=UTC)
    effective_run_date = run_date or resolved.today()
    report_path = resolved.report_dir / f"ingest_{started_at.strftime('%Y%m%dT%H%M%SZ')}.json"

    summary: IngestionSummary | None = None
    run_exception: dict[str, str] | None = None
    try:
        summary = run_ingestion(
            ParquetCorpusGateway(resolved.corpus_path),
            sources=register_sources(max_listing_pages=resolved.max_listing_pages),
            settings=resolved,
            today=effective_run_date,
            now=started_at,
            dry_run=dry_run,
        )
    except Exception as exc:
        run_exception = _exception_summary(exc)
        logger.exception("Ingest run failed.")
    finally:
        finished_at = datetime.now(tz=UTC)
        outcomes = summary.sources if summary is not None else []
        report_payload = {
            "status": _run_status(summary, run_exception),
            "run_started_at": started_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "run_finished_at": finished_at.strftime("%Y-%m-%dT%H:%M:%SZ"),
            "duration_seconds": round((finished_at - started_at).total_seconds(), 3),
            "run_date": effective_run_date.isoformat(),
            "dry_run": dry_run,
            "config": resolved.to_dict(),
            "sources": {
                "attempted": [outcome.source for outcome in outcomes],
                "succeeded": [outcome.source for outcome in outcomes if outcome.status == "succeeded"],
                "partial": [outcome.source for outcome in outcomes if outcome.status == "partial"],
                "failed": [outcome.source for outcome in outcomes if outcome.status == "failed"],
                "details": [outcome.to_dict() for outcome in outcomes],
            },
            "summary": (
                {key: value for key, value in summary.to_dict().items() if key != "sources"}
                if summary is not None
                else None
            ),
            "artifact_paths": {
                "corpus": str(resolved.corpus_path),
                "report": str(report_path),
            },
            "exception_summary": run_exception,
        }
        write_json_atomic(report_payload, report_path)
    return report_payload


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    settings = IngestSettings.from_env().with_overrides(
        corpus_path=args.corpus_path,
        report_dir=args.report_dir,
        request_delay_seconds=args.request_delay_seconds,
        request_timeout_seconds=args.request_timeout_seconds,
        max_listing_pages=args.max_listing_pages,
        max_concurrent_sources=args.max_concurrent_sources,
    )
    report = run_ingest(settings=settings, run_date=_coerce_run_date(args.date), dry_run=args.dry_run)

    summary = report["summary"] or {}
    print(f"Run status: {report['status']}")
    print(f"Wrote ingest report: {report['artifact_paths']['report']}")
    print(
        "Corpus changes: "
        f"inserted={summary.get('inserted', 0)}, "
        f"retired={summary.get('retired', 0)}, "
        f"unchanged={summary.get('unchanged', 0)}"
    )
    return 0 if report["status"] != "failed" else 1


if __name__ == "__main__":
    raise SystemExit(main())
