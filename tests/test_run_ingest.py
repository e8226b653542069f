from __future__ import annotations

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

import pandas as pd

from grantscraper.config import IngestSettings
from grantscraper.errors import SourceFetchError
from grantscraper.ingest.base import BaseSource
from grantscraper.io.corpus import InMemoryCorpusGateway, ParquetCorpusGateway
from grantscraper.normalize.schema import CanonicalRecord, Deadline
from grantscraper.pipeline import retire_outdated, run_ingestion
from scripts import retire_outdated as retire_script
from scripts.run_ingest import main, run_ingest

RUN_DATE = date(2026, 1, 15)
NOW = datetime(2026, 1, 15, 1, 0, tzinfo=UTC)


class _FakeSource(BaseSource):
    def __init__(self, name: str, listings: list[tuple[str, Deadline]]) -> None:
        super().__init__()
        self.name = name
        self.site = name.upper()
        self.listings = listings

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        return [
            self.build_record(name=title, link=f"https://{self.name}.example/{index}", deadline=deadline)
            for index, (title, deadline) in enumerate(self.listings)
        ]


class _BrokenSource(BaseSource):
    def __init__(self, name: str = "broken", site: str = "BROKEN") -> None:
        super().__init__()
        self.name = name
        self.site = site

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        raise SourceFetchError(f"https://{self.name}.example/", reason="ConnectionError: refused")


def _client_factory(source: BaseSource) -> object:
    return object()


def _settings(tmp_path: Path) -> IngestSettings:
    return IngestSettings(
        corpus_path=tmp_path / "corpus" / "scholarships.parquet",
        report_dir=tmp_path / "reports",
        request_delay_seconds=0.0,
    )


def test_run_ingestion_inserts_then_settles(tmp_path: Path) -> None:
    gateway = InMemoryCorpusGateway()
    sources = [
        _FakeSource(
            "alpha",
            [("Rolling Grant", Deadline.ongoing()), ("Spring Grant", Deadline.on_date(date(2026, 3, 1)))],
        ),
        _FakeSource("beta", [("Closed Grant", Deadline.passed())]),
    ]

    first = run_ingestion(
        gateway, sources=sources, settings=_settings(tmp_path), today=RUN_DATE, now=NOW, client_factory=_client_factory
    )
    second = run_ingestion(
        gateway, sources=sources, settings=_settings(tmp_path), today=RUN_DATE, now=NOW, client_factory=_client_factory
    )

    assert first.inserted == 2
    assert first.expired == 1
    assert first.retired == 0
    assert second.inserted == 0
    assert second.retired == 0
    assert second.unchanged == 2
    assert sorted(record.record.name for record in gateway.load_live()) == ["Rolling Grant", "Spring Grant"]


def test_failed_source_keeps_its_live_records(tmp_path: Path) -> None:
    gateway = InMemoryCorpusGateway()
    run_ingestion(
        gateway,
        sources=[_FakeSource("alpha", [("Rolling Grant", Deadline.ongoing())])],
        today=RUN_DATE,
        now=NOW,
        client_factory=_client_factory,
    )

    summary = run_ingestion(
        gateway,
        sources=[_BrokenSource("alpha", "ALPHA"), _FakeSource("beta", [("Beta Grant", Deadline.ongoing())])],
        today=RUN_DATE,
        now=NOW,
        client_factory=_client_factory,
    )

    assert summary.failed_sources == ["alpha"]
    assert summary.retired == 0
    assert sorted(record.record.name for record in gateway.load_live()) == ["Beta Grant", "Rolling Grant"]


def test_dry_run_reports_without_writing() -> None:
    gateway = InMemoryCorpusGateway()

    summary = run_ingestion(
        gateway,
        sources=[_FakeSource("alpha", [("Rolling Grant", Deadline.ongoing())])],
        today=RUN_DATE,
        client_factory=_client_factory,
        dry_run=True,
    )

    assert summary.dry_run
    assert summary.inserted == 1
    assert gateway.records == []


def test_retire_outdated_only_touches_expired_records() -> None:
    gateway = InMemoryCorpusGateway()
    gateway.insert_many(
        [
            _FakeSource("alpha", []).build_record(
                name="Old Grant", link="https://alpha.example/0", deadline=Deadline.on_date(date(2026, 1, 15))
            ),
            _FakeSource("alpha", []).build_record(
                name="Rolling Grant", link="https://alpha.example/1", deadline=Deadline.ongoing()
            ),
        ],
        at=NOW,
    )

    assert retire_outdated(gateway, today=RUN_DATE, now=NOW) == 1
    assert retire_outdated(gateway, today=RUN_DATE, now=NOW) == 0
    assert [record.record.name for record in gateway.load_live()] == ["Rolling Grant"]


def test_run_ingest_writes_corpus_and_report(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    sources = [
        _FakeSource("alpha", [("Rolling Grant", Deadline.ongoing())]),
        _BrokenSource(),
    ]
    monkeypatch.setattr("scripts.run_ingest.register_sources", lambda **kwargs: sources)

    report = run_ingest(settings=_settings(tmp_path), run_date=RUN_DATE)

    report_path = Path(report["artifact_paths"]["report"])
    assert report_path.exists()
    persisted = json.loads(report_path.read_text(encoding="utf-8"))
    assert persisted["status"] == "partial"
    assert persisted["run_date"] == "2026-01-15"
    assert persisted["sources"]["attempted"] == ["alpha", "broken"]
    assert persisted["sources"]["failed"] == ["broken"]
    assert persisted["summary"]["inserted"] == 1
    assert persisted["exception_summary"] is None

    corpus = pd.read_parquet(tmp_path / "corpus" / "scholarships.parquet")
    assert corpus["name"].tolist() == ["Rolling Grant"]


def test_run_ingest_reports_failure_when_corpus_is_unreadable(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    settings = _settings(tmp_path)
    settings.corpus_path.parent.mkdir(parents=True)
    settings.corpus_path.write_text("not parquet", encoding="utf-8")
    monkeypatch.setattr(
        "scripts.run_ingest.register_sources",
        lambda **kwargs: [_FakeSource("alpha", [("Rolling Grant", Deadline.ongoing())])],
    )

    report = run_ingest(settings=settings, run_date=RUN_DATE)

    assert report["status"] == "failed"
    assert report["exception_summary"]["type"] == "CorpusUnavailableError"
    assert report["summary"] is None
    assert Path(report["artifact_paths"]["report"]).exists()


def test_main_returns_non_zero_when_every_source_fails(monkeypatch, tmp_path: Path) -> None:  # noqa: ANN001
    monkeypatch.setattr("scripts.run_ingest.register_sources", lambda **kwargs: [_BrokenSource()])

    exit_code = main(
        [
            "--corpus-path",
            str(tmp_path / "corpus.parquet"),
            "--report-dir",
            str(tmp_path / "reports"),
            "--date",
            "20260115",
            "--request-delay-seconds",
            "0",
        ]
    )

    assert exit_code == 1
    assert len(list((tmp_path / "reports").glob("ingest_*.json"))) == 1


def test_retire_outdated_script(tmp_path: Path) -> None:
    corpus_path = tmp_path / "scholarships.parquet"
    ParquetCorpusGateway(corpus_path).insert_many(
        [
            _FakeSource("alpha", []).build_record(
                name="Old Grant", link="https://alpha.example/0", deadline=Deadline.passed()
            ),
        ],
        at=NOW,
    )

    assert retire_script.main(["--corpus-path", str(corpus_path), "--date", "20260115"]) == 0
    assert ParquetCorpusGateway(corpus_path).load_live() == []

    corpus_path.write_text("not parquet", encoding="utf-8")
    assert retire_script.main(["--corpus-path", str(corpus_path)]) == 1


class _FlakyDetailSource(_FakeSource):
    """Fails the detail page of its second listing on every run."""

    def extract(self, http_client: Any) -> list[CanonicalRecord]:
        records = super().extract(http_client)
        self.stats.details_failed += 1
        self.stats.add_failure(records[1].source.link, "SourceFetchError")
        return records[:1]


def test_listing_that_failed_this_run_stays_live(tmp_path: Path) -> None:
    gateway = InMemoryCorpusGateway()
    listings = [("Rolling Grant", Deadline.ongoing()), ("Slow Grant", Deadline.ongoing())]
    run_ingestion(
        gateway,
        sources=[_FakeSource("alpha", listings)],
        today=RUN_DATE,
        now=NOW,
        client_factory=_client_factory,
    )
    before = {record.record.name: record.id for record in gateway.load_live()}

    summary = run_ingestion(
        gateway,
        sources=[_FlakyDetailSource("alpha", listings)],
        today=RUN_DATE,
        now=NOW,
        client_factory=_client_factory,
    )

    assert summary.sources[0].status == "partial"
    assert summary.retired == 0
    assert {record.record.name: record.id for record in gateway.load_live()} == before
