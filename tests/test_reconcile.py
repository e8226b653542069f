from __future__ import annotations

from datetime import UTC, date, datetime

import pytest

from grantscraper.errors import ReconciliationContractError
from grantscraper.io.corpus import InMemoryCorpusGateway
from grantscraper.normalize.schema import (
    AwardType,
    CanonicalRecord,
    Deadline,
    Level,
    PersistedRecord,
    SourceRef,
)
from grantscraper.reconcile import RetireReason, changed_fields, find_expired, reconcile

TODAY = date(2023, 12, 1)
APPLIED_AT = datetime(2023, 12, 1, 8, 0, tzinfo=UTC)


def _record(name: str, deadline: Deadline | str, *, site: str = "Philscholar", **overrides) -> CanonicalRecord:  # noqa: ANN003
    payload = {
        "name": name,
        "deadline": Deadline.from_value(deadline),
        "level": Level.COLLEGE,
        "award_type": AwardType.GRANT,
        "source": SourceRef(link=f"https://example.org/{name.lower().replace(' ', '-')}", site=site),
        "description": "x",
    }
    payload.update(overrides)
    return CanonicalRecord(**payload)


def _live(record_id: str, record: CanonicalRecord) -> PersistedRecord:
    return PersistedRecord(id=record_id, record=record, created_at=APPLIED_AT)


def _apply(gateway: InMemoryCorpusGateway, batch: list, *, today: date = TODAY) -> None:
    plan = reconcile(batch, gateway.load_live(), today=today)
    gateway.retire_many(plan.to_retire, at=APPLIED_AT)
    gateway.insert_many(plan.to_insert, at=APPLIED_AT)


def test_identical_record_is_left_alone() -> None:
    live = [_live("live-1", _record("ABC Grant", "2024-01-01"))]

    plan = reconcile([_record("ABC Grant", "2024-01-01")], live, today=TODAY)

    assert plan.to_insert == []
    assert plan.to_retire == []
    assert plan.unchanged == ["live-1"]
    assert plan.is_empty


def test_changed_record_supersedes_the_live_one() -> None:
    live = [_live("live-1", _record("ABC Grant", "2024-01-01", benefits=("Tuition",)))]
    incoming = _record("ABC Grant", "2024-01-01", benefits=("Tuition", "Allowance"))

    plan = reconcile([incoming], live, today=TODAY)

    assert plan.to_retire == ["live-1"]
    assert plan.to_insert == [incoming]
    assert plan.retire_reasons == {"live-1": RetireReason.SUPERSEDED}


def test_live_record_missing_from_batch_is_removed() -> None:
    live = [_live("live-1", _record("XYZ Grant", "Ongoing"))]
    incoming = _record("New Grant", "Ongoing")

    plan = reconcile([incoming], live, today=TODAY)

    assert plan.to_retire == ["live-1"]
    assert plan.retire_reasons["live-1"] is RetireReason.REMOVED_UPSTREAM
    assert plan.to_insert == [incoming]


def test_expired_batch_records_are_never_inserted() -> None:
    live = [_live("live-1", _record("Old Award", "Passed"))]

    plan = reconcile(
        [_record("Old Award", "Passed"), _record("Due Today", "2023-12-01")],
        live,
        today=TODAY,
    )

    assert plan.to_insert == []
    assert [record.name for record in plan.expired] == ["Old Award", "Due Today"]
    assert plan.to_retire == ["live-1"]
    assert plan.retire_reasons["live-1"] is RetireReason.EXPIRED


def test_programs_alone_do_not_count_as_a_change() -> None:
    live = [_live("live-1", _record("ABC Grant", "2024-01-01", programs=("Medicine",)))]

    plan = reconcile([_record("ABC Grant", "2024-01-01", programs=("Science",))], live, today=TODAY)

    assert plan.unchanged == ["live-1"]
    assert plan.is_empty


def test_changed_fields_lists_compared_differences() -> None:
    current = _record("ABC Grant", "Ongoing")
    incoming = _record("ABC Grant", "Ongoing", description="y", level=Level.GRADUATE)

    assert changed_fields(current, incoming) == ["description", "level"]


def test_ongoing_and_dated_keys_do_not_match_each_other() -> None:
    live = [_live("live-1", _record("ABC Grant", "Ongoing"))]
    incoming = _record("ABC Grant", "2024-01-01")

    plan = reconcile([incoming], live, today=TODAY)

    assert plan.to_insert == [incoming]
    assert plan.retire_reasons == {"live-1": RetireReason.REMOVED_UPSTREAM}


def test_duplicate_batch_keys_keep_the_first_occurrence() -> None:
    first = _record("ABC Grant", "Ongoing", description="first")
    second = _record("ABC Grant", "Ongoing", description="second")

    plan = reconcile([first, second], [], today=TODAY)

    assert plan.to_insert == [first]
    assert plan.duplicates == [second]
    assert plan.counts()["duplicates"] == 1


def test_duplicate_live_keys_are_healed() -> None:
    live = [
        _live("live-1", _record("ABC Grant", "Ongoing")),
        _live("live-2", _record("ABC Grant", "Ongoing")),
    ]

    plan = reconcile([_record("ABC Grant", "Ongoing")], live, today=TODAY)

    assert plan.unchanged == ["live-1"]
    assert plan.to_retire == ["live-2"]
    assert plan.retire_reasons["live-2"] is RetireReason.DUPLICATE_LIVE


def test_scope_sites_protects_records_of_failed_sources() -> None:
    live = [
        _live("tesda-1", _record("TWSP", "Ongoing", site="TESDA")),
        _live("phil-1", _record("Gone Grant", "Ongoing", site="Philscholar")),
    ]

    plan = reconcile([], live, today=TODAY, scope_sites={"Philscholar"})

    assert plan.to_retire == ["phil-1"]


def test_empty_batch_without_scope_retires_everything() -> None:
    live = [_live("live-1", _record("ABC Grant", "Ongoing"))]

    plan = reconcile([], live, today=TODAY)

    assert plan.to_retire == ["live-1"]
    assert plan.reason_counts()["removed_upstream"] == 1


def test_invalid_batch_entries_are_rejected_individually() -> None:
    good = _record("ABC Grant", "Ongoing")
    batch = [
        "not a record",
        {"name": "No Deadline"},
        {"name": "Mapped Grant", "deadline": "2024-02-01", "source": {"site": "Philscholar"}},
        good,
    ]

    plan = reconcile(batch, [], today=TODAY)

    assert [rejected.index for rejected in plan.rejected] == [0, 1]
    assert [record.name for record in plan.to_insert] == ["Mapped Grant", "ABC Grant"]


def test_non_list_inputs_raise() -> None:
    with pytest.raises(ReconciliationContractError):
        reconcile((_record("ABC Grant", "Ongoing"),), [], today=TODAY)  # type: ignore[arg-type]
    with pytest.raises(ReconciliationContractError):
        reconcile([], None, today=TODAY)  # type: ignore[arg-type]
    with pytest.raises(ReconciliationContractError):
        reconcile([], [_record("ABC Grant", "Ongoing")], today=TODAY)  # type: ignore[list-item]


def test_retired_entries_in_the_live_corpus_are_ignored() -> None:
    retired = PersistedRecord(
        id="old-1",
        record=_record("ABC Grant", "Ongoing"),
        retired_at=APPLIED_AT,
    )

    plan = reconcile([_record("ABC Grant", "Ongoing")], [retired], today=TODAY)

    assert len(plan.to_insert) == 1
    assert plan.to_retire == []


def test_reconcile_is_idempotent_once_applied() -> None:
    gateway = InMemoryCorpusGateway(
        [
            _live("live-1", _record("ABC Grant", "2024-01-01", benefits=("Tuition",))),
            _live("live-2", _record("XYZ Grant", "Ongoing")),
            _live("live-3", _record("Old Award", "2023-11-30")),
        ]
    )
    batch = [
        _record("ABC Grant", "2024-01-01", benefits=("Tuition", "Allowance")),
        _record("New Grant", "Ongoing"),
    ]

    _apply(gateway, batch)
    second = reconcile(batch, gateway.load_live(), today=TODAY)

    assert second.is_empty
    assert sorted(record.record.name for record in gateway.load_live()) == ["ABC Grant", "New Grant"]


def test_every_retired_id_comes_from_the_live_corpus() -> None:
    live = [
        _live("live-1", _record("ABC Grant", "2024-01-01")),
        _live("live-2", _record("ABC Grant", "2024-01-01")),
        _live("live-3", _record("Gone Grant", "Ongoing")),
        _live("live-4", _record("Old Award", "Passed")),
    ]
    batch = [_record("ABC Grant", "2024-01-01", description="new"), _record("Old Award", "Passed")]

    plan = reconcile(batch, live, today=TODAY)
    live_ids = {persisted.id for persisted in live}

    assert set(plan.to_retire) <= live_ids
    assert len(plan.to_retire) == len(set(plan.to_retire))
    assert set(plan.to_retire) == live_ids


def test_find_expired() -> None:
    live = [
        _live("ongoing", _record("A", "Ongoing")),
        _live("passed", _record("B", "Passed")),
        _live("today", _record("C", "2023-12-01")),
        _live("future", _record("D", "2023-12-02")),
    ]

    assert [persisted.id for persisted in find_expired(live, TODAY)] == ["passed", "today"]


def test_keep_links_protects_listings_that_failed_this_run() -> None:
    timed_out = _record("Timed Out Grant", "Ongoing")
    live = [
        _live("live-1", timed_out),
        _live("live-2", _record("Gone Grant", "Ongoing")),
    ]

    plan = reconcile([], live, today=TODAY, scope_sites={"Philscholar"}, keep_links={timed_out.source.link})

    assert plan.to_retire == ["live-2"]
