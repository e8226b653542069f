from __future__ import annotations

import logging
from collections.abc import Collection, Mapping
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any

from grantscraper.errors import ReconciliationContractError
from grantscraper.normalize.canonical_id import IdentityKey
from grantscraper.normalize.schema import CanonicalRecord, Deadline, DeadlineKind, PersistedRecord

logger = logging.getLogger(__name__)

# Fields whose difference means the upstream listing changed. Programs are derived
# by the classifier and are not compared.
COMPARED_FIELDS = (
    "description",
    "award_type",
    "level",
    "eligibility",
    "benefits",
    "requirements",
    "source",
    "misc",
)


class RetireReason(str, Enum):
    SUPERSEDED = "superseded"
    REMOVED_UPSTREAM = "removed_upstream"
    EXPIRED = "expired"
    DUPLICATE_LIVE = "duplicate_live"


class DeadlineClass(str, Enum):
    ONGOING = "ongoing"
    DATED = "dated"


def deadline_class(deadline: Deadline) -> DeadlineClass:
    if deadline.kind is DeadlineKind.ONGOING:
        return DeadlineClass.ONGOING
    return DeadlineClass.DATED


@dataclass(slots=True)
class RejectedRecord:
    index: int
    reason: str


@dataclass(slots=True)
class ReconcilePlan:
    to_insert: list[CanonicalRecord] = field(default_factory=list)
    to_retire: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)
    expired: list[CanonicalRecord] = field(default_factory=list)
    rejected: list[RejectedRecord] = field(default_factory=list)
    duplicates: list[CanonicalRecord] = field(default_factory=list)
    retire_reasons: dict[str, RetireReason] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.to_insert and not self.to_retire

    def retire(self, record_id: str, reason: RetireReason) -> None:
        if record_id in self.retire_reasons:
            return
        self.retire_reasons[record_id] = reason
        self.to_retire.append(record_id)

    def reason_counts(self) -> dict[str, int]:
        counts = {reason.value: 0 for reason in RetireReason}
        for reason in self.retire_reasons.values():
            counts[reason.value] += 1
        return counts

    def counts(self) -> dict[str, int]:
        return {
            "to_insert": len(self.to_insert),
            "to_retire": len(self.to_retire),
            "unchanged": len(self.unchanged),
            "expired": len(self.expired),
            "rejected": len(self.rejected),
            "duplicates": len(self.duplicates),
        }


def changed_fields(current: CanonicalRecord, incoming: CanonicalRecord) -> list[str]:
    return [name for name in COMPARED_FIELDS if getattr(current, name) != getattr(incoming, name)]


def find_expired(live_corpus: list[PersistedRecord], today: date) -> list[PersistedRecord]:
    """Live records whose deadline is Passed or falls on or before `today`."""

    return [
        persisted
        for persisted in live_corpus
        if persisted.is_live and persisted.record.deadline.is_expired(today)
    ]


def _coerce_record(entry: Any) -> CanonicalRecord:
    if isinstance(entry, Mapping):
        try:
            entry = CanonicalRecord.from_dict(entry)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            raise ReconciliationContractError(str(exc)) from exc
    if not isinstance(entry, CanonicalRecord):
        raise ReconciliationContractError(f"Expected a CanonicalRecord, got {type(entry).__name__}.")
    if not isinstance(entry.name, str) or not entry.name.strip():
        raise ReconciliationContractError("Record is missing a name.")
    if not isinstance(entry.deadline, Deadline):
        raise ReconciliationContractError(f"Record {entry.name!r} has no valid deadline.")
    return entry


def _live_by_class(
    live_corpus: list[PersistedRecord],
    plan: ReconcilePlan,
) -> dict[DeadlineClass, dict[IdentityKey, PersistedRecord]]:
    by_class: dict[DeadlineClass, dict[IdentityKey, PersistedRecord]] = {cls: {} for cls in DeadlineClass}
    for persisted in live_corpus:
        if not isinstance(persisted, PersistedRecord):
            raise ReconciliationContractError(
                f"Live corpus entries must be PersistedRecord, got {type(persisted).__name__}."
            )
        if not persisted.is_live:
            continue
        bucket = by_class[deadline_class(persisted.record.deadline)]
        key = persisted.record.identity_key
        if key in bucket:
            # The corpus already holds this key live; keep the first and heal the rest.
            plan.retire(persisted.id, RetireReason.DUPLICATE_LIVE)
            continue
        bucket[key] = persisted
    return by_class


def reconcile(
    batch: list[Any],
    live_corpus: list[PersistedRecord],
    *,
    today: date | None = None,
    scope_sites: Collection[str] | None = None,
    keep_links: Collection[str] = (),
) -> ReconcilePlan:
    """Decide which batch records to insert and which live records to retire.

    Pure: reads its two inputs and returns a plan, performing no I/O. Live records
    are pruned for missing from the batch only when their site is in
    `scope_sites` (all sites when it is None) and their link is not in
    `keep_links`, the listings whose fetch or parse failed this run.
    """

    if not isinstance(batch, list):
        raise ReconciliationContractError(f"batch must be a list, got {type(batch).__name__}.")
    if not isinstance(live_corpus, list):
        raise ReconciliationContractError(f"live_corpus must be a list, got {type(live_corpus).__name__}.")

    effective_today = today or date.today()
    plan = ReconcilePlan()
    live = _live_by_class(live_corpus, plan)

    for bucket in live.values():
        for persisted in bucket.values():
            if persisted.record.deadline.is_expired(effective_today):
                plan.retire(persisted.id, RetireReason.EXPIRED)

    seen: dict[DeadlineClass, set[IdentityKey]] = {cls: set() for cls in DeadlineClass}
    for index, entry in enumerate(batch):
        try:
            record = _coerce_record(entry)
        except ReconciliationContractError as exc:
            plan.rejected.append(RejectedRecord(index=index, reason=str(exc)))
            logger.warning("Rejected batch entry %d: %s", index, exc)
            continue

        cls = deadline_class(record.deadline)
        key = record.identity_key
        if key in seen[cls]:
            plan.duplicates.append(record)
            continue
        seen[cls].add(key)

        if record.deadline.is_expired(effective_today):
            plan.expired.append(record)
            continue

        current = live[cls].get(key)
        if current is None:
            plan.to_insert.append(record)
            continue

        differences = changed_fields(current.record, record)
        if differences:
            logger.debug("Record %s changed fields: %s", key, ", ".join(differences))
            plan.retire(current.id, RetireReason.SUPERSEDED)
            plan.to_insert.append(record)
        else:
            plan.unchanged.append(current.id)

    sites = set(scope_sites) if scope_sites is not None else None
    kept = set(keep_links)
    for cls, bucket in live.items():
        for key, persisted in bucket.items():
            if key in seen[cls]:
                continue
            if sites is not None and persisted.record.source.site not in sites:
                continue
            if persisted.record.source.link in kept:
                continue
            plan.retire(persisted.id, RetireReason.REMOVED_UPSTREAM)

    logger.info(
        "Reconcile plan: insert=%d retire=%d unchanged=%d expired=%d rejected=%d duplicates=%d",
        len(plan.to_insert),
        len(plan.to_retire),
        len(plan.unchanged),
        len(plan.expired),
        len(plan.rejected),
        len(plan.duplicates),
    )
    return plan
