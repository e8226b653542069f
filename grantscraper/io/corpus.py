from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Iterable
from uuid import uuid4

import pandas as pd
import pyarrow as pa

from grantscraper.errors import CorpusUnavailableError
from grantscraper.normalize.schema import CanonicalRecord, PersistedRecord

from .artifacts import write_parquet_atomic

logger = logging.getLogger(__name__)

CORPUS_COLUMNS = [
    "id",
    "name",
    "description",
    "deadline",
    "level",
    "type",
    "eligibility",
    "benefits",
    "requirements",
    "programs",
    "misc",
    "source_link",
    "source_site",
    "created_at",
    "retired_at",
]
_JSON_COLUMNS = ("eligibility", "benefits", "requirements", "programs", "misc")


class CorpusGateway(ABC):
    """Sole boundary to the persisted corpus.

    Callers must serialize runs against one corpus; gateways do not lock.
    """

    @abstractmethod
    def _read_all(self) -> list[PersistedRecord]:
        """Every stored record, live and retired, in storage order."""

    @abstractmethod
    def _write_all(self, records: list[PersistedRecord]) -> None:
        """Replace the stored collection."""

    def load_live(self) -> list[PersistedRecord]:
        return [record for record in self._read_all() if record.is_live]

    def insert_many(
        self,
        records: Iterable[CanonicalRecord],
        *,
        at: datetime | None = None,
    ) -> list[PersistedRecord]:
        """Store `records` as new live entries and return them with their ids.

        A record whose identity key is already live, or repeats earlier in the
        same call, is skipped so a retried insert never duplicates.
        """

        created_at = at or datetime.now(tz=UTC)
        stored = self._read_all()
        live_keys = {record.record.identity_key for record in stored if record.is_live}

        inserted: list[PersistedRecord] = []
        for record in records:
            key = record.identity_key
            if key in live_keys:
                logger.debug("Skipping insert of %s; already live.", key)
                continue
            live_keys.add(key)
            inserted.append(PersistedRecord(id=uuid4().hex, record=record, created_at=created_at))

        if inserted:
            self._write_all([*stored, *inserted])
        return inserted

    def retire_many(self, ids: Iterable[str], *, at: datetime) -> int:
        """Stamp `retired_at` on the given live records; unknown or retired ids are ignored."""

        wanted = set(ids)
        if not wanted:
            return 0

        changed = 0
        updated: list[PersistedRecord] = []
        for record in self._read_all():
            if record.id in wanted and record.is_live:
                record = replace(record, retired_at=at)
                changed += 1
            updated.append(record)

        if changed:
            self._write_all(updated)
        return changed


class InMemoryCorpusGateway(CorpusGateway):
    def __init__(self, records: Iterable[PersistedRecord] = ()) -> None:
        self._records = list(records)

    @property
    def records(self) -> list[PersistedRecord]:
        return list(self._records)

    def _read_all(self) -> list[PersistedRecord]:
        return list(self._records)

    def _write_all(self, records: list[PersistedRecord]) -> None:
        self._records = list(records)


def _isoformat(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat()


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, float) and math.isnan(value))


def _parse_timestamp(value: Any) -> datetime | None:
    if _missing(value) or value == "":
        return None
    return datetime.fromisoformat(str(value))


def record_to_row(persisted: PersistedRecord) -> dict[str, Any]:
    payload = persisted.record.to_dict()
    row: dict[str, Any] = {
        "id": persisted.id,
        "name": payload["name"],
        "description": payload["description"],
        "deadline": payload["deadline"],
        "level": payload["level"],
        "type": payload["type"],
        "source_link": payload["source"]["link"],
        "source_site": payload["source"]["site"],
        "created_at": _isoformat(persisted.created_at),
        "retired_at": _isoformat(persisted.retired_at),
    }
    for column in _JSON_COLUMNS:
        row[column] = json.dumps(payload[column], ensure_ascii=False)
    return row


def row_to_record(row: dict[str, Any]) -> PersistedRecord:
    payload: dict[str, Any] = {
        "name": row["name"],
        "description": "" if _missing(row.get("description")) else row.get("description"),
        "deadline": row["deadline"],
        "level": row["level"],
        "type": row["type"],
        "source": {"link": row.get("source_link") or "", "site": row.get("source_site") or ""},
    }
    for column in _JSON_COLUMNS:
        raw = row.get(column)
        payload[column] = [] if _missing(raw) or raw == "" else json.loads(raw)
    return PersistedRecord(
        id=str(row["id"]),
        record=CanonicalRecord.from_dict(payload),
        created_at=_parse_timestamp(row.get("created_at")),
        retired_at=_parse_timestamp(row.get("retired_at")),
    )


class ParquetCorpusGateway(CorpusGateway):
    """Corpus kept as one Parquet file; nested fields are stored as JSON text."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> list[PersistedRecord]:
        if not self.path.exists():
            return []
        try:
            df = pd.read_parquet(self.path, engine="pyarrow")
            missing = [column for column in CORPUS_COLUMNS if column not in df.columns]
            if missing:
                raise ValueError(f"Corpus file is missing columns: {', '.join(missing)}")
            return [row_to_record(row) for row in df.to_dict(orient="records")]
        except (OSError, KeyError, ValueError, pa.ArrowException) as exc:
            raise CorpusUnavailableError(f"Could not read corpus at {self.path}: {exc}") from exc

    def _write_all(self, records: list[PersistedRecord]) -> None:
        df = pd.DataFrame([record_to_row(record) for record in records], columns=CORPUS_COLUMNS)
        df = df.astype({column: "object" for column in CORPUS_COLUMNS})
        try:
            write_parquet_atomic(df, self.path)
        except (OSError, ValueError, pa.ArrowException) as exc:
            raise CorpusUnavailableError(f"Could not write corpus at {self.path}: {exc}") from exc
        logger.debug("Wrote %d corpus records to %s", len(records), self.path)
