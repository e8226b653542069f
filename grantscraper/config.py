from __future__ import annotations

import math
import os
from dataclasses import dataclass, fields, replace
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from grantscraper.ingest.http import DEFAULT_USER_AGENT

ENV_PREFIX = "GRANTSCRAPER_"


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    return int(value)


@dataclass(frozen=True, slots=True)
class IngestSettings:
    corpus_path: Path = Path("data/corpus/scholarships.parquet")
    report_dir: Path = Path("reports/ingest_runs")
    request_delay_seconds: float = 2.0
    request_timeout_seconds: float = 20.0
    max_retries: int = 3
    max_listing_pages: int | None = None
    max_concurrent_sources: int = 6
    timezone: str = "Asia/Manila"
    user_agent: str = DEFAULT_USER_AGENT

    def __post_init__(self) -> None:
        object.__setattr__(self, "corpus_path", Path(self.corpus_path))
        object.__setattr__(self, "report_dir", Path(self.report_dir))

        for field_name in ("request_delay_seconds", "request_timeout_seconds"):
            value = float(getattr(self, field_name))
            if not math.isfinite(value) or value < 0.0:
                raise ValueError(f"Setting '{field_name}' must be a finite, non-negative number.")
        if self.request_timeout_seconds == 0:
            raise ValueError("Setting 'request_timeout_seconds' must be > 0.")
        if self.max_retries < 0:
            raise ValueError("Setting 'max_retries' must be >= 0.")
        if self.max_listing_pages is not None and self.max_listing_pages < 1:
            raise ValueError("Setting 'max_listing_pages' must be >= 1 when set.")
        if self.max_concurrent_sources < 1:
            raise ValueError("Setting 'max_concurrent_sources' must be >= 1.")
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone '{self.timezone}'.") from exc

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any] | None) -> IngestSettings:
        values = payload or {}
        defaults = cls()
        return cls(
            corpus_path=Path(values.get("corpus_path", defaults.corpus_path)),
            report_dir=Path(values.get("report_dir", defaults.report_dir)),
            request_delay_seconds=float(values.get("request_delay_seconds", defaults.request_delay_seconds)),
            request_timeout_seconds=float(
                values.get("request_timeout_seconds", defaults.request_timeout_seconds)
            ),
            max_retries=int(values.get("max_retries", defaults.max_retries)),
            max_listing_pages=_optional_int(values.get("max_listing_pages", defaults.max_listing_pages)),
            max_concurrent_sources=int(values.get("max_concurrent_sources", defaults.max_concurrent_sources)),
            timezone=str(values.get("timezone", defaults.timezone)),
            user_agent=str(values.get("user_agent", defaults.user_agent)),
        )

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> IngestSettings:
        """Read `GRANTSCRAPER_<FIELD>` variables, e.g. GRANTSCRAPER_CORPUS_PATH."""

        env = os.environ if environ is None else environ
        payload = {}
        for settings_field in fields(cls):
            raw = env.get(f"{ENV_PREFIX}{settings_field.name.upper()}")
            if raw is not None and raw.strip() != "":
                payload[settings_field.name] = raw.strip()
        return cls.from_mapping(payload)

    def with_overrides(self, **overrides: Any) -> IngestSettings:
        return replace(self, **{key: value for key, value in overrides.items() if value is not None})

    def today(self) -> date:
        return datetime.now(tz=ZoneInfo(self.timezone)).date()

    def to_dict(self) -> dict[str, Any]:
        return {
            "corpus_path": str(self.corpus_path),
            "report_dir": str(self.report_dir),
            "request_delay_seconds": self.request_delay_seconds,
            "request_timeout_seconds": self.request_timeout_seconds,
            "max_retries": self.max_retries,
            "max_listing_pages": self.max_listing_pages,
            "max_concurrent_sources": self.max_concurrent_sources,
            "timezone": self.timezone,
            "user_agent": self.user_agent,
        }
