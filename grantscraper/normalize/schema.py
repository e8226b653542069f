from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Iterable, Mapping

from grantscraper.normalize.canonical_id import IdentityKey, identity_key

GENERAL_PROGRAM = "General"


class Level(str, Enum):
    BASIC_EDUCATION = "Basic Education"
    COLLEGE = "College"
    GRADUATE = "Graduate"
    VOCATIONAL = "Vocational"


class AwardType(str, Enum):
    ATHLETIC = "Athletic"
    ART = "Art"
    MERIT = "Merit"
    NEED_BASED = "Need-based"
    GRANT = "Grant"


class DeadlineKind(str, Enum):
    ONGOING = "Ongoing"
    PASSED = "Passed"
    DATE = "Date"


@dataclass(frozen=True, slots=True)
class Deadline:
    """Three-way deadline value: rolling, already closed, or a calendar date."""

    kind: DeadlineKind
    on: date | None = None

    def __post_init__(self) -> None:
        if self.kind is DeadlineKind.DATE:
            if not isinstance(self.on, date):
                raise ValueError("A dated deadline requires a calendar date.")
            if isinstance(self.on, datetime):
                object.__setattr__(self, "on", self.on.date())
        elif self.on is not None:
            raise ValueError(f"A {self.kind.value} deadline cannot carry a date.")

    @classmethod
    def ongoing(cls) -> Deadline:
        return cls(DeadlineKind.ONGOING)

    @classmethod
    def passed(cls) -> Deadline:
        return cls(DeadlineKind.PASSED)

    @classmethod
    def on_date(cls, value: date) -> Deadline:
        return cls(DeadlineKind.DATE, value)

    @classmethod
    def from_value(cls, value: Any) -> Deadline:
        if isinstance(value, Deadline):
            return value
        if isinstance(value, datetime):
            return cls.on_date(value.date())
        if isinstance(value, date):
            return cls.on_date(value)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"Unrecognized deadline value: {value!r}")

        cleaned = value.strip()
        lowered = cleaned.lower()
        if lowered == "ongoing":
            return cls.ongoing()
        if lowered == "passed":
            return cls.passed()
        try:
            return cls.on_date(date.fromisoformat(cleaned[:10]))
        except ValueError as exc:
            raise ValueError(f"Unrecognized deadline value: {value!r}") from exc

    @property
    def is_ongoing(self) -> bool:
        return self.kind is DeadlineKind.ONGOING

    def is_expired(self, today: date) -> bool:
        if self.kind is DeadlineKind.ONGOING:
            return False
        if self.kind is DeadlineKind.PASSED:
            return True
        return self.on <= today

    def to_value(self) -> str:
        if self.kind is DeadlineKind.DATE:
            return self.on.isoformat()
        return self.kind.value

    def __str__(self) -> str:
        return self.to_value()


@dataclass(frozen=True, slots=True)
class PlainItem:
    text: str


@dataclass(frozen=True, slots=True)
class GroupedItem:
    title: str
    items: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "items", tuple(self.items))


ListItem = PlainItem | GroupedItem


def item_to_value(item: ListItem) -> str | dict[str, Any]:
    if isinstance(item, GroupedItem):
        return {"title": item.title, "items": list(item.items)}
    return item.text


def item_from_value(value: Any) -> ListItem:
    if isinstance(value, (PlainItem, GroupedItem)):
        return value
    if isinstance(value, Mapping):
        return GroupedItem(title=str(value.get("title") or ""), items=tuple(str(v) for v in value.get("items") or ()))
    return PlainItem(str(value))


def item_text(item: ListItem) -> str:
    if isinstance(item, GroupedItem):
        return " ".join([item.title, *item.items]).strip()
    return item.text


@dataclass(frozen=True, slots=True)
class SourceRef:
    link: str
    site: str


@dataclass(frozen=True, slots=True)
class MiscLink:
    label: str
    value: str


@dataclass(frozen=True, slots=True)
class CanonicalRecord:
    """Normalized scholarship listing as produced by a source extractor."""

    name: str
    deadline: Deadline
    level: Level
    award_type: AwardType
    source: SourceRef
    description: str = ""
    eligibility: tuple[ListItem, ...] = ()
    benefits: tuple[str, ...] = ()
    requirements: tuple[ListItem, ...] = ()
    programs: tuple[str, ...] = (GENERAL_PROGRAM,)
    misc: tuple[MiscLink, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "eligibility", _items(self.eligibility))
        object.__setattr__(self, "requirements", _items(self.requirements))
        object.__setattr__(self, "benefits", tuple(str(b) for b in self.benefits))
        object.__setattr__(self, "misc", tuple(self.misc))
        programs = tuple(p for p in self.programs if p)
        object.__setattr__(self, "programs", programs or (GENERAL_PROGRAM,))

    @property
    def identity_key(self) -> IdentityKey:
        return identity_key(self.name, self.deadline)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "deadline": self.deadline.to_value(),
            "level": self.level.value,
            "type": self.award_type.value,
            "eligibility": [item_to_value(item) for item in self.eligibility],
            "benefits": list(self.benefits),
            "requirements": [item_to_value(item) for item in self.requirements],
            "programs": list(self.programs),
            "source": {"link": self.source.link, "site": self.source.site},
            "misc": [{"type": link.label, "data": link.value} for link in self.misc],
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> CanonicalRecord:
        name = payload.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Record is missing a name.")
        if payload.get("deadline") is None:
            raise ValueError(f"Record {name!r} is missing a deadline.")

        source = payload.get("source") or {}
        return cls(
            name=name,
            description=str(payload.get("description") or ""),
            deadline=Deadline.from_value(payload["deadline"]),
            level=Level(payload.get("level") or Level.COLLEGE.value),
            award_type=AwardType(payload.get("type") or AwardType.GRANT.value),
            eligibility=tuple(payload.get("eligibility") or ()),
            benefits=tuple(payload.get("benefits") or ()),
            requirements=tuple(payload.get("requirements") or ()),
            programs=tuple(payload.get("programs") or ()),
            source=SourceRef(link=str(source.get("link") or ""), site=str(source.get("site") or "")),
            misc=tuple(
                MiscLink(label=str(entry.get("type") or ""), value=str(entry.get("data") or ""))
                for entry in payload.get("misc") or ()
                if isinstance(entry, Mapping)
            ),
        )


@dataclass(frozen=True, slots=True)
class PersistedRecord:
    id: str
    record: CanonicalRecord
    created_at: datetime | None = None
    retired_at: datetime | None = None

    @property
    def is_live(self) -> bool:
        return self.retired_at is None


def _items(values: Iterable[Any]) -> tuple[ListItem, ...]:
    return tuple(item_from_value(value) for value in values)
