"""Canonical record shape, identity keys and deadline parsing."""

from grantscraper.normalize.canonical_id import IdentityKey, identity_key
from grantscraper.normalize.deadlines import find_dates, parse_deadline
from grantscraper.normalize.schema import (
    GENERAL_PROGRAM,
    AwardType,
    CanonicalRecord,
    Deadline,
    DeadlineKind,
    GroupedItem,
    Level,
    MiscLink,
    PersistedRecord,
    PlainItem,
    SourceRef,
)

__all__ = [
    "GENERAL_PROGRAM",
    "AwardType",
    "CanonicalRecord",
    "Deadline",
    "DeadlineKind",
    "GroupedItem",
    "IdentityKey",
    "Level",
    "MiscLink",
    "PersistedRecord",
    "PlainItem",
    "SourceRef",
    "find_dates",
    "identity_key",
    "parse_deadline",
]
