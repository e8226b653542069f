from __future__ import annotations

from typing import Any, NamedTuple


class IdentityKey(NamedTuple):
    """The only identity a scraped listing has: its name plus its deadline value."""

    name: str
    deadline: str

    def __str__(self) -> str:
        return f"{self.name}|{self.deadline}"


def _normalize_name(value: str | None) -> str:
    if value is None:
        return ""
    # Case is preserved; only whitespace is collapsed.
    return " ".join(value.split())


def _deadline_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return value.to_value()


def identity_key(name: str | None, deadline: Any) -> IdentityKey:
    """Build the composite identity key used to match scraped and persisted records."""

    return IdentityKey(_normalize_name(name), _deadline_value(deadline))
