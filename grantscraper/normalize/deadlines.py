from __future__ import annotations

import re
from datetime import date
from typing import Iterable

from grantscraper.normalize.schema import Deadline

_MONTH_NAMES = (
    r"jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?|aug(?:ust)?|"
    r"sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?"
)
_MONTH_NUMBERS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

# "March 5, 2025", "March 5th 2025", "January 16-24, 2025" (range end wins)
_MONTH_FIRST_PATTERN = re.compile(
    rf"\b({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?(?:\s*[-–]\s*(\d{{1,2}}))?,?\s+(\d{{4}})\b",
    flags=re.IGNORECASE,
)
# "5 March 2025", "16-24 January 2025"
_DAY_FIRST_PATTERN = re.compile(
    rf"\b(\d{{1,2}})(?:st|nd|rd|th)?(?:\s*[-–]\s*(\d{{1,2}}))?\s+({_MONTH_NAMES})\.?,?\s+(\d{{4}})\b",
    flags=re.IGNORECASE,
)
_ISO_DATE_PATTERN = re.compile(r"\b(20\d{2})-(\d{2})-(\d{2})\b")
_US_DATE_PATTERN = re.compile(r"\b(\d{1,2})/(\d{1,2})/(20\d{2})\b")
# "passed"/"closed" only counts in the same sentence as a deadline or application.
_PASSED_PATTERN = re.compile(
    r"\b(?:deadline|applications?|filing|registration|submissions?)\b[^.!?]*?\b(?:passed|closed)\b",
    flags=re.IGNORECASE,
)


def _build_date(year: str, month: int, day: str) -> date | None:
    try:
        return date(int(year), month, int(day))
    except ValueError:
        return None


def _month_number(token: str) -> int:
    return _MONTH_NUMBERS[token[:3].lower()]


def find_dates(text: str) -> list[date]:
    """Return every calendar date mentioned in `text`, in reading order."""

    if not text:
        return []

    found: list[tuple[int, date]] = []
    for match in _MONTH_FIRST_PATTERN.finditer(text):
        month, day, range_end, year = match.groups()
        parsed = _build_date(year, _month_number(month), range_end or day)
        if parsed:
            found.append((match.start(), parsed))
    for match in _DAY_FIRST_PATTERN.finditer(text):
        day, range_end, month, year = match.groups()
        parsed = _build_date(year, _month_number(month), range_end or day)
        if parsed:
            found.append((match.start(), parsed))
    for match in _ISO_DATE_PATTERN.finditer(text):
        year, month, day = match.groups()
        parsed = _build_date(year, int(month), day)
        if parsed:
            found.append((match.start(), parsed))
    for match in _US_DATE_PATTERN.finditer(text):
        month, day, year = match.groups()
        parsed = _build_date(year, int(month), day)
        if parsed:
            found.append((match.start(), parsed))

    found.sort(key=lambda item: item[0])
    return [parsed for _, parsed in found]


def mentions_passed(text: str) -> bool:
    return bool(text) and _PASSED_PATTERN.search(text) is not None


def parse_deadline(texts: Iterable[str] | str, *, missing: Deadline) -> Deadline:
    """Turn deadline-bearing snippets into a Deadline.

    Explicit "passed"/"closed" phrasing wins over any date. Otherwise the latest
    date mentioned is used, and `missing` is returned when there is none.
    """

    snippets = [texts] if isinstance(texts, str) else list(texts)
    dates: list[date] = []
    for snippet in snippets:
        if mentions_passed(snippet):
            return Deadline.passed()
        dates.extend(find_dates(snippet))

    if not dates:
        return missing
    return Deadline.on_date(max(dates))
