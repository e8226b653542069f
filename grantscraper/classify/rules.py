from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Generic, Iterable, TypeVar

from grantscraper.normalize.schema import AwardType, Level, item_text

LabelT = TypeVar("LabelT")


@dataclass(frozen=True, slots=True)
class KeywordRule(Generic[LabelT]):
    label: LabelT
    pattern: re.Pattern[str]

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None


def _rule(label: Any, pattern: str) -> KeywordRule[Any]:
    return KeywordRule(label=label, pattern=re.compile(pattern, flags=re.IGNORECASE))


# Order is priority: the first matching rule decides.
LEVEL_RULES: tuple[KeywordRule[Level], ...] = (
    _rule(Level.BASIC_EDUCATION, r"elementary|high school|k-12|basic education"),
    _rule(Level.COLLEGE, r"undergraduate|college|bachelor|tertiary"),
    _rule(Level.GRADUATE, r"postgraduate|graduate|master'?s|phd|doctorate|advance"),
    _rule(Level.VOCATIONAL, r"vocational|technical|trade school|certificate"),
)

TYPE_RULES: tuple[KeywordRule[AwardType], ...] = (
    _rule(
        AwardType.NEED_BASED,
        r"\b(?:financial need|low income|disadvantaged|need-based|indigent|indigency|scholarship for the poor)\b",
    ),
    _rule(AwardType.GRANT, r"\b(?:grant|funding|financial aid|assistance|stipend|subsidy)\b"),
    _rule(
        AwardType.MERIT,
        r"\b(?:merit|excellence|academic achievement|accomplishments|honors|scholastic|score|gwa"
        r"|top student|valedictorian|summa|magna|cum laude)\b",
    ),
    _rule(AwardType.ATHLETIC, r"\b(?:athlete|sports|olympic|athletic|varsity|sports-related)\b"),
    _rule(
        AwardType.ART,
        r"\b(?:art|music|painting|dance|theater|creative|design|fine arts|performing arts)\b",
    ),
)


def first_match(rules: Iterable[KeywordRule[LabelT]], text: str | None, default: LabelT) -> LabelT:
    if not text:
        return default
    for rule in rules:
        if rule.matches(text):
            return rule.label
    return default


def classify_level(text: str | None, *, default: Level = Level.COLLEGE) -> Level:
    return first_match(LEVEL_RULES, text, default)


def classify_type(text: str | None, *, default: AwardType = AwardType.GRANT) -> AwardType:
    return first_match(TYPE_RULES, text, default)


def classification_text(
    name: str,
    description: str = "",
    requirements: Iterable[Any] = (),
    eligibility: Iterable[Any] = (),
) -> str:
    """Text the level and type rules are evaluated against for one listing."""

    parts = [name, description]
    parts.extend(_flatten(requirements))
    parts.extend(_flatten(eligibility))
    return " ".join(part for part in parts if part)


def _flatten(values: Iterable[Any]) -> list[str]:
    flattened: list[str] = []
    for value in values:
        if isinstance(value, str):
            flattened.append(value)
        else:
            flattened.append(item_text(value))
    return flattened
