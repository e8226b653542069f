"""Keyword heuristics that label listings with a level, an award type and program tags."""

from grantscraper.classify.programs import PROGRAM_CATEGORIES, classify_programs, program_categories
from grantscraper.classify.rules import (
    LEVEL_RULES,
    TYPE_RULES,
    KeywordRule,
    classification_text,
    classify_level,
    classify_type,
)

__all__ = [
    "LEVEL_RULES",
    "PROGRAM_CATEGORIES",
    "TYPE_RULES",
    "KeywordRule",
    "classification_text",
    "classify_level",
    "classify_programs",
    "classify_type",
    "program_categories",
]
