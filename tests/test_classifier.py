from __future__ import annotations

from grantscraper.classify import classification_text, classify_level, classify_type
from grantscraper.classify.rules import TYPE_RULES, first_match
from grantscraper.normalize.schema import AwardType, GroupedItem, Level, PlainItem


def test_need_based_wins_over_merit_when_both_match() -> None:
    text = "this is a merit and need-based scholarship"

    assert classify_type(text) is AwardType.NEED_BASED
    assert classify_type(text) is AwardType.NEED_BASED


def test_type_rules_follow_priority_order() -> None:
    assert [rule.label for rule in TYPE_RULES] == [
        AwardType.NEED_BASED,
        AwardType.GRANT,
        AwardType.MERIT,
        AwardType.ATHLETIC,
        AwardType.ART,
    ]
    assert classify_type("Financial assistance for the valedictorian") is AwardType.GRANT
    assert classify_type("Awarded to the class valedictorian") is AwardType.MERIT
    assert classify_type("Requires a minimum GWA of 1.75") is AwardType.MERIT
    assert classify_type("For varsity athletes") is AwardType.ATHLETIC
    assert classify_type("Open to students of painting and dance") is AwardType.ART


def test_type_keywords_match_whole_words_only() -> None:
    # "art" inside "smart" and "grant" inside "grantee" do not count.
    assert classify_type("smart grantees", default=AwardType.ATHLETIC) is AwardType.ATHLETIC


def test_type_defaults_to_grant() -> None:
    assert classify_type("A scholarship for residents") is AwardType.GRANT
    assert classify_type("") is AwardType.GRANT
    assert classify_type(None) is AwardType.GRANT


def test_level_rules() -> None:
    assert classify_level("Open to elementary and college students") is Level.BASIC_EDUCATION
    assert classify_level("For incoming undergraduate students") is Level.COLLEGE
    assert classify_level("For master's students") is Level.GRADUATE
    assert classify_level("Vocational skills training") is Level.VOCATIONAL
    assert classify_level("Open to everyone") is Level.COLLEGE
    assert classify_level("", default=Level.VOCATIONAL) is Level.VOCATIONAL


def test_level_keywords_match_as_substrings() -> None:
    assert classify_level("POSTGRADUATE fellowship") is Level.GRADUATE
    assert classify_level("National Certificate holders") is Level.VOCATIONAL


def test_first_match_uses_default_when_nothing_matches() -> None:
    assert first_match(TYPE_RULES, "nothing relevant", "fallback") == "fallback"


def test_classification_text_flattens_grouped_items() -> None:
    text = classification_text(
        "Name",
        "Desc",
        [PlainItem("Req")],
        [GroupedItem(title="Elig", items=("a", "b"))],
    )

    assert text == "Name Desc Req Elig a b"
    assert classification_text("Only name") == "Only name"
