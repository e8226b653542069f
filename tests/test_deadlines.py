from __future__ import annotations

from datetime import date

from grantscraper.normalize.deadlines import find_dates, mentions_passed, parse_deadline
from grantscraper.normalize.schema import Deadline


def test_find_dates_reads_common_formats() -> None:
    assert find_dates("Deadline: March 5, 2025") == [date(2025, 3, 5)]
    assert find_dates("Submit by Sept. 3rd 2025") == [date(2025, 9, 3)]
    assert find_dates("Submit by 15 February 2026") == [date(2026, 2, 15)]
    assert find_dates("Closing date 2026-04-01") == [date(2026, 4, 1)]
    assert find_dates("Due 4/30/2026") == [date(2026, 4, 30)]


def test_find_dates_takes_the_end_of_a_range() -> None:
    assert find_dates("Application period: January 16-24, 2025") == [date(2025, 1, 24)]
    assert find_dates("Filing runs 16-24 January 2025") == [date(2025, 1, 24)]


def test_find_dates_keeps_reading_order_and_skips_impossible_dates() -> None:
    text = "Opens June 1, 2026 and closes 2026-05-15. February 30, 2026 is not a date."

    assert find_dates(text) == [date(2026, 6, 1), date(2026, 5, 15)]
    assert find_dates("") == []


def test_passed_phrase_wins_over_dates() -> None:
    deadline = parse_deadline(
        ["Deadline: March 5, 2025", "The application deadline has passed."],
        missing=Deadline.ongoing(),
    )

    assert deadline == Deadline.passed()
    assert mentions_passed("Applications are now CLOSED")
    assert not mentions_passed("Applications are open")


def test_latest_date_wins_when_several_are_mentioned() -> None:
    deadline = parse_deadline(
        ["Applications open January 5, 2026", "Deadline: March 1, 2026"],
        missing=Deadline.ongoing(),
    )

    assert deadline == Deadline.on_date(date(2026, 3, 1))


def test_missing_deadline_falls_back_to_the_given_value() -> None:
    assert parse_deadline([], missing=Deadline.ongoing()) == Deadline.ongoing()
    assert parse_deadline("No dates here", missing=Deadline.passed()) == Deadline.passed()


def test_passed_wording_needs_a_deadline_or_application_subject() -> None:
    assert mentions_passed("The application deadline for this year has passed.")
    assert mentions_passed("Filing of applications is closed")
    assert not mentions_passed("Students who passed the entrance exam may apply.")
    assert not mentions_passed("Passed the board exam? Application deadline: May 1, 2026.")

    deadline = parse_deadline(
        ["Students who passed the entrance exam may apply until June 30, 2026."],
        missing=Deadline.passed(),
    )
    assert deadline == Deadline.on_date(date(2026, 6, 30))
