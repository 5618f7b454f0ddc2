# tests/test_extraction.py

from __future__ import annotations

from datetime import date, timedelta

import pytest

from taskdump.extraction import scanners
from taskdump.extraction.extractor import Extractor, extract
from taskdump.tasks.task_models import Recurrence, RecurrenceKind

from .conftest import OWNERS, REFERENCE


def test_extract_full_line() -> None:
    frame = extract("Call Marie tomorrow urgent @Marc", REFERENCE, owners=OWNERS)

    assert frame is not None
    assert frame.date == "2024-06-11"
    assert frame.urgent is True
    assert frame.owner == "Marc"
    assert frame.title == "Call Marie"


@pytest.mark.parametrize("raw", ["", "   ", "\t\n", None])
def test_extract_blank_input_returns_none(raw) -> None:
    assert extract(raw, REFERENCE, owners=OWNERS) is None


@pytest.mark.parametrize(
    "reference",
    [
        date(2024, 6, 10),
        date(2024, 2, 28),
        date(2024, 2, 29),
        date(2023, 12, 31),
        date(2025, 1, 31),
    ],
)
@pytest.mark.parametrize("word", ["tomorrow", "Tomorrow", "demain", "DEMAIN"])
def test_tomorrow_is_reference_plus_one(reference: date, word: str) -> None:
    frame = extract(f"Send the report {word}", reference)
    assert frame is not None
    assert frame.date == (reference + timedelta(days=1)).isoformat()


@pytest.mark.parametrize("raw", ["day after tomorrow: dentist", "dentist après-demain", "dentist apres demain"])
def test_day_after_tomorrow_is_not_tomorrow(raw: str) -> None:
    assert scanners.parse_date(raw, REFERENCE) == "2024-06-12"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("today", "2024-06-10"),
        ("aujourd'hui", "2024-06-10"),
        ("this week", "2024-06-14"),
        ("fin de semaine", "2024-06-14"),
        ("next week", "2024-06-17"),
        ("semaine prochaine", "2024-06-17"),
        ("friday", "2024-06-14"),
        ("vendredi", "2024-06-14"),
        ("ven", "2024-06-14"),
        ("12/06", "2024-06-12"),
        ("5/1/25", "2025-01-05"),
        ("05/01/2026", "2026-01-05"),
        ("nothing here", "2024-06-10"),
    ],
)
def test_parse_date_rules(raw: str, expected: str) -> None:
    assert scanners.parse_date(raw, REFERENCE) == expected


@pytest.mark.parametrize("word", ["monday", "lundi", "lun"])
def test_weekday_equal_to_reference_means_next_week(word: str) -> None:
    # REFERENCE is a Monday
    assert scanners.parse_date(f"gym {word}", REFERENCE) == "2024-06-17"


@pytest.mark.parametrize("offset", range(7))
def test_named_weekday_is_always_in_the_future(offset: int) -> None:
    reference = REFERENCE + timedelta(days=offset)
    resolved = date.fromisoformat(scanners.parse_date("wednesday", reference))
    assert 1 <= (resolved - reference).days <= 7
    assert resolved.weekday() == 2


def test_end_of_week_on_a_friday_gives_next_friday() -> None:
    friday = date(2024, 6, 14)
    assert scanners.parse_date("cette semaine", friday) == "2024-06-21"


def test_impossible_numeric_date_falls_back_to_reference() -> None:
    assert scanners.parse_date("pay rent 31/02", REFERENCE) == REFERENCE.isoformat()


def test_mentions_are_not_weekday_abbreviations() -> None:
    frame = extract("review deck @Sam", REFERENCE, owners=["Thibaud", "Sam"])
    assert frame is not None
    assert frame.owner == "Sam"
    assert frame.date == REFERENCE.isoformat()
    assert frame.title == "review deck"


@pytest.mark.parametrize(
    ("raw", "urgent"),
    [
        ("Fix prod !!", True),
        ("Fix prod!!!", True),
        ("Fix prod !", False),
        ("ASAP fix prod", True),
        ("c'est urgent", True),
        ("rappeler vite", True),
        ("urgently", False),
        ("important meeting", True),
        ("plain task", False),
    ],
)
def test_parse_urgent(raw: str, urgent: bool) -> None:
    assert scanners.parse_urgent(raw) is urgent


@pytest.mark.parametrize(
    ("raw", "owner"),
    [
        ("@Marc call bank", "Marc"),
        ("call bank @marc", "Marc"),
        ("Marc: call bank", "Marc"),
        ("call @Marcel", "Thibaud"),
        ("@Thibaud and @Marc", "Thibaud"),
        ("call bank", "Thibaud"),
    ],
)
def test_parse_owner(raw: str, owner: str) -> None:
    assert scanners.parse_owner(raw, OWNERS, "Thibaud") == owner


def test_explicit_default_owner_is_used_when_nothing_matches() -> None:
    frame = Extractor(OWNERS, default_owner="Marc").extract("water plants", REFERENCE)
    assert frame is not None
    assert frame.owner == "Marc"


@pytest.mark.parametrize(
    ("raw", "minutes"),
    [
        ("1h30 workshop", 90),
        ("workshop 1h30min", 90),
        ("2h review", 120),
        ("review 2 hours", 120),
        ("revue 2 heures", 120),
        ("45min call", 45),
        ("call 45 minutes", 45),
        ("quick 30m sync", 30),
        ("0min nothing", None),
        ("no duration", None),
    ],
)
def test_parse_duration(raw: str, minutes: int | None) -> None:
    assert scanners.parse_duration(raw) == minutes


@pytest.mark.parametrize(
    ("raw", "hhmm"),
    [
        ("meeting 14h30", "14:30"),
        ("réunion à 14h", "14:00"),
        ("call at 14:30", "14:30"),
        ("call 9:05", "09:05"),
        ("call at 3pm", "15:00"),
        ("run 9am", "09:00"),
        ("midnight 12am", "00:00"),
        ("bad 25:00", None),
        ("bad 10:75", None),
        ("no time", None),
    ],
)
def test_parse_time(raw: str, hhmm: str | None) -> None:
    assert scanners.parse_time(raw) == hhmm


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("standup every day", Recurrence(RecurrenceKind.DAILY)),
        ("standup daily", Recurrence(RecurrenceKind.DAILY)),
        ("arroser tous les jours", Recurrence(RecurrenceKind.DAILY)),
        ("gym every monday", Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 1)),
        ("sport tous les lundis", Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 1)),
        ("brunch chaque dimanche", Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 0)),
        ("review weekly", Recurrence(RecurrenceKind.WEEKLY)),
        ("point hebdomadaire", Recurrence(RecurrenceKind.WEEKLY)),
        ("invoices every month", Recurrence(RecurrenceKind.MONTHLY)),
        ("factures chaque mois", Recurrence(RecurrenceKind.MONTHLY)),
        ("one-off", None),
    ],
)
def test_parse_recurrence(raw: str, expected: Recurrence | None) -> None:
    assert scanners.parse_recurrence(raw) == expected


def test_recurrence_codes() -> None:
    assert Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 1).code == "weekly_1"
    assert Recurrence.from_code("weekly_0") == Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 0)
    assert Recurrence.from_code("weekly_9") is None
    assert Recurrence.from_code("yearly") is None


def test_parse_project_takes_first_tag() -> None:
    assert scanners.parse_project("ship it #client-x #later") == "client-x"
    assert scanners.parse_project("no tag") is None


def test_extract_collects_optional_fields() -> None:
    frame = extract("Marc: standup every monday at 9:30 15min #team", REFERENCE, owners=OWNERS)
    assert frame is not None
    assert frame.owner == "Marc"
    assert frame.recurrence == Recurrence(RecurrenceKind.WEEKLY_ON_WEEKDAY, 1)
    assert frame.time == "09:30"
    assert frame.duration == 15
    assert frame.project == "team"
    assert frame.date == "2024-06-17"
    assert frame.title == "standup"


@pytest.mark.parametrize(
    "raw",
    [
        "Call Marie tomorrow urgent @Marc",
        "to!!day buy milk",
        "  - Marc: fix the sink, demain !!  ",
        "every monday gym 1h #sport",
        "réunion à 14h30 vendredi",
        "just words",
        "!!",
    ],
)
def test_clean_title_is_idempotent(raw: str) -> None:
    once = scanners.clean_title(raw, OWNERS)
    assert scanners.clean_title(once, OWNERS) == once


def test_clean_title_keeps_unrecognized_tokens() -> None:
    assert scanners.clean_title("Buy 3 apples for Léa", OWNERS) == "Buy 3 apples for Léa"


def test_clean_title_can_end_up_empty() -> None:
    assert scanners.clean_title("demain !!", OWNERS) == ""


def test_extract_accepts_iso_string_reference() -> None:
    frame = extract("pay rent tomorrow", "2024-12-31")
    assert frame is not None
    assert frame.date == "2025-01-01"


@pytest.mark.parametrize("raw", ["tomorrow Marc: call the bank", "  - Marc: call the bank"])
def test_owner_prefix_behind_markers_is_detected_and_dropped(raw: str) -> None:
    frame = extract(raw, REFERENCE, owners=OWNERS)
    assert frame is not None
    assert frame.owner == "Marc"
    assert frame.title == "call the bank"


def test_mid_line_name_is_not_a_prefix() -> None:
    frame = extract("call Marc: about the bank", REFERENCE, owners=OWNERS)
    assert frame is not None
    assert frame.owner == "Thibaud"
    assert frame.title == "call Marc: about the bank"


def test_unknown_name_prefix_stays_in_title() -> None:
    frame = extract("tomorrow Léa: call the bank", REFERENCE, owners=OWNERS)
    assert frame is not None
    assert frame.owner == "Thibaud"
    assert frame.date == "2024-06-11"
    assert frame.title == "Léa: call the bank"


def test_single_bang_pair_does_not_expose_a_marker() -> None:
    assert scanners.clean_title("to!!day fix", OWNERS) == "to day fix"


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("réunion mar 14h", "2024-06-11"),
        ("brunch sam.", "2024-06-15"),
        ("ménage dim", "2024-06-16"),
        ("dim the office lights", "2024-06-10"),
        ("mark the sam files", "2024-06-10"),
        ("lunch with the team", "2024-06-10"),
    ],
)
def test_french_abbreviations_need_a_date_context(raw: str, expected: str) -> None:
    assert scanners.parse_date(raw, REFERENCE) == expected


def test_english_word_matching_an_abbreviation_stays_in_title() -> None:
    frame = extract("dim the office lights", REFERENCE, owners=OWNERS)
    assert frame is not None
    assert frame.date == REFERENCE.isoformat()
    assert frame.title == "dim the office lights"


def test_abbreviation_with_time_is_removed_from_title() -> None:
    assert scanners.clean_title("réunion mar 14h", OWNERS) == "réunion"
    assert scanners.clean_title("brunch sam.", OWNERS) == "brunch"
