"""Tests for date, time, duration, location, subtask and title extraction."""

from datetime import date

import pytest

from quickjot.nlp.extractors import (
    RULE_ISO_DATE,
    RULE_MONTH_NAME_DATE,
    RULE_NUMERIC_DATE,
    RULE_RELATIVE_DATE,
    RULE_TIME,
    extract_date,
    extract_due_iso,
    extract_duration,
    extract_location,
    extract_subtasks,
    extract_time,
    extract_time_block,
    extract_title,
    match_due,
)


# =============================================================================
# Dates
# =============================================================================

@pytest.mark.parametrize("text,expected,rule", [
    ("submit report 2025-03-01", date(2025, 3, 1), RULE_ISO_DATE),
    ("due 03/15/2025", date(2025, 3, 15), RULE_NUMERIC_DATE),
    ("due 2025/3/15", date(2025, 3, 15), RULE_NUMERIC_DATE),
    ("launch on January 20, 2025", date(2025, 1, 20), RULE_MONTH_NAME_DATE),
    ("launch on 20 January 2025", date(2025, 1, 20), RULE_MONTH_NAME_DATE),
    ("dentist March 3rd", date(2025, 3, 3), RULE_MONTH_NAME_DATE),
])
def test_absolute_dates(today, text, expected, rule):
    match = extract_date(text, today)
    assert match.value == expected
    assert match.rule == rule


@pytest.mark.parametrize("text,expected", [
    ("call mom tomorrow", date(2025, 1, 16)),
    ("call mom the day after tomorrow", date(2025, 1, 17)),
    ("dinner tonight", date(2025, 1, 15)),
    ("renew passport in 3 days", date(2025, 1, 18)),
    ("renew passport in two weeks", date(2025, 1, 29)),
    ("review next week", date(2025, 1, 22)),
    ("standup next friday", date(2025, 1, 17)),
    # Same weekday as today means a week out
    ("standup on wednesday", date(2025, 1, 22)),
    ("yoga saturday", date(2025, 1, 18)),
])
def test_relative_dates(today, text, expected):
    match = extract_date(text, today)
    assert match.value == expected
    assert match.rule == RULE_RELATIVE_DATE


def test_iso_beats_relative(today):
    assert extract_date("tomorrow or 2025-02-01", today).value == date(2025, 2, 1)


@pytest.mark.parametrize("text", ["due 13/45/2025", "Feb 30", "buy milk", ""])
def test_invalid_or_missing_dates(today, text):
    assert extract_date(text, today) is None


@pytest.mark.parametrize("text,expected", [
    ("meet at 2pm", (14, 0)),
    ("meet at 2:30 p.m.", (14, 30)),
    ("call at 9 AM", (9, 0)),
    ("sync at 14:30", (14, 30)),
    ("lunch at noon", (12, 0)),
    ("deploy at midnight", (0, 0)),
    ("call at 12am", (0, 0)),
    ("call at 12pm", (12, 0)),
])
def test_times(text, expected):
    match = extract_time(text)
    assert (match.hour, match.minute) == expected


def test_no_time():
    assert extract_time("buy milk") is None
    assert extract_time("at 25:00") is None


# =============================================================================
# Due resolution
# =============================================================================

def test_match_due_date_and_time(today):
    due = match_due("meet Alex tomorrow at 2pm", today, "Europe/Berlin")
    assert due.block.iso == "2025-01-16T14:00:00Z"
    assert due.block.date == "2025-01-16"
    assert due.block.time == "14:00"
    assert due.block.tz == "Europe/Berlin"
    assert due.block.when_text == "tomorrow at 2pm"
    assert due.rules == [RULE_RELATIVE_DATE, RULE_TIME]


def test_match_due_date_only_is_midnight(today):
    due = match_due("dentist March 3rd", today)
    assert due.block.iso == "2025-03-03T00:00:00Z"
    assert due.block.time is None
    assert due.rules == [RULE_MONTH_NAME_DATE]


def test_match_due_time_only_is_today(today):
    assert extract_due_iso("call at 5pm", today) == "2025-01-15T17:00:00Z"


def test_match_due_iso_with_time(today):
    due = match_due("release 2025-02-01T09:30", today)
    assert due.block.iso == "2025-02-01T09:30:00Z"
    assert due.rules == [RULE_ISO_DATE, RULE_TIME]


def test_no_due(today):
    assert match_due("buy milk", today) is None


# =============================================================================
# Duration
# =============================================================================

@pytest.mark.parametrize("text,expected", [
    ("work on the website for two hours", 120),
    ("deep work 1h 30m", 90),
    ("call for 1 hour and 30 minutes", 90),
    ("study for an hour and a half", 90),
    ("nap for half an hour", 30),
    ("walk for an hour", 60),
    ("review for 45 min", 45),
    ("read 1.5 hours", 90),
    ("plank for 90 seconds", 2),
    ("stretch 30s", 1),
])
def test_durations(text, expected):
    assert extract_duration(text) == expected


def test_no_duration():
    assert extract_duration("meet at 2pm") is None
    assert extract_duration("") is None


# =============================================================================
# Location
# =============================================================================

@pytest.mark.parametrize("text,expected", [
    ("lunch with Sam at Joe's Diner", "Joe's Diner"),
    ("meet in Conference Room B for standup", "Conference Room B"),
    ("meet Sam at Blue Bottle for coffee", "Blue Bottle"),
    ("workshop location: Building 4", "Building 4"),
])
def test_locations(text, expected):
    assert extract_location(text) == expected


@pytest.mark.parametrize("text", [
    "call at 5pm",
    "pick up bread at the store",
    "leave in 30 minutes",
    "project is in progress",
    "standup at noon",
    "launch in March",
])
def test_not_locations(text):
    assert extract_location(text) is None


# =============================================================================
# Subtasks and titles
# =============================================================================

def test_subtasks_sorted_and_deduplicated():
    text = "Groceries:\n- milk\n- eggs\n• bread\n- milk"
    assert extract_subtasks(text) == ["bread", "eggs", "milk"]


def test_numbered_and_lettered_subtasks():
    assert extract_subtasks("Launch:\n1. draft outline\n2) send to Ana") == [
        "draft outline",
        "send to Ana",
    ]
    assert extract_subtasks("Plan:\na) book venue\nb) order food") == ["book venue", "order food"]


def test_no_subtasks():
    assert extract_subtasks("just a sentence - with a dash") == []


@pytest.mark.parametrize("segment,expected", [
    ("call mom", "call mom"),
    ("remind me to call the dentist", "call the dentist"),
    ("Task: update the budget sheet.", "update the budget sheet"),
    ("please, I need to renew my passport", "renew my passport"),
    ("Groceries for the week:\n- milk\n- eggs", "Groceries for the week"),
    ("remind me to", "remind me to"),
])
def test_titles(segment, expected):
    assert extract_title(segment) == expected


def test_long_title_truncated():
    segment = "write up the notes from the planning session and share them with everyone on the team"
    assert extract_title(segment) == "write up the notes from the planning session..."


def test_time_block_keeps_phrase(today):
    block = extract_time_block("dentist next friday at 9:30am", today, "UTC")
    assert block.iso == "2025-01-17T09:30:00Z"
    assert block.when_text == "next friday at 9:30am"
    assert extract_time_block("buy milk", today) is None
