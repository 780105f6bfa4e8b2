"""Tests for keyword-taxonomy classification."""

import pytest

from quickjot.nlp.classifier import (
    RULE_DEFAULT,
    RULE_EVENT,
    RULE_JOURNAL,
    RULE_TODO,
    ClassificationRule,
    Classifier,
    classify,
    classify_with_rule,
    keyword_rule,
)

JOURNAL_ENTRY = (
    "I feel really grateful for the quiet morning walk along the river with my dog "
    "while the sun slowly came up over the hills and the birds sang softly"
)


@pytest.mark.parametrize("segment,expected", [
    ("call mom", "To-do"),
    ("buy milk", "To-do"),
    ("team meeting at 3pm", "Event"),
    ("finish the quarterly report", "Task"),
    ("random thought about clouds", "Note"),
    ("blue sky everywhere", "Note"),
])
def test_classify(segment, expected):
    assert classify(segment) == expected


def test_event_rules_win_over_todo_rules():
    # "meet" is an event keyword and "review" a task keyword
    assert classify("meet Dana to review the design") == "Event"


def test_long_reflective_text_is_journal():
    assert classify_with_rule(JOURNAL_ENTRY) == ("Journal", RULE_JOURNAL)


def test_short_reflective_text_is_not_journal():
    assert classify("I feel tired") == "Note"


def test_classify_with_rule_names():
    assert classify_with_rule("call mom") == ("To-do", RULE_TODO)
    assert classify_with_rule("dentist appointment") == ("Event", RULE_EVENT)
    assert classify_with_rule("blue sky everywhere") == ("Note", RULE_DEFAULT)


def test_keywords_match_whole_words():
    # "recall" contains "call"
    assert classify("recall the old days fondly") == "Note"


def test_custom_rules_get_default_appended():
    classifier = Classifier((keyword_rule("gym→Task", "Task", ("gym",)),))
    assert classifier.classify("gym after work") == "Task"
    assert classifier.match("nothing here at all").name == RULE_DEFAULT


def test_rule_order_is_respected():
    first = ClassificationRule("always→Event", "Event", lambda s: True)
    classifier = Classifier((first, keyword_rule(RULE_TODO, "To-do", ("call",))))
    assert classifier.classify("call mom") == "Event"
