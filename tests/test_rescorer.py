"""Tests for speech alternative rescoring."""

import pytest

from quickjot.models.result import Alternative
from quickjot.speech.rescorer import (
    SpeechSession,
    TranscriptRescorer,
    grammar_penalty,
    refine_alternatives,
    tokenize,
)
from quickjot.vocabularies.collocations import CollocationTables, default_tables


def alts(*pairs):
    return [Alternative(transcript=t, confidence=c) for t, c in pairs]


def test_tokenize_strips_punctuation():
    assert tokenize("Call Mom, now!") == ["call", "mom", "now"]
    assert tokenize("") == []


@pytest.mark.parametrize("words,expected", [
    (["a", "the"], 2.0),
    (["want", "safe"], 3.0),
    (["there", "mom"], 2.0),
    (["to", "at"], 1.0),
    (["call", "mom"], 0.0),
])
def test_grammar_penalty(words, expected):
    assert grammar_penalty(words) == expected


def test_lower_confidence_alternative_can_win():
    result = refine_alternatives(alts(
        ("I want to safe there", 0.92),
        ("I have to see they are", 0.88),
    ))

    assert result.transcript == "I have to see they are."
    assert result.chosen_index == 1
    assert result.scores[1] > result.scores[0]


@pytest.mark.parametrize("heard,corrected", [
    ("call there mom", "Call their mom."),
    ("they our coming", "They are coming."),
    ("packet of mild", "Packet of milk."),
])
def test_homophone_substitution(heard, corrected):
    assert refine_alternatives(alts((heard, 0.9))).transcript == corrected


def test_previous_text_drives_first_word():
    result = refine_alternatives(
        alts(("mild and bread", 0.90), ("milk and bread", 0.82)),
        prev_text="I need to buy packet of",
    )
    assert result.transcript == "Milk and bread."


def test_double_article_collapsed():
    assert refine_alternatives(alts(("a a lot of work", 0.9))).transcript == "A lot of work."


def test_tie_keeps_first():
    result = refine_alternatives(alts(("walk home", 0.9), ("talk home", 0.9)))

    assert result.transcript == "Walk home."
    assert result.chosen_index == 0


def test_no_alternatives():
    result = refine_alternatives([])

    assert result.transcript == ""
    assert result.chosen_index == -1
    assert result.scores == []


def test_accepts_plain_dicts():
    result = refine_alternatives([{"transcript": "call mom", "confidence": 0.8}])
    assert result.transcript == "Call mom."


def test_missing_confidence_counts_as_zero():
    result = refine_alternatives([{"transcript": "call mom"}, {"transcript": "call mom", "confidence": 0.1}])
    assert result.chosen_index == 1


def test_injected_tables():
    tables = CollocationTables.build([("walk", "talk")], {"talk home": 5}, {}, [])
    rescorer = TranscriptRescorer(tables)

    assert rescorer.refine_alternatives(alts(("walk home", 0.9))).transcript == "Talk home."


# =============================================================================
# Session accumulation
# =============================================================================

def test_session_accumulates_context():
    session = SpeechSession()

    session.accept(alts(("I need to buy packet of", 0.9)))
    latest = session.accept(alts(("mild and bread", 0.9)))

    assert latest == "Milk and bread."
    assert session.final_text.endswith("Milk and bread.")


def test_session_ignores_empty_results():
    session = SpeechSession()
    assert session.accept([]) == ""
    assert session.final_text == ""


def test_session_reset():
    session = SpeechSession()
    session.accept(alts(("call mom", 0.9)))
    session.reset()
    assert session.final_text == ""


def test_word_in_several_confusion_sets_gets_all_candidates():
    assert set(default_tables().confusion_set("our")) == {"are", "our", "r", "hour"}

    tables = CollocationTables.build([("are", "our", "r"), ("hour", "our")], {"an hour": 5}, {}, [])
    rescorer = TranscriptRescorer(tables)

    assert rescorer.refine_alternatives(alts(("wait an our", 0.9))).transcript == "Wait an hour."
