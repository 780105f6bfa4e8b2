"""Tests for segmentation."""

from quickjot.nlp.segmenter import is_meaningful, segment, split_candidates, word_count


def test_splits_on_and_then():
    assert segment("buy milk and then call mom") == ["buy milk", "call mom"]


def test_splits_on_then_and_commas():
    assert segment("pick up laundry, then email Sarah about the draft") == [
        "pick up laundry",
        "email Sarah about the draft",
    ]


def test_splits_on_semicolons_and_sentences():
    assert segment("buy milk; call mom. And book the flight") == [
        "buy milk",
        "call mom",
        "book the flight",
    ]


def test_date_comma_not_split():
    assert segment("Meeting on January 15, 2025 with the team") == [
        "Meeting on January 15, 2025 with the team"
    ]


def test_decimal_not_split():
    assert segment("run 1.5 miles today") == ["run 1.5 miles today"]


def test_list_lines_attach_to_header():
    assert segment("Groceries for the week:\n- milk\n- eggs") == [
        "Groceries for the week:\n- milk\n- eggs"
    ]


def test_inline_list_after_colon():
    assert segment("Setup tasks: - init repo - add CI") == [
        "Setup tasks:\n- init repo\n- add CI"
    ]


def test_headerless_list_entries_stand_alone():
    assert segment("- call mom\n- buy milk") == ["call mom", "buy milk"]


def test_low_signal_segments_are_candidates_but_not_meaningful():
    candidates = split_candidates("hello there. call mom")
    assert candidates == ["hello there", "call mom"]
    assert segment("hello there. call mom") == ["call mom"]


def test_is_meaningful():
    assert is_meaningful("call mom")
    assert is_meaningful("this is fine")
    assert not is_meaningful("hello there")
    assert not is_meaningful("ok")


def test_word_count_ignores_markers():
    assert word_count("- buy two eggs") == 3


def test_empty_input():
    assert segment("") == []
    assert split_candidates("   ") == []
