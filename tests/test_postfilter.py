"""Tests for item post-filtering."""

from quickjot.config import PostFilterConfig
from quickjot.models.result import Item
from quickjot.nlp.postfilter import (
    is_near_duplicate,
    normalize_title,
    post_filter,
    split_compound,
)


def make_item(title: str, item_type: str = "To-do") -> Item:
    return Item(
        type=item_type,
        title=title,
        details=None,
        due_iso=None,
        duration_min=None,
        location=None,
    )


def titles(items: list[Item]) -> list[str]:
    return [item.title for item in items]


def test_normalize_title():
    assert normalize_title("Buy  Milk!") == "buy milk"
    assert normalize_title("follow-up w/ Ana") == "follow up w ana"
    assert normalize_title("") == ""


def test_near_duplicate_law():
    assert is_near_duplicate("buy milk", "buy milk today")
    assert is_near_duplicate("buy milk today", "buy milk")
    # Three extra tokens is too many
    assert not is_near_duplicate("buy milk", "buy milk and eggs today")
    assert not is_near_duplicate("buy milk", "call mom")


def test_split_compound_verb_noun_halves():
    parts = split_compound(make_item("call mom and buy milk"))
    assert titles(parts) == ["call mom", "buy milk"]
    assert all(p.type == "To-do" for p in parts)


def test_split_compound_keeps_noun_lists():
    item = make_item("buy eggs and milk")
    assert split_compound(item) == [item]


def test_low_signal_titles_dropped():
    items = [make_item("milk"), make_item("call mom"), make_item("blue sky", "Note")]
    assert titles(post_filter(items)) == ["call mom"]


def test_near_duplicates_collapse_to_first():
    items = [make_item("buy milk"), make_item("buy milk today"), make_item("call mom")]
    assert titles(post_filter(items)) == ["buy milk", "call mom"]


def test_exact_duplicates_removed():
    items = [make_item("Call Mom"), make_item("call mom!")]
    assert titles(post_filter(items)) == ["Call Mom"]


def test_cap_applied():
    names = ["alice", "bob", "carol", "dave", "erin", "frank", "grace"]
    items = [make_item(f"call {name}") for name in names]
    assert titles(post_filter(items)) == [f"call {name}" for name in names[:5]]
    assert len(post_filter(items, PostFilterConfig(max_items=7))) == 7


def test_thresholds_are_configurable():
    items = [make_item("buy milk"), make_item("buy milk and eggs today")]
    strict = PostFilterConfig(max_extra_tokens=2)
    loose = PostFilterConfig(max_extra_tokens=3)
    assert len(post_filter(items, strict)) == 2
    assert len(post_filter(items, loose)) == 1


def test_empty():
    assert post_filter([]) == []
