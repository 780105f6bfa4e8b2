"""Ordered keyword-taxonomy classification of segments.

Rules are evaluated top to bottom and the first match wins. Event rules
come before to-do rules because many event phrases also contain action
verbs ("meet", "call with").
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable

from quickjot.models.result import ItemType
from quickjot.nlp.segmenter import word_count
from quickjot.vocabularies.lexicon import (
    EVENT_KEYWORDS,
    REFLECTIVE_KEYWORDS,
    TASK_KEYWORDS,
    TODO_KEYWORDS,
)

JOURNAL_MIN_WORDS = 25

# Rule tags recorded in forced_rules_applied
RULE_EVENT = "event_keyword→Event"
RULE_TODO = "todo_keyword→To-do"
RULE_TASK = "task_keyword→Task"
RULE_JOURNAL = "long_reflective→Journal"
RULE_DEFAULT = "default→Note"

STRONG_KEYWORD_RULES = frozenset([RULE_EVENT, RULE_TODO, RULE_TASK])


def _keyword_pattern(keywords: tuple[str, ...]) -> re.Pattern:
    # Longest first so "follow up" wins over "follow"
    alternatives = sorted((re.escape(k) for k in keywords), key=len, reverse=True)
    return re.compile(r"\b(?:" + "|".join(alternatives) + r")\b", re.IGNORECASE)


@dataclass(frozen=True)
class ClassificationRule:
    """One entry of the taxonomy: predicate -> item type."""

    name: str
    item_type: ItemType
    predicate: Callable[[str], bool]

    def matches(self, segment: str) -> bool:
        return self.predicate(segment)


def keyword_rule(name: str, item_type: ItemType, keywords: tuple[str, ...]) -> ClassificationRule:
    pattern = _keyword_pattern(keywords)
    return ClassificationRule(name, item_type, lambda s: pattern.search(s) is not None)


def reflective_rule(min_words: int = JOURNAL_MIN_WORDS) -> ClassificationRule:
    pattern = _keyword_pattern(REFLECTIVE_KEYWORDS)

    def predicate(segment: str) -> bool:
        return word_count(segment) > min_words and pattern.search(segment) is not None

    return ClassificationRule(RULE_JOURNAL, "Journal", predicate)


def default_rules(journal_min_words: int = JOURNAL_MIN_WORDS) -> tuple[ClassificationRule, ...]:
    """The built-in taxonomy, in evaluation order."""
    return (
        keyword_rule(RULE_EVENT, "Event", EVENT_KEYWORDS),
        keyword_rule(RULE_TODO, "To-do", TODO_KEYWORDS),
        keyword_rule(RULE_TASK, "Task", TASK_KEYWORDS),
        reflective_rule(journal_min_words),
        ClassificationRule(RULE_DEFAULT, "Note", lambda s: True),
    )


DEFAULT_RULES = default_rules()


class Classifier:
    """Assigns an item type to a segment using an ordered rule list."""

    def __init__(self, rules: tuple[ClassificationRule, ...] | None = None):
        self.rules = rules or DEFAULT_RULES
        if not self.rules or self.rules[-1].name != RULE_DEFAULT:
            self.rules = tuple(self.rules) + (ClassificationRule(RULE_DEFAULT, "Note", lambda s: True),)

    def match(self, segment: str) -> ClassificationRule:
        """Return the first rule matching the segment."""
        for rule in self.rules:
            if rule.matches(segment):
                return rule
        return self.rules[-1]

    def classify(self, segment: str) -> ItemType:
        return self.match(segment).item_type


_default_classifier = Classifier()


def classify(segment: str) -> ItemType:
    """Classify a segment with the built-in taxonomy."""
    return _default_classifier.classify(segment)


def classify_with_rule(segment: str) -> tuple[ItemType, str]:
    """Classify a segment and report which rule fired."""
    rule = _default_classifier.match(segment)
    return rule.item_type, rule.name
