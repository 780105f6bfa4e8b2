"""Confidence scoring from fired rules and item count."""

from collections.abc import Iterable

from quickjot.nlp.classifier import RULE_DEFAULT, RULE_JOURNAL, STRONG_KEYWORD_RULES
from quickjot.nlp.segmenter import word_count

BASE_CONFIDENCE = 0.8
STRONG_KEYWORD_BONUS = 0.1
PER_ITEM_BONUS = 0.02
ITEM_BONUS_CAP = 0.95
SHORT_NOTE_PENALTY = 0.2
SHORT_NOTE_MAX_WORDS = 5
JOURNAL_CONFIDENCE = 0.85
# Returned when there is nothing to score (empty or unparseable input)
DEFAULT_CONFIDENCE = 0.6


def score(rules_fired: Iterable[str], item_count: int, text: str) -> float:
    """Derive a single [0, 1] confidence for a classification.

    Args:
        rules_fired: Rule tags collected while classifying
        item_count: Number of items extracted
        text: The text that was classified

    Returns:
        Confidence rounded to 2 decimals
    """
    rules = set(rules_fired)
    confidence = BASE_CONFIDENCE

    strong = bool(rules & STRONG_KEYWORD_RULES)
    if strong:
        confidence += STRONG_KEYWORD_BONUS

    if item_count > 0:
        confidence = min(ITEM_BONUS_CAP, confidence + PER_ITEM_BONUS * item_count)

    # A lone short note with no keyword is probably noise
    type_rules = rules & (STRONG_KEYWORD_RULES | {RULE_JOURNAL, RULE_DEFAULT})
    if (
        item_count == 1
        and type_rules == {RULE_DEFAULT}
        and word_count(text) < SHORT_NOTE_MAX_WORDS
    ):
        confidence -= SHORT_NOTE_PENALTY

    if RULE_JOURNAL in rules:
        confidence = JOURNAL_CONFIDENCE

    return round(max(0.0, min(1.0, confidence)), 2)
