"""Homophone confusion sets and collocation statistics for speech rescoring.

Tables are built once and exposed read-only through ``CollocationTables``.
Pass alternate tables to ``TranscriptRescorer`` to test or tune scoring.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

# Words a recognizer commonly swaps for one another
CONFUSION_SETS: tuple[tuple[str, ...], ...] = (
    ("by", "buy", "bye"),
    ("to", "two", "too"),
    ("there", "their", "they're"),
    ("milk", "mild"),
    ("eggs", "ex", "egg"),
    ("see", "sea", "cee"),
    ("are", "our", "r"),
    ("have", "half"),
    ("call", "calls", "called"),
    ("want", "won't"),
    ("safe", "save"),
    ("packet", "packets"),
    ("and", "an"),
    ("they", "the"),
    ("free", "three"),
    ("for", "four"),
    ("one", "won"),
    ("ate", "eight"),
    ("hour", "our"),
    ("no", "know"),
    ("right", "write"),
    ("here", "hear"),
    ("where", "wear"),
    ("new", "knew"),
    ("blue", "blew"),
    ("red", "read"),
    ("break", "brake"),
    ("piece", "peace"),
    ("meet", "meat"),
    ("week", "weak"),
    ("son", "sun"),
    ("mail", "male"),
    ("tail", "tale"),
    ("sail", "sale"),
    ("pain", "pane"),
    ("rain", "reign"),
    ("plain", "plane"),
)

BIGRAM_SCORES: dict[str, float] = {
    # Shopping
    "buy two": 8, "two eggs": 9, "packet of": 10, "of milk": 10, "eggs and": 7,
    "and milk": 6, "go to": 8, "to the": 9, "the market": 7, "the store": 7,
    # Actions
    "have to": 9, "need to": 8, "want to": 7, "going to": 8, "call my": 6,
    "call the": 5, "see if": 7, "see they": 6, "see the": 5, "ask if": 6,
    "ask the": 5,
    # Common phrases
    "i have": 8, "i need": 7, "i want": 6, "they are": 8, "there are": 7,
    "we are": 6, "you are": 6, "this is": 7, "that is": 6,
    # Time expressions
    "at three": 6, "at four": 6, "at five": 6, "tomorrow at": 7, "today at": 6,
    "this evening": 6, "this morning": 6, "next week": 7, "next month": 6,
    # People
    "my mom": 7, "my dad": 6, "my friend": 6, "my friends": 6, "my project": 9,
    "their mom": 8, "their dad": 7, "their house": 6, "call their": 6,
    "the team": 5, "the client": 5,
    # Work
    "the project": 7, "complete the": 6, "finish the": 7, "send the": 6,
    "the report": 6, "the presentation": 5, "the meeting": 6, "the mail": 8,
    "the draft": 7, "about the": 7, "out the": 6,
    # Negations and questions
    "don't have": 6, "can't see": 5, "won't be": 5, "they're free": 7,
    "are free": 6, "if they": 6, "are they": 5,
}

TRIGRAM_SCORES: dict[str, float] = {
    "buy two eggs": 10, "packet of milk": 10, "i have to": 9, "i need to": 8,
    "see if they": 7, "they are free": 8, "call my mom": 7, "go to the": 8,
    "at the store": 6, "complete the project": 7, "send the email": 6,
    "finish the report": 6, "send out the": 8, "about the draft": 8,
    "finish the project": 8, "and send the": 7, "thinking about the": 7,
}

COMMON_WORDS = frozenset([
    "i", "you", "he", "she", "it", "we", "they", "me", "him", "her", "us", "them",
    "the", "a", "an", "this", "that", "these", "those", "my", "your", "his", "its",
    "our", "their",
    "am", "is", "are", "was", "were", "be", "been", "being", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might", "must",
    "can", "shall",
    "and", "or", "but", "so", "if", "when", "where", "why", "how", "what", "who", "which",
    "to", "from", "in", "on", "at", "by", "for", "with", "without", "about", "over", "under",
    "go", "come", "see", "look", "hear", "listen", "speak", "talk", "say", "tell", "ask",
    "answer", "get", "give", "take", "bring", "put", "make", "work", "play", "run",
    "walk", "sit", "stand", "eat", "drink", "sleep", "wake", "buy", "sell", "pay",
    "cost", "spend", "save", "call", "email", "text", "message", "write", "read",
    "send", "receive",
    "today", "tomorrow", "yesterday", "morning", "afternoon", "evening", "night",
    "monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday",
    "january", "february", "march", "april", "june", "july", "august",
    "september", "october", "november", "december",
    "one", "two", "three", "four", "five", "six", "seven", "eight", "nine", "ten",
    "first", "second", "third", "last", "next", "previous",
    "home", "school", "store", "market", "office", "house", "room",
    "mom", "dad", "mother", "father", "parent", "child", "friend", "family",
    "project", "task", "meeting", "appointment", "report", "presentation",
    "milk", "eggs", "bread", "water", "coffee", "tea", "food", "lunch", "dinner", "breakfast",
])

# Grammar penalty word classes
ARTICLES = frozenset(["a", "an", "the"])
PREPOSITIONS = frozenset(["to", "in", "on", "at", "by", "for"])
# Nouns that follow a possessive, so "there mom" should have been "their mom"
POSSESSIVE_CONTEXT_NOUNS = frozenset(["mom", "dad", "house", "car", "phone", "book", "work"])
# Verb pairs that cannot follow one another
IMPOSSIBLE_VERB_PAIRS = frozenset([("want", "safe")])


@dataclass(frozen=True)
class CollocationTables:
    """Immutable lookup tables consumed by the rescorer."""

    confusion_sets: tuple[tuple[str, ...], ...]
    bigrams: Mapping[str, float]
    trigrams: Mapping[str, float]
    common_words: frozenset[str]
    articles: frozenset[str] = ARTICLES
    prepositions: frozenset[str] = PREPOSITIONS
    possessive_context_nouns: frozenset[str] = POSSESSIVE_CONTEXT_NOUNS
    impossible_verb_pairs: frozenset[tuple[str, str]] = IMPOSSIBLE_VERB_PAIRS
    _confusion_index: Mapping[str, tuple[str, ...]] = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        merged: dict[str, list[str]] = {}
        for confusion_set in self.confusion_sets:
            for word in confusion_set:
                # A word in several sets gets their union ("our" -> are/our/r/hour)
                candidates = merged.setdefault(word, [])
                for other in confusion_set:
                    if other not in candidates:
                        candidates.append(other)
        index = {word: tuple(candidates) for word, candidates in merged.items()}
        object.__setattr__(self, "_confusion_index", MappingProxyType(index))

    @classmethod
    def build(
        cls,
        confusion_sets: tuple[tuple[str, ...], ...] | list[list[str]],
        bigrams: Mapping[str, float],
        trigrams: Mapping[str, float],
        common_words: frozenset[str] | set[str] | list[str],
    ) -> CollocationTables:
        """Freeze plain containers into a tables instance."""
        return cls(
            confusion_sets=tuple(tuple(s) for s in confusion_sets),
            bigrams=MappingProxyType(dict(bigrams)),
            trigrams=MappingProxyType(dict(trigrams)),
            common_words=frozenset(common_words),
        )

    def confusion_set(self, word: str) -> tuple[str, ...] | None:
        return self._confusion_index.get(word)

    def bigram(self, first: str, second: str) -> float:
        return self.bigrams.get(f"{first} {second}", 0)

    def trigram(self, first: str, second: str, third: str) -> float:
        return self.trigrams.get(f"{first} {second} {third}", 0)


@lru_cache(maxsize=1)
def default_tables() -> CollocationTables:
    """Return the built-in tables (constructed once per process)."""
    return CollocationTables.build(CONFUSION_SETS, BIGRAM_SCORES, TRIGRAM_SCORES, COMMON_WORDS)
