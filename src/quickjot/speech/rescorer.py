"""Speech alternative rescoring.

Recognizers return ranked alternatives whose confidences are poorly
calibrated for homophones ("safe"/"save", "there"/"their"). Each
alternative is rescored from its confidence plus word-level evidence:

- dictionary membership of each token, with a penalty for fragments
- in-place homophone substitution chosen by local collocation scores
- bigram and trigram collocation bonuses across the sequence
- continuity with the previous finalized utterance
- a penalty for known-bad word sequences

The highest total wins; ties keep the earlier alternative.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

from quickjot.logging import get_logger
from quickjot.models.result import Alternative
from quickjot.nlp.normalizer import normalize
from quickjot.vocabularies.collocations import CollocationTables, default_tables

# Scoring weights
CONFIDENCE_WEIGHT = 10.0
COMMON_WORD_BONUS = 0.5
WORD_BONUS = 0.1
NUMBER_BONUS = 0.3
FRAGMENT_PENALTY = 0.8
SUBSTITUTION_BONUS = 1.5
TRIGRAM_LOCAL_WEIGHT = 1.5
BIGRAM_WEIGHT = 0.3
TRIGRAM_WEIGHT = 0.4
CONTEXT_WEIGHT = 0.25

# Grammar penalties per offending adjacent pair
DOUBLE_ARTICLE_PENALTY = 2.0
IMPOSSIBLE_VERB_PENALTY = 3.0
THERE_POSSESSIVE_PENALTY = 2.0
DOUBLE_PREPOSITION_PENALTY = 1.0

_WORD_RE = re.compile(r"^[a-z]+(?:'[a-z]+)*$")
_NUMBER_RE = re.compile(r"^\d+(?:[.:,]\d+)*$")
# Leading punctuation, core (may hold inner apostrophes), trailing punctuation
_TOKEN_RE = re.compile(r"^(\W*)(.*?)(\W*)$", re.DOTALL)


@dataclass
class _Token:
    prefix: str
    core: str
    suffix: str

    @property
    def key(self) -> str:
        return self.core.lower()

    def replace(self, word: str) -> None:
        self.core = word.capitalize() if self.core[:1].isupper() else word

    def __str__(self) -> str:
        return f"{self.prefix}{self.core}{self.suffix}"


@dataclass
class RescoreResult:
    """Outcome of choosing among speech alternatives."""

    transcript: str
    chosen_index: int = -1
    scores: list[float] = field(default_factory=list)


def _split(text: str) -> list[_Token]:
    tokens = []
    for raw in text.split():
        prefix, core, suffix = _TOKEN_RE.match(raw).groups()
        tokens.append(_Token(prefix, core, suffix))
    return tokens


def tokenize(text: str) -> list[str]:
    """Lowercased word tokens with surrounding punctuation removed."""
    return [t.key for t in _split(text) if t.key]


def grammar_penalty(words: list[str], tables: CollocationTables | None = None) -> float:
    """Penalty for adjacent word pairs that are known to be wrong."""
    tables = tables or default_tables()
    penalty = 0.0
    for first, second in zip(words, words[1:]):
        if first in tables.articles and second in tables.articles:
            penalty += DOUBLE_ARTICLE_PENALTY
        if (first, second) in tables.impossible_verb_pairs:
            penalty += IMPOSSIBLE_VERB_PENALTY
        if first == "there" and second in tables.possessive_context_nouns:
            penalty += THERE_POSSESSIVE_PENALTY
        if first in tables.prepositions and second in tables.prepositions:
            penalty += DOUBLE_PREPOSITION_PENALTY
    return penalty


class TranscriptRescorer:
    """Pick the most plausible transcript among recognizer alternatives."""

    def __init__(self, tables: CollocationTables | None = None):
        self.tables = tables or default_tables()

    def _membership(self, word: str) -> float:
        if word in self.tables.common_words:
            return COMMON_WORD_BONUS
        if _WORD_RE.match(word):
            return WORD_BONUS
        if _NUMBER_RE.match(word):
            return NUMBER_BONUS
        return -FRAGMENT_PENALTY

    def _local_fit(self, prev: str, word: str, nxt: str) -> float:
        t = self.tables
        return t.bigram(prev, word) + t.bigram(word, nxt) + TRIGRAM_LOCAL_WEIGHT * t.trigram(prev, word, nxt)

    def _substitute(self, words: list[str], i: int, context_last: str) -> str | None:
        """Best homophone for words[i], or None when the original fits best."""
        candidates = self.tables.confusion_set(words[i])
        if not candidates:
            return None
        prev = words[i - 1] if i > 0 else context_last
        nxt = words[i + 1] if i + 1 < len(words) else ""

        best_word = words[i]
        best_fit = self._local_fit(prev, best_word, nxt)
        for candidate in candidates:
            if candidate == words[i]:
                continue
            fit = self._local_fit(prev, candidate, nxt)
            # Only swap on strictly better evidence
            if fit > best_fit:
                best_word, best_fit = candidate, fit
        return best_word if best_word != words[i] else None

    def score_alternative(self, alternative: Alternative, prev_text: str = "") -> tuple[float, str]:
        """Score one alternative, returning (score, corrected transcript)."""
        tokens = [t for t in _split(normalize(alternative.transcript)) if t.key]
        words = [t.key for t in tokens]
        context = tokenize(prev_text)
        context_last = context[-1] if context else ""

        score = CONFIDENCE_WEIGHT * (alternative.confidence or 0.0)

        for i, word in enumerate(words):
            score += self._membership(word)
            replacement = self._substitute(words, i, context_last)
            if replacement is not None:
                words[i] = replacement
                tokens[i].replace(replacement)
                score += SUBSTITUTION_BONUS

        score += BIGRAM_WEIGHT * sum(self.tables.bigram(a, b) for a, b in zip(words, words[1:]))
        score += TRIGRAM_WEIGHT * sum(
            self.tables.trigram(a, b, c) for a, b, c in zip(words, words[1:], words[2:])
        )

        if context_last and words:
            score += CONTEXT_WEIGHT * self.tables.bigram(context_last, words[0])

        score -= grammar_penalty(words, self.tables)
        return score, normalize(" ".join(str(t) for t in tokens))

    def refine_alternatives(
        self,
        alternatives: Iterable[Alternative | dict],
        prev_text: str = "",
    ) -> RescoreResult:
        """Choose and correct the best alternative.

        Args:
            alternatives: Recognizer alternatives, best-ranked first
            prev_text: Finalized text preceding this utterance

        Returns:
            RescoreResult with the corrected transcript ("" for no alternatives)
        """
        alternatives = [
            a if isinstance(a, Alternative) else Alternative.model_validate(a)
            for a in alternatives
        ]
        if not alternatives:
            return RescoreResult(transcript="")

        scores = []
        best_index, best_score, best_text = -1, float("-inf"), ""
        for index, alternative in enumerate(alternatives):
            score, text = self.score_alternative(alternative, prev_text)
            scores.append(score)
            if score > best_score:
                best_index, best_score, best_text = index, score, text

        session = get_logger()
        if session:
            session.log_alternatives_rescored(len(alternatives), best_index, best_score, best_text)

        return RescoreResult(transcript=best_text, chosen_index=best_index, scores=scores)


def refine_alternatives(
    alternatives: Iterable[Alternative | dict],
    prev_text: str = "",
    tables: CollocationTables | None = None,
) -> RescoreResult:
    """Module-level convenience wrapper around TranscriptRescorer."""
    return TranscriptRescorer(tables).refine_alternatives(alternatives, prev_text)


class SpeechSession:
    """Accumulates finalized transcript text across recognition results.

    Example:
        session = SpeechSession()
        session.accept([Alternative(transcript="I need to buy packet of", confidence=0.9)])
        session.accept([Alternative(transcript="mild and bread", confidence=0.9)])  # "Milk and bread."
    """

    def __init__(self, rescorer: TranscriptRescorer | None = None):
        self.rescorer = rescorer or TranscriptRescorer()
        self.final_text = ""

    def accept(self, alternatives: Iterable[Alternative | dict]) -> str:
        """Refine one final result against the text so far and append it."""
        result = self.rescorer.refine_alternatives(alternatives, self.final_text)
        if result.transcript:
            combined = f"{self.final_text} {result.transcript}".strip()
            self.final_text = normalize(combined)
        return result.transcript

    def reset(self) -> None:
        self.final_text = ""
