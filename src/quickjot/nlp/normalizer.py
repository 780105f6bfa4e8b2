"""Deterministic text normalization for typed notes and speech transcripts.

Two stages:
- apply_corrections(): misrecognition fixes, filler removal, time-format
  repair and whitespace collapse. Keeps the writer's casing and line breaks
  so list lines survive for subtask extraction.
- normalize(): corrections plus punctuation insertion and capitalization.

Both are pure, total and idempotent.
"""

import re

from quickjot.vocabularies.lexicon import DISCOURSE_MARKERS, FILLER_WORDS

# Rules can expose new matches for earlier rules; run to a fixed point
MAX_PASSES = 4

# =============================================================================
# Rule tables
# =============================================================================

# Common speech-recognition misses, applied in order (case-insensitive)
SPEECH_FIXES: list[tuple[re.Pattern, str]] = [
    (re.compile(p, re.IGNORECASE), r) for p, r in [
        (r"\bby (milk|eggs|bread|coffee|vegetables|fruits?|groceries|flowers|food|bananas?)\b", r"buy \1"),
        (r"\bpacket of mild\b", "packet of milk"),
        (r"\bheart day\b", "hard day"),
        (r"\bgo for a work\b", "go for a walk"),
        (r"\bweeknd\b", "weekend"),
        (r"\bdraught\b", "draft"),
        (r"\bsend out they\b", "send out the"),
        (r"\bthey (mail|draft|project|report|presentation|document|market|supermarket|weekend)\b", r"the \1"),
        (r"\bhave and appointment\b", "have an appointment"),
        (r"\bdoctors appointment\b", "doctor's appointment"),
        (r"\b(see|ask) if there free\b", r"\1 if they're free"),
        (r"\bneed a complete\b", "need to complete"),
        (r"\bcan walk project\b", "Canva project"),
        (r"\bto do list\b", "to-do list"),
    ]
]

_FILLER_RE = re.compile(
    r"\b(?:" + "|".join(FILLER_WORDS) + r")\b[,.]*\s*",
    re.IGNORECASE,
)

# Sentence-initial only, and only when set off by punctuation ("So, ...")
_DISCOURSE_RE = re.compile(
    r"(?:^|(?<=[.;!?]\s))(?:(?:" + "|".join(DISCOURSE_MARKERS) + r")[,.!]+\s*)+",
    re.IGNORECASE | re.MULTILINE,
)

_DOUBLE_ARTICLE_RE = re.compile(r"\b(a|an|the)(?:\s+\1\b)+", re.IGNORECASE)

# Lone lowercase "i" (not "i.e.")
_PRONOUN_I_RE = re.compile(r"(?<![\w.'])i(?=\s|'|[,!?;:]|$)")

# "2 p.m.", "2:30 p. m." -> "2:00 PM", "2:30 PM"
_TIME_DOTTED_RE = re.compile(r"\b(\d{1,2})(?::(\d{2}))?\s*([ap])\.\s?m\.(?!\w)", re.IGNORECASE)
# "2:30pm", "2:30 p m" -> "2:30 PM"
_TIME_SPACED_RE = re.compile(r"\b(\d{1,2}):(\d{2})\s*([ap])\s?m\b", re.IGNORECASE)


def _format_dotted_time(match: re.Match) -> str:
    minutes = match.group(2) or "00"
    return f"{match.group(1)}:{minutes} {match.group(3).upper()}M"


def _format_spaced_time(match: re.Match) -> str:
    return f"{match.group(1)}:{match.group(2)} {match.group(3).upper()}M"


def _drop_filler(match: re.Match) -> str:
    word = match.group(0).strip(" ,.")
    # "ER" in capitals is an acronym, not a hesitation
    if len(word) > 1 and word.isupper():
        return match.group(0)
    return ""


# =============================================================================
# Stages
# =============================================================================

def _collapse_whitespace(text: str) -> str:
    text = re.sub(r"[^\S\n]+", " ", text)
    text = re.sub(r" *\n[\s]*", "\n", text)
    return text.strip()


def _tidy_punctuation(text: str) -> str:
    text = re.sub(r" +([,.!?;:])", r"\1", text)
    text = re.sub(r",(?:\s*,)+", ",", text)
    # Punctuation orphaned at a line start by filler removal
    text = re.sub(r"(?m)^[ ,;:.!?]+", "", text)
    return text.strip()


def _correct_once(text: str) -> str:
    text = _FILLER_RE.sub(_drop_filler, text)
    text = _collapse_whitespace(text)
    text = _DISCOURSE_RE.sub("", text)
    text = _collapse_whitespace(text)

    for pattern, replacement in SPEECH_FIXES:
        text = pattern.sub(replacement, text)

    text = _DOUBLE_ARTICLE_RE.sub(r"\1", text)
    text = _PRONOUN_I_RE.sub("I", text)
    text = _TIME_DOTTED_RE.sub(_format_dotted_time, text)
    text = _TIME_SPACED_RE.sub(_format_spaced_time, text)

    text = _collapse_whitespace(text)
    return _tidy_punctuation(text)


def _punctuate(text: str) -> str:
    # Terminal punctuation
    text = text.rstrip(",;")
    if not text:
        return text
    if text[-1] not in ".!?:":
        text += "."
    # Capitalize sentence starts
    text = re.sub(r"([.!?])(\s+)([a-z])", lambda m: m.group(1) + m.group(2) + m.group(3).upper(), text)
    return text[0].upper() + text[1:]


def _to_fixed_point(func, text: str) -> str:
    for _ in range(MAX_PASSES):
        updated = func(text)
        if updated == text:
            break
        text = updated
    return text


def apply_corrections(text: str) -> str:
    """Apply misrecognition fixes, filler removal and time-format repair.

    Casing and line breaks are preserved. Returns "" for empty input.
    """
    if not text or not text.strip():
        return ""
    return _to_fixed_point(_correct_once, text)


def normalize(text: str) -> str:
    """Fully normalize text: corrections, punctuation and capitalization.

    Idempotent: normalize(normalize(x)) == normalize(x).
    """
    if not text or not text.strip():
        return ""
    return _to_fixed_point(lambda t: _punctuate(apply_corrections(t)), text)
