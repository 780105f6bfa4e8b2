"""Split normalized text into candidate item segments.

Splitting is done on hard markers ("and then", "after that", "then",
clause and sentence punctuation). List lines stay attached to the line
that introduces them so subtask extraction can see them.
"""

import re

from quickjot.vocabularies import is_action_verb

MIN_SEGMENT_CHARS = 3
MIN_SEGMENT_WORDS = 3

# Applied in order; each piece from one marker is split again by the next
HARD_SPLITS: tuple[re.Pattern, ...] = (
    re.compile(r"\band then\b", re.IGNORECASE),
    re.compile(r"\bafter that\b", re.IGNORECASE),
    re.compile(r"\bthen\b", re.IGNORECASE),
    # Clause boundaries; keep "January 15, 2025" together
    re.compile(r";|,\s+(?!\d{4}\b)"),
    # Sentence ends (not decimals like "1.5")
    re.compile(r"[.!?]+(?:\s+|$)"),
)

LIST_MARKER = r"(?:[-•*]|\d+[.)]|[a-z]\))"
LIST_LINE_RE = re.compile(rf"^\s*{LIST_MARKER}\s+\S")
_INLINE_LIST_START_RE = re.compile(rf":\s*(?={LIST_MARKER}\s+\S)")
_INLINE_LIST_SPLIT_RE = re.compile(rf"\s+(?={LIST_MARKER}\s+\S)")
_LIST_MARKER_RE = re.compile(rf"^\s*{LIST_MARKER}\s+")

_LEADING_CONJUNCTION_RE = re.compile(r"^(?:and|but|also|plus)\s+", re.IGNORECASE)
_WORD_RE = re.compile(r"[A-Za-z0-9][A-Za-z0-9'-]*")


def _expand_inline_list(line: str) -> list[str]:
    """Break "Setup: - init repo - add CI" into a header and list lines."""
    match = _INLINE_LIST_START_RE.search(line)
    if not match:
        return [line]
    head = line[:match.end()].rstrip()
    rest = line[match.end():]
    items = [part.strip() for part in _INLINE_LIST_SPLIT_RE.split(rest) if part.strip()]
    return [head] + items


def _group_blocks(text: str) -> list[tuple[str, list[str]]]:
    """Group lines into (head, list lines) blocks."""
    blocks: list[tuple[str, list[str]]] = []
    accepts_children = False

    for raw_line in text.split("\n"):
        for line in _expand_inline_list(raw_line.strip()):
            if not line:
                continue
            if LIST_LINE_RE.match(line):
                if accepts_children:
                    blocks[-1][1].append(line)
                else:
                    # A list with no introducing line: each entry stands alone
                    blocks.append((_LIST_MARKER_RE.sub("", line), []))
                continue
            blocks.append((line, []))
            accepts_children = True
        if not raw_line.strip():
            accepts_children = False

    return blocks


def _split_hard(text: str) -> list[str]:
    pieces = [text]
    for marker in HARD_SPLITS:
        pieces = [part for piece in pieces for part in marker.split(piece)]
    cleaned = []
    for piece in pieces:
        piece = _LEADING_CONJUNCTION_RE.sub("", piece.strip(" ,;"))
        if piece:
            cleaned.append(piece)
    return cleaned


def word_count(text: str) -> int:
    """Count words, ignoring list markers and punctuation."""
    return len(_WORD_RE.findall(text))


def is_verb_noun(text: str) -> bool:
    """True for a two-word "verb + noun" fragment such as "call mom"."""
    words = _WORD_RE.findall(text)
    return len(words) == 2 and is_action_verb(words[0])


def is_meaningful(segment: str) -> bool:
    """Whether a segment carries enough signal to classify."""
    if len(segment.strip()) < MIN_SEGMENT_CHARS:
        return False
    return word_count(segment) >= MIN_SEGMENT_WORDS or is_verb_noun(segment)


def split_candidates(text: str) -> list[str]:
    """Split text into every candidate segment, before signal filtering."""
    if not text or not text.strip():
        return []

    segments = []
    for head, list_lines in _group_blocks(text):
        pieces = _split_hard(head)
        if list_lines:
            if pieces:
                pieces[-1] = pieces[-1] + "\n" + "\n".join(list_lines)
            else:
                pieces = ["\n".join(list_lines)]
        segments.extend(p for p in pieces if len(p.strip()) >= MIN_SEGMENT_CHARS)
    return segments


def segment(text: str) -> list[str]:
    """Split text into segments worth classifying."""
    return [s for s in split_candidates(text) if is_meaningful(s)]
