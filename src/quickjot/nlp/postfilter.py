"""Post-filtering of extracted items.

Steps, in order:
1. Split "A and B" titles when both halves are verb + noun actions
2. Drop low-signal titles (<3 tokens unless verb + noun)
3. Drop near-duplicates by token containment
4. Drop exact duplicates by normalized title
5. Truncate to the cap
"""

from __future__ import annotations

import re
import unicodedata

from quickjot.config import PostFilterConfig
from quickjot.models.result import Item
from quickjot.vocabularies.lexicon import ACTION_VERBS

_AND_SPLIT_RE = re.compile(r"\s+and\s+", re.IGNORECASE)


def normalize_title(title: str) -> str:
    """Normalize a title for comparison.

    NFKC, lowercase, non-alphanumerics to spaces, whitespace collapsed.
    """
    if not title:
        return ""
    text = unicodedata.normalize("NFKC", title).lower()
    text = re.sub(r"[^\w\s]|_", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def title_tokens(title: str) -> list[str]:
    normalized = normalize_title(title)
    return normalized.split() if normalized else []


def _is_verb_noun(tokens: list[str]) -> bool:
    return len(tokens) >= 2 and tokens[0] in ACTION_VERBS


def _is_exact_verb_noun(tokens: list[str]) -> bool:
    return len(tokens) == 2 and tokens[0] in ACTION_VERBS


def is_near_duplicate(
    first: str,
    second: str,
    containment_threshold: float = 0.9,
    max_extra_tokens: int = 2,
) -> bool:
    """Whether the shorter title's tokens are (almost) contained in the longer's.

    The longer title may add at most ``max_extra_tokens`` tokens.
    """
    a, b = set(title_tokens(first)), set(title_tokens(second))
    if not a or not b:
        return False
    shorter, longer = (a, b) if len(a) <= len(b) else (b, a)
    contained = len(shorter & longer) / len(shorter)
    extra = len(longer - shorter)
    return contained >= containment_threshold and extra <= max_extra_tokens


def split_compound(item: Item) -> list[Item]:
    """Split "call mom and buy milk" into two items.

    Only splits when every part keeps a verb + noun shape, so "buy eggs and
    milk" stays whole.
    """
    parts = [p.strip() for p in _AND_SPLIT_RE.split(item.title) if p.strip()]
    if len(parts) < 2:
        return [item]
    if not all(_is_verb_noun(title_tokens(p)) for p in parts):
        return [item]
    return [item.model_copy(update={"title": part}) for part in parts]


def post_filter(items: list[Item], config: PostFilterConfig | None = None) -> list[Item]:
    """Expand, filter, deduplicate and cap a list of items."""
    config = config or PostFilterConfig()

    expanded: list[Item] = []
    for item in items:
        expanded.extend(split_compound(item))

    meaningful = []
    for item in expanded:
        tokens = title_tokens(item.title)
        if len(tokens) >= 3 or _is_exact_verb_noun(tokens):
            meaningful.append(item)

    kept: list[Item] = []
    for item in meaningful:
        if any(
            is_near_duplicate(
                existing.title,
                item.title,
                config.containment_threshold,
                config.max_extra_tokens,
            )
            for existing in kept
        ):
            continue
        kept.append(item)

    seen: set[str] = set()
    unique = []
    for item in kept:
        key = normalize_title(item.title)
        if key in seen:
            continue
        seen.add(key)
        unique.append(item)

    return unique[:config.max_items]
