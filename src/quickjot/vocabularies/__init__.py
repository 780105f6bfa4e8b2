"""Built-in vocabularies for QuickJot.

Keyword taxonomies and word lists drive the local classification pipeline;
confusion sets and collocation scores drive speech alternative rescoring.
Everything here is static data, built once at import.
"""

from quickjot.vocabularies.collocations import (
    CollocationTables,
    default_tables,
)
from quickjot.vocabularies.lexicon import (
    ACTION_VERBS,
    EVENT_KEYWORDS,
    REFLECTIVE_KEYWORDS,
    TASK_KEYWORDS,
    TODO_KEYWORDS,
)

__all__ = [
    "ACTION_VERBS",
    "EVENT_KEYWORDS",
    "REFLECTIVE_KEYWORDS",
    "TASK_KEYWORDS",
    "TODO_KEYWORDS",
    "CollocationTables",
    "default_tables",
    "is_action_verb",
]


def is_action_verb(word: str) -> bool:
    """Check a single word against the action-verb lexicon."""
    return word.lower() in ACTION_VERBS
