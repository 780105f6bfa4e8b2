"""Local classification pipeline.

normalize -> segment -> classify + extract -> score -> post-filter

Pure and total: any input yields a schema-valid CanonicalResult.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import date

from quickjot.config import PipelineConfig, PostFilterConfig
from quickjot.logging import get_logger
from quickjot.models.result import CanonicalResult, Item, TasksPreview
from quickjot.nlp.classifier import JOURNAL_MIN_WORDS, Classifier, default_rules
from quickjot.nlp.confidence import DEFAULT_CONFIDENCE, score
from quickjot.nlp.extractors import (
    RULE_DURATION,
    RULE_LOCATION,
    RULE_SUBTASKS,
    extract_duration,
    extract_location,
    extract_subtasks,
    extract_title,
    match_due,
)
from quickjot.nlp.normalizer import apply_corrections
from quickjot.nlp.postfilter import post_filter, split_compound
from quickjot.nlp.segmenter import is_meaningful, split_candidates

logger = logging.getLogger(__name__)

WARNING_EMPTY_INPUT = "Empty input text provided"
WARNING_NO_SEGMENTS = "No valid segments found after parsing"
RULE_AND_SPLIT = "and_split"
DEFAULT_CATEGORY = "Note"

_classifiers: dict[int, Classifier] = {}


def _classifier_for(journal_min_words: int) -> Classifier:
    if journal_min_words not in _classifiers:
        _classifiers[journal_min_words] = Classifier(default_rules(journal_min_words))
    return _classifiers[journal_min_words]


def _build_item(
    segment: str,
    classifier: Classifier,
    today: date,
    timezone: str | None,
    rules: set[str],
) -> Item:
    rule = classifier.match(segment)
    rules.add(rule.name)

    due = match_due(segment, today, timezone)
    if due is not None:
        rules.update(due.rules)

    duration = extract_duration(segment)
    if duration is not None:
        rules.add(RULE_DURATION)

    location = extract_location(segment)
    if location is not None:
        rules.add(RULE_LOCATION)

    subtasks = extract_subtasks(segment)
    if subtasks:
        rules.add(RULE_SUBTASKS)

    title = extract_title(segment)
    details = segment.strip()

    return Item(
        type=rule.item_type,
        title=title,
        details=details if details != title else None,
        due_iso=due.block.iso if due else None,
        duration_min=duration,
        location=location,
        subtasks=subtasks,
    )


def _most_common_type(items: list[Item]) -> str:
    if not items:
        return DEFAULT_CATEGORY
    # Counter keeps first-seen order among ties
    return Counter(item.type for item in items).most_common(1)[0][0]


def process_text_local(
    text: str,
    today: date | None = None,
    timezone: str | None = None,
    pipeline_config: PipelineConfig | None = None,
    post_filter_config: PostFilterConfig | None = None,
) -> CanonicalResult:
    """Run the full local pipeline over raw text.

    Args:
        text: Raw typed or transcribed text
        today: Reference date for relative dates (default: local today)
        timezone: IANA timezone recorded on resolved times
        pipeline_config: Item cap and journal threshold
        post_filter_config: Post-filter cap and near-duplicate thresholds

    Returns:
        A schema-valid CanonicalResult (possibly empty)
    """
    today = today or date.today()
    pipeline_config = pipeline_config or PipelineConfig()
    post_filter_config = post_filter_config or PostFilterConfig()

    if not text or not text.strip():
        return CanonicalResult(
            items=[],
            suggested_overall_category=DEFAULT_CATEGORY,
            forced_rules_applied=[],
            warnings=[WARNING_EMPTY_INPUT],
            confidence=DEFAULT_CONFIDENCE,
        )

    corrected = apply_corrections(text)
    candidates = split_candidates(corrected)
    segments = [s for s in candidates if is_meaningful(s)]
    dropped = [s for s in candidates if not is_meaningful(s)]

    warnings = [f'Dropped low-signal segment: "{s[:30]}"' for s in dropped]
    if dropped:
        session = get_logger()
        if session:
            session.log_segments_dropped(dropped)

    if not segments:
        logger.debug("No segments retained from %d candidates", len(candidates))
        return CanonicalResult(
            items=[],
            suggested_overall_category=DEFAULT_CATEGORY,
            forced_rules_applied=[],
            warnings=warnings + [WARNING_NO_SEGMENTS],
            confidence=DEFAULT_CONFIDENCE,
        )

    classifier = _classifier_for(pipeline_config.journal_min_words)
    rules: set[str] = set()
    items = [_build_item(s, classifier, today, timezone, rules) for s in segments]

    confidence = score(rules, len(items), corrected)

    if any(len(split_compound(item)) > 1 for item in items):
        rules.add(RULE_AND_SPLIT)
    filtered = post_filter(items, post_filter_config)[:pipeline_config.max_items]

    session = get_logger()
    if session:
        session.log_text_processed("local", len(filtered), confidence, sorted(rules))

    return CanonicalResult.model_validate(
        {
            "items": [item.model_dump() for item in filtered],
            "suggested_overall_category": _most_common_type(filtered),
            "forced_rules_applied": sorted(rules),
            "warnings": warnings,
            "confidence": confidence,
        },
        context={"max_items": pipeline_config.max_items},
    )


def normalize_result_for_testing(result: CanonicalResult) -> CanonicalResult:
    """Return a copy with every set-like list sorted, for stable comparison."""
    return result.model_copy(update={
        "forced_rules_applied": sorted(result.forced_rules_applied),
        "warnings": sorted(result.warnings),
        "items": [
            item.model_copy(update={"subtasks": sorted(item.subtasks)})
            for item in result.items
        ],
    })


def extract_tasks_preview(text: str, today: date | None = None) -> TasksPreview:
    """Summarize what the local pipeline would extract, without filtering."""
    today = today or date.today()
    segments = [s for s in split_candidates(apply_corrections(text)) if is_meaningful(s)]

    classifier = _classifier_for(JOURNAL_MIN_WORDS)
    type_counts: dict[str, int] = {}
    for segment in segments:
        item_type = classifier.classify(segment)
        type_counts[item_type] = type_counts.get(item_type, 0) + 1

    return TasksPreview(
        segment_count=len(segments),
        type_counts=type_counts,
        has_date_info=any(match_due(s, today) is not None for s in segments),
        has_duration=any(extract_duration(s) is not None for s in segments),
        has_location=any(extract_location(s) is not None for s in segments),
    )
