"""Remote-result validation with local fallback.

Every entry point here returns a schema-valid CanonicalResult. Remote
failures of any kind are converted into a local pipeline run, tagged with
``local_fallback`` and explained in ``warnings``.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from pydantic import ValidationError

from quickjot.backends.base import RemoteClassifier, RemoteClassifierError
from quickjot.config import PipelineConfig, PostFilterConfig
from quickjot.logging import get_logger
from quickjot.models.result import CanonicalResult
from quickjot.nlp.pipeline import process_text_local
from quickjot.nlp.postfilter import post_filter

logger = logging.getLogger(__name__)

RULE_LOCAL_FALLBACK = "local_fallback"
FALLBACK_WARNING_PREFIX = "Fell back to local processing"

REASON_MISSING = "missing_payload"
REASON_SCHEMA = "schema_invalid"
REASON_REMOTE = "remote_error"
REASON_UNAVAILABLE = "remote_unavailable"


def validate_canonical(payload: Any, max_items: int) -> CanonicalResult:
    """Validate an untrusted payload against the canonical schema.

    Accepts a decoded dict, a JSON string/bytes, or an existing result.

    Raises:
        ValidationError: Payload does not match the schema
    """
    context = {"max_items": max_items}
    if isinstance(payload, CanonicalResult):
        payload = payload.model_dump()
    if isinstance(payload, (str, bytes, bytearray)):
        return CanonicalResult.model_validate_json(payload, context=context)
    return CanonicalResult.model_validate(payload, context=context)


def _fallback(
    reason: str,
    detail: str,
    original_text: str,
    today: date | None,
    timezone: str | None,
    pipeline_config: PipelineConfig,
    post_filter_config: PostFilterConfig,
) -> CanonicalResult:
    logger.warning("Remote result rejected (%s): %s", reason, detail)
    session = get_logger()
    if session:
        session.log_fallback(reason, detail)

    local = process_text_local(
        original_text,
        today=today,
        timezone=timezone,
        pipeline_config=pipeline_config,
        post_filter_config=post_filter_config,
    )
    return CanonicalResult.model_validate(
        {
            **local.model_dump(),
            "forced_rules_applied": local.forced_rules_applied + [RULE_LOCAL_FALLBACK],
            "warnings": local.warnings + [f"{FALLBACK_WARNING_PREFIX} ({reason})"],
        },
        context={"max_items": pipeline_config.max_items},
    )


def validate_or_fallback(
    remote_result: Any,
    original_text: str,
    today: date | None = None,
    timezone: str | None = None,
    pipeline_config: PipelineConfig | None = None,
    post_filter_config: PostFilterConfig | None = None,
) -> CanonicalResult:
    """Accept a remote result if it is schema-valid, else classify locally.

    A valid remote result still goes through the post-filter so both paths
    obey the same dedupe and cap rules.
    """
    pipeline_config = pipeline_config or PipelineConfig()
    post_filter_config = post_filter_config or PostFilterConfig()
    args = (original_text, today, timezone, pipeline_config, post_filter_config)

    if remote_result is None:
        return _fallback(REASON_MISSING, "no payload", *args)

    try:
        result = validate_canonical(remote_result, pipeline_config.max_items)
    except ValidationError as e:
        return _fallback(REASON_SCHEMA, f"{e.error_count()} validation error(s): {e}", *args)
    except (TypeError, ValueError) as e:
        return _fallback(REASON_SCHEMA, str(e), *args)

    filtered = post_filter(result.items, post_filter_config)
    session = get_logger()
    if session:
        session.log_text_processed("remote", len(filtered), result.confidence, result.forced_rules_applied)

    return CanonicalResult(
        items=filtered,
        suggested_overall_category=result.suggested_overall_category,
        forced_rules_applied=result.forced_rules_applied,
        warnings=result.warnings,
        confidence=result.confidence,
    )


def classify_text(
    text: str,
    classifier: RemoteClassifier | None = None,
    timezone: str = "UTC",
    user_id: str = "anonymous",
    today: date | None = None,
    pipeline_config: PipelineConfig | None = None,
    post_filter_config: PostFilterConfig | None = None,
) -> CanonicalResult:
    """Classify text remotely when possible, locally otherwise. Never raises."""
    pipeline_config = pipeline_config or PipelineConfig()
    post_filter_config = post_filter_config or PostFilterConfig()

    if classifier is None or not classifier.is_available():
        return _fallback(
            REASON_UNAVAILABLE, "no remote classifier configured",
            text, today, timezone, pipeline_config, post_filter_config,
        )

    try:
        payload = classifier.classify(text, timezone, user_id, pipeline_config.max_items)
    except RemoteClassifierError as e:
        return _fallback(
            REASON_REMOTE, str(e),
            text, today, timezone, pipeline_config, post_filter_config,
        )
    except Exception as e:
        # Third-party classifiers may raise anything; callers still get a result
        return _fallback(
            REASON_REMOTE, f"{type(e).__name__}: {e}",
            text, today, timezone, pipeline_config, post_filter_config,
        )

    return validate_or_fallback(
        payload,
        text,
        today=today,
        timezone=timezone,
        pipeline_config=pipeline_config,
        post_filter_config=post_filter_config,
    )
