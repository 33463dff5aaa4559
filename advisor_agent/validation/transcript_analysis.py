"""Meeting-transcript analysis document: schema, quality checks, and repair."""

from __future__ import annotations

from typing import Any

from advisor_agent.utils.logging import get_logger
from advisor_agent.validation.schema import (
    FieldSchema,
    ValidationResult,
    generate_validation_report,
    sanitize_document,
    validate_document,
)

logger = get_logger(__name__)

PRIORITIES = ("high", "medium", "low")
ACTION_CATEGORIES = ("explicit", "implicit", "question", "document", "access", "introduction", "review")
NO_DEADLINE = "No deadline mentioned"

LOW_CONFIDENCE_THRESHOLD = 0.7
MIN_ITEM_LENGTH = 20
MIN_QUOTE_LENGTH = 10

TRANSCRIPT_ANALYSIS_SCHEMA: dict[str, FieldSchema] = {
    "action_items": FieldSchema(
        type="array",
        required=True,
        item_schema={
            "item": FieldSchema(type="string", required=True, default="Unknown action item"),
            "assigned_to": FieldSchema(type="string", required=True, default="Unknown"),
            "deadline": FieldSchema(type="string", required=False, default=NO_DEADLINE),
            "priority": FieldSchema(type="string", required=True, enum=PRIORITIES, fallback="medium"),
            "context": FieldSchema(type="string", required=True, default="No context provided"),
            "source_quote": FieldSchema(type="string", required=True, default="No source quote"),
            "confidence": FieldSchema(type="number", required=True, min=0, max=1, default=0.5),
            "category": FieldSchema(type="string", required=True, enum=ACTION_CATEGORIES, fallback="explicit"),
        },
    ),
    "questions_needing_answers": FieldSchema(
        type="array",
        required=True,
        item_schema={
            "question": FieldSchema(type="string", required=True, default="Unknown question"),
            "asked_by": FieldSchema(type="string", required=True, default="Unknown"),
            "directed_to": FieldSchema(type="string", required=False),
            "context": FieldSchema(type="string", required=True, default="No context provided"),
            "source_quote": FieldSchema(type="string", required=True, default="No source quote"),
        },
    ),
    "decisions_made": FieldSchema(
        type="array",
        required=True,
        item_schema={
            "decision": FieldSchema(type="string", required=True, default="Unknown decision"),
            "made_by": FieldSchema(type="string", required=True, default="Unknown"),
            "implications": FieldSchema(type="string", required=True, default="No implications noted"),
            "source_quote": FieldSchema(type="string", required=True, default="No source quote"),
        },
    ),
    "key_topics_discussed": FieldSchema(
        type="array",
        required=True,
        item_schema={
            "topic": FieldSchema(type="string", required=True, default="Unknown topic"),
            "summary": FieldSchema(type="string", required=True, default="No summary provided"),
            "importance": FieldSchema(type="string", required=True, enum=PRIORITIES, fallback="medium"),
        },
    ),
    "next_meeting": FieldSchema(
        type="object",
        required=True,
        schema={
            "scheduled": FieldSchema(type="boolean", required=True, default=False),
            "date": FieldSchema(type="string", required=False),
            "purpose": FieldSchema(type="string", required=False),
        },
    ),
    "analysis_metadata": FieldSchema(
        type="object",
        required=True,
        schema={
            "total_action_items": FieldSchema(type="number", required=True, min=0),
            "high_priority_items": FieldSchema(type="number", required=True, min=0),
            "items_with_deadlines": FieldSchema(type="number", required=True, min=0),
            "transcript_length": FieldSchema(type="string", required=False),
            "analysis_thoroughness": FieldSchema(
                type="string", required=True, enum=("complete", "partial"), fallback="partial"
            ),
            "potential_missed_items": FieldSchema(type="string", required=False),
        },
    ),
}


def quality_warnings(data: dict[str, Any]) -> list[str]:
    """Advisory checks layered on top of structural validity; never raises."""
    warnings: list[str] = []
    action_items = data.get("action_items")
    if isinstance(action_items, list):
        if not action_items:
            warnings.append("No action items found - this is unusual for most meetings")
        items = [i for i in action_items if isinstance(i, dict)]

        low_confidence = [
            i for i in items
            if isinstance(i.get("confidence"), (int, float)) and i["confidence"] < LOW_CONFIDENCE_THRESHOLD
        ]
        if low_confidence:
            warnings.append(
                f"{len(low_confidence)} action items have low confidence (<{LOW_CONFIDENCE_THRESHOLD})"
            )

        vague = [i for i in items if _is_vague(i)]
        if vague:
            warnings.append(f"{len(vague)} action items may be too vague or lack proper source quotes")

    metadata = data.get("analysis_metadata")
    if isinstance(metadata, dict) and metadata.get("analysis_thoroughness") == "partial":
        warnings.append("Analysis marked as partial - some items may have been missed")
    return warnings


def _is_vague(item: dict[str, Any]) -> bool:
    text = item.get("item")
    quote = item.get("source_quote")
    if not isinstance(text, str) or len(text) < MIN_ITEM_LENGTH:
        return True
    return not isinstance(quote, str) or len(quote) < MIN_QUOTE_LENGTH


def validate_transcript_analysis(data: Any) -> ValidationResult:
    """Structural validation plus quality warnings for a transcript analysis."""
    result = validate_document(data, TRANSCRIPT_ANALYSIS_SCHEMA)
    if isinstance(data, dict):
        result.warnings.extend(quality_warnings(data))
    return result


def _recompute_metadata(sanitized: dict[str, Any]) -> None:
    items = sanitized["action_items"]
    metadata = sanitized["analysis_metadata"]
    metadata["total_action_items"] = len(items)
    metadata["high_priority_items"] = sum(1 for i in items if i["priority"] == "high")
    metadata["items_with_deadlines"] = sum(1 for i in items if i.get("deadline") and i["deadline"] != NO_DEADLINE)


def sanitize_transcript_analysis(data: Any) -> dict[str, Any]:
    """
    Repair a model-produced analysis into a schema-valid document.

    Missing collections become empty, invalid enums fall back to a designated
    member, missing strings get placeholders, and the aggregate counts in
    ``analysis_metadata`` are always recomputed from the repaired items.

    Example:
        >>> doc = sanitize_transcript_analysis({"action_items": [{"item": "Send deck"}]})
        >>> doc["action_items"][0]["priority"], doc["analysis_metadata"]["total_action_items"]
        ('medium', 1)
    """
    return sanitize_document(data, TRANSCRIPT_ANALYSIS_SCHEMA, derive=_recompute_metadata)


def validate_and_repair(data: Any) -> tuple[dict[str, Any], ValidationResult]:
    """
    Validate the raw document, log the outcome, and return the repaired copy.

    The returned ValidationResult describes the *original* input so callers
    can record how much repair was needed.
    """
    result = validate_transcript_analysis(data)
    if not result.valid:
        logger.warning(
            "transcript_analysis_invalid",
            error_count=len(result.errors),
            errors=result.errors[:10],
        )
    if result.warnings:
        logger.info("transcript_analysis_warnings", warnings=result.warnings)
    return sanitize_transcript_analysis(data), result


def transcript_validation_report(result: ValidationResult) -> str:
    return generate_validation_report(result, subject="Transcript analysis")
