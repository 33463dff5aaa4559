"""Schema validation and sanitization for structured model output."""

from advisor_agent.validation.schema import (
    FieldSchema,
    ValidationResult,
    generate_validation_report,
    sanitize_document,
    validate_document,
)
from advisor_agent.validation.transcript_analysis import (
    TRANSCRIPT_ANALYSIS_SCHEMA,
    sanitize_transcript_analysis,
    validate_and_repair,
    validate_transcript_analysis,
)

__all__ = [
    "FieldSchema",
    "TRANSCRIPT_ANALYSIS_SCHEMA",
    "ValidationResult",
    "generate_validation_report",
    "sanitize_document",
    "sanitize_transcript_analysis",
    "validate_and_repair",
    "validate_document",
    "validate_transcript_analysis",
]
