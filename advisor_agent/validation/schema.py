"""Declarative field schemas, a recursive validator, and a total sanitizer.

A document schema is a plain mapping of top-level field name to
``FieldSchema``. ``validate_document`` reports every defect without touching
the input; ``sanitize_document`` repairs any input into an object the
validator accepts, and never raises.
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from typing import Any, Callable, Literal, Mapping

from pydantic import BaseModel, Field

FieldType = Literal["string", "number", "boolean", "array", "object"]
DocumentSchema = Mapping[str, "FieldSchema"]

PLACEHOLDER_STRING = "Unknown"


@dataclass(frozen=True)
class FieldSchema:
    """
    Schema for one field; nests through ``item_schema`` (arrays of objects)
    and ``schema`` (objects).

    ``default`` replaces a missing or invalid value during sanitization;
    ``fallback`` is the enum member used when the value is not allowed.
    """

    type: FieldType
    required: bool = False
    enum: tuple[Any, ...] | None = None
    min: float | None = None
    max: float | None = None
    item_schema: DocumentSchema | None = None
    schema: DocumentSchema | None = None
    default: Any = None
    fallback: Any = None


class ValidationResult(BaseModel):
    valid: bool
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


def _is_number(value: Any) -> bool:
    # Ints are exact at any size; only floats can be NaN or infinite.
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not isinstance(value, float) or math.isfinite(value)


_LEAF_CHECKS: dict[str, Callable[[Any], bool]] = {
    "string": lambda v: isinstance(v, str),
    "number": _is_number,
    "boolean": lambda v: isinstance(v, bool),
}


def _format_bound(bound: float) -> str:
    return str(int(bound)) if float(bound).is_integer() else str(bound)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_document(data: Any, schema: DocumentSchema) -> ValidationResult:
    """Validate ``data`` against a document schema, accumulating every error."""
    if not isinstance(data, dict):
        return ValidationResult(valid=False, errors=["Data is not an object"])
    errors: list[str] = []
    for key, field_schema in schema.items():
        if key not in data:
            if field_schema.required:
                errors.append(f"Missing required field: {key}")
            continue
        value = data[key]
        if field_schema.type == "array" and not isinstance(value, list):
            errors.append(f"Field {key} must be an array")
        elif field_schema.type == "object" and not isinstance(value, dict):
            errors.append(f"Field {key} must be an object")
        else:
            errors.extend(_validate_value(value, field_schema, key))
    return ValidationResult(valid=not errors, errors=errors)


def _validate_object(item: Any, schema: DocumentSchema, path: str) -> list[str]:
    if not isinstance(item, dict):
        return [f"{path} is not an object"]
    errors: list[str] = []
    for key, field_schema in schema.items():
        child = f"{path}.{key}"
        if key not in item:
            if field_schema.required:
                errors.append(f"{child} is required but missing")
            continue
        errors.extend(_validate_value(item[key], field_schema, child))
    return errors


def _validate_value(value: Any, field_schema: FieldSchema, path: str) -> list[str]:
    if field_schema.type == "array":
        if not isinstance(value, list):
            return [f"{path} must be an array"]
        if field_schema.item_schema is None:
            return []
        errors: list[str] = []
        for index, element in enumerate(value):
            errors.extend(_validate_object(element, field_schema.item_schema, f"{path}[{index}]"))
        return errors

    if field_schema.type == "object":
        if not isinstance(value, dict):
            return [f"{path} must be an object"]
        return _validate_object(value, field_schema.schema or {}, path)

    # Enum and range checks only apply once the type is right, so a single
    # defect yields a single error.
    if not _LEAF_CHECKS[field_schema.type](value):
        return [f"{path} must be a {field_schema.type}"]
    errors = []
    if field_schema.enum is not None and value not in field_schema.enum:
        errors.append(f"{path} must be one of: {', '.join(str(v) for v in field_schema.enum)}")
    if field_schema.type == "number":
        if field_schema.min is not None and value < field_schema.min:
            errors.append(f"{path} must be >= {_format_bound(field_schema.min)}")
        if field_schema.max is not None and value > field_schema.max:
            errors.append(f"{path} must be <= {_format_bound(field_schema.max)}")
    return errors


# ---------------------------------------------------------------------------
# Sanitization
# ---------------------------------------------------------------------------


def default_for(field_schema: FieldSchema) -> Any:
    """Value substituted for a missing or unusable field."""
    if field_schema.type == "array":
        return []
    if field_schema.type == "object":
        return _sanitize_object({}, field_schema.schema or {}, keep_unknown=True)
    if field_schema.enum:
        if field_schema.fallback is not None:
            return field_schema.fallback
        if field_schema.default in field_schema.enum:
            return field_schema.default
        return field_schema.enum[0]
    if field_schema.default is not None:
        return _clamp(field_schema.default, field_schema) if field_schema.type == "number" else field_schema.default
    if field_schema.type == "string":
        return PLACEHOLDER_STRING
    if field_schema.type == "number":
        return _clamp(0, field_schema)
    return False


def _clamp(value: float, field_schema: FieldSchema) -> float:
    if field_schema.min is not None and value < field_schema.min:
        value = field_schema.min
    if field_schema.max is not None and value > field_schema.max:
        value = field_schema.max
    return value


def _sanitize_value(value: Any, field_schema: FieldSchema) -> Any:
    if field_schema.type == "array":
        if not isinstance(value, list):
            return []
        if field_schema.item_schema is None:
            return copy.deepcopy(value)
        return [
            _sanitize_object(element if isinstance(element, dict) else {}, field_schema.item_schema, keep_unknown=False)
            for element in value
        ]
    if field_schema.type == "object":
        source = value if isinstance(value, dict) else {}
        return _sanitize_object(source, field_schema.schema or {}, keep_unknown=True)
    if field_schema.type == "number":
        if not _is_number(value):
            return default_for(field_schema)
        value = _clamp(value, field_schema)
    elif not _LEAF_CHECKS[field_schema.type](value):
        return default_for(field_schema)
    if field_schema.enum is not None and value not in field_schema.enum:
        return default_for(field_schema)
    return value


def _sanitize_object(obj: dict[str, Any], schema: DocumentSchema, keep_unknown: bool) -> dict[str, Any]:
    out: dict[str, Any] = {}
    if keep_unknown:
        out.update({k: copy.deepcopy(v) for k, v in obj.items() if k not in schema})
    for key, field_schema in schema.items():
        if key in obj:
            # Optional leaves with no declared default are dropped rather than invented.
            if _droppable(obj[key], field_schema):
                continue
            out[key] = _sanitize_value(obj[key], field_schema)
        elif field_schema.required or field_schema.default is not None:
            out[key] = default_for(field_schema)
    return out


def _droppable(value: Any, field_schema: FieldSchema) -> bool:
    if field_schema.required or field_schema.default is not None:
        return False
    if field_schema.type in ("array", "object"):
        return False
    if not _LEAF_CHECKS[field_schema.type](value):
        return True
    return field_schema.enum is not None and value not in field_schema.enum


def sanitize_document(
    data: Any,
    schema: DocumentSchema,
    derive: Callable[[dict[str, Any]], None] | None = None,
) -> dict[str, Any]:
    """
    Repair ``data`` into an object that ``validate_document`` accepts.

    Pure and total: the input is never mutated and no input raises.
    ``derive`` recomputes aggregate fields from the repaired collections.
    """
    source = data if isinstance(data, dict) else {}
    sanitized = _sanitize_object(source, schema, keep_unknown=True)
    if derive is not None:
        derive(sanitized)
    return sanitized


def generate_validation_report(result: ValidationResult, subject: str = "Document") -> str:
    """Human-readable report of a ValidationResult for logs and operators."""
    report = ""
    if result.valid:
        report += f"✅ {subject} structure is valid\n\n"
    else:
        report += f"❌ {subject} has validation errors:\n\n"
        for error in result.errors:
            report += f"  - {error}\n"
        report += "\n"
    if result.warnings:
        report += "⚠️  Warnings:\n\n"
        for warning in result.warnings:
            report += f"  - {warning}\n"
    return report
