"""JSON-compatible output for validation results.

Used by the HTTP surface and ``texspan check --json``. Output is
deterministic (sorted keys) so reports diff cleanly.

Example:
    from texspan import validate_latex
    from texspan.serialization import result_to_json

    print(result_to_json(validate_latex("\\\\(x")))

Thread Safety:
    All functions are pure and safe to call from any thread.

"""

import json
from dataclasses import fields
from typing import Any

from texspan.validation import ErrorKind, ValidationError, ValidationResult


def to_dict(error: ValidationError) -> dict[str, Any]:
    """Convert a ValidationError to a JSON-compatible dict.

    ``kind`` is emitted as its string value.
    """
    result: dict[str, Any] = {}
    for f in fields(error):
        value = getattr(error, f.name)
        result[f.name] = value.value if isinstance(value, ErrorKind) else value
    return result


def from_dict(data: dict[str, Any]) -> ValidationError:
    """Reconstruct a ValidationError from to_dict() output."""
    return ValidationError(
        message=data["message"],
        position=data["position"],
        length=data["length"],
        excerpt=data["excerpt"],
        kind=ErrorKind(data["kind"]),
    )


def result_to_dict(result: ValidationResult) -> dict[str, Any]:
    """Convert a ValidationResult to ``{"valid": ..., "errors": [...]}``."""
    return {
        "valid": result.is_valid,
        "errors": [to_dict(error) for error in result.errors],
    }


def result_to_json(result: ValidationResult, *, indent: int | None = None) -> str:
    """Serialize a ValidationResult to a JSON string."""
    return json.dumps(
        result_to_dict(result), indent=indent, sort_keys=True, ensure_ascii=False
    )


__all__ = ["from_dict", "result_to_dict", "result_to_json", "to_dict"]
