"""Translate pydantic validation errors into field-level messages."""

from collections.abc import Iterable, Mapping
from typing import Any

_MESSAGES = {
    "missing": "The {field} field is required.",
    "string_too_short": "The {field} must be at least {min_length} characters.",
    "string_too_long": "The {field} may not be greater than {max_length} characters.",
    "string_type": "The {field} must be a string.",
    "extra_forbidden": "The {field} field is not allowed.",
    "model_attributes_type": "The request body must be a JSON object.",
}
_EMAIL_MESSAGE = "The {field} must be a valid email address."
_BODY_SEGMENTS = {"body", "query", "path", "header", "cookie", "form"}


def _field_name(loc: Iterable[Any]) -> str:
    parts = [str(part) for part in loc if str(part) not in _BODY_SEGMENTS]
    return ".".join(parts) or "body"


def _message(field: str, error: Mapping[str, Any]) -> str:
    error_type = error.get("type", "")
    label = field.replace("_", " ")
    if error_type == "value_error" and field.endswith("email"):
        return _EMAIL_MESSAGE.format(field=label)
    template = _MESSAGES.get(error_type)
    if template is None:
        return str(error.get("msg", "Invalid value."))
    ctx = error.get("ctx") or {}
    return template.format(field=label, **ctx)


def field_errors(errors: Iterable[Mapping[str, Any]]) -> dict[str, list[str]]:
    """Group validation errors by field, keeping the order they were reported in."""

    grouped: dict[str, list[str]] = {}
    for error in errors:
        field = _field_name(error.get("loc", ()))
        message = _message(field, error)
        messages = grouped.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return grouped
