"""Advisory validation of a submission against the collection's fields.

Used by submission clients before they submit; the ledger itself accepts any
well-formed responses map so that later schema edits never invalidate stored
submissions.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, Mapping

from collectbox.logic.field_keys import is_selector_field, key_for
from collectbox.models.response_values import Attachment, Number, Text


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (Text, Attachment)):
        return value.value == ""
    return False


def validate_responses(
    fields: Iterable[Mapping[str, Any]],
    submitter_name: str | None,
    responses: Mapping[str, Any],
) -> Dict[str, str]:
    """Return {field label: message} for every problem found; empty when valid.

    `responses` must already be coerced to ResponseValues. The selector field
    is satisfied by the submitter name rather than a response entry.
    """
    errors: Dict[str, str] = {}
    for field in fields:
        label = str(field["label"])
        if is_selector_field(field):
            if field.get("required") and not (submitter_name or "").strip():
                errors[label] = f"{label} is required"
            continue
        value = responses.get(key_for(label))
        if _is_empty(value):
            if field.get("required"):
                errors[label] = f"{label} is required"
            continue
        kind = field.get("kind")
        if kind == "number" and not isinstance(value, Number):
            errors[label] = f"{label} must be a number"
        elif kind == "image" and not isinstance(value, Attachment):
            errors[label] = f"{label} must be an uploaded file"
        elif kind == "text" and not isinstance(value, Text):
            errors[label] = f"{label} must be text"
        elif kind == "choice":
            options = field.get("choice_options") or []
            if not isinstance(value, Text):
                errors[label] = f"{label} must be one of the listed options"
            elif options and value.value not in options:
                errors[label] = f"{label} must be one of the listed options"
    return errors


__all__ = ["validate_responses"]
