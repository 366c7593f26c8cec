"""Client-side field validation and the touched/erroring re-validation policy."""

from __future__ import annotations

from typing import Collection, Iterable, Mapping

from models.wizard_config import FieldDefinition, FieldType


def _format_bound(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def _parse_number(value: object) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def validate_field(field: FieldDefinition, form_data: Mapping[str, object]) -> str | None:
    """Return the first violated rule message for ``field`` or ``None``.

    Static content fields never fail. Length rules apply only to text
    values; range rules only to ``number`` fields holding a numeric value.
    """

    if field.is_static:
        return None

    value = form_data.get(field.name)
    if field.required and (value is None or value == "" or value is False):
        return f"{field.label} is required"

    rules = field.validation
    if rules is None:
        return None

    if isinstance(value, str):
        if rules.min_length and len(value) < rules.min_length:
            return f"Must be at least {rules.min_length} characters"
        if rules.max_length and len(value) > rules.max_length:
            return f"Must be at most {rules.max_length} characters"

    if field.type == FieldType.NUMBER and value is not None and value != "":
        number = _parse_number(value)
        if number is not None:
            if rules.min is not None and number < rules.min:
                return f"Value must be at least {_format_bound(rules.min)}"
            if rules.max is not None and number > rules.max:
                return f"Value must be at most {_format_bound(rules.max)}"
    return None


def validate_fields(fields: Iterable[FieldDefinition], form_data: Mapping[str, object]) -> dict[str, str]:
    """Validate ``fields`` in order; the first key is the first offender."""

    errors: dict[str, str] = {}
    for field in fields:
        error = validate_field(field, form_data)
        if error:
            errors[field.name] = error
    return errors


def revalidate_fields(
    visible_fields: Iterable[FieldDefinition],
    form_data: Mapping[str, object],
    *,
    touched: Collection[str],
    previous_errors: Mapping[str, str],
) -> dict[str, str]:
    """Recompute errors after a form-data change.

    Only visible fields that are touched or already erroring are checked;
    untouched fields stay silent and hidden fields drop their errors.
    """

    errors: dict[str, str] = {}
    for field in visible_fields:
        if field.name not in touched and field.name not in previous_errors:
            continue
        error = validate_field(field, form_data)
        if error:
            errors[field.name] = error
    return errors


def check_upload(field: FieldDefinition, *, filename: str, content_type: str, size: int) -> str | None:
    """Return an error when an upload violates the field's file rules."""

    config = field.file_config
    if config is None:
        return None

    if config.accepted_types:
        allowed = [entry.strip() for entry in config.accepted_types.split(",") if entry.strip()]
        extension = f".{filename.rsplit('.', 1)[-1].lower()}" if "." in filename else ""
        mime = (content_type or "").lower()
        if allowed and not any(
            entry == "*" or mime.startswith(entry.lower().replace("/*", "/")) or entry.lower() == extension
            for entry in allowed
        ):
            return f"Please upload a file of type: {config.accepted_types}"

    if config.max_size and size > config.max_size * 1024 * 1024:
        return f"Maximum file size is {_format_bound(config.max_size)}MB"
    return None


__all__ = ["check_upload", "revalidate_fields", "validate_field", "validate_fields"]
