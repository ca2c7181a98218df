from typing import Any, Mapping

from smartform.form.schema import Field, FieldType


def coerce_value(field: Field, raw_value: Any) -> Any:
    """Applies the coercion implied by the field type to an incoming value."""
    if field.type == FieldType.CHECKBOX:
        return bool(raw_value)
    return raw_value


def format_value(field: Field, value: Any) -> Any:
    """
    Returns the value to store for a field. File fields keep their raw
    handles; other fields go through their formatter when they declare one.
    """
    if field.type == FieldType.FILE or field.formatter is None:
        return value
    return field.formatter(value)


def is_visible(field: Field, values: Mapping[str, Any]) -> bool:
    """Evaluates the field's visibility predicate against the current values."""
    if field.visible_when is None:
        return True
    return bool(field.visible_when(values))
