"""Input validation — checks form updates before they reach the FormState."""

from audit_wizard.state import FieldValue


def validate_step_id(step_id) -> int:
    """Validate that the step identifier is a positive integer.

    Returns the step id on success.
    Raises ValueError otherwise (bools are rejected even though they are ints).
    """
    if isinstance(step_id, bool) or not isinstance(step_id, int) or step_id < 1:
        raise ValueError(f"Step id must be a positive integer, got {step_id!r}.")
    return step_id


def validate_field_name(field_name: str) -> str:
    """Validate that the field name is a non-empty string. Returns it stripped."""
    if not isinstance(field_name, str) or not field_name.strip():
        raise ValueError("Field name must be a non-empty string.")
    return field_name.strip()


def validate_field_value(value) -> FieldValue:
    """Validate that value is a string, boolean, number, or list of strings.

    Lists are copied so later caller mutation cannot leak into the FormState.
    """
    if isinstance(value, (str, bool, int, float)):
        return value
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return list(value)
    raise ValueError(
        f"Unsupported field value {value!r}: expected string, boolean, number, or list of strings."
    )
