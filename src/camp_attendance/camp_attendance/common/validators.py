from __future__ import annotations

from typing import Any

from ..core.exceptions import ValidationError


def require_non_negative_int(value: Any, field_name: str) -> int:
    """Accept ints and integer strings ("12"); reject bools, floats, negatives."""

    if isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a whole number")
    if isinstance(value, str):
        text = value.strip()
        # isdigit() also accepts superscripts and other scripts' digits.
        if not text.isascii() or not text.lstrip("-").isdigit():
            raise ValidationError(f"{field_name} must be a whole number")
        try:
            value = int(text)
        except ValueError as e:
            raise ValidationError(f"{field_name} must be a whole number") from e
    if not isinstance(value, int):
        raise ValidationError(f"{field_name} must be a whole number")
    if value < 0:
        raise ValidationError(f"{field_name} cannot be negative")
    return value
