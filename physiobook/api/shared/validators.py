"""
Appointment-specific Validators

Input validation for the API layer. Every failure raises the engine's
ValidationError naming the offending field.
"""

import re
import uuid
from typing import Any, Optional, Sequence

from physiobook.physiobook.exceptions import ValidationError
from physiobook.physiobook.utils import parse_date


def validate_date_string(date_str: str, field_name: str = "date") -> str:
    """
    Validate date string format (YYYY-MM-DD).

    Args:
        date_str: Date string to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated date string

    Raises:
        ValidationError: If date format is invalid or the date does not exist
    """
    if not date_str:
        raise ValidationError(field_name, f"{field_name} is required")

    date_str = str(date_str).strip()
    parse_date(date_str, field_name)
    return date_str


def validate_epoch_ms(value: Any, field_name: str = "instant") -> int:
    """
    Validate an epoch milliseconds value.

    Accepts ints and digit-only strings (query parameters arrive as text).

    Returns:
        int: Validated instant
    """
    if isinstance(value, bool):
        raise ValidationError(field_name, f"{field_name} must be epoch milliseconds")

    if isinstance(value, str) and re.match(r"^\d{1,15}$", value.strip()):
        value = int(value.strip())

    if not isinstance(value, int) or value <= 0:
        raise ValidationError(field_name, f"{field_name} must be epoch milliseconds")

    return value


def validate_docname(name: str, field_name: str = "id") -> str:
    """
    Validate a record id (uuid4 string).

    Args:
        name: Record id to validate
        field_name: Name of field for error messages

    Returns:
        str: Validated id
    """
    if not name:
        raise ValidationError(field_name, f"{field_name} is required")

    name = str(name).strip()
    try:
        uuid.UUID(name)
    except ValueError:
        raise ValidationError(field_name, f"Invalid {field_name}")

    return name


def validate_scope(scope: Optional[str], allowed: Sequence[str]) -> str:
    """Validate a scope parameter; missing means the first allowed value."""
    scope = (scope or allowed[0]).strip()
    if scope not in allowed:
        raise ValidationError("scope", f"scope must be one of {', '.join(allowed)}")
    return scope


def sanitize_string(value: Optional[str], max_length: int = 200) -> Optional[str]:
    """Strip whitespace and control characters, truncate to max_length."""
    if value is None:
        return None

    value = re.sub(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]", "", str(value)).strip()
    return value[:max_length]
