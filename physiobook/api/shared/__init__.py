"""
Shared utilities for the Physiobook API.

Input validators used by the endpoint functions.
"""

from .validators import (
    sanitize_string,
    validate_date_string,
    validate_docname,
    validate_epoch_ms,
    validate_scope,
)

__all__ = [
    "sanitize_string",
    "validate_date_string",
    "validate_docname",
    "validate_epoch_ms",
    "validate_scope",
]
